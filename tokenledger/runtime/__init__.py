"""
tokenledger.runtime - host collaborators, unit of work, journal and events.
"""

from .events import EventSink, InMemoryEventSink, NullEventSink
from .host import Host, Identity, StaticIdentity, UnitOfWork
from .journal import Journal

__all__ = [
    "Host",
    "Identity",
    "StaticIdentity",
    "UnitOfWork",
    "Journal",
    "EventSink",
    "InMemoryEventSink",
    "NullEventSink",
]
