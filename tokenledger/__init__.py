"""
tokenledger
===========

Token accounting (fungible, non-fungible and multi-token) over an ordered
key-value store. Every public operation runs as one atomic unit of work and
emits at most one event after it commits.

Quick start
-----------
    from tokenledger import FungibleToken, Host, StaticIdentity, open_kv

    host = Host(open_kv("memory://"), StaticIdentity("alice", "mailabs"))
    ft = FungibleToken(host)
    ft.initialize("Kard", "KRD", 2)
    ft.mint(100)
"""

from .config import Settings, get_settings
from .db import open_kv
from .errors import TokenError
from .runtime.events import InMemoryEventSink, NullEventSink
from .runtime.host import Host, StaticIdentity
from .token.fungible import FungibleToken
from .token.multi import MultiToken
from .token.nonfungible import NonFungibleToken
from .version import __version__

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "open_kv",
    "TokenError",
    "Host",
    "StaticIdentity",
    "InMemoryEventSink",
    "NullEventSink",
    "FungibleToken",
    "NonFungibleToken",
    "MultiToken",
]
