"""
Shared pytest fixtures:
- Fresh in-memory KV per test (SQLite ":memory:")
- Switchable caller identity (`StaticIdentity`) starting as the issuer "alice"
- Recording event sink
- One instance of each token variant, plus initialized variants
"""
from __future__ import annotations

import os
from typing import Iterator

import pytest

from tokenledger.config import Settings, get_settings
from tokenledger.db import open_kv
from tokenledger.runtime.events import InMemoryEventSink
from tokenledger.runtime.host import Host, StaticIdentity
from tokenledger.token.fungible import FungibleToken
from tokenledger.token.multi import MultiToken
from tokenledger.token.nonfungible import NonFungibleToken

# Keep the process environment from leaking into Settings().
for _k in list(os.environ):
    if _k.startswith("TOKENLEDGER_"):
        del os.environ[_k]

ISSUER_MSP = "mailabs"
OTHER_MSP = "org2"

ALICE = "alice"   # issuer-side identity
BOB = "bob"
CAROL = "carol"
DAVE = "dave"


@pytest.fixture(autouse=True)
def _fresh_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def kv():
    store = open_kv("memory://")
    yield store
    store.close()


@pytest.fixture
def identity() -> StaticIdentity:
    return StaticIdentity(ALICE, ISSUER_MSP)


@pytest.fixture
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def host(kv, identity, sink, settings) -> Host:
    return Host(kv, identity, sink, settings)


@pytest.fixture
def act(identity):
    """
    Switch the caller for a block:

        with act(BOB):
            ft.transfer(CAROL, 5)
    """

    def _act(caller: str, issuer: str = OTHER_MSP):
        return identity.acting_as(caller, issuer)

    return _act


@pytest.fixture
def ft(host) -> FungibleToken:
    return FungibleToken(host)


@pytest.fixture
def nft(host) -> NonFungibleToken:
    return NonFungibleToken(host)


@pytest.fixture
def mt(host) -> MultiToken:
    return MultiToken(host)


@pytest.fixture
def ft_ready(ft, sink) -> FungibleToken:
    ft.initialize("Kard", "KRD", 2)
    sink.clear()
    return ft


@pytest.fixture
def nft_ready(nft, sink) -> NonFungibleToken:
    nft.initialize("Kard Cards", "KRDC")
    sink.clear()
    return nft


@pytest.fixture
def mt_ready(mt, sink) -> MultiToken:
    mt.initialize("Kard", "KRD")
    sink.clear()
    return mt
