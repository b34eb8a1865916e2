"""
Pytest configuration and shared fixtures for statusfeed tests.

Provides:
- Event factories for kind 0, 3, 10002, and 30315 events
- An in-memory relay transport with per-relay event sets, realtime
  subscriptions, and send outcomes
- A fake signer producing deterministic event ids
- A controllable clock
"""

from __future__ import annotations

import asyncio
import hashlib
import itertools
import json
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

import pytest

from statusfeed.core.exceptions import SigningError
from statusfeed.models import Event, EventDraft, EventFilter, EventKind, RelayList
from statusfeed.utils.transport import Subscription


# ============================================================================
# Constants
# ============================================================================

ALICE = "a" * 64
BOB = "b" * 64
CAROL = "c" * 64
DAVE = "d" * 64

RELAY_A = "wss://relay-a.example.com"
RELAY_B = "wss://relay-b.example.com"
RELAY_C = "wss://relay-c.example.com"

NOW = 1_700_000_000

_ids = itertools.count()


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Event factories
# ============================================================================


def build_event(
    kind: int,
    pubkey: str = ALICE,
    created_at: int = NOW,
    tags: Sequence[Sequence[str]] = (),
    content: str = "",
) -> Event:
    """Event with a unique, deterministic id and a dummy signature."""
    seed = f"{next(_ids)}:{pubkey}:{created_at}:{kind}:{content}:{tags}"
    return Event(
        id=hashlib.sha256(seed.encode()).hexdigest(),
        pubkey=pubkey,
        created_at=created_at,
        kind=kind,
        tags=[list(tag) for tag in tags],
        content=content,
        sig="0" * 128,
    )


def build_status_event(
    pubkey: str = ALICE,
    created_at: int = NOW,
    content: str = "working",
    *,
    category: str = "general",
    expiration: int | str | None = None,
    link: str | None = None,
) -> Event:
    tags: list[list[str]] = [["d", category]]
    if link is not None:
        tags.append(["r", link])
    if expiration is not None:
        tags.append(["expiration", str(expiration)])
    return build_event(EventKind.USER_STATUS, pubkey, created_at, tags, content)


@pytest.fixture
def make_event() -> Callable[..., Event]:
    return build_event


@pytest.fixture
def make_status() -> Callable[..., Event]:
    return build_status_event


@pytest.fixture
def make_profile_event() -> Callable[..., Event]:
    def factory(pubkey: str = ALICE, created_at: int = NOW, **fields: Any) -> Event:
        return build_event(EventKind.SET_METADATA, pubkey, created_at, (), json.dumps(fields))

    return factory


@pytest.fixture
def make_contacts_event() -> Callable[..., Event]:
    def factory(
        pubkey: str = ALICE,
        followings: Sequence[str] = (),
        created_at: int = NOW,
        relays: dict[str, dict[str, bool]] | None = None,
    ) -> Event:
        tags = [["p", pk] for pk in followings]
        content = json.dumps(relays) if relays is not None else ""
        return build_event(EventKind.CONTACTS, pubkey, created_at, tags, content)

    return factory


@pytest.fixture
def make_relay_list_event() -> Callable[..., Event]:
    def factory(
        pubkey: str = ALICE,
        relays: Sequence[Sequence[str]] = (),
        created_at: int = NOW,
    ) -> Event:
        tags = [["r", *relay] for relay in relays]
        return build_event(EventKind.RELAY_LIST, pubkey, created_at, tags)

    return factory


# ============================================================================
# Fake collaborators
# ============================================================================


def matches(event: Event, event_filter: EventFilter) -> bool:
    if event_filter.kinds and event.kind not in event_filter.kinds:
        return False
    if event_filter.authors and event.pubkey not in event_filter.authors:
        return False
    if event_filter.since is not None and event.created_at < event_filter.since:
        return False
    for letter, values in event_filter.tags.items():
        if not set(event.tag_values(letter)) & set(values):
            return False
    return True


class FakeTransport:
    """In-memory relay network.

    ``relays`` maps a relay URL to the events it stores. Relays missing from
    the mapping behave as unreachable.
    """

    def __init__(self) -> None:
        self.relays: dict[str, list[Event]] = {}
        self.relay_list = RelayList()
        self.switched: list[RelayList] = []
        self.fetch_calls: list[tuple[list[str], EventFilter]] = []
        self.subscriptions: list[tuple[list[str] | None, EventFilter, Subscription]] = []
        self.sent: list[tuple[Event, list[str] | None]] = []
        self.accepting: list[str] | None = None
        self.history_gate: asyncio.Event | None = None
        self.subscribed = asyncio.Event()
        self.closed = False

    def add(self, relay: str, *events: Event) -> None:
        self.relays.setdefault(relay, []).extend(events)

    def _targets(self, relays: Sequence[str] | None, usage: str) -> list[str]:
        if relays is not None:
            return list(relays)
        return self.relay_list.select(usage)  # type: ignore[arg-type]

    def _query(self, relays: Sequence[str] | None, event_filter: EventFilter) -> list[Event]:
        targets = self._targets(relays, "read")
        self.fetch_calls.append((targets, event_filter))
        found: dict[str, Event] = {}
        for url in targets:
            for event in self.relays.get(url, []):
                if matches(event, event_filter):
                    found[event.id] = event
        return list(found.values())

    async def fetch_last_event(
        self, relays: Sequence[str] | None, event_filter: EventFilter, timeout: float = 3.0
    ) -> Event | None:
        return max(self._query(relays, event_filter), key=lambda e: e.created_at, default=None)

    async def fetch_last_event_per_author(
        self, relays: Sequence[str] | None, event_filter: EventFilter, timeout: float = 3.0
    ) -> AsyncIterator[tuple[str, Event | None]]:
        events = self._query(relays, event_filter)
        for author in event_filter.authors:
            mine = [e for e in events if e.pubkey == author]
            yield author, max(mine, key=lambda e: e.created_at, default=None)

    async def all_events_iterator(
        self, relays: Sequence[str] | None, event_filter: EventFilter, timeout: float = 3.0
    ) -> AsyncIterator[Event]:
        events = self._query(relays, event_filter)
        if self.history_gate is not None:
            await self.history_gate.wait()
        for event in events:
            await asyncio.sleep(0)
            yield event

    async def switch_relays(self, relay_list: RelayList) -> None:
        self.relay_list = relay_list
        self.switched.append(relay_list)

    async def subscribe(self, relays: Sequence[str] | None, event_filter: EventFilter) -> Subscription:
        subscription = Subscription(f"sub-{len(self.subscriptions)}")
        self.subscriptions.append((list(relays) if relays is not None else None, event_filter, subscription))
        self.subscribed.set()
        return subscription

    async def send(self, event: Event, relays: Sequence[str] | None = None) -> list[str]:
        targets = self._targets(relays, "write")
        self.sent.append((event, list(relays) if relays is not None else None))
        if self.accepting is not None:
            return [url for url in targets if url in self.accepting]
        return targets

    async def close(self) -> None:
        self.closed = True
        for _, _, subscription in self.subscriptions:
            await subscription.close()

    @property
    def live(self) -> Subscription:
        """The most recent realtime subscription."""
        return self.subscriptions[-1][2]


class FakeSigner:
    """Signer that stamps drafts into events without cryptography."""

    def __init__(
        self,
        pubkey: str | None = ALICE,
        relays: RelayList | None = None,
        *,
        refuse: bool = False,
    ) -> None:
        self.pubkey = pubkey
        self.relays = relays
        self.refuse = refuse
        self.signed: list[EventDraft] = []

    async def get_public_key(self) -> str | None:
        return self.pubkey

    async def get_relays(self) -> RelayList | None:
        return self.relays

    async def sign_event(self, draft: EventDraft) -> Event:
        if self.refuse:
            raise SigningError("user rejected")
        self.signed.append(draft)
        return build_event(
            draft.kind,
            self.pubkey or ALICE,
            draft.created_at,
            draft.tags,
            draft.content,
        )


class FakeClock:
    """Settable unix clock."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def relay_list() -> RelayList:
    return RelayList.from_dict(
        {
            RELAY_A: {"read": True, "write": True},
            RELAY_B: {"read": True, "write": False},
            RELAY_C: {"read": False, "write": True},
        }
    )


# ============================================================================
# Helpers
# ============================================================================


async def drain(loops: int = 20) -> None:
    """Let pending tasks run for a few loop iterations."""
    for _ in range(loops):
        await asyncio.sleep(0)


@pytest.fixture
def settle() -> Callable[..., Any]:
    return drain


# ============================================================================
# Custom Markers
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no I/O)")
