"""
Unit tests for utils.transport module.

Tests:
- Subscription - push/iterate/close semantics
- to_nostr_filter() - EventFilter conversion
- NostrSdkTransport - relay resolution, unreachable relays, per-author latest
  streamed as relays answer
- Client shutdown when an operation is cancelled
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from statusfeed.models import EventFilter, EventKind, RelayList
from statusfeed.utils.transport import (
    NostrSdkTransport,
    Subscription,
    open_client,
    to_nostr_filter,
)


A = "wss://relay-a.example.com"
B = "wss://relay-b.example.com"
C = "wss://relay-c.example.com"


# =============================================================================
# Subscription Tests
# =============================================================================


class TestSubscription:
    """Subscription async iteration."""

    async def test_close_ends_iteration_with_events_queued(self, make_status):
        first, second = make_status(), make_status()
        subscription = Subscription("s")
        subscription.push(first)
        subscription.push(second)
        await subscription.close()
        assert [e async for e in subscription] == []

    async def test_iterates_until_closed(self, make_status):
        subscription = Subscription("s")
        events = [make_status(), make_status()]
        received = []

        async def consume():
            async for event in subscription:
                received.append(event)

        task = asyncio.create_task(consume())
        for event in events:
            subscription.push(event)
        await asyncio.sleep(0)
        await subscription.close()
        await asyncio.wait_for(task, timeout=1)
        assert received == events

    async def test_push_after_close_dropped(self, make_status):
        subscription = Subscription("s")
        await subscription.close()
        subscription.push(make_status())
        assert subscription.closed
        assert subscription._queue.qsize() == 1  # only the close sentinel

    async def test_close_is_idempotent_and_calls_hook_once(self):
        hook = AsyncMock()
        subscription = Subscription("s", on_close=hook)
        await subscription.close()
        await subscription.close()
        hook.assert_awaited_once()


# =============================================================================
# to_nostr_filter() Tests
# =============================================================================


class TestToNostrFilter:
    """EventFilter to nostr_sdk.Filter conversion."""

    def test_full_filter(self):
        event_filter = EventFilter(
            kinds=(EventKind.USER_STATUS,),
            authors=("a" * 64,),
            tags={"d": ("general", "music")},
            since=1_700_000_000,
            limit=10,
        )
        data = json.loads(to_nostr_filter(event_filter).as_json())
        assert data["kinds"] == [30315]
        assert data["authors"] == ["a" * 64]
        assert sorted(data["#d"]) == ["general", "music"]
        assert data["since"] == 1_700_000_000
        assert data["limit"] == 10

    def test_empty_filter(self):
        data = json.loads(to_nostr_filter(EventFilter()).as_json())
        assert "kinds" not in data
        assert "authors" not in data


# =============================================================================
# NostrSdkTransport Tests
# =============================================================================


class TestNostrSdkTransport:
    """NostrSdkTransport with the network patched out."""

    async def test_switch_relays(self, relay_list):
        transport = NostrSdkTransport()
        await transport.switch_relays(relay_list)
        assert transport.relay_list is relay_list

    async def test_resolve_uses_usage(self, relay_list):
        transport = NostrSdkTransport()
        await transport.switch_relays(relay_list)
        assert transport._resolve(None, "read") == [A, B]
        assert transport._resolve(None, "write") == [A, C]
        assert transport._resolve([B, B, C], "read") == [B, C]

    async def test_no_relays_means_no_work(self, make_event):
        transport = NostrSdkTransport()
        with patch("statusfeed.utils.transport.open_client", AsyncMock()) as open_client:
            assert await transport.fetch_last_event(None, EventFilter(kinds=(0,))) is None
            assert [e async for e in transport.all_events_iterator(None, EventFilter())] == []
            assert await transport.send(make_event(1)) == []
        open_client.assert_not_awaited()

    async def test_unreachable_relays(self, relay_list, make_event):
        transport = NostrSdkTransport()
        await transport.switch_relays(relay_list)
        with patch("statusfeed.utils.transport.open_client", AsyncMock(return_value=None)):
            assert await transport.fetch_last_event(None, EventFilter(kinds=(0,))) is None
            assert await transport.send(make_event(1)) == []
            subscription = await transport.subscribe(None, EventFilter(kinds=(0,)))
        assert subscription.closed

    async def test_fetch_last_event_picks_newest(self, make_event):
        transport = NostrSdkTransport()
        old, new = make_event(0, created_at=100), make_event(0, created_at=200)
        with patch.object(transport, "_fetch_all", AsyncMock(return_value=[old, new])):
            assert await transport.fetch_last_event([A], EventFilter(kinds=(0,))) is new

    async def test_fetch_last_event_per_author(self, make_event):
        transport = NostrSdkTransport()
        alice, bob, carol = "a" * 64, "b" * 64, "c" * 64
        events = [
            make_event(0, alice, 100),
            make_event(0, alice, 300),
            make_event(0, bob, 200),
        ]
        with (
            patch("statusfeed.utils.transport.to_nostr_filter"),
            patch.object(transport, "_fetch_from_relay", AsyncMock(return_value=events)),
        ):
            pairs = [
                pair
                async for pair in transport.fetch_last_event_per_author(
                    [A], EventFilter(kinds=(0,), authors=(alice, bob, carol))
                )
            ]
        assert [(pk, e.created_at if e else None) for pk, e in pairs] == [
            (alice, 300),
            (bob, 200),
            (carol, None),
        ]

    async def test_fetch_last_event_per_author_streams_as_relays_answer(self, make_event):
        transport = NostrSdkTransport()
        alice, bob = "a" * 64, "b" * 64
        slow_relay = asyncio.Event()

        async def fetch(url, nostr_filter, timeout):
            if url == B:
                await slow_relay.wait()
                return [make_event(0, alice, 300)]
            return [make_event(0, alice, 100)]

        with (
            patch("statusfeed.utils.transport.to_nostr_filter"),
            patch.object(transport, "_fetch_from_relay", fetch),
        ):
            stream = transport.fetch_last_event_per_author(
                [A, B], EventFilter(kinds=(0,), authors=(alice, bob))
            )
            author, first = await asyncio.wait_for(anext(stream), timeout=1)
            assert (author, first.created_at) == (alice, 100)

            slow_relay.set()
            rest = [(pk, e.created_at if e else None) async for pk, e in stream]
        assert rest == [(alice, 300), (bob, None)]

    async def test_fetch_last_event_per_author_skips_older_answers(self, make_event):
        transport = NostrSdkTransport()
        alice = "a" * 64
        answers = {A: [make_event(0, alice, 300)], B: [make_event(0, alice, 100)]}

        async def fetch(url, nostr_filter, timeout):
            if url == B:
                await asyncio.sleep(0.01)
            return answers[url]

        with (
            patch("statusfeed.utils.transport.to_nostr_filter"),
            patch.object(transport, "_fetch_from_relay", fetch),
        ):
            pairs = [
                (pk, e.created_at)
                async for pk, e in transport.fetch_last_event_per_author(
                    [A, B], EventFilter(kinds=(0,), authors=(alice,))
                )
            ]
        assert pairs == [(alice, 300)]

    async def test_close_closes_open_subscriptions(self):
        transport = NostrSdkTransport()
        subscription = Subscription("s")
        transport._subscriptions.add(subscription)
        await transport.close()
        assert subscription.closed


# =============================================================================
# Cancellation Tests
# =============================================================================


def _client() -> MagicMock:
    client = MagicMock()
    client.add_relay = AsyncMock()
    client.shutdown = AsyncMock()
    client.unsubscribe_all = AsyncMock()
    return client


class TestCancellation:
    """Clients are shut down when the caller is cancelled mid-operation."""

    async def test_cancel_during_connect(self):
        client = _client()
        connecting = asyncio.Event()

        async def slow_connect(timeout):
            connecting.set()
            await asyncio.sleep(10)

        client.try_connect = slow_connect
        with patch("statusfeed.utils.transport.create_client", return_value=client):
            task = asyncio.create_task(open_client([A], 3.0))
            await asyncio.wait_for(connecting.wait(), timeout=1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        client.shutdown.assert_awaited_once()

    async def test_cancel_during_subscribe(self):
        client = _client()
        subscribing = asyncio.Event()

        async def slow_subscribe(nostr_filter, opts):
            subscribing.set()
            await asyncio.sleep(10)

        client.subscribe = slow_subscribe
        transport = NostrSdkTransport()
        opened = AsyncMock(return_value=(client, {A: MagicMock()}))
        with (
            patch("statusfeed.utils.transport.open_client", opened),
            patch("statusfeed.utils.transport.to_nostr_filter"),
        ):
            task = asyncio.create_task(transport.subscribe([A], EventFilter(kinds=(0,))))
            await asyncio.wait_for(subscribing.wait(), timeout=1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        client.shutdown.assert_awaited_once()
        assert transport._subscriptions == set()
