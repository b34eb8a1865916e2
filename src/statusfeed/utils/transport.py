"""
Relay transport: the seam between the sync engine and the Nostr network.

[RelayTransport][statusfeed.utils.transport.RelayTransport] is the protocol
the services layer talks to. [NostrSdkTransport][statusfeed.utils.transport.NostrSdkTransport]
implements it on top of ``nostr_sdk.Client``, opening one client per
operation against exactly the relays requested:

* a relay that fails to connect, errors, or times out is logged at WARNING
  and excluded from that operation only; the operation never aborts because
  of one relay;
* events are converted into [Event][statusfeed.models.event.Event] at this
  boundary, and realtime events are signature-verified before delivery;
* [switch_relays()][statusfeed.utils.transport.NostrSdkTransport.switch_relays]
  sets the account relay list used whenever an operation is called with
  ``relays=None`` (read relays for queries, write relays for sends).

Examples:
    ```python
    transport = NostrSdkTransport()
    await transport.switch_relays(relay_list)
    latest = await transport.fetch_last_event(
        None, EventFilter(kinds=(0,), authors=(pubkey,), limit=1), timeout=3.0
    )
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from datetime import timedelta
from typing import Protocol

from nostr_sdk import (
    Alphabet,
    Client,
    ClientBuilder,
    Filter,
    HandleNotification,
    Kind,
    NostrSdkError,
    PublicKey,
    RelayMessage,
    RelayUrl,
    SingleLetterTag,
    Timestamp,
)
from nostr_sdk import Event as NostrEvent

from statusfeed.models import Event, EventFilter, RelayList, RelayUsageKind


DEFAULT_TIMEOUT = 3.0

logger = logging.getLogger(__name__)

# nostr-sdk logs callback errors itself; they are handled here
logging.getLogger("nostr_sdk").setLevel(logging.CRITICAL)

_RELAY_ERRORS = (OSError, TimeoutError, NostrSdkError)


# =============================================================================
# Subscription
# =============================================================================


class Subscription:
    """Async iterator over the events of one realtime subscription.

    Producers call [push()][statusfeed.utils.transport.Subscription.push];
    the consumer iterates with ``async for``. Iteration ends after
    [close()][statusfeed.utils.transport.Subscription.close]. Events pushed
    after closing are dropped.
    """

    def __init__(
        self,
        subscription_id: str,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self.id = subscription_id
        self._queue: asyncio.Queue[Event | None] = asyncio.Queue()
        self._closed = False
        self._on_close = on_close

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, event: Event) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Event:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item

    async def close(self) -> None:
        """Stop delivery and release the underlying connection. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)
        if self._on_close is not None:
            await self._on_close()


# =============================================================================
# Protocol
# =============================================================================


class RelayTransport(Protocol):
    """What the sync engine needs from the network."""

    async def fetch_last_event(
        self,
        relays: Sequence[str] | None,
        event_filter: EventFilter,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    ) -> Event | None:
        """Most recent event matching the filter across the relays."""
        ...

    def fetch_last_event_per_author(
        self,
        relays: Sequence[str] | None,
        event_filter: EventFilter,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    ) -> AsyncIterator[tuple[str, Event | None]]:
        """Stream the latest event of each author in the filter.

        A pair ``(author, event)`` is yielded each time a relay answers with an
        event newer than the best one seen so far, so results improve as relays
        respond. Authors no relay knows are yielded last as ``(author, None)``.
        """
        ...

    def all_events_iterator(
        self,
        relays: Sequence[str] | None,
        event_filter: EventFilter,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    ) -> AsyncIterator[Event]:
        """Every stored event matching the filter, as relays return them."""
        ...

    async def switch_relays(self, relay_list: RelayList) -> None:
        """Make ``relay_list`` the default relay set."""
        ...

    async def subscribe(self, relays: Sequence[str] | None, event_filter: EventFilter) -> Subscription:
        """Open a realtime subscription delivering signature-verified events."""
        ...

    async def send(self, event: Event, relays: Sequence[str] | None = None) -> list[str]:
        """Send a signed event; returns the relays that accepted it."""
        ...


# =============================================================================
# Filter conversion
# =============================================================================


def to_nostr_filter(event_filter: EventFilter) -> Filter:
    """Build a nostr-sdk ``Filter`` from an [EventFilter][statusfeed.models.filter.EventFilter].

    Tag filters use ``SingleLetterTag.lowercase``; letters unknown to
    ``Alphabet`` are skipped with a WARNING.
    """
    f = Filter()
    if event_filter.kinds:
        f = f.kinds([Kind(k) for k in event_filter.kinds])
    if event_filter.authors:
        f = f.authors([PublicKey.parse(a) for a in event_filter.authors])
    if event_filter.since is not None:
        f = f.since(Timestamp.from_secs(event_filter.since))
    if event_filter.limit is not None:
        f = f.limit(event_filter.limit)

    for letter, values in event_filter.tags.items():
        alphabet = getattr(Alphabet, letter.upper(), None)
        if alphabet is None:
            logger.warning("invalid_tag_filter tag=%s reason=not_in_alphabet", letter)
            continue
        tag = SingleLetterTag.lowercase(alphabet)
        for value in values:
            f = f.custom_tag(tag, value)

    return f


def _to_model(inner: NostrEvent) -> Event | None:
    try:
        return Event.from_nostr(inner)
    except (TypeError, ValueError) as e:
        logger.debug("event_conversion_failed error=%s", e)
        return None


# =============================================================================
# Client helpers
# =============================================================================


def create_client() -> Client:
    """Create a bare ``Client``. Events are signed before reaching the transport."""
    return ClientBuilder().build()


async def shutdown_client(client: Client) -> None:
    # nostr-sdk can raise arbitrary FFI errors during cleanup
    with contextlib.suppress(Exception):
        await client.shutdown()


async def open_client(  # noqa: ASYNC109
    relays: Sequence[str], timeout: float
) -> tuple[Client, dict[str, RelayUrl]] | None:
    """Connect a new client to ``relays``.

    Relays that fail to parse or connect within ``timeout`` are logged at
    WARNING and left out.

    Returns:
        The client and the relays it reached, or ``None`` if none was reachable.
    """
    client = create_client()
    try:
        parsed: dict[str, RelayUrl] = {}
        for url in relays:
            try:
                relay_url = RelayUrl.parse(url)
                await client.add_relay(relay_url)
            except _RELAY_ERRORS as e:
                logger.warning("relay_add_failed relay=%s error=%s", url, e)
                continue
            parsed[url] = relay_url

        if not parsed:
            await shutdown_client(client)
            return None

        try:
            output = await client.try_connect(timedelta(seconds=timeout))
        except _RELAY_ERRORS as e:
            logger.warning("relay_connect_failed relays=%s error=%s", len(parsed), e)
            await shutdown_client(client)
            return None

        connected: dict[str, RelayUrl] = {}
        for url, relay_url in parsed.items():
            if relay_url in output.success:
                connected[url] = relay_url
            else:
                logger.warning(
                    "relay_connect_failed relay=%s error=%s",
                    url,
                    output.failed.get(relay_url, "timeout"),
                )

        if not connected:
            await shutdown_client(client)
            return None
    except BaseException:
        # cancellation included; the caller never sees this client
        await shutdown_client(client)
        raise
    return client, connected


# =============================================================================
# Transport
# =============================================================================


class _NotificationHandler(HandleNotification):
    """Forwards verified realtime events into a [Subscription][statusfeed.utils.transport.Subscription]."""

    def __init__(self, subscription: Subscription) -> None:
        self._subscription = subscription

    async def handle(self, relay_url: RelayUrl, subscription_id: str, event: NostrEvent) -> None:
        if not event.verify():
            logger.debug("event_signature_invalid relay=%s", relay_url)
            return
        model = _to_model(event)
        if model is not None:
            self._subscription.push(model)

    async def handle_msg(self, relay_url: RelayUrl, msg: RelayMessage) -> None:
        # only events are of interest
        pass


class NostrSdkTransport:
    """[RelayTransport][statusfeed.utils.transport.RelayTransport] backed by ``nostr_sdk.Client``.

    Args:
        connect_timeout: Seconds allowed for connecting to relays.
    """

    def __init__(self, *, connect_timeout: float = DEFAULT_TIMEOUT) -> None:
        self._connect_timeout = connect_timeout
        self._relay_list = RelayList()
        self._subscriptions: set[Subscription] = set()

    @property
    def relay_list(self) -> RelayList:
        return self._relay_list

    def _resolve(self, relays: Sequence[str] | None, usage: RelayUsageKind) -> list[str]:
        if relays is not None:
            return list(dict.fromkeys(relays))
        return self._relay_list.select(usage)

    async def switch_relays(self, relay_list: RelayList) -> None:
        """Replace the default relay set."""
        previous = self._relay_list
        self._relay_list = relay_list
        logger.info(
            "relays_switched relays=%s added=%s removed=%s",
            len(relay_list),
            len(set(relay_list) - set(previous)),
            len(set(previous) - set(relay_list)),
        )

    async def _fetch_from_relay(  # noqa: ASYNC109
        self, url: str, nostr_filter: Filter, timeout: float
    ) -> list[Event]:
        opened = await open_client([url], timeout)
        if opened is None:
            return []
        client, _ = opened
        try:
            events = await client.fetch_events(nostr_filter, timedelta(seconds=timeout))
        except _RELAY_ERRORS as e:
            logger.warning("relay_fetch_failed relay=%s error=%s", url, e)
            return []
        finally:
            await shutdown_client(client)

        models = [_to_model(e) for e in events.to_vec()]
        return [m for m in models if m is not None]

    async def _fetch_all(  # noqa: ASYNC109
        self, relays: list[str], event_filter: EventFilter, timeout: float
    ) -> list[Event]:
        nostr_filter = to_nostr_filter(event_filter)
        results = await asyncio.gather(
            *(self._fetch_from_relay(url, nostr_filter, timeout) for url in relays)
        )
        return [event for batch in results for event in batch]

    async def fetch_last_event(
        self,
        relays: Sequence[str] | None,
        event_filter: EventFilter,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    ) -> Event | None:
        targets = self._resolve(relays, "read")
        if not targets:
            return None
        events = await self._fetch_all(targets, event_filter, timeout)
        return max(events, key=lambda e: e.created_at, default=None)

    async def fetch_last_event_per_author(
        self,
        relays: Sequence[str] | None,
        event_filter: EventFilter,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    ) -> AsyncIterator[tuple[str, Event | None]]:
        targets = self._resolve(relays, "read")
        authors = event_filter.authors
        latest: dict[str, Event] = {}
        if targets and authors:
            nostr_filter = to_nostr_filter(event_filter)
            pending = [
                asyncio.ensure_future(self._fetch_from_relay(url, nostr_filter, timeout))
                for url in targets
            ]
            try:
                for batch in asyncio.as_completed(pending):
                    improved: set[str] = set()
                    for event in await batch:
                        current = latest.get(event.pubkey)
                        if event.pubkey in authors and (
                            current is None or event.created_at > current.created_at
                        ):
                            latest[event.pubkey] = event
                            improved.add(event.pubkey)
                    for author in authors:
                        if author in improved:
                            yield author, latest[author]
            finally:
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
        for author in authors:
            if author not in latest:
                yield author, None

    async def all_events_iterator(
        self,
        relays: Sequence[str] | None,
        event_filter: EventFilter,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    ) -> AsyncIterator[Event]:
        targets = self._resolve(relays, "read")
        opened = await open_client(targets, timeout) if targets else None
        if opened is None:
            return
        client, _ = opened
        seen: set[str] = set()
        try:
            stream = await client.stream_events(
                to_nostr_filter(event_filter), timeout=timedelta(seconds=timeout)
            )
            while True:
                try:
                    inner = await stream.next()
                except _RELAY_ERRORS as e:
                    logger.warning("event_stream_failed error=%s", e)
                    break
                if inner is None:
                    break
                model = _to_model(inner)
                if model is None or model.id in seen:
                    continue
                seen.add(model.id)
                yield model
        except _RELAY_ERRORS as e:
            logger.warning("event_stream_open_failed relays=%s error=%s", len(targets), e)
        finally:
            await shutdown_client(client)

    async def subscribe(self, relays: Sequence[str] | None, event_filter: EventFilter) -> Subscription:
        targets = self._resolve(relays, "read")
        opened = await open_client(targets, self._connect_timeout) if targets else None
        if opened is None:
            logger.warning("subscription_without_relays relays=%s", len(targets))
            subscription = Subscription("closed")
            await subscription.close()
            return subscription

        client, connected = opened
        task: asyncio.Task[None] | None = None

        async def release() -> None:
            self._subscriptions.discard(subscription)
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError, *_RELAY_ERRORS):
                    await task
            with contextlib.suppress(*_RELAY_ERRORS):
                await client.unsubscribe_all()
            await shutdown_client(client)

        try:
            output = await client.subscribe(to_nostr_filter(event_filter), None)
        except _RELAY_ERRORS as e:
            logger.warning("subscribe_failed relays=%s error=%s", len(connected), e)
            await shutdown_client(client)
            subscription = Subscription("closed")
            await subscription.close()
            return subscription
        except BaseException:
            await shutdown_client(client)
            raise

        subscription = Subscription(str(getattr(output, "id", output)), on_close=release)
        task = asyncio.create_task(client.handle_notifications(_NotificationHandler(subscription)))
        self._subscriptions.add(subscription)
        logger.debug("subscribed id=%s relays=%s", subscription.id, len(connected))
        return subscription

    async def send(self, event: Event, relays: Sequence[str] | None = None) -> list[str]:
        targets = self._resolve(relays, "write")
        opened = await open_client(targets, self._connect_timeout) if targets else None
        if opened is None:
            return []
        client, connected = opened
        try:
            output = await client.send_event(event.to_nostr())
        except _RELAY_ERRORS as e:
            logger.warning("event_send_failed event_id=%s error=%s", event.id, e)
            return []
        finally:
            await shutdown_client(client)

        accepted = []
        for url, relay_url in connected.items():
            if relay_url in output.success:
                accepted.append(url)
            else:
                logger.warning(
                    "relay_send_failed relay=%s event_id=%s error=%s",
                    url,
                    event.id,
                    output.failed.get(relay_url, "no response"),
                )
        return accepted

    async def close(self) -> None:
        """Close every open subscription."""
        for subscription in list(self._subscriptions):
            await subscription.close()
