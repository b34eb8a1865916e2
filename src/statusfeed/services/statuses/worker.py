"""Status synchronization for the followed accounts.

[StatusSyncWorker][statusfeed.services.statuses.StatusSyncWorker] runs in
two phases per generation:

1. **History**: every stored kind 30315 event of the followings in a
   supported category is streamed from the read relays and applied.
2. **Live**: a forward subscription starting at the current time delivers
   new events, de-duplicated by id, into the same merge policy.

A restart cancels both phases and closes the subscription before the next
generation begins.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import TYPE_CHECKING

from statusfeed.core.metrics import ServiceMetrics
from statusfeed.core.worker import RestartableWorker, WorkerState
from statusfeed.models import SUPPORTED_CATEGORIES, EventFilter, EventKind, ServiceName
from statusfeed.utils.transport import DEFAULT_TIMEOUT

from .configs import StatusSyncConfig
from .store import Clock, StatusStore, unix_now


if TYPE_CHECKING:
    from statusfeed.models import Event, RelayList
    from statusfeed.utils.transport import RelayTransport


class StatusSyncWorker(RestartableWorker):
    """Keeps the followings' statuses up to date.

    Args:
        transport: Network access.
        store: Status store receiving every event.
        config: De-duplication settings.
        timeout: Relay timeout in seconds for the history phase.
        clock: Provides the ``since`` of the live subscription.
        metrics: Records ``history_events``/``live_events`` counters.
    """

    def __init__(
        self,
        transport: RelayTransport,
        store: StatusStore,
        *,
        config: StatusSyncConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Clock = unix_now,
        metrics: ServiceMetrics | None = None,
    ) -> None:
        super().__init__(ServiceName.STATUSES, metrics)
        self._transport = transport
        self._store = store
        self._config = config or StatusSyncConfig()
        self._timeout = timeout
        self._clock = clock
        self._seen: OrderedDict[str, None] = OrderedDict()

    @property
    def store(self) -> StatusStore:
        return self._store

    async def _run(self, generation: int, authors: tuple[str, ...], relay_list: RelayList) -> None:
        relays = relay_list.select("read")
        event_filter = EventFilter(
            kinds=(EventKind.USER_STATUS,),
            authors=authors,
            tags={"d": SUPPORTED_CATEGORIES},
        )
        self._seen.clear()

        self._set_state(generation, WorkerState.FETCHING_HISTORY)
        history = 0
        async for event in self._transport.all_events_iterator(relays, event_filter, self._timeout):
            if not self.is_current(generation):
                return
            history += 1
            self._remember(event.id)
            self._store.apply(event)
        self._metrics.inc_counter("history_events", history)
        self._logger.info("status_history_fetched", generation=generation, events=history)

        if not self.is_current(generation):
            return
        subscription = await self._transport.subscribe(
            relays, event_filter.with_since(self._clock())
        )
        if not await self._attach(generation, subscription):
            return

        self._set_state(generation, WorkerState.LIVE)
        async for event in subscription:
            if not self.is_current(generation):
                return
            self._on_live_event(event)
        self._logger.info("status_subscription_ended", generation=generation)

    def _on_live_event(self, event: Event) -> None:
        if event.id in self._seen:
            return
        self._remember(event.id)
        self._metrics.inc_counter("live_events")
        self._store.apply(event)

    def _remember(self, event_id: str) -> None:
        self._seen[event_id] = None
        while len(self._seen) > self._config.seen_cache_size:
            self._seen.popitem(last=False)

    def _reset(self) -> None:
        self._seen.clear()
        self._store.clear()
