"""Live status map and its last-write-wins merge policy.

[StatusStore][statusfeed.services.statuses.store.StatusStore] owns the
``pubkey -> UserStatus`` map and the
[InvalidationScheduler][statusfeed.services.statuses.scheduler.InvalidationScheduler]
that clears slots when their expiration is reached. Every status event, from
history, from the realtime subscription, or published locally, goes through
[apply()][statusfeed.services.statuses.store.StatusStore.apply].

An incoming event is dropped, in this order, when:

1. it is not a kind 30315 event, its ``d`` tag is not a supported category,
   or its ``expiration`` tag is malformed;
2. its expiration is already reached;
3. its ``created_at`` is not strictly newer than the last accepted event for
   the same ``(pubkey, category)``.

Rule 3 compares against a per-slot watermark that survives tombstones and
expiry, so an older event arriving after a newer tombstone cannot resurrect
the slot. Events for one slot therefore converge to the newest one regardless
of delivery order.

A surviving event with content is stored and its expiry timer armed (or
cancelled when it carries no expiration). A surviving empty event is a
tombstone: the timer is cancelled and the slot removed; an account whose
slots are all empty is deleted from the map.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from statusfeed.core.logger import Logger
from statusfeed.core.metrics import ServiceMetrics
from statusfeed.core.store import MappingStore
from statusfeed.models import Event, EventKind, ServiceName, StatusCategory, StatusData, UserStatus
from statusfeed.nips.nip38 import status_from_event

from .scheduler import InvalidationScheduler


Clock = Callable[[], int]


def unix_now() -> int:
    """Current wall-clock time in whole seconds."""
    return int(time.time())


class StatusStore:
    """Observable ``pubkey -> UserStatus`` map with expiry timers.

    Args:
        clock: Returns the current unix time; injectable for tests.
        metrics: Records ``events_applied``/``events_rejected`` counters and
            the ``statuses`` gauge.

    Examples:
        ```python
        store = StatusStore()
        store.statuses.select(lambda snap: snap.get(pubkey), render)
        store.apply(event)
        ```
    """

    def __init__(self, *, clock: Clock = unix_now, metrics: ServiceMetrics | None = None) -> None:
        self._clock = clock
        self._logger = Logger(ServiceName.STATUSES)
        self._metrics = metrics if metrics is not None else ServiceMetrics(ServiceName.STATUSES)
        self._statuses: MappingStore[str, UserStatus] = MappingStore("statuses")
        self._scheduler = InvalidationScheduler(self.invalidate)
        self._watermarks: dict[tuple[str, StatusCategory], int] = {}

    @property
    def statuses(self) -> MappingStore[str, UserStatus]:
        """The observable snapshot store."""
        return self._statuses

    @property
    def scheduler(self) -> InvalidationScheduler:
        return self._scheduler

    def get(self, pubkey: str) -> UserStatus | None:
        return self._statuses.get_item(pubkey)

    def apply(self, event: Event) -> bool:
        """Merge one status event into the map.

        Returns:
            ``True`` if the event was accepted, ``False`` if it was dropped. A
            tombstone for an empty slot is accepted: it still advances the
            slot's watermark.
        """
        if event.kind != EventKind.USER_STATUS:
            return self._reject(event, "wrong_kind")

        data = status_from_event(event)
        if data is None:
            return self._reject(event, "unparseable")

        now = self._clock()
        if data.is_expired(now):
            return self._reject(event, "expired")

        key = (event.pubkey, data.category)
        if data.created_at <= self._watermark(event.pubkey, data.category):
            return self._reject(event, "stale")
        self._watermarks[key] = data.created_at

        if data.is_tombstone:
            self._scheduler.cancel(*key)
            self._remove_slot(event.pubkey, data.category)
            self._logger.debug(
                "status_cleared", pubkey=event.pubkey, category=data.category, event_id=event.id
            )
        else:
            self._store_slot(event.pubkey, data)
            if data.expiration is not None:
                self._scheduler.schedule(event.pubkey, data.category, data.expiration - now)
            else:
                self._scheduler.cancel(*key)
            self._logger.debug(
                "status_updated",
                pubkey=event.pubkey,
                category=data.category,
                event_id=event.id,
                expiration=data.expiration,
            )

        self._metrics.inc_counter("events_applied")
        self._metrics.set_gauge("statuses", len(self._statuses))
        return True

    def invalidate(self, pubkey: str, category: StatusCategory) -> None:
        """Clear ``category``'s slot of ``pubkey`` as it is stored now.

        Called by the scheduler when an expiration is reached.
        """
        if self._remove_slot(pubkey, category):
            self._logger.debug("status_expired", pubkey=pubkey, category=category)
            self._metrics.set_gauge("statuses", len(self._statuses))

    def clear(self) -> None:
        """Drop every status, watermark, and pending timer."""
        self._scheduler.cancel_all()
        self._watermarks.clear()
        self._statuses.clear()
        self._metrics.set_gauge("statuses", 0)

    def _watermark(self, pubkey: str, category: StatusCategory) -> int:
        mark = self._watermarks.get((pubkey, category), -1)
        current = self._statuses.get_item(pubkey)
        slot = current.get(category) if current is not None else None
        if slot is not None:
            mark = max(mark, slot.created_at)
        return mark

    def _store_slot(self, pubkey: str, data: StatusData) -> None:
        current = self._statuses.get_item(pubkey) or UserStatus(pubkey=pubkey)
        self._statuses.put(pubkey, current.with_status(data))

    def _remove_slot(self, pubkey: str, category: StatusCategory) -> bool:
        current = self._statuses.get_item(pubkey)
        if current is None or current.get(category) is None:
            return False
        updated = current.without(category)
        if updated.is_empty:
            self._statuses.remove(pubkey)
        else:
            self._statuses.put(pubkey, updated)
        return True

    def _reject(self, event: Event, reason: str) -> bool:
        self._logger.debug("status_rejected", event_id=event.id, reason=reason)
        self._metrics.inc_counter("events_rejected")
        return False
