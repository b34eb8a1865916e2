"""Per-(account, category) status expiry timers.

[InvalidationScheduler][statusfeed.services.statuses.scheduler.InvalidationScheduler]
holds at most one ``loop.call_later`` handle per ``(pubkey, category)``.
Scheduling a key that already has a timer cancels the old handle before the
new one is stored, so a rescheduled key fires exactly once, at the later
time. Firing calls back into the status store, which re-reads the current
state; the scheduler itself never touches the network.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from statusfeed.models import StatusCategory


logger = logging.getLogger(__name__)

TimerKey = tuple[str, StatusCategory]


class InvalidationScheduler:
    """Timer arena keyed by ``(pubkey, category)``.

    Args:
        on_expire: Called as ``on_expire(pubkey, category)`` when a timer fires.

    Note:
        Must be used from inside a running event loop.
    """

    def __init__(self, on_expire: Callable[[str, StatusCategory], object]) -> None:
        self._on_expire = on_expire
        self._timers: dict[TimerKey, asyncio.TimerHandle] = {}

    @property
    def pending(self) -> int:
        """Number of armed timers."""
        return len(self._timers)

    def is_scheduled(self, pubkey: str, category: StatusCategory) -> bool:
        return (pubkey, StatusCategory(category)) in self._timers

    def schedule(self, pubkey: str, category: StatusCategory, ttl_seconds: float) -> None:
        """Arm (or re-arm) the timer for ``(pubkey, category)``.

        A non-positive ``ttl_seconds`` fires on the next loop iteration.
        """
        key = (pubkey, StatusCategory(category))
        self.cancel(*key)
        loop = asyncio.get_running_loop()
        handle = loop.call_later(max(ttl_seconds, 0.0), self._fire, key)
        self._timers[key] = handle

    def cancel(self, pubkey: str, category: StatusCategory) -> bool:
        """Disarm the timer for ``(pubkey, category)``; ``False`` if none was armed."""
        handle = self._timers.pop((pubkey, StatusCategory(category)), None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    def _fire(self, key: TimerKey) -> None:
        self._timers.pop(key, None)
        try:
            self._on_expire(*key)
        except Exception:  # runs as a bare loop callback
            logger.exception("status_invalidation_failed pubkey=%s category=%s", *key)
