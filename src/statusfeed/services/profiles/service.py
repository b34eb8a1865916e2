"""Profile synchronization for the followed accounts.

[ProfileSyncWorker][statusfeed.services.profiles.ProfileSyncWorker] fetches
the latest kind 0 event of every followed account from the account's read
relays and keeps one [UserProfile][statusfeed.models.profile.UserProfile]
per pubkey in a copy-on-write store. A restart (new followings or a new relay
list) cancels the fetch in flight; profiles arriving for a superseded
generation are dropped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from statusfeed.core.metrics import ServiceMetrics
from statusfeed.core.store import MappingStore
from statusfeed.core.worker import RestartableWorker, WorkerState
from statusfeed.models import EventFilter, EventKind, ServiceName, UserProfile
from statusfeed.utils.transport import DEFAULT_TIMEOUT


if TYPE_CHECKING:
    from statusfeed.models import RelayList
    from statusfeed.utils.transport import RelayTransport


class ProfileSyncWorker(RestartableWorker):
    """Keeps the followings' profiles up to date.

    Args:
        transport: Network access.
        store: Profile store to fill; a new one is created when omitted.
        timeout: Relay timeout in seconds.
        metrics: Records the ``profiles`` gauge.

    Examples:
        ```python
        worker = ProfileSyncWorker(transport)
        await worker.restart(account.followings, account.relay_list)
        await worker.wait()
        worker.store.get_item(pubkey)
        ```
    """

    def __init__(
        self,
        transport: RelayTransport,
        store: MappingStore[str, UserProfile] | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        metrics: ServiceMetrics | None = None,
    ) -> None:
        super().__init__(ServiceName.PROFILES, metrics)
        self._transport = transport
        self._store: MappingStore[str, UserProfile] = (
            store if store is not None else MappingStore("profiles")
        )
        self._timeout = timeout

    @property
    def store(self) -> MappingStore[str, UserProfile]:
        return self._store

    async def _run(self, generation: int, authors: tuple[str, ...], relay_list: RelayList) -> None:
        self._set_state(generation, WorkerState.FETCHING_HISTORY)
        event_filter = EventFilter(kinds=(EventKind.SET_METADATA,), authors=authors)

        found: set[str] = set()
        async for author, event in self._transport.fetch_last_event_per_author(
            relay_list.select("read"), event_filter, self._timeout
        ):
            if not self.is_current(generation):
                return
            if event is None:
                continue
            found.add(author)
            profile = UserProfile.from_event(event)
            if profile.same_source(self._store.get_item(profile.pubkey)):
                continue
            self._store.put(profile.pubkey, profile)

        self._metrics.set_gauge("profiles", len(self._store))
        self._logger.info(
            "profiles_fetched",
            generation=generation,
            requested=len(authors),
            found=len(found),
        )

    def _reset(self) -> None:
        self._store.clear()
        self._metrics.set_gauge("profiles", 0)
