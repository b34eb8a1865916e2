"""Status feed engine: identity, account data, and the derived views.

[StatusFeed][statusfeed.services.engine.StatusFeed] wires the bootstrap,
profile sync, status sync, and publishing components together:

1. [login()][statusfeed.services.engine.StatusFeed.login] records the
   identity and fetches the account data.
2. Whenever the account data changes, the transport switches to the new
   relay list and both sync workers restart against the new
   ``(followings, relay_list)``. An unchanged pair restarts nothing.
3. [logout()][statusfeed.services.engine.StatusFeed.logout] clears the
   identity, disconnects from every relay, and empties the stores.

Each [run()][statusfeed.services.engine.StatusFeed.run] cycle refetches the
account data, so ``run_forever()`` keeps followings and relays current.

See Also:
    [StatusFeedConfig][statusfeed.services.engine.StatusFeedConfig]:
        Configuration model for this service.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from types import TracebackType
from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel, Field

from statusfeed.core.base_service import BaseService
from statusfeed.core.exceptions import SigningError
from statusfeed.core.metrics import ServiceMetrics
from statusfeed.core.store import MappingStore, Store, Unsubscribe
from statusfeed.models import (
    AccountMetadata,
    RelayList,
    ServiceName,
    StatusData,
    UserProfile,
    UserStatus,
    is_hex_key,
)
from statusfeed.nips.nip38 import MAX_STATUS_TTL
from statusfeed.services.bootstrap import AccountDataFetcher, RelaySelector
from statusfeed.services.profiles import ProfileSyncWorker
from statusfeed.services.statuses import (
    Clock,
    StatusPublisher,
    StatusStore,
    StatusSyncWorker,
    unix_now,
)
from statusfeed.utils.signer import KeysSigner, SignerProbe
from statusfeed.utils.storage import FileIdentityStore, MemoryIdentityStore
from statusfeed.utils.transport import NostrSdkTransport

from .configs import StatusFeedConfig


if TYPE_CHECKING:
    from statusfeed.models import Event
    from statusfeed.utils.signer import Signer
    from statusfeed.utils.storage import IdentityStore
    from statusfeed.utils.transport import RelayTransport


class UpdateStatusInput(BaseModel):
    """A request to change the logged-in account's general status.

    Attributes:
        content: Status text; an empty string clears the status.
        link_url: Optional link; an empty string means none.
        ttl: Seconds until the status expires; ``None`` means never.
    """

    model_config = {"frozen": True}

    content: str
    link_url: str = ""
    ttl: int | None = Field(default=None, ge=0, le=MAX_STATUS_TTL)


def _same_profile(a: UserProfile, b: UserProfile) -> bool:
    return a.same_source(b)


def _same_status(a: UserStatus | None, b: UserStatus | None) -> bool:
    if a is None or b is None:
        return a is b
    return a.content_id == b.content_id


class StatusFeed(BaseService[StatusFeedConfig]):
    """The status feed sync engine.

    Args:
        config: Engine configuration; defaults when omitted.
        transport: Network access; a
            [NostrSdkTransport][statusfeed.utils.transport.NostrSdkTransport]
            when omitted.
        signer: Signing provider; a
            [KeysSigner][statusfeed.utils.signer.KeysSigner] when omitted
            and a private key is configured.
        identity_store: Persists the logged-in pubkey; file-backed when
            ``identity_path`` is configured, in-memory otherwise.
        clock: Unix time source shared by the merge policy and the publisher.

    Examples:
        ```python
        async with StatusFeed.from_yaml("config.yaml") as feed:
            await feed.login_with_signer()
            feed.statuses.subscribe(lambda snap: print(feed.pubkeys_by_last_update()))
            await feed.run_forever()
        ```
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.FEED
    CONFIG_CLASS: ClassVar[type[StatusFeedConfig]] = StatusFeedConfig

    def __init__(
        self,
        config: StatusFeedConfig | None = None,
        *,
        transport: RelayTransport | None = None,
        signer: Signer | None = None,
        identity_store: IdentityStore | None = None,
        clock: Clock = unix_now,
    ) -> None:
        super().__init__(config=config)
        bootstrap = self._config.bootstrap
        timeout = bootstrap.connect_timeout
        enabled = self._config.metrics.enabled

        self._transport: RelayTransport = (
            transport if transport is not None else NostrSdkTransport(connect_timeout=timeout)
        )
        keys = self._config.signer.keys.keys
        if signer is None and keys is not None:
            signer = KeysSigner(keys, self._config.signer.relay_list)
        self._signer = signer

        if identity_store is None:
            path = self._config.identity_path
            identity_store = FileIdentityStore(path) if path else MemoryIdentityStore()
        self._identity = identity_store

        self._pubkey: Store[str | None] = Store("pubkey", None)
        self._account_data: Store[AccountMetadata | None] = Store("account_data", None)
        self._account_data_available: Store[bool] = Store("account_data_available", False)
        self._sync_key: tuple[tuple[str, ...], RelayList] | None = None
        self._sync_lock = asyncio.Lock()

        status_metrics = ServiceMetrics(ServiceName.STATUSES, enabled=enabled)
        self._selector = RelaySelector(signer, bootstrap)
        self._fetcher = AccountDataFetcher(self._transport, self._selector, bootstrap)
        self._status_store = StatusStore(clock=clock, metrics=status_metrics)
        self._profile_worker = ProfileSyncWorker(
            self._transport,
            timeout=timeout,
            metrics=ServiceMetrics(ServiceName.PROFILES, enabled=enabled),
        )
        self._status_worker = StatusSyncWorker(
            self._transport,
            self._status_store,
            config=self._config.statuses,
            timeout=timeout,
            clock=clock,
            metrics=status_metrics,
        )
        self._publisher = StatusPublisher(
            signer,
            self._transport,
            self._status_store,
            clock=clock,
            metrics=ServiceMetrics(ServiceName.PUBLISHER, enabled=enabled),
        )
        self._probe = SignerProbe(
            lambda: self._signer is not None,
            interval=self._config.signer.interval,
            max_checks=self._config.signer.max_checks,
        )

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    def pubkey(self) -> str | None:
        """Public key of the logged-in account, ``None`` when logged out."""
        return self._pubkey.value

    @property
    def identity(self) -> Store[str | None]:
        return self._pubkey

    @property
    def signer(self) -> Signer | None:
        return self._signer

    def set_signer(self, signer: Signer | None) -> None:
        """Install (or remove) the signing provider after construction."""
        self._signer = signer
        self._selector.signer = signer
        self._publisher.signer = signer
        self._probe.reset()

    async def login(self, pubkey: str, *, refresh: bool = True) -> None:
        """Log in as ``pubkey`` and fetch its account data.

        Args:
            pubkey: Hex public key of the account.
            refresh: Fetch the account data now; otherwise the next
                [run()][statusfeed.services.engine.StatusFeed.run] cycle does.

        Raises:
            ValueError: If ``pubkey`` is not a 64-character hex key.
        """
        if not is_hex_key(pubkey):
            raise ValueError("pubkey must be a 64-character hex string")
        pubkey = pubkey.lower()
        self._identity.save(pubkey)
        if pubkey != self._pubkey.value:
            if self._pubkey.value is not None:
                await self._apply_account_data(None)
            self._pubkey.set(pubkey)
            self._logger.info("logged_in", pubkey=pubkey)
        if refresh:
            await self.refresh()

    async def login_with_signer(self, *, refresh: bool = True) -> str:
        """Wait for the signer and log in with its public key.

        Raises:
            SigningError: If no signer became available or it has no key.
        """
        if not await self._probe.wait_ready() or self._signer is None:
            raise SigningError("No signer available")
        pubkey = await self._signer.get_public_key()
        if pubkey is None:
            self._logger.error("signer_pubkey_missing")
            raise SigningError("Signer did not provide a public key")
        await self.login(pubkey, refresh=refresh)
        return pubkey.lower()

    async def restore(self, *, refresh: bool = True) -> str | None:
        """Log in with the identity remembered by the identity store, if any."""
        pubkey = self._identity.load()
        if pubkey is None:
            return None
        await self.login(pubkey, refresh=refresh)
        return pubkey

    async def logout(self) -> None:
        """Forget the identity, disconnect from all relays, and clear the stores."""
        self._identity.clear()
        previous = self._pubkey.value
        self._pubkey.set(None)
        await self._apply_account_data(None)
        self._logger.info("logged_out", pubkey=previous)

    # -------------------------------------------------------------------------
    # Account data
    # -------------------------------------------------------------------------

    @property
    def account_data(self) -> Store[AccountMetadata | None]:
        return self._account_data

    @property
    def account_data_available(self) -> bool:
        return self._account_data_available.value

    async def refresh(self) -> AccountMetadata | None:
        """Refetch the logged-in account's metadata and resync the workers."""
        pubkey = self.pubkey
        if pubkey is None:
            return None
        data = await self._fetcher.fetch_account_data(pubkey)
        if self.pubkey != pubkey:
            self._logger.info("account_data_discarded", pubkey=pubkey)
            return None
        await self._apply_account_data(data)
        return data

    async def _apply_account_data(self, data: AccountMetadata | None) -> None:
        async with self._sync_lock:
            self._account_data.set(data)
            self._account_data_available.set(data is not None)
            await self._sync_workers()

    async def _sync_workers(self) -> None:
        if not self.account_data_available:
            self._sync_key = None
            await self._transport.switch_relays(RelayList())
            await self._profile_worker.clear()
            await self._status_worker.clear()
            self.set_gauge("followings", 0)
            self._logger.info("relays_disconnected")
            return

        data = self._account_data.value
        if data is None:
            self._logger.error("account_data_unreachable", pubkey=self.pubkey)
            return

        if data.sync_key == self._sync_key:
            self._logger.debug("sync_unchanged", followings=len(data.followings))
            return

        await self._transport.switch_relays(data.relay_list)
        self._sync_key = data.sync_key
        await self._profile_worker.restart(data.followings, data.relay_list)
        await self._status_worker.restart(data.followings, data.relay_list)
        self.set_gauge("followings", len(data.followings))

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    @property
    def profiles(self) -> MappingStore[str, UserProfile]:
        return self._profile_worker.store

    @property
    def statuses(self) -> MappingStore[str, UserStatus]:
        return self._status_store.statuses

    @property
    def profile_worker(self) -> ProfileSyncWorker:
        return self._profile_worker

    @property
    def status_worker(self) -> StatusSyncWorker:
        return self._status_worker

    def profile_of(self, pubkey: str) -> UserProfile:
        """Profile of ``pubkey``, or a placeholder while none is known."""
        profile = self.profiles.get_item(pubkey)
        if profile is not None:
            return profile
        data = self._account_data.value
        if data is not None and data.pubkey == pubkey:
            return data.profile
        return UserProfile.placeholder(pubkey)

    def status_of(self, pubkey: str) -> UserStatus | None:
        return self.statuses.get_item(pubkey)

    @property
    def my_general_status(self) -> StatusData | None:
        """The logged-in account's live general status, if any."""
        if self.pubkey is None:
            return None
        status = self.status_of(self.pubkey)
        return status.general if status is not None else None

    def pubkeys_by_last_update(self) -> list[str]:
        """Accounts with a live status, most recently updated first.

        Ties are broken by ascending pubkey.
        """
        ordered = sorted(
            self.statuses.value.values(), key=lambda s: (-s.last_update_time, s.pubkey)
        )
        return [status.pubkey for status in ordered]

    def select_profile(self, pubkey: str, callback: Callable[[UserProfile], None]) -> Unsubscribe:
        """Notify ``callback`` when ``pubkey``'s profile is replaced by a different event."""
        return self.profiles.select(
            lambda snapshot: snapshot.get(pubkey) or UserProfile.placeholder(pubkey),
            callback,
            equals=_same_profile,
        )

    def select_status(
        self, pubkey: str, callback: Callable[[UserStatus | None], None]
    ) -> Unsubscribe:
        """Notify ``callback`` when ``pubkey``'s live statuses change."""
        return self.statuses.select(
            lambda snapshot: snapshot.get(pubkey),
            callback,
            equals=_same_status,
        )

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    async def update_my_status(self, update: UpdateStatusInput) -> Event:
        """Publish a general status for the logged-in account.

        The event is applied locally before it is sent. See
        [StatusPublisher.publish()][statusfeed.services.statuses.publisher.StatusPublisher.publish]
        for the raised errors.
        """
        data = self._account_data.value
        relays = data.relay_list.select("write") if data is not None else None
        return await self._publisher.publish(
            update.content,
            update.link_url or None,
            update.ttl,
            relays=relays,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """Refresh the account data of the logged-in account."""
        if self.pubkey is None:
            self._logger.debug("refresh_skipped", reason="logged_out")
            return
        data = await self.refresh()
        if data is not None:
            self._logger.info(
                "account_data_refreshed",
                followings=len(data.followings),
                relays=len(data.relay_list),
                statuses=len(self.statuses),
            )

    async def close(self) -> None:
        """Stop both workers and release the transport's subscriptions."""
        await self._profile_worker.stop()
        await self._status_worker.stop()
        self._status_store.scheduler.cancel_all()
        close = getattr(self._transport, "close", None)
        if close is not None:
            await close()

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
        await super().__aexit__(_exc_type, _exc_val, _exc_tb)
