"""Bootstrap: find where the account lives and fetch its metadata.

Three collaborating pieces run once per login and on every refresh:

1. [RelaySelector][statusfeed.services.bootstrap.RelaySelector] picks the
   bootstrap relays: the signer's read relays, or the configured defaults.
2. [AccountDataFetcher][statusfeed.services.bootstrap.AccountDataFetcher]
   fetches the latest kind 0, kind 3, and kind 10002 events concurrently,
   escalating once to the default relays when the signer's relays look
   incomplete.
3. [RelayListResolver][statusfeed.services.bootstrap.RelayListResolver]
   turns the kind 3 / kind 10002 candidates into the account relay list.

Note:
    Fetching never fails as a whole. Unreachable relays are logged and
    skipped; missing events degrade to a placeholder profile, no followings,
    and the fallback relay list.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING

from statusfeed.core.logger import Logger
from statusfeed.models import (
    AccountMetadata,
    Event,
    EventFilter,
    EventKind,
    RelayList,
    ServiceName,
    UserProfile,
)
from statusfeed.nips import followings_from_event, resolve_relay_list

from .configs import BootstrapConfig


if TYPE_CHECKING:
    from statusfeed.utils.signer import Signer
    from statusfeed.utils.transport import RelayTransport


_logger = Logger(ServiceName.BOOTSTRAP)

_ACCOUNT_KINDS = (EventKind.SET_METADATA, EventKind.CONTACTS, EventKind.RELAY_LIST)


class RelaySelector:
    """Chooses the relays used to look up the logged-in account.

    Args:
        signer: Signing provider that may advertise its own relays.
        config: Supplies ``default_bootstrap_relays``.
    """

    def __init__(self, signer: Signer | None, config: BootstrapConfig | None = None) -> None:
        self._signer = signer
        self._config = config or BootstrapConfig()

    @property
    def signer(self) -> Signer | None:
        return self._signer

    @signer.setter
    def signer(self, signer: Signer | None) -> None:
        self._signer = signer

    @property
    def default_relays(self) -> list[str]:
        return list(self._config.default_bootstrap_relays)

    async def resolve_bootstrap_relays(self) -> tuple[list[str], bool]:
        """Return ``(relays, is_default)``.

        The signer's read relays are used when it reports at least one;
        otherwise the configured defaults with ``is_default=True``.
        """
        get_relays = getattr(self._signer, "get_relays", None)
        if get_relays is None:
            return self.default_relays, True

        try:
            relay_list = await get_relays()
        except Exception as e:  # SigningError or any failure of a third-party signer
            _logger.warning(
                "signer_relays_failed", error=str(e), error_type=type(e).__name__
            )
            return self.default_relays, True

        read_relays = relay_list.select("read") if relay_list is not None else []
        if not read_relays:
            _logger.debug("signer_relays_empty")
            return self.default_relays, True
        return read_relays, False


class RelayListResolver:
    """Resolves the account relay list, falling back to the configured list."""

    def __init__(self, fallback: RelayList) -> None:
        self._fallback = fallback

    @property
    def fallback(self) -> RelayList:
        return self._fallback

    def resolve(self, events: Iterable[Event | None]) -> RelayList:
        """Newest parseable relay list among the kind 3 / kind 10002 ``events``."""
        return resolve_relay_list(events, self._fallback)


class AccountDataFetcher:
    """Builds [AccountMetadata][statusfeed.models.account.AccountMetadata] for a pubkey.

    Args:
        transport: Network access.
        selector: Chooses the bootstrap relays.
        config: Timeouts, defaults, and the fallback relay list.
    """

    def __init__(
        self,
        transport: RelayTransport,
        selector: RelaySelector,
        config: BootstrapConfig | None = None,
    ) -> None:
        self._transport = transport
        self._selector = selector
        self._config = config or BootstrapConfig()
        self._resolver = RelayListResolver(self._config.fallback)

    async def _fetch_round(
        self, pubkey: str, relays: list[str]
    ) -> tuple[Event | None, Event | None, Event | None]:
        k0, k3, k10002 = await asyncio.gather(
            *(
                self._transport.fetch_last_event(
                    relays,
                    EventFilter(kinds=(kind,), authors=(pubkey,), limit=1),
                    self._config.connect_timeout,
                )
                for kind in _ACCOUNT_KINDS
            )
        )
        return k0, k3, k10002

    async def fetch_account_data(self, pubkey: str) -> AccountMetadata:
        """Fetch the account's profile, followings, and relay list.

        When the relays came from the signer and the round found no profile,
        or neither a contact list nor a relay list, exactly one more round is
        run against the default relays and its results are used as they are.
        """
        relays, is_default = await self._selector.resolve_bootstrap_relays()
        _logger.info("bootstrap_relays_resolved", relays=len(relays), is_default=is_default)

        k0, k3, k10002 = await self._fetch_round(pubkey, relays)

        if not is_default and (k0 is None or (k3 is None and k10002 is None)):
            _logger.info(
                "bootstrap_escalated",
                profile=k0 is not None,
                contacts=k3 is not None,
                relay_list=k10002 is not None,
            )
            k0, k3, k10002 = await self._fetch_round(pubkey, self._selector.default_relays)

        profile = UserProfile.from_event(k0) if k0 is not None else UserProfile.placeholder(pubkey)
        followings = followings_from_event(k3)
        relay_list = self._resolver.resolve([k3, k10002])

        _logger.info(
            "account_data_fetched",
            pubkey=pubkey,
            profile_found=not profile.is_placeholder,
            followings=len(followings),
            relays=len(relay_list),
        )
        return AccountMetadata(profile=profile, followings=followings, relay_list=relay_list)
