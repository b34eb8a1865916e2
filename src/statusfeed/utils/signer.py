"""
Signing providers and signer readiness probing.

[Signer][statusfeed.utils.signer.Signer] is the protocol for anything that
holds the user's identity: it reports the public key, signs drafts, and may
advertise its own relay configuration.
[KeysSigner][statusfeed.utils.signer.KeysSigner] implements it with a local
``nostr_sdk.Keys``.

Signing providers injected by a host application may only become usable a
moment after start-up. [SignerProbe][statusfeed.utils.signer.SignerProbe]
polls an availability check at a fixed interval up to a bounded number of
attempts, then settles on AVAILABLE or UNAVAILABLE.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Protocol

from nostr_sdk import EventBuilder, Keys, Kind, NostrSdkError, Tag, Timestamp

from statusfeed.core.exceptions import SigningError
from statusfeed.models import Event, EventDraft, RelayList


logger = logging.getLogger(__name__)

DEFAULT_PROBE_INTERVAL = 0.3
DEFAULT_PROBE_MAX_CHECKS = 5


class Signer(Protocol):
    """Signing provider holding the user's identity."""

    async def get_public_key(self) -> str | None:
        """Hex public key, or ``None`` if the provider has no identity."""
        ...

    async def sign_event(self, draft: EventDraft) -> Event:
        """Sign ``draft``. Raises [SigningError][statusfeed.core.exceptions.SigningError] on refusal."""
        ...

    async def get_relays(self) -> RelayList | None:
        """The provider's relay configuration, or ``None`` if it has none."""
        ...


class KeysSigner:
    """[Signer][statusfeed.utils.signer.Signer] backed by a local ``nostr_sdk.Keys``.

    Args:
        keys: The private key.
        relays: Relay configuration to advertise, if any.
    """

    def __init__(self, keys: Keys, relays: RelayList | None = None) -> None:
        self._keys = keys
        self._relays = relays

    async def get_public_key(self) -> str | None:
        return self._keys.public_key().to_hex()

    async def get_relays(self) -> RelayList | None:
        return self._relays

    async def sign_event(self, draft: EventDraft) -> Event:
        try:
            builder = (
                EventBuilder(Kind(int(draft.kind)), draft.content)
                .tags([Tag.parse(list(tag)) for tag in draft.tags])
                .custom_created_at(Timestamp.from_secs(draft.created_at))
            )
            signed = builder.sign_with_keys(self._keys)
        except (NostrSdkError, ValueError) as e:
            raise SigningError(f"Failed to sign kind {draft.kind} event: {e}") from e
        return Event.from_nostr(signed)


class SignerState(StrEnum):
    """Readiness of a signing provider."""

    UNKNOWN = "unknown"
    CHECKING = "checking"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class SignerProbe:
    """Bounded-retry readiness probe.

    Calls ``is_available`` up to ``max_checks`` times, ``interval`` seconds
    apart. Concurrent callers of [wait_ready()][statusfeed.utils.signer.SignerProbe.wait_ready]
    share one probing run. The outcome is sticky until
    [reset()][statusfeed.utils.signer.SignerProbe.reset].

    Examples:
        ```python
        probe = SignerProbe(lambda: host.signer is not None)
        if await probe.wait_ready():
            signer = host.signer
        ```
    """

    def __init__(
        self,
        is_available: Callable[[], bool],
        *,
        interval: float = DEFAULT_PROBE_INTERVAL,
        max_checks: int = DEFAULT_PROBE_MAX_CHECKS,
    ) -> None:
        if max_checks < 1:
            raise ValueError("max_checks must be at least 1")
        self._is_available = is_available
        self._interval = interval
        self._max_checks = max_checks
        self._state = SignerState.UNKNOWN
        self._running: asyncio.Task[bool] | None = None

    @property
    def state(self) -> SignerState:
        return self._state

    async def wait_ready(self) -> bool:
        """Probe (or join the running probe) and report availability."""
        if self._state is SignerState.AVAILABLE:
            return True
        if self._state is SignerState.UNAVAILABLE:
            return False
        if self._running is None:
            self._running = asyncio.create_task(self._probe())
        return await asyncio.shield(self._running)

    def reset(self) -> None:
        """Forget the outcome so the next call probes again."""
        if self._running is not None and not self._running.done():
            self._running.cancel()
        self._running = None
        self._state = SignerState.UNKNOWN

    async def _probe(self) -> bool:
        self._state = SignerState.CHECKING
        for attempt in range(1, self._max_checks + 1):
            if self._is_available():
                self._state = SignerState.AVAILABLE
                logger.debug("signer_available attempt=%s", attempt)
                return True
            if attempt < self._max_checks:
                await asyncio.sleep(self._interval)
        self._state = SignerState.UNAVAILABLE
        logger.info("signer_unavailable checks=%s", self._max_checks)
        return False
