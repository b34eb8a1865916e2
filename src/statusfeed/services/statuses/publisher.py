"""Publishing the logged-in account's general status.

[StatusPublisher][statusfeed.services.statuses.publisher.StatusPublisher]
builds a kind 30315 draft, has the signer sign it, applies the signed event
to the local [StatusStore][statusfeed.services.statuses.store.StatusStore]
so the change is visible immediately, then sends it to the write relays.

The local apply is not rolled back when no relay accepts the event; the
caller gets a [PublishingError][statusfeed.core.exceptions.PublishingError]
instead and decides whether to retry.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from statusfeed.core.exceptions import PublishingError, SigningError
from statusfeed.core.logger import Logger
from statusfeed.core.metrics import ServiceMetrics
from statusfeed.models import ServiceName, StatusCategory
from statusfeed.nips.nip38 import MAX_STATUS_TTL, build_status_draft

from .store import Clock, StatusStore, unix_now


if TYPE_CHECKING:
    from statusfeed.models import Event
    from statusfeed.utils.signer import Signer
    from statusfeed.utils.transport import RelayTransport


class StatusPublisher:
    """Signs, applies, and sends status updates.

    Args:
        signer: Signing provider; ``None`` makes every publish fail.
        transport: Network access for sending.
        store: Status store the signed event is applied to.
        clock: Provides ``created_at``.
        metrics: Records ``statuses_published``/``publish_failures`` counters.
    """

    def __init__(
        self,
        signer: Signer | None,
        transport: RelayTransport,
        store: StatusStore,
        *,
        clock: Clock = unix_now,
        metrics: ServiceMetrics | None = None,
    ) -> None:
        self._signer = signer
        self._transport = transport
        self._store = store
        self._clock = clock
        self._logger = Logger(ServiceName.PUBLISHER)
        self._metrics = metrics if metrics is not None else ServiceMetrics(ServiceName.PUBLISHER)

    @property
    def signer(self) -> Signer | None:
        return self._signer

    @signer.setter
    def signer(self, signer: Signer | None) -> None:
        self._signer = signer

    async def publish(
        self,
        content: str,
        link_url: str | None = None,
        ttl: int | None = None,
        *,
        relays: Sequence[str] | None = None,
    ) -> Event:
        """Publish a ``general`` status.

        Args:
            content: Status text; an empty string clears the status.
            link_url: Optional link, emitted as an ``r`` tag when non-empty.
            ttl: Seconds until the status expires; ``None`` means never.
            relays: Write relays; the transport's current write set when ``None``.

        Returns:
            The signed event.

        Raises:
            ValueError: If ``ttl`` is negative or longer than ``MAX_STATUS_TTL``.
            SigningError: If there is no signer or it refuses. Nothing is applied.
            PublishingError: If no relay accepted the event. The local state
                already reflects it.
        """
        if ttl is not None and ttl < 0:
            raise ValueError(f"ttl must be non-negative, got {ttl}")
        if ttl is not None and ttl > MAX_STATUS_TTL:
            raise ValueError(f"ttl must be at most {MAX_STATUS_TTL} seconds, got {ttl}")
        if self._signer is None:
            raise SigningError("No signer available")

        created_at = self._clock()
        draft = build_status_draft(
            content,
            created_at,
            category=StatusCategory.GENERAL,
            link_url=link_url,
            expiration=created_at + ttl if ttl is not None else None,
        )
        event = await self._signer.sign_event(draft)

        self._store.apply(event)
        accepted = await self._transport.send(event, relays)
        if not accepted:
            self._metrics.inc_counter("publish_failures")
            self._logger.error("status_publish_failed", event_id=event.id)
            raise PublishingError(f"No relay accepted status event {event.id}")

        self._metrics.inc_counter("statuses_published")
        self._logger.info(
            "status_published",
            event_id=event.id,
            relays=len(accepted),
            cleared=content == "",
            ttl=ttl,
        )
        return event
