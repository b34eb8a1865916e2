"""Status feed engine configuration models.

[StatusFeedConfig][statusfeed.services.engine.StatusFeedConfig] extends
[BaseServiceConfig][statusfeed.core.base_service.BaseServiceConfig] with the
bootstrap, status sync, and signer sections. The cycle ``interval`` is the
account data refresh period.

See Also:
    [StatusFeed][statusfeed.services.engine.StatusFeed]: The engine that
        consumes this configuration.

Examples:
    ```yaml
    interval: 600
    identity_path: ~/.config/statusfeed/identity.json
    bootstrap:
      connect_timeout: 3.0
    signer:
      keys:
        keys_env: PRIVATE_KEY
    metrics:
      enabled: true
      port: 8001
    ```
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from statusfeed.core.base_service import BaseServiceConfig
from statusfeed.models import RelayList, parse_relay_url
from statusfeed.services.bootstrap import BootstrapConfig, RelayUsageConfig
from statusfeed.services.statuses import StatusSyncConfig
from statusfeed.utils.keys import KeysConfig
from statusfeed.utils.signer import DEFAULT_PROBE_INTERVAL, DEFAULT_PROBE_MAX_CHECKS


class SignerConfig(BaseModel):
    """Signer readiness probe and local key settings.

    Attributes:
        interval: Seconds between availability checks.
        max_checks: Availability checks before giving up.
        keys: Local private key loaded from the environment, if any.
        relays: Relay configuration the local signer advertises. ``None``
            makes bootstrap use the default relays.
    """

    interval: float = Field(
        default=DEFAULT_PROBE_INTERVAL,
        gt=0.0,
        le=10.0,
        description="Seconds between signer availability checks",
    )
    max_checks: int = Field(
        default=DEFAULT_PROBE_MAX_CHECKS,
        ge=1,
        le=100,
        description="Availability checks before the signer is deemed absent",
    )
    keys: KeysConfig = Field(default_factory=KeysConfig)
    relays: dict[str, RelayUsageConfig] | None = Field(
        default=None,
        description="Relays advertised by the local signer",
    )

    @field_validator("relays")
    @classmethod
    def _validate_relays(
        cls, v: dict[str, RelayUsageConfig] | None
    ) -> dict[str, RelayUsageConfig] | None:
        for url in v or {}:
            if parse_relay_url(url) is None:
                raise ValueError(f"invalid relay URL: {url!r}")
        return v

    @property
    def relay_list(self) -> RelayList | None:
        if self.relays is None:
            return None
        return RelayList.from_dict({url: flags.model_dump() for url, flags in self.relays.items()})


class StatusFeedConfig(BaseServiceConfig):
    """Engine configuration.

    Attributes:
        interval: Account data refresh period (inherited, default 600 s).
        bootstrap: Relay defaults, fallback relay list, and timeouts.
        statuses: Realtime status de-duplication settings.
        signer: Signer probe and local key settings.
        identity_path: JSON file remembering the logged-in pubkey; in-memory
            when ``None``.
    """

    interval: float = Field(
        default=600.0,
        ge=60.0,
        description="Seconds between account data refreshes",
    )
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)
    statuses: StatusSyncConfig = Field(default_factory=StatusSyncConfig)
    signer: SignerConfig = Field(default_factory=SignerConfig)
    identity_path: str | None = Field(
        default=None,
        description="File persisting the logged-in pubkey",
    )
