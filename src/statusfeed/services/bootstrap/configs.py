"""Bootstrap configuration models.

See Also:
    [AccountDataFetcher][statusfeed.services.bootstrap.AccountDataFetcher]:
        Consumes the timeouts and relay defaults defined here.
    [RelaySelector][statusfeed.services.bootstrap.RelaySelector]: Falls back
        to ``default_bootstrap_relays``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from statusfeed.models import RelayList, parse_relay_url


DEFAULT_BOOTSTRAP_RELAYS = (
    "wss://relay.nostr.band",
    "wss://relayable.org",
    "wss://yabu.me",
)

DEFAULT_FALLBACK_RELAY_LIST: dict[str, dict[str, bool]] = {
    "wss://relay.nostr.band": {"read": True, "write": True},
    "wss://relayable.org": {"read": True, "write": True},
    "wss://relay.damus.io": {"read": False, "write": True},
    "wss://yabu.me": {"read": True, "write": False},
}


class RelayUsageConfig(BaseModel):
    """Read/write flags of one fallback relay."""

    read: bool = Field(default=True, description="Fetch and subscribe from this relay")
    write: bool = Field(default=True, description="Publish to this relay")


class BootstrapConfig(BaseModel):
    """Relay defaults and timeouts for the bootstrap round.

    Attributes:
        default_bootstrap_relays: Queried when the signer reports no read relays,
            and for the single escalation round.
        fallback_relay_list: Account relay list used when the account
            publishes none that parses.
        connect_timeout: Seconds allowed for every relay operation.
    """

    default_bootstrap_relays: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BOOTSTRAP_RELAYS),
        min_length=1,
        description="Relays queried when the signer offers none",
    )
    fallback_relay_list: dict[str, RelayUsageConfig] = Field(
        default_factory=lambda: {
            url: RelayUsageConfig(**flags) for url, flags in DEFAULT_FALLBACK_RELAY_LIST.items()
        },
        min_length=1,
        description="Relay list used when the account's own cannot be resolved",
    )
    connect_timeout: float = Field(
        default=3.0,
        gt=0.0,
        le=60.0,
        description="Relay connect/response timeout in seconds",
    )

    @field_validator("default_bootstrap_relays")
    @classmethod
    def _normalize_bootstrap_relays(cls, v: list[str]) -> list[str]:
        normalized: list[str] = []
        for url in v:
            relay = parse_relay_url(url)
            if relay is None:
                raise ValueError(f"invalid relay URL: {url!r}")
            if relay.url not in normalized:
                normalized.append(relay.url)
        return normalized

    @field_validator("fallback_relay_list")
    @classmethod
    def _validate_fallback(cls, v: dict[str, RelayUsageConfig]) -> dict[str, RelayUsageConfig]:
        for url, usage in v.items():
            if parse_relay_url(url) is None:
                raise ValueError(f"invalid relay URL: {url!r}")
            if not (usage.read or usage.write):
                raise ValueError(f"relay {url!r} is neither read nor write")
        return v

    @property
    def fallback(self) -> RelayList:
        """``fallback_relay_list`` as a [RelayList][statusfeed.models.relay_list.RelayList]."""
        return RelayList.from_dict({url: u.model_dump() for url, u in self.fallback_relay_list.items()})
