"""
Per-account relay list with read/write usage flags.

A [RelayList][statusfeed.models.relay_list.RelayList] maps normalized relay
URLs to [RelayUsage][statusfeed.models.relay_list.RelayUsage] flags. It is
the common shape produced by NIP-65 (kind 10002) and NIP-02 (kind 3) parsing,
reported by a signer, and consumed by the transport when switching relays.

See Also:
    [statusfeed.nips.nip65][]: Parses relay lists out of events.
    [statusfeed.services.bootstrap][]: Picks relays by usage for each fetch.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

from .relay import parse_relay_url


RelayUsageKind = Literal["read", "write", "read+write"]


@dataclass(frozen=True, slots=True)
class RelayUsage:
    """Read/write flags for one relay.

    Attributes:
        read: The account reads (fetches and subscribes) from this relay.
        write: The account publishes to this relay.
    """

    read: bool = True
    write: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.read, bool) or not isinstance(self.write, bool):
            raise TypeError("read and write must be bools")

    @property
    def is_usable(self) -> bool:
        """A relay with both flags false carries no meaning."""
        return self.read or self.write

    def merge(self, other: RelayUsage) -> RelayUsage:
        """Combine two usages with a logical OR of each flag."""
        return RelayUsage(read=self.read or other.read, write=self.write or other.write)

    def matches(self, usage: RelayUsageKind) -> bool:
        """Check whether these flags satisfy the requested usage."""
        if usage == "read":
            return self.read
        if usage == "write":
            return self.write
        return self.read and self.write


@dataclass(frozen=True, slots=True)
class RelayList(Mapping[str, RelayUsage]):
    """Immutable mapping of relay URL to [RelayUsage][statusfeed.models.relay_list.RelayUsage].

    Construction normalizes every URL through
    [Relay][statusfeed.models.relay.Relay], silently drops invalid or local
    URLs and entries with both flags false, and merges duplicate URLs (after
    normalization) with a logical OR. Insertion order is preserved.

    Examples:
        ```python
        relays = RelayList.from_dict({
            "wss://relay.nostr.band": {"read": True, "write": True},
            "wss://yabu.me": {"read": True, "write": False},
        })
        relays.select("read")    # ['wss://relay.nostr.band', 'wss://yabu.me']
        relays.select("write")   # ['wss://relay.nostr.band']
        ```
    """

    entries: Mapping[str, RelayUsage] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.entries, Mapping):
            raise TypeError(f"entries must be a Mapping, got {type(self.entries).__name__}")
        normalized: dict[str, RelayUsage] = {}
        for raw_url, usage in self.entries.items():
            if not isinstance(usage, RelayUsage):
                raise TypeError(f"usage for {raw_url!r} must be a RelayUsage")
            relay = parse_relay_url(raw_url)
            if relay is None or not usage.is_usable:
                continue
            previous = normalized.get(relay.url)
            normalized[relay.url] = usage if previous is None else previous.merge(usage)
        object.__setattr__(self, "entries", MappingProxyType(normalized))

    def __getitem__(self, url: str) -> RelayUsage:
        return self.entries[url]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __hash__(self) -> int:
        return hash(frozenset(self.entries.items()))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RelayList):
            return dict(self.entries) == dict(other.entries)
        return NotImplemented

    def select(self, usage: RelayUsageKind) -> list[str]:
        """Return the URLs whose flags satisfy *usage*, in insertion order."""
        return [url for url, flags in self.entries.items() if flags.matches(usage)]

    def to_dict(self) -> dict[str, dict[str, bool]]:
        """Return a plain ``{url: {"read": bool, "write": bool}}`` dictionary."""
        return {url: {"read": u.read, "write": u.write} for url, u in self.entries.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RelayList:
        """Build a relay list from ``{url: {"read": ..., "write": ...}}``.

        Non-mapping values and non-bool flags are treated as false, so the
        corresponding entries are dropped.
        """
        entries: dict[str, RelayUsage] = {}
        for url, flags in data.items():
            if not isinstance(url, str) or not isinstance(flags, Mapping):
                continue
            read = flags.get("read") is True
            write = flags.get("write") is True
            entries[url] = RelayUsage(read=read, write=write)
        return cls(entries)

    @classmethod
    def from_urls(cls, urls: list[str], *, read: bool = True, write: bool = True) -> RelayList:
        """Build a relay list giving every URL the same flags."""
        return cls({url: RelayUsage(read=read, write=write) for url in urls})
