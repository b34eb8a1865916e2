"""
Transport-neutral event filter.

Describes a NIP-01 ``REQ`` filter without depending on a live SDK object so
that the services layer can build and compare filters freely. The concrete
transport converts it with
[to_nostr_filter()][statusfeed.utils.transport.to_nostr_filter].
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from ._validation import validate_timestamp
from .constants import EVENT_KIND_MAX


@dataclass(frozen=True, slots=True)
class EventFilter:
    """Immutable subscription/fetch filter.

    Attributes:
        kinds: Event kinds to match.
        authors: Author public keys to match.
        tags: Single-letter tag filters, e.g. ``{"d": ("general", "music")}``.
        since: Only events created at or after this timestamp.
        limit: Maximum number of events per relay.
    """

    kinds: tuple[int, ...] = ()
    authors: tuple[str, ...] = ()
    tags: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    since: int | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kinds", tuple(int(k) for k in self.kinds))
        object.__setattr__(self, "authors", tuple(self.authors))
        for kind in self.kinds:
            if not 0 <= kind <= EVENT_KIND_MAX:
                raise ValueError(f"Event kind {kind} out of valid range (0-{EVENT_KIND_MAX})")
        frozen: dict[str, tuple[str, ...]] = {}
        for letter, values in self.tags.items():
            if len(letter) != 1 or not letter.isalpha():
                raise ValueError(f"Tag filter key must be a single letter: {letter!r}")
            frozen[letter] = tuple(values)
        object.__setattr__(self, "tags", MappingProxyType(frozen))
        if self.since is not None:
            validate_timestamp(self.since, "since")
        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be positive")

    def __hash__(self) -> int:
        return hash((self.kinds, self.authors, tuple(self.tags.items()), self.since, self.limit))

    def with_since(self, since: int) -> EventFilter:
        """Copy of this filter pinned to start at *since*."""
        return replace(self, since=since, tags=dict(self.tags))
