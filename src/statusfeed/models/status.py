"""
User status data (NIP-38) and per-account status slots.

[StatusData][statusfeed.models.status.StatusData] is one status announcement
for one category. [UserStatus][statusfeed.models.status.UserStatus] holds the
live status of one account, one independent slot per
[StatusCategory][statusfeed.models.constants.StatusCategory]. A slot is
present only while its status is live, and a ``UserStatus`` with every slot
empty is never stored: it is deleted instead.

See Also:
    [statusfeed.nips.nip38][]: Parses kind 30315 events into ``StatusData``.
    [statusfeed.services.statuses.store][]: Applies the merge policy.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ._validation import validate_instance, validate_str_no_null, validate_timestamp
from .constants import StatusCategory


@dataclass(frozen=True, slots=True)
class StatusData:
    """One status announcement.

    Attributes:
        category: Status category (``d`` tag).
        content: Status text. An empty string is a tombstone that clears the slot.
        created_at: Event creation time, used for last-write-wins ordering.
        expiration: Unix timestamp after which the status is stale, if any.
        link_url: Optional link carried in the ``r`` tag.
    """

    category: StatusCategory
    content: str
    created_at: int
    expiration: int | None = None
    link_url: str | None = None

    def __post_init__(self) -> None:
        validate_instance(self.category, StatusCategory, "category")
        validate_str_no_null(self.content, "content")
        validate_timestamp(self.created_at, "created_at")
        if self.expiration is not None:
            validate_timestamp(self.expiration, "expiration")
        if self.link_url is not None:
            validate_str_no_null(self.link_url, "link_url")

    @property
    def is_tombstone(self) -> bool:
        """Empty content signals invalidation, not a displayable status."""
        return self.content == ""

    def is_expired(self, now: int) -> bool:
        """Whether the declared expiration has been reached at *now*."""
        return self.expiration is not None and now >= self.expiration


@dataclass(frozen=True, slots=True)
class UserStatus:
    """Live statuses of one account, one slot per category.

    Attributes:
        pubkey: Account public key (hex).
        general: Live ``general`` status, or ``None``.
        music: Live ``music`` status, or ``None``.
    """

    pubkey: str
    general: StatusData | None = None
    music: StatusData | None = None

    def __post_init__(self) -> None:
        validate_str_no_null(self.pubkey, "pubkey")
        for category in StatusCategory:
            slot = getattr(self, category.value)
            if slot is None:
                continue
            validate_instance(slot, StatusData, category.value)
            if slot.category != category:
                raise ValueError(f"{category.value} slot holds a {slot.category} status")

    def get(self, category: StatusCategory) -> StatusData | None:
        """Return the status stored in *category*'s slot."""
        return getattr(self, StatusCategory(category).value)

    def with_status(self, data: StatusData) -> UserStatus:
        """Copy with *data* stored in its category slot; other slots untouched."""
        return replace(self, **{data.category.value: data})

    def without(self, category: StatusCategory) -> UserStatus:
        """Copy with *category*'s slot cleared."""
        return replace(self, **{StatusCategory(category).value: None})

    @property
    def is_empty(self) -> bool:
        """Whether every slot is absent."""
        return all(self.get(category) is None for category in StatusCategory)

    @property
    def last_update_time(self) -> int:
        """Most recent ``created_at`` over the present slots (``0`` when empty)."""
        times = [s.created_at for c in StatusCategory if (s := self.get(c)) is not None]
        return max(times, default=0)

    @property
    def content_id(self) -> str:
        """Change-detection key covering the content and timestamp of every slot."""
        parts = []
        for category in StatusCategory:
            slot = self.get(category)
            if slot is None:
                parts.append(f"{category.value}:-")
            else:
                parts.append(f"{category.value}:{slot.created_at}:{slot.content}")
        return "|".join(parts)
