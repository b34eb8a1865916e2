"""
User profile derived from a kind 0 metadata event.

Profiles are identity-compared by the event they were derived from
(``source_event_id``), not by field values: two profiles built from different
events are different even if every field coincides. An account with no
fetched kind 0 event gets a placeholder whose ``source_event_id`` is
``"undefined"``.

See Also:
    [statusfeed.services.profiles][]: Keeps the followings' profiles fresh.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from ._validation import validate_str_no_null, validate_str_not_empty


if TYPE_CHECKING:
    from .event import Event


logger = logging.getLogger(__name__)

PLACEHOLDER_EVENT_ID = "undefined"


@dataclass(frozen=True, slots=True)
class UserProfile:
    """Immutable NIP-01 profile metadata.

    Attributes:
        source_event_id: Id of the kind 0 event this profile was parsed from,
            or ``"undefined"`` for a placeholder.
        pubkey: Account public key (hex).
        name: Short handle.
        display_name: Human-readable display name.
        about: Free-form biography.
        picture: Avatar URL.
        banner: Banner image URL.
        website: Personal website URL.
        nip05: NIP-05 internet identifier.
        lud16: Lightning address.
    """

    source_event_id: str
    pubkey: str
    name: str | None = None
    display_name: str | None = None
    about: str | None = None
    picture: str | None = None
    banner: str | None = None
    website: str | None = None
    nip05: str | None = None
    lud16: str | None = None

    _TEXT_FIELDS: ClassVar[tuple[str, ...]] = (
        "name",
        "display_name",
        "about",
        "picture",
        "banner",
        "website",
        "nip05",
        "lud16",
    )

    def __post_init__(self) -> None:
        validate_str_not_empty(self.source_event_id, "source_event_id")
        validate_str_not_empty(self.pubkey, "pubkey")
        for name in self._TEXT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                validate_str_no_null(value, name)

    @property
    def is_placeholder(self) -> bool:
        """Whether this profile stands in for a missing kind 0 event."""
        return self.source_event_id == PLACEHOLDER_EVENT_ID

    @property
    def display_label(self) -> str:
        """Display name, else name, else the abbreviated pubkey."""
        return self.display_name or self.name or f"{self.pubkey[:8]}..."

    def same_source(self, other: UserProfile | None) -> bool:
        """Identity comparison: both profiles derive from the same event."""
        return other is not None and self.source_event_id == other.source_event_id

    @classmethod
    def placeholder(cls, pubkey: str) -> UserProfile:
        """Profile for an account whose metadata event has not been found."""
        return cls(source_event_id=PLACEHOLDER_EVENT_ID, pubkey=pubkey)

    @classmethod
    def from_event(cls, event: Event) -> UserProfile:
        """Parse a kind 0 event's JSON content.

        Parsing is tolerant: invalid JSON or a non-object content yields a
        profile carrying only the source event id and pubkey. Non-string
        and null-byte values are dropped. The legacy ``displayName`` key is
        accepted when ``display_name`` is absent.
        """
        try:
            data = json.loads(event.content)
        except (json.JSONDecodeError, TypeError):
            logger.debug("profile_content_invalid event_id=%s", event.id)
            data = {}
        if not isinstance(data, dict):
            data = {}

        if "display_name" not in data and "displayName" in data:
            data["display_name"] = data["displayName"]

        fields: dict[str, str] = {}
        for name in cls._TEXT_FIELDS:
            value = data.get(name)
            if isinstance(value, str) and value and "\x00" not in value:
                fields[name] = value

        return cls(source_event_id=event.id, pubkey=event.pubkey, **fields)
