"""
Immutable Nostr event and unsigned event draft.

[Event][statusfeed.models.event.Event] is a plain frozen snapshot of a signed
Nostr event. It is built from a ``nostr_sdk.Event`` once, at the transport
boundary, via [from_nostr()][statusfeed.models.event.Event.from_nostr] and
converted back with [to_nostr()][statusfeed.models.event.Event.to_nostr] only
when it has to be sent. Everything above the transport (merge policy, profile
parsing, relay list parsing) works on this model, so it never needs a live
SDK object.

See Also:
    [statusfeed.utils.transport][]: Produces events from relay responses.
    [statusfeed.nips.nip38][]: Builds and interprets user status events.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from nostr_sdk import Event as NostrEvent

from ._validation import (
    validate_hex_key,
    validate_instance,
    validate_str_no_null,
    validate_timestamp,
)
from .constants import EVENT_KIND_MAX


Tags = tuple[tuple[str, ...], ...]


def _freeze_tags(tags: Any, name: str) -> Tags:
    """Normalize a tag list (list of lists of str) into a tuple of tuples."""
    if not isinstance(tags, list | tuple):
        raise TypeError(f"{name} must be a list of tags, got {type(tags).__name__}")
    frozen: list[tuple[str, ...]] = []
    for tag in tags:
        if not isinstance(tag, list | tuple):
            raise TypeError(f"{name} entries must be lists, got {type(tag).__name__}")
        for value in tag:
            validate_str_no_null(value, name)
        frozen.append(tuple(tag))
    return tuple(frozen)


def _validate_kind(kind: Any) -> None:
    if isinstance(kind, bool) or not isinstance(kind, int):
        raise TypeError(f"kind must be an int, got {type(kind).__name__}")
    if not 0 <= kind <= EVENT_KIND_MAX:
        raise ValueError(f"kind {kind} out of valid range (0-{EVENT_KIND_MAX})")


def first_tag_value(tags: Tags, name: str) -> str | None:
    """Return the first value of the first tag named *name*, or ``None``."""
    for tag in tags:
        if len(tag) >= 2 and tag[0] == name:  # noqa: PLR2004
            return tag[1]
    return None


def tag_values(tags: Tags, name: str) -> list[str]:
    """Return the first value of every tag named *name*, in tag order."""
    return [tag[1] for tag in tags if len(tag) >= 2 and tag[0] == name]  # noqa: PLR2004


@dataclass(frozen=True, slots=True)
class EventDraft:
    """Unsigned event content handed to a [Signer][statusfeed.utils.signer.Signer].

    Attributes:
        kind: Integer event kind.
        content: Event content string.
        created_at: Unix timestamp chosen by the author.
        tags: Tag arrays, normalized to a tuple of tuples.
    """

    kind: int
    content: str
    created_at: int
    tags: Tags = ()

    def __post_init__(self) -> None:
        _validate_kind(self.kind)
        validate_str_no_null(self.content, "content")
        validate_timestamp(self.created_at, "created_at")
        object.__setattr__(self, "tags", _freeze_tags(self.tags, "tags"))

    def first_tag_value(self, name: str) -> str | None:
        """Return the first value of the first tag named *name*."""
        return first_tag_value(self.tags, name)


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable signed Nostr event.

    Validation is performed eagerly at construction time: ``id`` and
    ``pubkey`` must be 64-character hex strings, ``created_at`` a
    non-negative integer, ``kind`` within 0-65535, and neither content nor
    tag values may contain null bytes.

    Attributes:
        id: Event id (hex SHA-256 of the serialized event).
        pubkey: Author public key (hex).
        created_at: Unix timestamp of event creation.
        kind: Integer event kind.
        tags: Tag arrays as a tuple of tuples of strings.
        content: Raw event content string.
        sig: Schnorr signature (hex).

    Examples:
        ```python
        event = Event.from_nostr(nostr_event)
        event.first_tag_value("d")   # 'general'
        event.tag_values("p")        # ['ab...', 'cd...']
        ```

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a field has an invalid value.
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: Tags = field(default=())
    content: str = ""
    sig: str = ""

    def __post_init__(self) -> None:
        """Validate all fields and normalize the tag container."""
        validate_hex_key(self.id, "id")
        validate_hex_key(self.pubkey, "pubkey")
        validate_timestamp(self.created_at, "created_at")
        _validate_kind(self.kind)
        validate_str_no_null(self.content, "content")
        validate_instance(self.sig, str, "sig")
        object.__setattr__(self, "tags", _freeze_tags(self.tags, "tags"))

    def first_tag_value(self, name: str) -> str | None:
        """Return the first value of the first tag named *name*, or ``None``."""
        return first_tag_value(self.tags, name)

    def tag_values(self, name: str) -> list[str]:
        """Return the first value of every tag named *name*, in tag order."""
        return tag_values(self.tags, name)

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object for this event."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    def to_json(self) -> str:
        """Serialize this event to its NIP-01 JSON representation."""
        return json.dumps(self.to_dict())

    def to_nostr(self) -> NostrEvent:
        """Convert back into a ``nostr_sdk.Event`` for transmission.

        Note:
            ``nostr_sdk.Event.from_json()`` re-checks the event id, so a
            tampered instance fails here rather than at the relay.
        """
        return NostrEvent.from_json(self.to_json())

    @classmethod
    def from_nostr(cls, inner: NostrEvent) -> Event:
        """Snapshot a ``nostr_sdk.Event`` into an [Event][statusfeed.models.event.Event]."""
        return cls(
            id=inner.id().to_hex(),
            pubkey=inner.author().to_hex(),
            created_at=inner.created_at().as_secs(),
            kind=inner.kind().as_u16(),
            tags=[list(tag.as_vec()) for tag in inner.tags().to_vec()],
            content=inner.content(),
            sig=inner.signature(),
        )
