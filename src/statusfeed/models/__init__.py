"""Pure frozen dataclasses with zero network I/O for events, relays, profiles, and statuses.

The models layer is the foundation of the diamond DAG. It has no dependencies
on any other statusfeed package. Every model uses
``@dataclass(frozen=True, slots=True)`` and validates in ``__post_init__`` so
invalid instances never escape the constructor.

Attributes:
    Event: Immutable signed Nostr event with tag helpers and ``nostr_sdk``
        conversion at the transport boundary.
    EventDraft: Unsigned event handed to a signer.
    EventFilter: Transport-neutral ``REQ`` filter.
    Relay: Validated relay URL with RFC 3986 parsing and network detection.
    RelayList: Immutable mapping of relay URL to read/write flags.
    UserProfile: Kind 0 profile, identity-compared by source event id.
    StatusData: One NIP-38 status announcement.
    UserStatus: Live status slots of one account.
    AccountMetadata: Profile, followings, and relay list of the logged-in account.

Note:
    All models use ``object.__setattr__`` in ``__post_init__`` to set computed
    fields on frozen dataclasses. This is safe because ``__post_init__`` runs
    during ``__init__`` before the instance is exposed to external code.
"""

from ._validation import is_hex_key
from .account import AccountMetadata
from .constants import (
    EVENT_KIND_MAX,
    SUPPORTED_CATEGORIES,
    EventKind,
    NetworkType,
    ServiceName,
    StatusCategory,
)
from .event import Event, EventDraft
from .filter import EventFilter
from .profile import PLACEHOLDER_EVENT_ID, UserProfile
from .relay import Relay, parse_relay_url
from .relay_list import RelayList, RelayUsage, RelayUsageKind
from .status import StatusData, UserStatus


__all__ = [
    "EVENT_KIND_MAX",
    "PLACEHOLDER_EVENT_ID",
    "SUPPORTED_CATEGORIES",
    "AccountMetadata",
    "Event",
    "EventDraft",
    "EventFilter",
    "EventKind",
    "NetworkType",
    "Relay",
    "RelayList",
    "RelayUsage",
    "RelayUsageKind",
    "ServiceName",
    "StatusCategory",
    "StatusData",
    "UserProfile",
    "UserStatus",
    "is_hex_key",
    "parse_relay_url",
]
