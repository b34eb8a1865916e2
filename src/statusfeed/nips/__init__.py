"""Nostr Implementation Possibilities -- protocol-specific parse and build logic.

The NIPs layer sits in the middle of the diamond DAG, depending only on
[statusfeed.models][statusfeed.models]. It performs no I/O.

Warning:
    Parsers here **never raise** on relay data. Malformed input yields
    ``None`` (or an empty result) and a DEBUG log line, because everything
    received from a relay is untrusted.

Attributes:
    nip02: Followings and the legacy relay map of kind 3 contact lists.
    nip38: Kind 30315 user status parsing and draft building.
    nip65: Kind 10002 relay lists and newest-parseable relay list resolution.
"""

from .nip02 import followings_from_event, relay_list_from_contacts
from .nip38 import (
    INVALID_EXPIRATION,
    MAX_EXPIRATION,
    MAX_STATUS_TTL,
    build_status_draft,
    parse_expiration,
    status_from_event,
)
from .nip65 import relay_list_from_event, relay_list_from_tags, resolve_relay_list


__all__ = [
    "INVALID_EXPIRATION",
    "MAX_EXPIRATION",
    "MAX_STATUS_TTL",
    "build_status_draft",
    "followings_from_event",
    "parse_expiration",
    "relay_list_from_contacts",
    "relay_list_from_event",
    "relay_list_from_tags",
    "resolve_relay_list",
    "status_from_event",
]
