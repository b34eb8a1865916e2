"""
NIP-02 contact lists (kind 3).

A contact list carries the followed public keys in ``p`` tags and, in the
legacy form still published by many clients, the author's relay
configuration as a JSON object in the content.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from statusfeed.models import EventKind, RelayList, is_hex_key


if TYPE_CHECKING:
    from statusfeed.models import Event


logger = logging.getLogger(__name__)


def followings_from_event(event: Event | None) -> tuple[str, ...]:
    """Extract followed public keys from a contact list.

    Returns the unique ``p`` tag values in order of first appearance.
    Malformed keys are skipped. ``None`` or a non-contact-list event yields
    an empty tuple.
    """
    if event is None or event.kind != EventKind.CONTACTS:
        return ()
    followings: dict[str, None] = {}
    for value in event.tag_values("p"):
        key = value.lower()
        if is_hex_key(key):
            followings.setdefault(key, None)
        else:
            logger.debug("contact_key_invalid event_id=%s value=%s", event.id, value[:80])
    return tuple(followings)


def relay_list_from_contacts(event: Event) -> RelayList | None:
    """Parse the legacy ``{url: {"read": bool, "write": bool}}`` content of a kind 3 event.

    Returns:
        The relay list, or ``None`` when the content is not a JSON object or
        holds no usable relay.
    """
    if event.kind != EventKind.CONTACTS or not event.content:
        return None
    try:
        data = json.loads(event.content)
    except (json.JSONDecodeError, TypeError):
        logger.debug("contacts_relays_invalid_json event_id=%s", event.id)
        return None
    if not isinstance(data, dict):
        return None
    relay_list = RelayList.from_dict(data)
    return relay_list if relay_list else None
