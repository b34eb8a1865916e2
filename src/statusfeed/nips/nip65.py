"""
NIP-65 relay list metadata (kind 10002) and relay list resolution.

A kind 10002 event lists the author's relays as ``["r", url]`` or
``["r", url, marker]`` tags where ``marker`` is ``"read"`` or ``"write"``;
a tag without a marker means both. When the account has no kind 10002
event, the legacy relay map in its kind 3 content is used instead (see
[relay_list_from_contacts()][statusfeed.nips.nip02.relay_list_from_contacts]).

[resolve_relay_list()][statusfeed.nips.nip65.resolve_relay_list] picks the
newest parseable candidate among both sources.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from statusfeed.models import EventKind, RelayList, RelayUsage

from .nip02 import relay_list_from_contacts


if TYPE_CHECKING:
    from statusfeed.models import Event


logger = logging.getLogger(__name__)

_MARKERS: dict[str | None, RelayUsage] = {
    None: RelayUsage(read=True, write=True),
    "read": RelayUsage(read=True, write=False),
    "write": RelayUsage(read=False, write=True),
}


def relay_list_from_tags(event: Event) -> RelayList | None:
    """Parse the ``r`` tags of a kind 10002 event.

    Later tags for the same URL merge flags with a logical OR. Unknown
    markers and invalid URLs are skipped.

    Returns:
        The relay list, or ``None`` when no usable relay remains.
    """
    if event.kind != EventKind.RELAY_LIST:
        return None
    entries: list[tuple[str, RelayUsage]] = []
    for tag in event.tags:
        if len(tag) < 2 or tag[0] != "r":  # noqa: PLR2004
            continue
        marker = tag[2] if len(tag) > 2 and tag[2] else None  # noqa: PLR2004
        usage = _MARKERS.get(marker)
        if usage is None:
            logger.debug("relay_marker_unknown event_id=%s marker=%s", event.id, marker)
            continue
        entries.append((tag[1], usage))

    # raw duplicates merge here, normalized duplicates inside RelayList
    merged: dict[str, RelayUsage] = {}
    for url, usage in entries:
        previous = merged.get(url)
        merged[url] = usage if previous is None else previous.merge(usage)
    relay_list = RelayList(merged)
    return relay_list if relay_list else None


def relay_list_from_event(event: Event) -> RelayList | None:
    """Parse a relay list out of a kind 10002 or kind 3 event, ``None`` if unparseable."""
    if event.kind == EventKind.RELAY_LIST:
        return relay_list_from_tags(event)
    if event.kind == EventKind.CONTACTS:
        return relay_list_from_contacts(event)
    return None


def resolve_relay_list(
    events: Iterable[Event | None],
    fallback: RelayList,
) -> RelayList:
    """Choose the relay list from the newest parseable kind 3 / kind 10002 event.

    ``None`` entries and other kinds are ignored. Candidates are tried from
    the most recent ``created_at`` down, and the first one that parses wins.

    Returns:
        The resolved relay list, or ``fallback`` when nothing parses. The
        fallback path is logged at WARNING.
    """
    candidates = sorted(
        (
            e
            for e in events
            if e is not None and e.kind in (EventKind.CONTACTS, EventKind.RELAY_LIST)
        ),
        key=lambda e: e.created_at,
        reverse=True,
    )
    for event in candidates:
        relay_list = relay_list_from_event(event)
        if relay_list is not None:
            logger.debug(
                "relay_list_resolved kind=%s event_id=%s relays=%s",
                event.kind,
                event.id,
                len(relay_list),
            )
            return relay_list

    if candidates:
        logger.warning("relay_list_unparseable candidates=%s using=fallback", len(candidates))
    else:
        logger.warning("relay_list_missing using=fallback")
    return fallback
