"""
NIP-38 user statuses (kind 30315).

A user status is a parameterized replaceable event addressed by its ``d``
tag (the category), with optional ``r`` (link) and ``expiration`` (NIP-40)
tags. An empty content clears the status.

Only the ``general`` and ``music`` categories are understood; events for any
other category are not representable and parse to ``None``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from statusfeed.models import EventDraft, EventKind, StatusCategory, StatusData


if TYPE_CHECKING:
    from statusfeed.models import Event


logger = logging.getLogger(__name__)


class _Invalid:
    """Marker for a present but malformed expiration tag."""


INVALID_EXPIRATION = _Invalid()

# 9999-12-31T23:59:59Z; later timestamps are treated as malformed
MAX_EXPIRATION = 253_402_300_799

# Longest ttl a published status may carry (100 years)
MAX_STATUS_TTL = 100 * 365 * 24 * 3600


def parse_expiration(value: str | None) -> int | None | _Invalid:
    """Interpret an ``expiration`` tag value.

    Returns:
        ``None`` when the tag is absent, the integer timestamp when it is a
        plain decimal string no later than ``MAX_EXPIRATION``, or
        ``INVALID_EXPIRATION`` otherwise.
    """
    if value is None:
        return None
    if not value.isascii() or not value.isdigit() or len(value) > 12:
        return INVALID_EXPIRATION
    expiration = int(value)
    if expiration > MAX_EXPIRATION:
        return INVALID_EXPIRATION
    return expiration


def status_from_event(event: Event) -> StatusData | None:
    """Interpret a kind 30315 event as a [StatusData][statusfeed.models.status.StatusData].

    Returns ``None`` for other kinds, unsupported or missing categories, and
    malformed expiration tags. Expiry against the clock is not checked here.
    """
    if event.kind != EventKind.USER_STATUS:
        return None

    raw_category = event.first_tag_value("d")
    try:
        category = StatusCategory(raw_category)
    except ValueError:
        logger.debug("status_category_unsupported event_id=%s category=%s", event.id, raw_category)
        return None

    expiration = parse_expiration(event.first_tag_value("expiration"))
    if isinstance(expiration, _Invalid):
        logger.debug("status_expiration_invalid event_id=%s", event.id)
        return None

    link_url = event.first_tag_value("r") or None
    return StatusData(
        category=category,
        content=event.content,
        created_at=event.created_at,
        expiration=expiration,
        link_url=link_url,
    )


def build_status_draft(
    content: str,
    created_at: int,
    *,
    category: StatusCategory = StatusCategory.GENERAL,
    link_url: str | None = None,
    expiration: int | None = None,
) -> EventDraft:
    """Build an unsigned kind 30315 event.

    Tags are emitted as ``["d", category]``, then ``["r", link_url]`` when a
    non-empty link is given, then ``["expiration", str(expiration)]``.
    """
    tags: list[list[str]] = [["d", StatusCategory(category).value]]
    if link_url:
        tags.append(["r", link_url])
    if expiration is not None:
        tags.append(["expiration", str(expiration)])
    return EventDraft(
        kind=EventKind.USER_STATUS,
        content=content,
        created_at=created_at,
        tags=tags,
    )
