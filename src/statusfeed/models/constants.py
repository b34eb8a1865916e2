"""Shared constants for the models layer.

Defines enumerations used across multiple model modules. Placing them here
avoids circular dependencies between the models, nips, and services layers.

See Also:
    [statusfeed.models.relay][]: Uses [NetworkType][statusfeed.models.constants.NetworkType]
        to classify relay URLs during construction.
    [statusfeed.models.status][]: Uses
        [StatusCategory][statusfeed.models.constants.StatusCategory] to key
        status slots.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class NetworkType(StrEnum):
    """Network type enum for relay classification.

    Each relay URL is classified into exactly one network type by
    [detect_network()][statusfeed.models.relay.detect_network]. The scheme is then
    enforced per network: clearnet requires ``wss://`` (TLS), while overlay
    networks use ``ws://`` (encryption handled by the overlay).

    Attributes:
        CLEARNET: Public internet relay using ``wss://`` (TLS required).
        TOR: Tor hidden service identified by a ``.onion`` hostname.
        I2P: I2P eepsite identified by a ``.i2p`` hostname.
        LOKI: Lokinet service identified by a ``.loki`` hostname.
        LOCAL: Private or reserved IP address (rejected during validation).
        UNKNOWN: Hostname that could not be classified (rejected during validation).

    Warning:
        ``LOCAL`` and ``UNKNOWN`` make [Relay.parse()][statusfeed.models.relay.Relay.parse]
        raise ``ValueError``. They are never carried by a parsed relay.
    """

    CLEARNET = "clearnet"
    TOR = "tor"
    I2P = "i2p"
    LOKI = "loki"
    LOCAL = "local"
    UNKNOWN = "unknown"


class ServiceName(StrEnum):
    """Canonical component identifiers used in logging and metrics.

    The string values are used as the logger name of each component and as
    the ``service`` label in Prometheus metrics.
    """

    FEED = "feed"
    BOOTSTRAP = "bootstrap"
    PROFILES = "profiles"
    STATUSES = "statuses"
    PUBLISHER = "publisher"


class EventKind(IntEnum):
    """Well-known Nostr event kinds consumed or produced by the feed.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01).
        CONTACTS: Kind 3 -- contact list; ``p`` tags are followings and the
            content may carry a legacy relay map (NIP-02).
        RELAY_LIST: Kind 10002 -- NIP-65 relay list metadata.
        USER_STATUS: Kind 30315 -- NIP-38 user status (parameterized
            replaceable, keyed by its ``d`` tag).
    """

    SET_METADATA = 0
    CONTACTS = 3
    RELAY_LIST = 10_002
    USER_STATUS = 30_315


class StatusCategory(StrEnum):
    """Closed set of user status categories kept by the feed.

    Carried in the ``d`` tag of a kind 30315 event. Any other value causes the
    event to be discarded.
    """

    GENERAL = "general"
    MUSIC = "music"


SUPPORTED_CATEGORIES: tuple[str, ...] = tuple(c.value for c in StatusCategory)

EVENT_KIND_MAX = 65_535
