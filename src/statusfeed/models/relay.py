"""
Normalized relay addresses.

Relay URLs reach the feed from untrusted places: NIP-65 ``r`` tags, the
legacy relay map of a contact list, the signer, and configuration files.
[Relay.parse()][statusfeed.models.relay.Relay.parse] turns any of them into
one canonical spelling so that two relay lists naming the same relay compare
equal, and refuses addresses the feed could never reach from the public
network.

Normalization (RFC 3986 via ``rfc3986``):

* surrounding whitespace is stripped, scheme and host are lowercased;
* clearnet hosts are forced to ``wss://``, overlay hosts (``.onion``,
  ``.i2p``, ``.loki``) to ``ws://``;
* a port equal to the default of the written or the enforced scheme is dropped;
* repeated and trailing slashes in the path are collapsed;
* query strings, fragments, and non-public IP addresses are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from ipaddress import ip_address
from typing import Any

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator

from .constants import NetworkType


DEFAULT_PORTS = {"ws": 80, "wss": 443}

_OVERLAY_SUFFIXES = {
    ".onion": NetworkType.TOR,
    ".i2p": NetworkType.I2P,
    ".loki": NetworkType.LOKI,
}

_LOCAL_NAMES = frozenset({"localhost", "localhost.localdomain"})


def detect_network(host: str) -> NetworkType:
    """Classify a bare host name or IP address.

    IP literals are ``CLEARNET`` only when globally routable; loopback,
    private, link-local, documentation, and other reserved ranges are
    ``LOCAL``. Names must be dotted and made of non-empty labels that do not
    start or end with a hyphen, otherwise they are ``UNKNOWN``.
    """
    host = host.lower().strip("[]")
    if not host:
        return NetworkType.UNKNOWN

    for suffix, network in _OVERLAY_SUFFIXES.items():
        if host.endswith(suffix):
            return network
    if host in _LOCAL_NAMES:
        return NetworkType.LOCAL

    try:
        ip = ip_address(host)
    except ValueError:
        pass
    else:
        return NetworkType.CLEARNET if ip.is_global else NetworkType.LOCAL

    labels = host.split(".")
    if len(labels) < 2 or any(not lb or lb[0] == "-" or lb[-1] == "-" for lb in labels):
        return NetworkType.UNKNOWN
    return NetworkType.CLEARNET


_validator = (
    Validator()
    .require_presence_of("scheme", "host")
    .allow_schemes("ws", "wss")
    .check_validity_of("scheme", "host", "port", "path")
)


@dataclass(frozen=True, slots=True)
class Relay:
    """A relay address in canonical form.

    Instances are normally obtained from
    [parse()][statusfeed.models.relay.Relay.parse]; the constructor trusts
    its arguments.

    Attributes:
        url: Canonical URL, the key used in relay lists and on the wire.
        host: Host name or IP address, without IPv6 brackets.
        network: Network the host belongs to. Never ``LOCAL`` or ``UNKNOWN``
            on a parsed instance.

    Examples:
        ```python
        Relay.parse("ws://Relay.Damus.io/").url  # 'wss://relay.damus.io'
        Relay.parse("wss://abc123.onion").url    # 'ws://abc123.onion'
        ```
    """

    url: str
    host: str
    network: NetworkType

    def __str__(self) -> str:
        return self.url

    @classmethod
    def parse(cls, raw: str) -> Relay:
        """Normalize ``raw`` into a relay address.

        Raises:
            TypeError: If ``raw`` is not a string.
            ValueError: If the URL is malformed, uses a scheme other than
                ``ws``/``wss``, carries a query or fragment, or names a local
                or unclassifiable host.
        """
        if not isinstance(raw, str):
            raise TypeError(f"relay URL must be a str, got {type(raw).__name__}")
        if "\x00" in raw:
            raise ValueError("Relay URL contains null bytes")

        uri = uri_reference(raw.strip()).normalize()
        try:
            _validator.validate(uri)
        except UnpermittedComponentError:
            raise ValueError("Invalid scheme: must be ws or wss") from None
        except ValidationError as e:
            raise ValueError(f"Invalid URL: {e}") from None
        if uri.query:
            raise ValueError(f"Relay URL must not contain a query string: ?{uri.query}")
        if uri.fragment:
            raise ValueError(f"Relay URL must not contain a fragment: #{uri.fragment}")

        host = uri.host.strip("[]")
        network = detect_network(host)
        if network is NetworkType.LOCAL:
            raise ValueError(f"Local addresses not allowed: {host}")
        if network is NetworkType.UNKNOWN:
            raise ValueError(f"Invalid host: {host!r}")

        scheme = "wss" if network is NetworkType.CLEARNET else "ws"
        authority = f"[{host}]" if ":" in host else host
        if uri.port:
            port = int(uri.port)
            if port not in (DEFAULT_PORTS[uri.scheme], DEFAULT_PORTS[scheme]):
                authority = f"{authority}:{port}"

        path = "/".join(part for part in (uri.path or "").split("/") if part)
        url = f"{scheme}://{authority}/{path}" if path else f"{scheme}://{authority}"
        return cls(url=url, host=host, network=network)


def parse_relay_url(url: Any) -> Relay | None:
    """Lenient [Relay.parse()][statusfeed.models.relay.Relay.parse]: ``None`` instead of raising."""
    if not isinstance(url, str) or not url.strip():
        return None
    try:
        return Relay.parse(url)
    except ValueError:
        return None
