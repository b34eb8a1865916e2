"""
Unit tests for models.relay module.

Tests:
- Relay.parse() normalization (scheme per network, default ports, paths)
- detect_network() classification
- Rejection of local addresses, bad schemes, and bad hosts
- parse_relay_url() lenient parsing
"""

import pytest

from statusfeed.models import NetworkType, Relay, parse_relay_url
from statusfeed.models.relay import detect_network


class TestParse:
    """Relay.parse() normalization."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("wss://relay.example.com", "wss://relay.example.com"),
            ("ws://relay.example.com", "wss://relay.example.com"),
            ("WSS://Relay.Example.COM", "wss://relay.example.com"),
            ("  wss://relay.example.com  ", "wss://relay.example.com"),
            ("wss://relay.example.com/", "wss://relay.example.com"),
            ("wss://relay.example.com//nostr//", "wss://relay.example.com/nostr"),
            ("wss://relay.example.com/a/b", "wss://relay.example.com/a/b"),
            ("wss://relay.example.com:443", "wss://relay.example.com"),
            ("ws://relay.example.com:80", "wss://relay.example.com"),
            ("wss://relay.example.com:8080", "wss://relay.example.com:8080"),
            ("wss://abc123.onion", "ws://abc123.onion"),
            ("wss://abc123.onion:443", "ws://abc123.onion"),
            ("ws://abc123.onion:9000", "ws://abc123.onion:9000"),
            ("wss://[2001:4860:4860::8888]", "wss://[2001:4860:4860::8888]"),
        ],
    )
    def test_canonical_url(self, raw, expected):
        assert Relay.parse(raw).url == expected

    def test_fields(self):
        relay = Relay.parse("wss://relay.i2p/inbox")
        assert relay.host == "relay.i2p"
        assert relay.network == NetworkType.I2P
        assert str(relay) == "ws://relay.i2p/inbox"

    def test_ipv6_host_unbracketed(self):
        relay = Relay.parse("wss://[2001:4860:4860::8888]:7777")
        assert relay.host == "2001:4860:4860::8888"
        assert relay.url == "wss://[2001:4860:4860::8888]:7777"

    def test_equal_spellings_are_equal(self):
        assert Relay.parse("ws://Relay.example.com:443/") == Relay.parse("wss://relay.example.com")
        assert len({Relay.parse("wss://a.example.com"), Relay.parse("ws://a.example.com")}) == 1

    def test_frozen(self):
        relay = Relay.parse("wss://relay.example.com")
        with pytest.raises(AttributeError):
            relay.url = "wss://other.example.com"


class TestDetectNetwork:
    """detect_network()."""

    @pytest.mark.parametrize(
        ("host", "network"),
        [
            ("relay.example.com", NetworkType.CLEARNET),
            ("8.8.8.8", NetworkType.CLEARNET),
            ("ABC.ONION", NetworkType.TOR),
            ("relay.i2p", NetworkType.I2P),
            ("relay.loki", NetworkType.LOKI),
            ("localhost", NetworkType.LOCAL),
            ("127.0.0.1", NetworkType.LOCAL),
            ("192.168.1.1", NetworkType.LOCAL),
            ("100.64.0.1", NetworkType.LOCAL),
            ("[fe80::1]", NetworkType.LOCAL),
            ("", NetworkType.UNKNOWN),
            ("intranet", NetworkType.UNKNOWN),
            ("invalid-.example.com", NetworkType.UNKNOWN),
            ("a..example.com", NetworkType.UNKNOWN),
        ],
    )
    def test_classification(self, host, network):
        assert detect_network(host) == network

    def test_enum_values(self):
        assert {member.value for member in NetworkType} == {
            "clearnet",
            "tor",
            "i2p",
            "loki",
            "local",
            "unknown",
        }


class TestRejection:
    """Relay.parse() refusals."""

    @pytest.mark.parametrize(
        "url",
        [
            "wss://localhost",
            "wss://localhost.localdomain",
            "wss://127.0.0.254",
            "wss://10.0.0.1",
            "wss://172.16.0.1",
            "wss://169.254.0.1",
            "wss://[::1]",
        ],
    )
    def test_local_addresses(self, url):
        with pytest.raises(ValueError, match="Local addresses"):
            Relay.parse(url)

    @pytest.mark.parametrize("url", ["http://relay.example.com", "https://relay.example.com"])
    def test_invalid_scheme(self, url):
        with pytest.raises(ValueError, match="Invalid scheme"):
            Relay.parse(url)

    @pytest.mark.parametrize("url", ["relay.example.com", ""])
    def test_missing_scheme(self, url):
        with pytest.raises(ValueError):
            Relay.parse(url)

    def test_invalid_host(self):
        with pytest.raises(ValueError, match="Invalid host"):
            Relay.parse("wss://invalid_host")

    def test_query_string(self):
        with pytest.raises(ValueError, match="query string"):
            Relay.parse("wss://relay.example.com/?auth=1")

    def test_fragment(self):
        with pytest.raises(ValueError, match="fragment"):
            Relay.parse("wss://relay.example.com/#x")

    def test_null_byte(self):
        with pytest.raises(ValueError, match="null bytes"):
            Relay.parse("wss://relay.example.com/\x00")

    def test_not_a_string(self):
        with pytest.raises(TypeError):
            Relay.parse(42)


class TestParseRelayUrl:
    """Lenient parsing used by relay lists and configs."""

    def test_valid(self):
        relay = parse_relay_url(" wss://Relay.Example.com/ ")
        assert relay is not None
        assert relay.url == "wss://relay.example.com"

    @pytest.mark.parametrize(
        "value",
        [None, "", "   ", 42, "https://relay.example.com", "wss://127.0.0.1", "wss://bad_host"],
    )
    def test_invalid_returns_none(self, value):
        assert parse_relay_url(value) is None
