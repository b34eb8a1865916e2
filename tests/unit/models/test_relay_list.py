"""
Unit tests for models.relay_list module.

Tests:
- RelayUsage flag merging and usage matching
- RelayList normalization, duplicate merging, and unusable entry removal
- select() ordering for read, write, and read+write
- from_dict() tolerance of malformed flags
"""

import pytest

from statusfeed.models import RelayList, RelayUsage


class TestRelayUsage:
    """RelayUsage flags."""

    def test_merge_is_or(self):
        merged = RelayUsage(read=True, write=False).merge(RelayUsage(read=False, write=True))
        assert merged == RelayUsage(read=True, write=True)

    def test_is_usable(self):
        assert RelayUsage(read=True, write=False).is_usable
        assert not RelayUsage(read=False, write=False).is_usable

    @pytest.mark.parametrize(
        ("usage", "read", "write", "expected"),
        [
            ("read", True, False, True),
            ("read", False, True, False),
            ("write", False, True, True),
            ("read+write", True, False, False),
            ("read+write", True, True, True),
        ],
    )
    def test_matches(self, usage, read, write, expected):
        assert RelayUsage(read=read, write=write).matches(usage) is expected


class TestRelayList:
    """RelayList construction and selection."""

    def test_normalizes_urls(self):
        relays = RelayList.from_dict({"wss://Relay.Example.com/": {"read": True, "write": True}})
        assert list(relays) == ["wss://relay.example.com"]

    def test_merges_normalized_duplicates(self):
        relays = RelayList(
            {
                "wss://relay.example.com": RelayUsage(read=True, write=False),
                "wss://relay.example.com/": RelayUsage(read=False, write=True),
            }
        )
        assert relays["wss://relay.example.com"] == RelayUsage(read=True, write=True)
        assert len(relays) == 1

    def test_drops_invalid_and_local(self):
        relays = RelayList.from_dict(
            {
                "https://not-a-relay.example.com": {"read": True, "write": True},
                "ws://127.0.0.1:7777": {"read": True, "write": True},
                "wss://ok.example.com": {"read": True, "write": True},
            }
        )
        assert list(relays) == ["wss://ok.example.com"]

    def test_drops_unusable_entries(self):
        relays = RelayList.from_dict({"wss://a.example.com": {"read": False, "write": False}})
        assert len(relays) == 0
        assert not relays

    def test_select_preserves_order(self, relay_list):
        assert relay_list.select("read") == [
            "wss://relay-a.example.com",
            "wss://relay-b.example.com",
        ]
        assert relay_list.select("write") == [
            "wss://relay-a.example.com",
            "wss://relay-c.example.com",
        ]
        assert relay_list.select("read+write") == ["wss://relay-a.example.com"]

    def test_from_dict_non_bool_flags_are_false(self):
        relays = RelayList.from_dict(
            {
                "wss://a.example.com": {"read": "yes", "write": 1},
                "wss://b.example.com": {"read": True, "write": "true"},
            }
        )
        assert list(relays) == ["wss://b.example.com"]
        assert relays["wss://b.example.com"] == RelayUsage(read=True, write=False)

    def test_from_dict_skips_non_mapping_values(self):
        relays = RelayList.from_dict({"wss://a.example.com": True})
        assert len(relays) == 0

    def test_from_urls(self):
        relays = RelayList.from_urls(["wss://a.example.com"], write=False)
        assert relays.to_dict() == {"wss://a.example.com": {"read": True, "write": False}}

    def test_equality_and_hash(self):
        a = RelayList.from_urls(["wss://a.example.com"])
        b = RelayList.from_dict({"wss://a.example.com": {"read": True, "write": True}})
        assert a == b
        assert hash(a) == hash(b)

    def test_hash_ignores_insertion_order(self):
        a = RelayList.from_urls(["wss://a.example.com", "wss://b.example.com"])
        b = RelayList.from_urls(["wss://b.example.com", "wss://a.example.com"])
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_rejects_wrong_usage_type(self):
        with pytest.raises(TypeError):
            RelayList({"wss://a.example.com": {"read": True}})  # type: ignore[dict-item]
