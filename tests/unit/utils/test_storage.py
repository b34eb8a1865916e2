"""Unit tests for utils.storage module."""

import json

import pytest

from statusfeed.utils.storage import FileIdentityStore, MemoryIdentityStore


PK = "ab" * 32


class TestMemoryIdentityStore:
    """MemoryIdentityStore."""

    def test_round_trip(self):
        store = MemoryIdentityStore()
        assert store.load() is None
        store.save(PK)
        assert store.load() == PK
        store.clear()
        assert store.load() is None

    def test_rejects_invalid_pubkey(self):
        with pytest.raises(ValueError):
            MemoryIdentityStore().save("nope")


class TestFileIdentityStore:
    """FileIdentityStore."""

    def test_missing_file_is_logged_out(self, tmp_path):
        assert FileIdentityStore(tmp_path / "identity.json").load() is None

    def test_save_creates_parents(self, tmp_path):
        path = tmp_path / "nested" / "identity.json"
        FileIdentityStore(path).save(PK.upper())
        assert json.loads(path.read_text()) == {"pubkey": PK}
        assert FileIdentityStore(path).load() == PK

    def test_no_tmp_file_left(self, tmp_path):
        path = tmp_path / "identity.json"
        FileIdentityStore(path).save(PK)
        assert [p.name for p in tmp_path.iterdir()] == ["identity.json"]

    def test_malformed_json(self, tmp_path, caplog):
        path = tmp_path / "identity.json"
        path.write_text("{broken")
        assert FileIdentityStore(path).load() is None
        assert "identity_load_failed" in caplog.text

    def test_invalid_pubkey_in_file(self, tmp_path, caplog):
        path = tmp_path / "identity.json"
        path.write_text(json.dumps({"pubkey": "short"}))
        assert FileIdentityStore(path).load() is None
        assert "identity_invalid" in caplog.text

    def test_clear(self, tmp_path):
        store = FileIdentityStore(tmp_path / "identity.json")
        store.save(PK)
        store.clear()
        store.clear()
        assert store.load() is None
        assert not store.path.exists()
