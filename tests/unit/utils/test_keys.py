"""
Unit tests for utils.keys module.

Tests:
- ENV_PRIVATE_KEY constant
- load_keys_from_env() - environment variable loading with various key formats
- KeysConfig - Pydantic model for Nostr keys configuration
"""

import os
from unittest.mock import patch

import pytest
from nostr_sdk import Keys

from statusfeed.utils.keys import ENV_PRIVATE_KEY, KeysConfig, load_keys_from_env


# =============================================================================
# Test Constants
# =============================================================================

# Valid secp256k1 test keys (DO NOT USE IN PRODUCTION)
VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)
VALID_NSEC_KEY = (
    "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
)

INVALID_KEYS = [
    "invalid_key",
    "0" * 32,
    "nsec1invalid",
    "npub1abc",
]


class TestEnvPrivateKeyConstant:
    """ENV_PRIVATE_KEY constant value."""

    def test_constant_value(self):
        assert ENV_PRIVATE_KEY == "PRIVATE_KEY"  # pragma: allowlist secret


# =============================================================================
# load_keys_from_env() Tests
# =============================================================================


class TestLoadKeysFromEnv:
    """load_keys_from_env() with various inputs."""

    def test_raises_when_env_var_not_set(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="PRIVATE_KEY environment variable is required"):
                load_keys_from_env("PRIVATE_KEY")

    def test_returns_none_when_optional(self):
        with patch.dict(os.environ, {}, clear=True):
            assert load_keys_from_env("PRIVATE_KEY", required=False) is None

    def test_raises_when_env_var_is_empty(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": ""}):  # pragma: allowlist secret
            with pytest.raises(ValueError, match="openssl rand -hex 32"):
                load_keys_from_env("PRIVATE_KEY")

    def test_valid_hex_key_returns_keys(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": VALID_HEX_KEY}):  # pragma: allowlist secret
            keys = load_keys_from_env("PRIVATE_KEY")
        assert isinstance(keys, Keys)
        assert keys.secret_key().to_hex() == VALID_HEX_KEY
        assert len(keys.public_key().to_hex()) == 64

    def test_valid_nsec_key_matches_hex(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": VALID_NSEC_KEY}):  # pragma: allowlist secret
            keys = load_keys_from_env("PRIVATE_KEY")
        assert keys.secret_key().to_hex() == VALID_HEX_KEY

    @pytest.mark.parametrize("invalid_key", INVALID_KEYS)
    def test_invalid_key_raises_error(self, invalid_key: str):
        with patch.dict(os.environ, {"PRIVATE_KEY": invalid_key}):  # pragma: allowlist secret
            with pytest.raises(Exception):  # noqa: B017, PT011
                load_keys_from_env("PRIVATE_KEY")

    def test_custom_env_var_name(self):
        with patch.dict(os.environ, {"MY_KEY": VALID_HEX_KEY}):  # pragma: allowlist secret
            keys = load_keys_from_env("MY_KEY")
        assert keys.secret_key().to_hex() == VALID_HEX_KEY


# =============================================================================
# KeysConfig Tests
# =============================================================================


class TestKeysConfig:
    """KeysConfig environment loading and explicit keys."""

    def test_optional_by_default(self):
        with patch.dict(os.environ, {}, clear=True):
            config = KeysConfig()
        assert config.keys is None

    def test_required_raises_when_env_not_set(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError):
                KeysConfig(required=True)

    def test_loads_hex_key_from_env(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": VALID_HEX_KEY}):  # pragma: allowlist secret
            config = KeysConfig()
        assert config.keys is not None
        assert config.keys.secret_key().to_hex() == VALID_HEX_KEY

    def test_custom_keys_env(self):
        with patch.dict(os.environ, {"FEED_KEY": VALID_NSEC_KEY}):  # pragma: allowlist secret
            config = KeysConfig(keys_env="FEED_KEY")
        assert config.keys.secret_key().to_hex() == VALID_HEX_KEY

    def test_explicit_keys_override_env(self):
        explicit = Keys.generate()
        with patch.dict(os.environ, {"PRIVATE_KEY": VALID_HEX_KEY}):  # pragma: allowlist secret
            config = KeysConfig(keys=explicit)
        assert config.keys is explicit

    def test_empty_keys_env_rejected(self):
        with patch.dict(os.environ, {}, clear=True), pytest.raises(ValueError):
            KeysConfig(keys_env="")
