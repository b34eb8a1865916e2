"""Nostr key loading for the local signer.

Loads the private key used by [KeysSigner][statusfeed.utils.signer.KeysSigner]
from an environment variable. Both nsec1 (bech32) and 64-char hex formats
are accepted.

Warning:
    Private keys must **never** be stored in configuration files or logged.
    Only the environment variable *name* lives in YAML.

Examples:
    ```python
    import os

    os.environ["PRIVATE_KEY"] = "nsec1..."  # pragma: allowlist secret
    keys = load_keys_from_env("PRIVATE_KEY")
    print(keys.public_key().to_hex())
    ```
"""

from __future__ import annotations

import os
from typing import Any

from nostr_sdk import Keys
from pydantic import BaseModel, Field, model_validator


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret


def load_keys_from_env(env_var: str, *, required: bool = True) -> Keys | None:
    """Load Nostr keys from an environment variable.

    Args:
        env_var: Name of the environment variable holding the private key.
        required: Raise when the variable is unset; otherwise return ``None``.

    Raises:
        ValueError: If ``required`` and the variable is not set or empty.
        nostr_sdk.NostrSdkError: If the key value is malformed.
    """
    value = os.getenv(env_var)

    if not value:
        if not required:
            return None
        raise ValueError(
            f"{env_var} environment variable is required. Generate one with: openssl rand -hex 32"
        )

    return Keys.parse(value)


class KeysConfig(BaseModel):
    """Pydantic model that loads Nostr keys from an environment variable.

    Watch-only usage (``statusfeed watch --pubkey``) needs no key, so the
    key is optional unless ``required`` is set.

    Attributes:
        keys_env: Environment variable name for the private key.
        required: Fail validation when the variable is unset.
        keys: Loaded ``nostr_sdk.Keys`` instance, or ``None``.

    Warning:
        ``keys`` holds a live private key. Do not serialize this model.
    """

    model_config = {"arbitrary_types_allowed": True}

    keys_env: str = Field(
        default=ENV_PRIVATE_KEY,
        min_length=1,
        description="Environment variable name for private key",
    )
    required: bool = Field(default=False, description="Fail when the key is missing")
    keys: Keys | None = Field(default=None, description="Keys loaded from keys_env")

    @model_validator(mode="before")
    @classmethod
    def _load_keys_from_env(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("keys") is None:
            data = dict(data)
            data["keys"] = load_keys_from_env(
                data.get("keys_env", ENV_PRIVATE_KEY),
                required=bool(data.get("required", False)),
            )
        return data
