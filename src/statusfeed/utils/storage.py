"""
Persistence of the logged-in identity.

The engine remembers which public key is logged in across restarts through
an [IdentityStore][statusfeed.utils.storage.IdentityStore].
[FileIdentityStore][statusfeed.utils.storage.FileIdentityStore] keeps it in
a small JSON document; [MemoryIdentityStore][statusfeed.utils.storage.MemoryIdentityStore]
keeps it for the lifetime of the process.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol

from statusfeed.models import is_hex_key


logger = logging.getLogger(__name__)


class IdentityStore(Protocol):
    """Key-value storage for the logged-in public key."""

    def load(self) -> str | None: ...

    def save(self, pubkey: str) -> None: ...

    def clear(self) -> None: ...


class MemoryIdentityStore:
    """In-process [IdentityStore][statusfeed.utils.storage.IdentityStore]."""

    def __init__(self, pubkey: str | None = None) -> None:
        self._pubkey = pubkey

    def load(self) -> str | None:
        return self._pubkey

    def save(self, pubkey: str) -> None:
        if not is_hex_key(pubkey):
            raise ValueError("pubkey must be a 64-character hex string")
        self._pubkey = pubkey

    def clear(self) -> None:
        self._pubkey = None


class FileIdentityStore:
    """[IdentityStore][statusfeed.utils.storage.IdentityStore] backed by a JSON file.

    The document is ``{"pubkey": "<hex>"}``. A missing, unreadable, or
    malformed file loads as logged out.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> str | None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("identity_load_failed path=%s error=%s", self._path, e)
            return None

        pubkey = data.get("pubkey") if isinstance(data, dict) else None
        if not is_hex_key(pubkey):
            logger.warning("identity_invalid path=%s", self._path)
            return None
        return pubkey.lower()

    def save(self, pubkey: str) -> None:
        if not is_hex_key(pubkey):
            raise ValueError("pubkey must be a 64-character hex string")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps({"pubkey": pubkey.lower()}), encoding="utf-8")
        os.replace(tmp, self._path)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
