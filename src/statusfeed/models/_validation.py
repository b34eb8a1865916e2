"""Shared validation helpers for frozen dataclass models.

Internal to ``statusfeed.models``: the ``__post_init__`` methods of the
sibling modules call these to reject wrong types and null bytes.
"""

from __future__ import annotations

from typing import Any


_HEX_KEY_LENGTH = 64


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_timestamp(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def validate_str_no_null(value: Any, name: str) -> None:
    """Raise if *value* is not a ``str`` or contains null bytes."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if "\x00" in value:
        raise ValueError(f"{name} contains null bytes")


def validate_str_not_empty(value: Any, name: str) -> None:
    """Raise if *value* is not a non-empty ``str`` without null bytes."""
    validate_str_no_null(value, name)
    if not value:
        raise ValueError(f"{name} must not be empty")


def is_hex_key(value: Any) -> bool:
    """Return True if *value* is a 64-character hex string (public key or event id)."""
    if not isinstance(value, str) or len(value) != _HEX_KEY_LENGTH:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


def validate_hex_key(value: Any, name: str) -> None:
    """Raise if *value* is not a 64-character hex string."""
    validate_instance(value, str, name)
    if not is_hex_key(value):
        raise ValueError(f"{name} must be a 64-character hex string")
