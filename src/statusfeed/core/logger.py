"""
Structured key=value logging.

Event names are short snake_case identifiers and the context goes in keyword
arguments, so log lines stay grep-able by event. The
``StructuredFormatter`` reads the ``structured_kv`` extra field attached by
``Logger`` and appends it as key=value pairs. Installed on the root handler,
it also formats the plain ``logging.getLogger(__name__)`` records of the
models, nips, and utils layers.

Examples:
    ```python
    from statusfeed.core.logger import Logger

    logger = Logger("statuses")
    logger.info("history_fetch_started", followings=42, relays=3)
    # Output: info statuses history_fetch_started followings=42 relays=3
    ```
"""

import logging
from typing import Any, ClassVar


def _truncate(value: Any, max_value_length: int | None) -> str:
    s = str(value)
    if max_value_length and len(s) > max_value_length:
        s = s[:max_value_length] + f"...<truncated {len(s) - max_value_length} chars>"
    return s


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values are truncated to ``max_value_length`` characters, and values
    containing whitespace, equals signs, or quotes are escaped and quoted.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            Pass None to disable truncation.
        prefix: String prepended to the output (default: single space).

    Returns:
        Formatted string, e.g. ' key1=value1 key2="value with spaces"'.
        Returns empty string if kwargs is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = _truncate(v, max_value_length)
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")

    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Formats all log records as ``level name message key=value ...``."""

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        return base


class Logger:
    """Logger that takes its context as keyword arguments.

    Every method mirrors the stdlib call of the same name. Keyword arguments
    travel on the record as ``structured_kv`` for
    [StructuredFormatter][statusfeed.core.logger.StructuredFormatter];
    string forms longer than ``max_value_length`` are truncated first, so a
    huge event content never floods the log.

    Examples:
        ```python
        logger = Logger("bootstrap")
        logger.warning("relay_fetch_failed", relay="wss://relay.example.com", error="timeout")
        ```
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(self, name: str, *, max_value_length: int | None = None) -> None:
        self._logger = logging.getLogger(name)
        self._max_value_length = (
            self._DEFAULT_MAX_VALUE_LENGTH if max_value_length is None else max_value_length
        )

    @property
    def name(self) -> str:
        return self._logger.name

    def _emit(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        limit = self._max_value_length
        fields = {
            k: _truncate(v, limit) if limit and len(str(v)) > limit else v
            for k, v in kwargs.items()
        }
        extra = {"structured_kv": fields} if fields else {}
        self._logger.log(level, msg, extra=extra, exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.ERROR, msg, kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.CRITICAL, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._emit(logging.ERROR, msg, kwargs, exc_info=True)
