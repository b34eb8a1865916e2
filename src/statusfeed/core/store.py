"""
Copy-on-write observable stores.

A [Store][statusfeed.core.store.Store] holds one immutable snapshot and
replaces it wholesale on every change, so a reader that grabbed the previous
snapshot never sees a half-applied update. Subscribers are notified
synchronously after each replacement; selectors narrow notifications to one
derived value under a caller-supplied equality.

[MappingStore][statusfeed.core.store.MappingStore] specializes the store for
``pubkey -> entity`` maps: every mutation copies the dict and wraps it in a
read-only ``MappingProxyType``.

Examples:
    ```python
    profiles: MappingStore[str, UserProfile] = MappingStore("profiles")
    unsubscribe = profiles.select(
        lambda snap: snap.get(pubkey),
        on_profile_changed,
        equals=lambda a, b: a is b or (a is not None and b is not None and a.same_source(b)),
    )
    profiles.put(pubkey, profile)
    ```
"""

from __future__ import annotations

import logging
import operator
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any, Generic, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S")
K = TypeVar("K")
V = TypeVar("V")

Unsubscribe = Callable[[], None]


class Store(Generic[T]):
    """Observable holder of one immutable snapshot.

    Args:
        name: Used in log lines when a subscriber raises.
        initial: The starting snapshot.
    """

    def __init__(self, name: str, initial: T) -> None:
        self._name = name
        self._value = initial
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> T:
        """The current snapshot."""
        return self._value

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> bool:
        """Replace the snapshot and notify subscribers.

        Returns:
            ``False`` (and nothing is notified) when ``value`` is the current
            snapshot object itself.
        """
        if value is self._value:
            return False
        self._value = value
        self._notify(value)
        return True

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        """Call ``callback(snapshot)`` after every change.

        Returns:
            A function that removes the subscription. Calling it twice is harmless.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def select(
        self,
        selector: Callable[[T], S],
        callback: Callable[[S], None],
        *,
        equals: Callable[[S, S], bool] = operator.eq,
    ) -> Unsubscribe:
        """Subscribe to one derived value.

        ``callback`` fires only when ``selector(snapshot)`` differs from the
        last selected value under ``equals``.
        """
        last: list[Any] = [selector(self._value)]

        def on_change(snapshot: T) -> None:
            selected = selector(snapshot)
            if equals(last[0], selected):
                return
            last[0] = selected
            callback(selected)

        return self.subscribe(on_change)

    def _notify(self, value: T) -> None:
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:  # one faulty subscriber must not starve the others
                logger.exception("store_subscriber_failed store=%s", self._name)


class MappingStore(Store[Mapping[K, V]], Generic[K, V]):
    """Store of a read-only mapping, copied on every mutation."""

    def __init__(self, name: str, initial: Mapping[K, V] | None = None) -> None:
        super().__init__(name, MappingProxyType(dict(initial or {})))

    def __len__(self) -> int:
        return len(self._value)

    def __contains__(self, key: object) -> bool:
        return key in self._value

    def get_item(self, key: K) -> V | None:
        return self._value.get(key)

    def put(self, key: K, value: V) -> None:
        data = dict(self._value)
        data[key] = value
        self.set(MappingProxyType(data))

    def put_many(self, items: Iterable[tuple[K, V]]) -> None:
        data = dict(self._value)
        data.update(items)
        self.set(MappingProxyType(data))

    def remove(self, key: K) -> bool:
        """Drop ``key``; returns ``False`` without notifying when absent."""
        if key not in self._value:
            return False
        data = dict(self._value)
        del data[key]
        self.set(MappingProxyType(data))
        return True

    def clear(self) -> None:
        """Replace the snapshot with an empty mapping (notifies only if non-empty)."""
        if self._value:
            self.set(MappingProxyType({}))
