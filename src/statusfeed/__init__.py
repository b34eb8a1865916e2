r"""statusfeed -- Nostr status feed synchronization engine.

Keeps a live, locally consistent view of who an account follows, each
following's profile, and each following's NIP-38 user statuses, sourced
from independent relays with no global consistency guarantee.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Bootstrap, profile/status sync, engine
             /   |   \
          core  nips  utils    Infrastructure, protocol, and adapters
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Pure frozen dataclasses. Zero I/O.
    core: Base service, stores, restartable workers, exceptions, logging,
        metrics.
    nips: NIP-02 contact lists, NIP-38 user statuses, NIP-65 relay lists.
    utils: Relay transport, signer, key loading, identity storage.
    services: Bootstrap, sync workers, publisher, and the engine.

Note:
    For lightweight usage, import directly from subpackages::

        from statusfeed.models import RelayList
        from statusfeed.services.statuses import StatusStore

    Top-level imports (``from statusfeed import StatusFeed``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("statusfeed")

__all__ = [
    "AccountDataFetcher",
    "AccountMetadata",
    "BaseService",
    "Event",
    "EventFilter",
    "InvalidationScheduler",
    "Logger",
    "ProfileSyncWorker",
    "RelayList",
    "RelayListResolver",
    "RelaySelector",
    "StatusCategory",
    "StatusData",
    "StatusFeed",
    "StatusFeedConfig",
    "StatusPublisher",
    "StatusStore",
    "StatusSyncWorker",
    "UpdateStatusInput",
    "UserProfile",
    "UserStatus",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("statusfeed.core", "BaseService"),
    "Logger": ("statusfeed.core", "Logger"),
    "AccountMetadata": ("statusfeed.models", "AccountMetadata"),
    "Event": ("statusfeed.models", "Event"),
    "EventFilter": ("statusfeed.models", "EventFilter"),
    "RelayList": ("statusfeed.models", "RelayList"),
    "StatusCategory": ("statusfeed.models", "StatusCategory"),
    "StatusData": ("statusfeed.models", "StatusData"),
    "UserProfile": ("statusfeed.models", "UserProfile"),
    "UserStatus": ("statusfeed.models", "UserStatus"),
    "AccountDataFetcher": ("statusfeed.services", "AccountDataFetcher"),
    "InvalidationScheduler": ("statusfeed.services", "InvalidationScheduler"),
    "ProfileSyncWorker": ("statusfeed.services", "ProfileSyncWorker"),
    "RelayListResolver": ("statusfeed.services", "RelayListResolver"),
    "RelaySelector": ("statusfeed.services", "RelaySelector"),
    "StatusFeed": ("statusfeed.services", "StatusFeed"),
    "StatusFeedConfig": ("statusfeed.services", "StatusFeedConfig"),
    "StatusPublisher": ("statusfeed.services", "StatusPublisher"),
    "StatusStore": ("statusfeed.services", "StatusStore"),
    "StatusSyncWorker": ("statusfeed.services", "StatusSyncWorker"),
    "UpdateStatusInput": ("statusfeed.services", "UpdateStatusInput"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'statusfeed' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
