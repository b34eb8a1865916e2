"""Status sync service package.

Re-exports all public symbols::

    from statusfeed.services.statuses import StatusStore, StatusSyncWorker
"""

from .configs import StatusSyncConfig
from .publisher import StatusPublisher
from .scheduler import InvalidationScheduler
from .store import Clock, StatusStore, unix_now
from .worker import StatusSyncWorker


__all__ = [
    "Clock",
    "InvalidationScheduler",
    "StatusPublisher",
    "StatusStore",
    "StatusSyncConfig",
    "StatusSyncWorker",
    "unix_now",
]
