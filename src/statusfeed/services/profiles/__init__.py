"""Profile sync service package.

Re-exports all public symbols::

    from statusfeed.services.profiles import ProfileSyncWorker
"""

from .service import ProfileSyncWorker


__all__ = ["ProfileSyncWorker"]
