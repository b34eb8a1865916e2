"""Status feed engine package.

Re-exports all public symbols::

    from statusfeed.services.engine import StatusFeed, StatusFeedConfig
"""

from .configs import SignerConfig, StatusFeedConfig
from .service import StatusFeed, UpdateStatusInput


__all__ = [
    "SignerConfig",
    "StatusFeed",
    "StatusFeedConfig",
    "UpdateStatusInput",
]
