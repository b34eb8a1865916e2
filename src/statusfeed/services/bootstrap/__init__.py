"""Bootstrap service package.

Re-exports all public symbols::

    from statusfeed.services.bootstrap import AccountDataFetcher, BootstrapConfig
"""

from .configs import (
    DEFAULT_BOOTSTRAP_RELAYS,
    DEFAULT_FALLBACK_RELAY_LIST,
    BootstrapConfig,
    RelayUsageConfig,
)
from .service import AccountDataFetcher, RelayListResolver, RelaySelector


__all__ = [
    "DEFAULT_BOOTSTRAP_RELAYS",
    "DEFAULT_FALLBACK_RELAY_LIST",
    "AccountDataFetcher",
    "BootstrapConfig",
    "RelayListResolver",
    "RelaySelector",
    "RelayUsageConfig",
]
