"""Bootstrap, profile sync, status sync, and the engine that ties them together.

Services are the top layer of the diamond DAG, depending on
[statusfeed.core][statusfeed.core], [statusfeed.nips][statusfeed.nips],
[statusfeed.utils][statusfeed.utils], and [statusfeed.models][statusfeed.models].

```text
login -> AccountDataFetcher -> switch_relays -> ProfileSyncWorker
                                             -> StatusSyncWorker -> StatusStore
                                                StatusPublisher  -> StatusStore
```

Attributes:
    RelaySelector: Bootstrap relays from the signer, or the defaults.
    RelayListResolver: Newest parseable relay list, or the fallback.
    AccountDataFetcher: Profile, followings, and relay list in one round
        with a single escalation to the default relays.
    ProfileSyncWorker: Latest profile of every following.
    StatusSyncWorker: Status history then realtime updates of every following.
    StatusStore: Last-write-wins merge policy over the live status map.
    InvalidationScheduler: Per-(account, category) expiry timers.
    StatusPublisher: Sign, apply locally, then send a general status.
    StatusFeed: The engine, a [BaseService][statusfeed.core.base_service.BaseService]
        refreshing the account data every cycle.
"""

from .bootstrap import (
    AccountDataFetcher,
    BootstrapConfig,
    RelayListResolver,
    RelaySelector,
)
from .engine import (
    SignerConfig,
    StatusFeed,
    StatusFeedConfig,
    UpdateStatusInput,
)
from .profiles import ProfileSyncWorker
from .statuses import (
    InvalidationScheduler,
    StatusPublisher,
    StatusStore,
    StatusSyncConfig,
    StatusSyncWorker,
)


__all__ = [
    # Bootstrap
    "AccountDataFetcher",
    "BootstrapConfig",
    # Statuses
    "InvalidationScheduler",
    # Profiles
    "ProfileSyncWorker",
    "RelayListResolver",
    "RelaySelector",
    # Engine
    "SignerConfig",
    "StatusFeed",
    "StatusFeedConfig",
    "StatusPublisher",
    "StatusStore",
    "StatusSyncConfig",
    "StatusSyncWorker",
    "UpdateStatusInput",
]
