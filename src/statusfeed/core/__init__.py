"""Core layer providing the foundation for the statusfeed services.

Sits in the middle of the diamond DAG -- depends only on
``statusfeed.models`` and is depended upon by ``statusfeed.services``.

Attributes:
    BaseService: Abstract generic base class with lifecycle management
        ([run()][statusfeed.core.base_service.BaseService.run] /
        [run_forever()][statusfeed.core.base_service.BaseService.run_forever] /
        shutdown), factory methods, and Prometheus metrics integration.
    RestartableWorker: Generation-tagged background task that cancels and
        awaits its predecessor on every restart.
        See [RestartableWorker][statusfeed.core.worker.RestartableWorker].
    Store: Copy-on-write observable snapshot with selector subscriptions.
        See [Store][statusfeed.core.store.Store].
    Logger: Structured logger supporting key=value and JSON output modes.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
    YAML: Safe YAML loading via [load_yaml()][statusfeed.core.yaml.load_yaml].

Examples:
    ```python
    from statusfeed.core import Logger, MappingStore

    statuses = MappingStore("statuses")
    statuses.subscribe(lambda snapshot: print(len(snapshot)))
    ```
"""

from .base_service import (
    BaseService,
    BaseServiceConfig,
    ConfigT,
)
from .exceptions import (
    ConfigurationError,
    ConnectivityError,
    ProtocolError,
    PublishingError,
    RelayTimeoutError,
    SigningError,
    StatusFeedError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
    ServiceMetrics,
)
from .store import MappingStore, Store, Unsubscribe
from .worker import Closable, RestartableWorker, WorkerState
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "Closable",
    "ConfigT",
    "ConfigurationError",
    "ConnectivityError",
    "Logger",
    "MappingStore",
    "MetricsConfig",
    "MetricsServer",
    "ProtocolError",
    "PublishingError",
    "RelayTimeoutError",
    "RestartableWorker",
    "ServiceMetrics",
    "SigningError",
    "StatusFeedError",
    "Store",
    "StructuredFormatter",
    "Unsubscribe",
    "WorkerState",
    "format_kv_pairs",
    "load_yaml",
]
