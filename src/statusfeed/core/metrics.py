"""
Prometheus metrics collection and HTTP exposition.

Module-level metric objects are shared by every component of the engine.
``BaseService.run_forever()`` records refresh cycle counts, durations, and
failure streaks; the sync workers and the publisher record their own values
through a [ServiceMetrics][statusfeed.core.metrics.ServiceMetrics] handle.

The ``MetricsServer`` provides an optional aiohttp endpoint for Prometheus
scraping, disabled by default since the engine usually runs inside a client.

Architecture:
    SERVICE_INFO:               Static metadata set once at startup.
    SERVICE_GAUGE:              Point-in-time values (statuses, profiles, ...).
    SERVICE_COUNTER:            Cumulative totals (events applied/rejected, ...).
    CYCLE_DURATION_SECONDS:     Histogram of account refresh durations.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    The endpoint is only started, and metrics only recorded, when
    ``enabled`` is True.
    """

    enabled: bool = Field(default=False, description="Enable metrics collection")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


SERVICE_INFO = Info(
    "statusfeed_service",
    "Service information and metadata",
)

CYCLE_DURATION_SECONDS = Histogram(
    "statusfeed_cycle_duration_seconds",
    "Duration of an account data refresh cycle in seconds",
    ["service"],
    buckets=(0.5, 1, 2, 3, 5, 10, 30, 60),
)

# Labels used by the engine:
#   gauge:   statuses, profiles, followings, consecutive_failures, last_cycle_timestamp
#   counter: events_applied, events_rejected, statuses_published, cycles_success, cycles_failed
SERVICE_GAUGE = Gauge(
    "statusfeed_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "statusfeed_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)


class ServiceMetrics:
    """Labelled view on the shared gauges and counters for one component.

    Every call is a no-op while ``enabled`` is False, so components can
    record unconditionally.

    Example:
        metrics = ServiceMetrics("statuses", enabled=True)
        metrics.inc_counter("events_applied")
        metrics.set_gauge("statuses", 12)
    """

    __slots__ = ("enabled", "service")

    def __init__(self, service: str, *, enabled: bool = False) -> None:
        self.service = service
        self.enabled = enabled

    def set_gauge(self, name: str, value: float) -> None:
        """Set the gauge ``name`` for this component."""
        if not self.enabled:
            return
        SERVICE_GAUGE.labels(service=self.service, name=name).set(value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Increment the counter ``name`` for this component."""
        if not self.enabled:
            return
        SERVICE_COUNTER.labels(service=self.service, name=name).inc(value)


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible /metrics endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... engine runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for scrape requests; no-op when disabled.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()

    async def stop(self) -> None:
        """Stop the HTTP server. Safe to call when never started."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )
