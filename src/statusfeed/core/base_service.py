"""
Periodic service lifecycle for the status feed engine.

``BaseService[ConfigT]`` owns what every looping component of the feed needs
and nothing specific to Nostr: a typed pydantic configuration, a
[Logger][statusfeed.core.logger.Logger] and
[ServiceMetrics][statusfeed.core.metrics.ServiceMetrics] named after the
service, an ``asyncio.Event`` for graceful shutdown, and
[run_forever()][statusfeed.core.base_service.BaseService.run_forever], which
repeats one bounded unit of work on a fixed interval until shutdown or too
many failures in a row.

See Also:
    [StatusFeed][statusfeed.services.engine.StatusFeed]: The engine, whose
        cycle refreshes the logged-in account's metadata.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from pathlib import Path
from types import TracebackType
from typing import Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, Field

from statusfeed.models.constants import ServiceName

from .logger import Logger
from .metrics import CYCLE_DURATION_SECONDS, SERVICE_INFO, MetricsConfig, ServiceMetrics
from .yaml import load_yaml


class BaseServiceConfig(BaseModel):
    """Cycle interval, failure tolerance, and metrics exposition."""

    interval: float = Field(
        default=300.0,
        ge=60.0,
        description="Seconds between run cycles",
    )
    max_consecutive_failures: int = Field(
        default=5,
        ge=0,
        description="Stop after this many failed cycles in a row (0 = never stop)",
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Prometheus metrics configuration",
    )


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """A configurable component that runs ``run()`` in a loop.

    Subclasses set ``SERVICE_NAME`` and ``CONFIG_CLASS`` and implement
    [run()][statusfeed.core.base_service.BaseService.run].

    Attributes:
        SERVICE_NAME: Logger name and ``service`` metrics label.
        CONFIG_CLASS: Pydantic model used by the factory methods and for
            the default configuration.
        _shutdown_event: Set once shutdown was requested.
    """

    SERVICE_NAME: ClassVar[ServiceName]
    CONFIG_CLASS: ClassVar[type[BaseModel]]

    def __init__(self, config: ConfigT | None = None) -> None:
        if config is None:
            config = cast("ConfigT", self.CONFIG_CLASS())
        self._config: ConfigT = config
        self._logger = Logger(self.SERVICE_NAME)
        self._metrics = ServiceMetrics(self.SERVICE_NAME, enabled=config.metrics.enabled)
        self._shutdown_event = asyncio.Event()

    @property
    def config(self) -> ConfigT:
        return self._config

    @abstractmethod
    async def run(self) -> None:
        """One cycle of work."""
        ...

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    def request_shutdown(self) -> None:
        """Ask the loop to stop after the current cycle. Safe from signal handlers."""
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        return not self._shutdown_event.is_set()

    async def wait(self, timeout: float) -> bool:  # noqa: ASYNC109
        """Sleep up to ``timeout`` seconds, waking early on shutdown.

        Returns:
            ``True`` if shutdown was requested, ``False`` on timeout.
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    async def run_forever(self) -> None:
        """Call [run()][statusfeed.core.base_service.BaseService.run] every ``config.interval`` seconds.

        The loop ends when shutdown is requested or after
        ``config.max_consecutive_failures`` failed cycles in a row. A
        successful cycle resets the streak. ``CancelledError``,
        ``KeyboardInterrupt``, and ``SystemExit`` are never counted as
        failures: they propagate.
        """
        interval = self._config.interval
        limit = self._config.max_consecutive_failures
        if self._config.metrics.enabled:
            SERVICE_INFO.info({"service": self.SERVICE_NAME})
        self._logger.info("run_forever_started", interval=interval, max_consecutive_failures=limit)

        failures = 0
        while self.is_running:
            if await self._run_cycle():
                failures = 0
                self.set_gauge("consecutive_failures", 0)
                self._logger.info("cycle_completed", next_cycle_s=interval)
            else:
                failures += 1
                self.set_gauge("consecutive_failures", failures)
                if 0 < limit <= failures:
                    self._logger.critical(
                        "max_consecutive_failures_reached", failures=failures, limit=limit
                    )
                    break
            if await self.wait(interval):
                break

        self._logger.info("run_forever_stopped")

    async def _run_cycle(self) -> bool:
        """Run one cycle inside the error boundary; ``False`` if it raised."""
        started = time.monotonic()
        try:
            await self.run()
        except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
            raise
        except Exception as e:  # one failed cycle must not end the service
            self.inc_counter("cycles_failed")
            self.inc_counter(f"errors_{type(e).__name__}")
            self._logger.error("run_cycle_error", error=str(e), error_type=type(e).__name__)
            return False

        if self._config.metrics.enabled:
            CYCLE_DURATION_SECONDS.labels(service=self.SERVICE_NAME).observe(
                time.monotonic() - started
            )
        self.inc_counter("cycles_success")
        self.set_gauge("last_cycle_timestamp", time.time())
        return True

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str | Path, **kwargs: Any) -> Self:
        """Build from a YAML file; ``kwargs`` go to the constructor (transport, signer...)."""
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> Self:
        config = cast("ConfigT", cls.CONFIG_CLASS(**data))
        return cls(config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        self._shutdown_event.clear()
        self._logger.info("service_started")
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self._shutdown_event.set()
        self._logger.info("service_stopped")

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        """Set a gauge labelled with this service. No-op while metrics are disabled."""
        self._metrics.set_gauge(name, value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Increment a counter labelled with this service. No-op while metrics are disabled."""
        self._metrics.inc_counter(name, value)
