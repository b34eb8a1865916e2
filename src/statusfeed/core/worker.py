"""
Restartable, generation-tagged background workers.

A [RestartableWorker][statusfeed.core.worker.RestartableWorker] runs one
``asyncio.Task`` per generation. Every restart mints a new generation
number, closes the realtime subscription of the previous one, cancels its
task and waits for the cancellation to complete before the next task is
spawned. Restarts are serialized by an ``asyncio.Lock``, so two rapid
restarts never leave two live tasks behind.

Work produced by a task is applied only while
[is_current()][statusfeed.core.worker.RestartableWorker.is_current] holds
for its generation; anything arriving later is discarded.
"""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from .logger import Logger
from .metrics import ServiceMetrics


if TYPE_CHECKING:
    from statusfeed.models import RelayList


class WorkerState(StrEnum):
    """Lifecycle state of a sync worker."""

    IDLE = "idle"
    FETCHING_HISTORY = "fetching_history"
    LIVE = "live"


class Closable(Protocol):
    """Anything holding network resources that must be released on restart."""

    async def close(self) -> None: ...


class RestartableWorker(ABC):
    """Base class for the profile and status sync workers.

    Subclasses implement ``_run`` (the generation's body) and ``_reset``
    (what happens to their store when there is nothing to follow).

    Attributes:
        _logger: [Logger][statusfeed.core.logger.Logger] named after the worker.
        _metrics: [ServiceMetrics][statusfeed.core.metrics.ServiceMetrics]
            labelled with the worker name.
    """

    def __init__(self, name: str, metrics: ServiceMetrics | None = None) -> None:
        self._name = name
        self._logger = Logger(name)
        self._metrics = metrics if metrics is not None else ServiceMetrics(name)
        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._subscription: Closable | None = None
        self._lock = asyncio.Lock()
        self._state = WorkerState.IDLE

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def running(self) -> bool:
        """Whether the current generation's task is still alive."""
        return self._task is not None and not self._task.done()

    def is_current(self, generation: int) -> bool:
        """Whether work tagged with ``generation`` may still be applied."""
        return generation == self._generation

    async def restart(self, followings: Sequence[str] | None, relay_list: RelayList | None) -> None:
        """Tear down the running generation and start a new one.

        With no followings or no relay list the store is reset and no task
        is started.
        """
        async with self._lock:
            await self._teardown()
            self._generation += 1
            generation = self._generation

            if not followings or relay_list is None:
                self._logger.debug("worker_reset", generation=generation)
                self._reset()
                return

            authors = tuple(dict.fromkeys(followings))
            self._logger.info(
                "worker_restarted",
                generation=generation,
                followings=len(authors),
                relays=len(relay_list),
            )
            self._task = asyncio.create_task(
                self._run_generation(generation, authors, relay_list),
                name=f"{self._name}-{generation}",
            )

    async def stop(self) -> None:
        """Tear down the running generation without starting another."""
        async with self._lock:
            await self._teardown()
            self._generation += 1

    async def clear(self) -> None:
        """Tear down the running generation and reset the store."""
        await self.restart(None, None)

    async def wait(self) -> None:
        """Wait for the current generation's task to finish on its own."""
        task = self._task
        if task is not None:
            await asyncio.shield(task)

    async def _attach(self, generation: int, subscription: Closable) -> bool:
        """Register the realtime subscription of ``generation``.

        Returns ``False`` and closes it right away when the generation is stale.
        """
        if not self.is_current(generation):
            await subscription.close()
            return False
        self._subscription = subscription
        return True

    def _set_state(self, generation: int, state: WorkerState) -> None:
        if not self.is_current(generation) or state is self._state:
            return
        self._logger.debug("worker_state_changed", previous=self._state, state=state)
        self._state = state

    async def _teardown(self) -> None:
        subscription, self._subscription = self._subscription, None
        task, self._task = self._task, None

        if subscription is not None:
            try:
                await subscription.close()
            except Exception as e:  # the old generation is discarded either way
                self._logger.warning("subscription_close_failed", error=str(e))

        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        self._state = WorkerState.IDLE

    async def _run_generation(
        self, generation: int, authors: tuple[str, ...], relay_list: RelayList
    ) -> None:
        try:
            await self._run(generation, authors, relay_list)
        except asyncio.CancelledError:
            raise
        except Exception as e:  # error boundary for one generation
            self._logger.error(
                "worker_failed",
                generation=generation,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._metrics.inc_counter(f"errors_{type(e).__name__}")
        finally:
            self._set_state(generation, WorkerState.IDLE)

    @abstractmethod
    async def _run(self, generation: int, authors: tuple[str, ...], relay_list: RelayList) -> None:
        """Body of one generation."""

    @abstractmethod
    def _reset(self) -> None:
        """Bring the worker's store to its empty state."""
