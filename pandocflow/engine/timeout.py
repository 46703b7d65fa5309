"""Wall-clock budgets for synchronous conversion attempts.

Responsibilities:
- Run the blocking converter on an owned worker pool without blocking the event loop.
- Abandon attempts that exceed their budget and discard their late results.
- Keep the engine's active-timeout counter in step with armed budgets.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from concurrent.futures import Future, ThreadPoolExecutor
import threading
from typing import TYPE_CHECKING, TypeVar

from loguru import logger

from ..errors import ConversionTimeoutError

if TYPE_CHECKING:
    from .state import ConversionStateMachine

_Result = TypeVar("_Result")


class TimeoutGuard:
    """Race conversion attempts against a budget on a dedicated thread pool.

    A timed-out attempt keeps running on its worker thread until the blocking
    call returns; its result is then dropped and counted in `discarded_results`.
    """

    def __init__(
        self,
        *,
        state: ConversionStateMachine | None = None,
        max_workers: int = 4,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self._state = state
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="pandocflow-convert"
        )
        self._lock = threading.Lock()
        self.discarded_results = 0
        self.timeouts = 0

    async def run(
        self,
        fn: Callable[..., _Result],
        *args: object,
        budget_seconds: float,
        label: str,
    ) -> _Result:
        """Run `fn(*args)` on a worker thread within `budget_seconds`.

        Raises:
            ConversionTimeoutError: If the budget expires first.
            Exception: Whatever `fn` raises, when it fails within budget.
        """

        work = self._executor.submit(fn, *args)
        return await self._race(
            asyncio.wrap_future(work),
            budget_seconds=budget_seconds,
            label=label,
            abandoned=work,
        )

    async def run_pass(
        self,
        attempt: Callable[[], Awaitable[_Result]],
        *,
        budget_seconds: float,
        label: str,
    ) -> _Result:
        """Await a multi-step coroutine attempt (one chunked pass) within a budget."""

        return await self._race(attempt(), budget_seconds=budget_seconds, label=label)

    async def _race(
        self,
        awaitable: Awaitable[_Result],
        *,
        budget_seconds: float,
        label: str,
        abandoned: Future[_Result] | None = None,
    ) -> _Result:
        """Await `awaitable` against the budget and map expiry to a timeout error."""

        self._arm()
        try:
            return await asyncio.wait_for(awaitable, timeout=budget_seconds)
        except asyncio.TimeoutError as exc:
            with self._lock:
                self.timeouts += 1
            if abandoned is not None:
                abandoned.add_done_callback(self._discard_late_result)
            logger.warning("Conversion timeout: {} exceeded {:.2f}s budget", label, budget_seconds)
            raise ConversionTimeoutError(label, budget_seconds) from exc
        finally:
            self._disarm()

    def _discard_late_result(self, work: Future[object]) -> None:
        """Count a late result from an abandoned attempt without using it."""

        if work.cancelled():
            return
        with self._lock:
            self.discarded_results += 1
        logger.debug("Discarded late result from an abandoned conversion attempt")

    def _arm(self) -> None:
        if self._state is not None:
            self._state.timeout_armed()

    def _disarm(self) -> None:
        if self._state is not None:
            self._state.timeout_cleared()

    def close(self, *, wait: bool = False) -> None:
        """Shut down the owned worker pool."""

        if self._owns_executor:
            self._executor.shutdown(wait=wait, cancel_futures=True)
