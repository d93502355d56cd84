"""Tick Scheduler - refreshes elapsed_time while the timer runs"""
import asyncio
import contextlib
import logging
from typing import Callable, Optional

from app.features.timer.domain import TimerState, TimerStatus, now_ms
from app.features.timer.state_store import TimerStateStore

logger = logging.getLogger(__name__)


class TickScheduler:
    """
    Holds at most one repeating asyncio task.

    Elapsed time is always recomputed as now - start_time from the state read
    at fire time, so a throttled loop never drifts.
    """

    def __init__(
        self,
        store: TimerStateStore,
        clock: Callable[[], int] = now_ms,
        interval_seconds: float = 1.0,
    ):
        self._store = store
        self._clock = clock
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def sync(self) -> None:
        """Cancel any live timer, then start one if the state is running"""
        self.cancel()
        if self._store.get().status == TimerStatus.RUNNING:
            self._task = asyncio.create_task(self._run(), name="timer-tick")

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def stop(self) -> None:
        """Cancel unconditionally and wait for the task to finish"""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def tick(self) -> Optional[TimerState]:
        """One refresh; returns None when the timer is not running"""
        state = self._store.get()
        if state.status != TimerStatus.RUNNING or state.start_time is None:
            return None
        elapsed = max(0, self._clock() - state.start_time)
        return self._store.patch(elapsed_time=elapsed)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                if self.tick() is None:
                    return
            except Exception:
                logger.exception("Timer tick failed")
