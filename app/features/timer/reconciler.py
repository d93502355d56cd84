"""Remote Reconciler - adopts sessions started on other devices"""
import asyncio
import contextlib
import logging
from typing import Callable, Optional

from app.features.timer.domain import TimerState, TimerStatus, datetime_to_ms, now_ms
from app.features.timer.ports import SessionRepository
from app.features.timer.state_store import TimerStateStore

logger = logging.getLogger(__name__)


class RemoteReconciler:
    """
    Pulls the user's active remote session into local state.

    Conservative merge:
    - a local running timer is never replaced
    - absence of a remote session never stops anything locally
    - query failures skip the cycle

    Each pass holds the lock shared with the engine's transitions.
    """

    def __init__(
        self,
        store: TimerStateStore,
        sessions: SessionRepository,
        user_id: str,
        lock: asyncio.Lock,
        clock: Callable[[], int] = now_ms,
        interval_seconds: float = 30.0,
        on_adopted: Optional[Callable[[TimerState], None]] = None,
    ):
        self._store = store
        self._sessions = sessions
        self._user_id = user_id
        self._lock = lock
        self._clock = clock
        self._interval = interval_seconds
        self._on_adopted = on_adopted
        self._task: Optional[asyncio.Task] = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def reconcile(self) -> bool:
        """
        Run one reconciliation pass.

        Returns:
            True if a remote session was adopted
        """
        async with self._lock:
            if self._store.get().status == TimerStatus.RUNNING:
                return False

            try:
                remote = await self._sessions.get_active_session_for_user(self._user_id)
            except Exception as e:
                logger.warning(f"Active session lookup failed, skipping reconciliation: {e}")
                return False

            if remote is None:
                return False

            state = self._store.get()
            if state.status == TimerStatus.RUNNING:
                return False

            start_ms = datetime_to_ms(remote.start_time)
            previously = state.previously_elapsed if state.task_id == remote.task_id else 0
            adopted = self._store.patch(
                status=TimerStatus.RUNNING,
                task_id=remote.task_id,
                session_id=remote.id,
                start_time=start_ms,
                elapsed_time=max(0, self._clock() - start_ms),
                previously_elapsed=previously,
            )
            logger.info(f"Adopted remote session {remote.id} for task {remote.task_id}")

        if self._on_adopted is not None:
            self._on_adopted(adopted)
        return True

    def start(self) -> None:
        """Begin periodic reconciliation; restarts the loop if already running"""
        if self._task is not None:
            self._task.cancel()
        self._task = asyncio.create_task(self._run(), name="timer-reconcile")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.reconcile()
            except Exception:
                logger.exception("Timer reconciliation failed")
