"""Timer Engine - the public face of the timer feature"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, List, Optional, Set, Union

from app.features.timer.domain import (
    DEFAULT_PAUSE_STATUS,
    DEFAULT_STOP_STATUS,
    IN_PROGRESS_MARKER,
    ResetSummary,
    TaskStatus,
    TimerState,
    TimerStatus,
    ensure_utc,
    ms_to_datetime,
    now_ms,
    validate_session_id,
    validate_task_id,
)
from app.features.timer.duration import format_duration, format_stored_duration
from app.features.timer.errors import (
    SessionNotFoundError,
    TimerBusyError,
    TimerClosedError,
    TimerValidationError,
)
from app.features.timer.ports import LocalStore, SessionRepository, TaskStatusRepository
from app.features.timer.reconciler import RemoteReconciler
from app.features.timer.session_recorder import SessionRecorder
from app.features.timer.state_store import DEFAULT_STATE_KEY, TimerStateStore
from app.features.timer.stats import TimeStats, summarize_sessions
from app.features.timer.ticker import TickScheduler
from app.models.task import Task
from app.models.time_session import TimeSession

logger = logging.getLogger(__name__)

StatusArg = Union[TaskStatus, str, None]


class TimerEngine:
    """
    State machine over idle / running / paused.

    Transitions:
    - idle -> running: start(task_id)
    - running -> paused: pause(status)
    - paused -> running: resume(), always opening a new session
    - running/paused -> idle: stop(final_status)
    - any -> idle: reset() locally, reset_all() across devices

    Events whose guard fails are no-ops that return the unchanged state.
    A transition requested while another one is in flight raises
    TimerBusyError. Transitions and reconciliation share one lock.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        tasks: TaskStatusRepository,
        local_store: LocalStore,
        user_id: str,
        clock: Callable[[], int] = now_ms,
        tick_interval_seconds: float = 1.0,
        sync_interval_seconds: float = 30.0,
        state_key: str = DEFAULT_STATE_KEY,
    ):
        if not user_id:
            raise ValueError("user_id is required")

        self._user_id = user_id
        self._clock = clock
        self._sessions = sessions
        self._tasks = tasks
        self._lock = asyncio.Lock()
        self._busy = False
        self._closed = False

        self._store = TimerStateStore(local_store, key=state_key)
        self._recorder = SessionRecorder(sessions, tasks)
        self._ticker = TickScheduler(self._store, clock=clock, interval_seconds=tick_interval_seconds)
        self._reconciler = RemoteReconciler(
            self._store,
            sessions,
            user_id,
            lock=self._lock,
            clock=clock,
            interval_seconds=sync_interval_seconds,
            on_adopted=self._on_adopted,
        )

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def ticker(self) -> TickScheduler:
        return self._ticker

    @property
    def reconciler(self) -> RemoteReconciler:
        return self._reconciler

    # ---- lifecycle ----

    async def startup(self) -> None:
        """Resume ticking for a restored running state, reconcile once, then periodically"""
        self._ticker.sync()
        self._ticker.tick()
        await self._reconciler.reconcile()
        self._reconciler.start()
        logger.info(f"Timer engine started for user {self._user_id} in state {self.get_state().status.value}")

    async def shutdown(self) -> None:
        """Cancel every timer; no callback fires afterwards"""
        self._closed = True
        await self._ticker.stop()
        await self._reconciler.stop()
        logger.info("Timer engine shut down")

    # ---- queries ----

    def get_state(self) -> TimerState:
        return self._store.get()

    def format_elapsed(self, compact: bool = False) -> str:
        return format_duration(self._store.get().total_elapsed, compact=compact)

    def get_display_time(self, task: Task) -> str:
        """Live time for the tracked task, the stored actual_time for any other"""
        state = self._store.get()
        if state.is_tracking(task.id):
            return state.display_time
        return format_stored_duration(task.actual_time)

    # ---- transitions ----

    async def start(self, task_id: str) -> TimerState:
        """
        Start timing a task.

        A paused timer on the same task resumes instead, keeping its
        accumulated time. A timer on another task is stopped first with the
        paused status so only one task is ever timed.

        Raises:
            TimerValidationError: Malformed task id
            TimerBusyError: Another transition is in flight
        """
        task_id = validate_task_id(task_id)

        async with self._transition("start"):
            state = self._store.get()

            if state.status != TimerStatus.IDLE:
                if state.task_id == task_id:
                    if state.status == TimerStatus.PAUSED:
                        return await self._resume_locked()
                    return state
                logger.info(f"Switching timer from task {state.task_id} to {task_id}")
                await self._stop_locked(DEFAULT_PAUSE_STATUS)

            return await self._start_locked(task_id)

    async def pause(self, status: StatusArg = None) -> TimerState:
        """Pause a running timer, closing its session; status defaults to paused"""
        task_status = TaskStatus.parse(status) or DEFAULT_PAUSE_STATUS

        async with self._transition("pause"):
            return await self._pause_locked(task_status)

    async def resume(self) -> TimerState:
        """Resume a paused timer with a new session for the same task"""
        async with self._transition("resume"):
            return await self._resume_locked()

    async def stop(self, final_status: StatusArg = None) -> TimerState:
        """End the episode; final_status defaults to completed"""
        task_status = TaskStatus.parse(final_status) or DEFAULT_STOP_STATUS

        async with self._transition("stop"):
            return await self._stop_locked(task_status)

    async def complete_task(self, task_id: str) -> TimerState:
        """Mark a task completed, stopping the timer first if it is the tracked task"""
        task_id = validate_task_id(task_id)

        async with self._transition("complete"):
            if self._store.get().is_tracking(task_id):
                return await self._stop_locked(TaskStatus.COMPLETED)

            await self._recorder.set_task_status(task_id, TaskStatus.COMPLETED)
            return self._store.get()

    async def reset(self) -> TimerState:
        """
        Clear local state without touching the backing store.

        An open remote session stays open; use reset_all to close it.

        Raises:
            TimerBusyError: Another transition is in flight
        """
        async with self._transition("reset"):
            state = self._store.reset()
        logger.info("Timer reset locally")
        return state

    async def reset_all(self) -> ResetSummary:
        """
        Repair timer state across every device of the user.

        Closes all of the user's open sessions, moves their active and paused
        tasks back to pending, recomputes actual_time for the tasks whose
        sessions were closed, then clears local state and its persisted copy.
        The session the local timer is running on is closed with its real
        duration; any other open session gets a zero duration since its end is
        unknown. Individual failures are logged and reported in the summary
        without stopping the remaining steps.
        """
        async with self._transition("reset all"):
            state = self._store.get()
            now = self._clock()
            summary = ResetSummary()
            touched: Set[str] = set()

            try:
                open_sessions = await self._sessions.list_open_sessions_for_user(self._user_id)
            except Exception as e:
                logger.error(f"Listing open sessions for user {self._user_id} failed: {e}")
                summary.errors.append(f"Could not list open sessions: {e}")
                open_sessions = []

            for session in open_sessions:
                if not session.is_active:
                    continue
                duration = 0
                if state.status == TimerStatus.RUNNING and state.session_id == session.id and state.start_time is not None:
                    duration = max(0, now - state.start_time)
                try:
                    closed = await self._recorder.finalize_session(session.id, now, duration)
                except Exception as e:
                    summary.errors.append(f"Could not close session {session.id}: {e}")
                    continue
                if closed:
                    summary.sessions_closed += 1
                    touched.add(session.task_id)

            try:
                task_ids = await self._tasks.find_ids_by_status(
                    self._user_id, [TaskStatus.ACTIVE.value, TaskStatus.PAUSED.value]
                )
            except Exception as e:
                logger.error(f"Listing in-progress tasks for user {self._user_id} failed: {e}")
                summary.errors.append(f"Could not list active or paused tasks: {e}")
                task_ids = []

            for task_id in task_ids:
                try:
                    await self._recorder.set_task_status(task_id, TaskStatus.PENDING)
                except Exception as e:
                    summary.errors.append(f"Could not reset task {task_id}: {e}")
                    continue
                summary.tasks_reset += 1

            for task_id in sorted(touched):
                try:
                    await self._recorder.recompute_task_actual_time(task_id)
                except Exception as e:
                    logger.error(f"Recomputing actual time for task {task_id} failed: {e}")
                    summary.errors.append(f"Could not recompute actual time of task {task_id}: {e}")

            self._store.reset()
            self._store.clear_storage()

        logger.info(
            f"Timer reset for user {self._user_id}: {summary.sessions_closed} sessions closed, "
            f"{summary.tasks_reset} tasks reset, {len(summary.errors)} errors"
        )
        return summary

    # ---- sessions ----

    async def delete_session(self, session_id: str) -> TimeSession:
        """
        Soft-delete a session and recompute its task's actual_time.

        Raises:
            TimerValidationError: Malformed id, or the session the timer is running on
            SessionNotFoundError: No such session
        """
        session_id = validate_session_id(session_id)

        async with self._transition("delete session"):
            state = self._store.get()
            if state.status == TimerStatus.RUNNING and state.session_id == session_id:
                raise TimerValidationError("Pause or stop the timer before deleting its running session")

            deleted = await self._recorder.soft_delete_session(session_id)
            if deleted is None:
                raise SessionNotFoundError(f"Time session {session_id} not found")

            await self._recorder.recompute_task_actual_time(deleted.task_id)
            return deleted

    async def update_session_notes(self, session_id: str, notes: Optional[str]) -> TimeSession:
        """Replace a session's notes; the timer state is not involved"""
        session_id = validate_session_id(session_id)

        updated = await self._recorder.update_session_notes(session_id, notes)
        if updated is None:
            raise SessionNotFoundError(f"Time session {session_id} not found")
        return updated

    async def list_sessions_between(self, start: datetime, end: datetime) -> List[TimeSession]:
        """The user's sessions that started within [start, end], newest first"""
        start, end = ensure_utc(start), ensure_utc(end)
        if end < start:
            raise TimerValidationError("end must not be before start")
        return await self._sessions.find_by_user_between(self._user_id, start, end)

    async def get_time_stats(self, days: int = 30) -> TimeStats:
        """Tracked time over the last `days` days"""
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise TimerValidationError(f"days must be a positive integer, got {days!r}")

        until = ms_to_datetime(self._clock())
        since = until - timedelta(days=days)
        sessions = await self._sessions.find_by_user_between(self._user_id, since, until)
        return summarize_sessions(sessions, since, until)

    # ---- internals ----

    @asynccontextmanager
    async def _transition(self, name: str) -> AsyncIterator[None]:
        if self._closed:
            raise TimerClosedError("Timer engine has been shut down")
        if self._busy:
            raise TimerBusyError(f"Cannot {name}: another timer transition is in progress")

        self._busy = True
        try:
            async with self._lock:
                yield
        finally:
            self._busy = False
            if not self._closed:
                self._ticker.sync()

    def _on_adopted(self, state: TimerState) -> None:
        if not self._closed:
            self._ticker.sync()

    async def _open_session(self, task_id: str) -> str:
        """Create a session and flag the task in progress; soft-delete the session if the flag fails"""
        session_id = await self._recorder.create_session(task_id, self._user_id)
        try:
            await self._recorder.set_task_status(task_id, IN_PROGRESS_MARKER)
        except Exception:
            try:
                await self._recorder.soft_delete_session(session_id)
            except Exception as e:
                logger.error(f"Could not discard session {session_id} after failed start: {e}")
            raise
        return session_id

    async def _start_locked(self, task_id: str) -> TimerState:
        session_id = await self._open_session(task_id)
        state = self._store.patch(
            status=TimerStatus.RUNNING,
            task_id=task_id,
            session_id=session_id,
            start_time=self._clock(),
            elapsed_time=0,
            previously_elapsed=0,
        )
        logger.info(f"Timer started for task {task_id} (session {session_id})")
        return state

    async def _resume_locked(self) -> TimerState:
        state = self._store.get()
        if state.status != TimerStatus.PAUSED or not state.task_id:
            return state

        session_id = await self._open_session(state.task_id)
        state = self._store.patch(
            status=TimerStatus.RUNNING,
            session_id=session_id,
            start_time=self._clock(),
            elapsed_time=0,
        )
        logger.info(f"Timer resumed for task {state.task_id} (session {session_id})")
        return state

    async def _close_running_interval(self) -> Optional[TimerState]:
        """
        Finalize the open session and fold its duration into previously_elapsed.

        The finalize is the commit point: once it succeeds the local state
        moves to paused, even if recomputing actual_time fails afterwards.
        """
        state = self._store.get()
        if state.status != TimerStatus.RUNNING or not state.session_id or state.start_time is None:
            return None

        now = self._clock()
        duration = max(0, now - state.start_time)
        await self._recorder.finalize_session(state.session_id, now, duration)

        paused = self._store.patch(
            status=TimerStatus.PAUSED,
            session_id=None,
            start_time=None,
            elapsed_time=0,
            previously_elapsed=state.previously_elapsed + duration,
        )
        await self._recorder.recompute_task_actual_time(state.task_id)
        return paused

    async def _pause_locked(self, task_status: TaskStatus) -> TimerState:
        paused = await self._close_running_interval()
        if paused is None:
            return self._store.get()

        await self._recorder.set_task_status(paused.task_id, task_status)
        logger.info(f"Timer paused for task {paused.task_id} at {paused.display_time}")
        return paused

    async def _stop_locked(self, task_status: TaskStatus) -> TimerState:
        state = self._store.get()
        if state.status == TimerStatus.IDLE or not state.task_id:
            return state

        task_id = state.task_id
        if state.status == TimerStatus.RUNNING:
            await self._close_running_interval()

        await self._recorder.set_task_status(task_id, task_status)
        final = self._store.get().display_time
        state = self._store.reset()
        logger.info(f"Timer stopped for task {task_id} at {final}, marked {task_status.value}")
        return state
