"""Session Recorder - remote side effects of timer transitions"""
import logging
from typing import Optional, Set

from app.features.timer.domain import TaskStatus, ms_to_datetime
from app.features.timer.duration import decode_duration, encode_duration
from app.features.timer.ports import SessionRepository, TaskStatusRepository
from app.models.time_session import TimeSession

logger = logging.getLogger(__name__)


class SessionRecorder:
    """
    Writes sessions and task fields to the backing store.

    The session ledger is the source of truth for a task's actual_time:
    after every finalize the total is recomputed from all finalized sessions
    instead of incrementing a counter.
    """

    def __init__(self, sessions: SessionRepository, tasks: TaskStatusRepository):
        self._sessions = sessions
        self._tasks = tasks
        self._finalized: Set[str] = set()

    async def create_session(self, task_id: str, user_id: str) -> str:
        """
        Open a session for the task.

        Returns:
            The new session id

        Raises:
            Whatever the repository raises; nothing is recorded locally
        """
        try:
            record = await self._sessions.create_open_session(task_id, user_id)
        except Exception as e:
            logger.error(f"Error creating time session for task {task_id}: {e}")
            raise

        logger.info(f"Opened time session {record.id} for task {task_id}")
        return record.id

    async def finalize_session(self, session_id: str, end_time_ms: int, duration_ms: int) -> bool:
        """
        Close a session with its end time and encoded duration.

        Returns:
            False if this recorder already finalized the session (nothing is written)
        """
        if session_id in self._finalized:
            logger.warning(f"Session {session_id} already finalized; skipping")
            return False

        duration = encode_duration(max(0, int(duration_ms)))
        try:
            await self._sessions.finalize_session(session_id, ms_to_datetime(end_time_ms), duration)
        except Exception as e:
            logger.error(f"Error finalizing time session {session_id}: {e}")
            raise

        self._finalized.add(session_id)
        logger.info(f"Finalized time session {session_id} with duration {duration}")
        return True

    async def recompute_task_actual_time(self, task_id: str) -> int:
        """
        Sum every finalized session of the task and store the total.

        Returns:
            Total tracked milliseconds
        """
        sessions = await self._sessions.list_finalized_sessions(task_id)

        total_ms = 0
        for session in sessions:
            if session.duration is None:
                continue
            try:
                total_ms += decode_duration(session.duration)
            except ValueError:
                logger.warning(f"Skipping session {session.id} with unreadable duration {session.duration!r}")

        await self._tasks.set_actual_time(task_id, encode_duration(total_ms))
        logger.info(f"Task {task_id} actual time is now {total_ms}ms across {len(sessions)} sessions")
        return total_ms

    async def set_task_status(self, task_id: str, status: TaskStatus) -> None:
        try:
            await self._tasks.set_status(task_id, status.value)
        except Exception as e:
            logger.error(f"Error updating task {task_id} status to {status.value}: {e}")
            raise

    async def soft_delete_session(self, session_id: str) -> Optional[TimeSession]:
        """
        Flag a session deleted so it drops out of every total.

        Returns:
            The deleted session, or None if it does not exist
        """
        try:
            deleted = await self._sessions.soft_delete_session(session_id)
        except Exception as e:
            logger.error(f"Error deleting time session {session_id}: {e}")
            raise

        if deleted is not None:
            logger.info(f"Soft-deleted time session {session_id} of task {deleted.task_id}")
        return deleted

    async def update_session_notes(self, session_id: str, notes: Optional[str]) -> Optional[TimeSession]:
        try:
            return await self._sessions.update_session_notes(session_id, notes)
        except Exception as e:
            logger.error(f"Error updating notes on time session {session_id}: {e}")
            raise
