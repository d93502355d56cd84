"""Time session repository"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from supabase import Client  # type: ignore

from app.models.time_session import TimeSession, TimeSessionCreate, TimeSessionUpdate

from .base import BaseRepository

logger = logging.getLogger(__name__)


class TimeSessionRepository(BaseRepository[TimeSession, TimeSessionCreate, TimeSessionUpdate]):
    """Repository for the time_sessions ledger"""

    def __init__(self, client: Client):
        super().__init__(client, "time_sessions", TimeSession)

    async def create_open_session(self, task_id: str, user_id: str) -> TimeSession:
        """Insert a session with no end_time, starting now"""
        data = TimeSessionCreate(
            task_id=task_id,
            user_id=user_id,
            start_time=datetime.now(timezone.utc),
        )
        return await self.create(data)

    async def get_active_session_for_user(self, user_id: str) -> Optional[TimeSession]:
        """Most recently started open session for a user, if any"""
        response = (
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .is_("end_time", "null")
            .eq("is_deleted", False)
            .order("start_time", desc=True)
            .limit(1)
            .execute()
        )

        if not response.data:
            return None

        return self._to_model(response.data[0])

    async def finalize_session(self, session_id: str, end_time: datetime, duration: str) -> None:
        """
        Close a session by setting end_time and duration.

        Only rows that are still open are updated, so a session that was already
        finalized (on this or another device) keeps its first duration.
        """
        update = TimeSessionUpdate(end_time=end_time, duration=duration)
        response = (
            self._table()
            .update(update.model_dump(exclude_unset=True, mode='json'))
            .eq("id", session_id)
            .is_("end_time", "null")
            .execute()
        )

        if not response.data:
            logger.warning(f"Session {session_id} was already closed or does not exist; finalize skipped")

    async def list_finalized_sessions(self, task_id: str) -> List[TimeSession]:
        """All closed, non-deleted sessions for a task"""
        response = (
            self._table()
            .select("*")
            .eq("task_id", task_id)
            .eq("is_deleted", False)
            .not_.is_("end_time", "null")
            .execute()
        )
        return self._to_models(response.data)

    async def find_by_task(self, task_id: str, limit: Optional[int] = None) -> List[TimeSession]:
        """Sessions for a task, newest first, excluding soft-deleted ones"""
        query = (
            self._table()
            .select("*")
            .eq("task_id", task_id)
            .eq("is_deleted", False)
            .order("start_time", desc=True)
        )

        if limit:
            query = query.limit(limit)

        response = query.execute()
        return self._to_models(response.data)

    async def list_open_sessions_for_user(self, user_id: str) -> List[TimeSession]:
        """Every open, non-deleted session of a user, newest first"""
        response = (
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .is_("end_time", "null")
            .eq("is_deleted", False)
            .order("start_time", desc=True)
            .execute()
        )
        return self._to_models(response.data)

    async def find_by_user_between(self, user_id: str, start: datetime, end: datetime) -> List[TimeSession]:
        """A user's sessions that started within [start, end], newest first"""
        response = (
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .eq("is_deleted", False)
            .gte("start_time", start.isoformat())
            .lte("start_time", end.isoformat())
            .order("start_time", desc=True)
            .execute()
        )
        return self._to_models(response.data)

    async def soft_delete_session(self, session_id: str) -> Optional[TimeSession]:
        """Flag a session as deleted; returns None if it does not exist"""
        return await self.update(session_id, TimeSessionUpdate(is_deleted=True))

    async def update_session_notes(self, session_id: str, notes: Optional[str]) -> Optional[TimeSession]:
        """Replace a session's notes; None clears them"""
        return await self.update(session_id, TimeSessionUpdate(notes=notes))
