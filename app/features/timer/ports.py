"""
Interfaces the timer engine depends on.

The engine talks to Protocols rather than concrete Supabase/SQLAlchemy classes,
so repositories and the local store can be swapped for in-memory fakes.
"""

from datetime import datetime
from typing import List, Optional, Protocol

from app.models.time_session import TimeSession


class SessionRepository(Protocol):
    """Remote ledger of work sessions"""

    async def create_open_session(self, task_id: str, user_id: str) -> TimeSession: ...

    async def get_active_session_for_user(self, user_id: str) -> Optional[TimeSession]: ...

    async def finalize_session(self, session_id: str, end_time: datetime, duration: str) -> None: ...

    async def list_finalized_sessions(self, task_id: str) -> List[TimeSession]: ...

    async def list_open_sessions_for_user(self, user_id: str) -> List[TimeSession]: ...

    async def find_by_user_between(self, user_id: str, start: datetime, end: datetime) -> List[TimeSession]: ...

    async def soft_delete_session(self, session_id: str) -> Optional[TimeSession]: ...

    async def update_session_notes(self, session_id: str, notes: Optional[str]) -> Optional[TimeSession]: ...


class TaskStatusRepository(Protocol):
    """The two task fields the timer writes, plus the lookup a user-wide reset needs"""

    async def set_status(self, task_id: str, status: str) -> None: ...

    async def set_actual_time(self, task_id: str, duration: str) -> None: ...

    async def find_ids_by_status(self, user_id: str, statuses: List[str]) -> List[str]: ...


class LocalStore(Protocol):
    """Durable key/value storage on the local machine"""

    def load(self, key: str) -> Optional[bytes]: ...

    def save(self, key: str, data: bytes) -> None: ...

    def remove(self, key: str) -> None: ...
