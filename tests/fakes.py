"""In-memory stand-ins for the timer's repositories, local store and clock"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from app.features.timer.domain import ms_to_datetime
from app.models.task import Task
from app.models.time_session import TimeSession


class ManualClock:
    """Epoch-millisecond clock that only moves when told to"""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeSessionRepository:
    """
    time_sessions table kept in a dict.

    Set fail_create / fail_finalize / fail_active / fail_open_list to make the
    matching call raise. create_gate and finalize_gate, when set, block
    create_open_session and finalize_session until released.
    """

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self.sessions: Dict[str, TimeSession] = {}
        self.finalize_calls: List[Tuple[str, datetime, str]] = []
        self.active_queries = 0
        self.fail_create = False
        self.fail_finalize = False
        self.fail_active = False
        self.fail_open_list = False
        self.create_gate: Optional[asyncio.Event] = None
        self.finalize_gate: Optional[asyncio.Event] = None

    def add(self, session: TimeSession) -> TimeSession:
        self.sessions[session.id] = session
        return session

    async def create_open_session(self, task_id: str, user_id: str) -> TimeSession:
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.fail_create:
            raise RuntimeError("insert into time_sessions failed")
        session = TimeSession(
            id=str(uuid.uuid4()),
            task_id=task_id,
            user_id=user_id,
            start_time=ms_to_datetime(self.clock()),
        )
        return self.add(session)

    async def get_active_session_for_user(self, user_id: str) -> Optional[TimeSession]:
        self.active_queries += 1
        if self.fail_active:
            raise RuntimeError("select from time_sessions failed")
        active = [
            s for s in self.sessions.values()
            if s.user_id == user_id and s.end_time is None and not s.is_deleted
        ]
        if not active:
            return None
        return max(active, key=lambda s: s.start_time)

    async def finalize_session(self, session_id: str, end_time: datetime, duration: str) -> None:
        if self.finalize_gate is not None:
            await self.finalize_gate.wait()
        if self.fail_finalize:
            raise RuntimeError("update time_sessions failed")
        self.finalize_calls.append((session_id, end_time, duration))
        session = self.sessions.get(session_id)
        if session is None or session.end_time is not None:
            return
        self.sessions[session_id] = session.model_copy(update={"end_time": end_time, "duration": duration})

    async def list_finalized_sessions(self, task_id: str) -> List[TimeSession]:
        return [
            s for s in self.sessions.values()
            if s.task_id == task_id and s.end_time is not None and not s.is_deleted
        ]

    async def find_by_task(self, task_id: str, limit: Optional[int] = None) -> List[TimeSession]:
        sessions = sorted(
            (s for s in self.sessions.values() if s.task_id == task_id and not s.is_deleted),
            key=lambda s: s.start_time,
            reverse=True,
        )
        return sessions[:limit] if limit else sessions

    async def list_open_sessions_for_user(self, user_id: str) -> List[TimeSession]:
        if self.fail_open_list:
            raise RuntimeError("select open sessions failed")
        return [
            s for s in self.sessions.values()
            if s.user_id == user_id and s.end_time is None and not s.is_deleted
        ]

    async def find_by_user_between(self, user_id: str, start: datetime, end: datetime) -> List[TimeSession]:
        return sorted(
            (
                s for s in self.sessions.values()
                if s.user_id == user_id and not s.is_deleted and start <= s.start_time <= end
            ),
            key=lambda s: s.start_time,
            reverse=True,
        )

    async def soft_delete_session(self, session_id: str) -> Optional[TimeSession]:
        session = self.sessions.get(session_id)
        if session is None:
            return None
        self.sessions[session_id] = session.model_copy(update={"is_deleted": True})
        return self.sessions[session_id]

    async def update_session_notes(self, session_id: str, notes: Optional[str]) -> Optional[TimeSession]:
        session = self.sessions.get(session_id)
        if session is None:
            return None
        self.sessions[session_id] = session.model_copy(update={"notes": notes})
        return self.sessions[session_id]

    def for_task(self, task_id: str) -> List[TimeSession]:
        return [s for s in self.sessions.values() if s.task_id == task_id]


class FakeTaskRepository:
    """tasks table reduced to status and actual_time, with a write log"""

    def __init__(self) -> None:
        self.tasks: Dict[str, Task] = {}
        self.status_writes: List[Tuple[str, str]] = []
        self.actual_time_writes: List[Tuple[str, str]] = []
        self.fail_status = False
        self.fail_status_for: Set[str] = set()

    def add(
        self,
        task_id: str,
        actual_time: Optional[str] = None,
        status: str = "pending",
        created_by: Optional[str] = None,
    ) -> Task:
        task = Task(id=task_id, title=f"Task {task_id}", status=status, actual_time=actual_time, created_by=created_by)
        self.tasks[task_id] = task
        return task

    async def set_status(self, task_id: str, status: str) -> None:
        if self.fail_status or task_id in self.fail_status_for:
            raise RuntimeError("update tasks failed")
        self.status_writes.append((task_id, status))
        task = self.tasks.get(task_id) or self.add(task_id)
        self.tasks[task_id] = task.model_copy(update={"status": status})

    async def set_actual_time(self, task_id: str, duration: str) -> None:
        self.actual_time_writes.append((task_id, duration))
        task = self.tasks.get(task_id) or self.add(task_id)
        self.tasks[task_id] = task.model_copy(update={"actual_time": duration})

    async def find_ids_by_status(self, user_id: str, statuses: List[str]) -> List[str]:
        return [
            t.id for t in self.tasks.values()
            if t.created_by == user_id and t.status in statuses
        ]

    async def find_by_id(self, id: str) -> Optional[Task]:
        return self.tasks.get(id)

    def status_of(self, task_id: str) -> Optional[str]:
        task = self.tasks.get(task_id)
        return task.status if task else None


@dataclass
class MemoryLocalStore:
    """LocalStore in a dict; the fail_* flags simulate an unavailable store"""

    data: Dict[str, bytes] = field(default_factory=dict)
    fail_load: bool = False
    fail_save: bool = False
    save_count: int = 0

    def load(self, key: str) -> Optional[bytes]:
        if self.fail_load:
            raise OSError("local store unavailable")
        return self.data.get(key)

    def save(self, key: str, data: bytes) -> None:
        if self.fail_save:
            raise OSError("local store unavailable")
        self.save_count += 1
        self.data[key] = data

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


@dataclass
class FakeRepositories:
    """Matches the RepositoryFactory attributes the API uses"""

    tasks: FakeTaskRepository
    time_sessions: FakeSessionRepository
