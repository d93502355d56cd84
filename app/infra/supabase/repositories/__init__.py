"""Repository factory and exports"""
from typing import Optional

from supabase import Client
from .tasks import TaskRepository
from .time_sessions import TimeSessionRepository


class RepositoryFactory:
    """Factory for creating repository instances"""

    def __init__(self, client: Client):
        self._client = client
        self._tasks: Optional[TaskRepository] = None
        self._time_sessions: Optional[TimeSessionRepository] = None

    @property
    def tasks(self) -> TaskRepository:
        """Get task repository"""
        if self._tasks is None:
            self._tasks = TaskRepository(self._client)
        return self._tasks

    @property
    def time_sessions(self) -> TimeSessionRepository:
        """Get time sessions repository"""
        if self._time_sessions is None:
            self._time_sessions = TimeSessionRepository(self._client)
        return self._time_sessions


__all__ = [
    'RepositoryFactory',
    'TaskRepository',
    'TimeSessionRepository',
]
