"""Task repository"""
from typing import List

from supabase import Client  # type: ignore

from app.models.task import Task, TaskUpdate

from .base import BaseRepository


class TaskRepository(BaseRepository[Task, TaskUpdate, TaskUpdate]):
    """Repository for the task fields driven by the timer (status, actual_time)"""

    def __init__(self, client: Client):
        super().__init__(client, "tasks", Task)

    async def set_status(self, task_id: str, status: str) -> None:
        """Write the task lifecycle status"""
        updated = await self.update(task_id, TaskUpdate(status=status))
        if updated is None:
            raise LookupError(f"Task {task_id} not found")

    async def set_actual_time(self, task_id: str, duration: str) -> None:
        """Write the cumulative tracked time as a PostgreSQL interval"""
        updated = await self.update(task_id, TaskUpdate(actual_time=duration))
        if updated is None:
            raise LookupError(f"Task {task_id} not found")

    async def find_ids_by_status(self, user_id: str, statuses: List[str]) -> List[str]:
        """Ids of the user's tasks currently in any of the given statuses"""
        response = (
            self._table()
            .select("id")
            .eq("created_by", user_id)
            .in_("status", statuses)
            .execute()
        )
        return [str(row["id"]) for row in response.data]
