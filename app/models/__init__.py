"""Domain models for the application"""
from .task import Task, TaskUpdate
from .time_session import TimeSession, TimeSessionCreate, TimeSessionUpdate

__all__ = [
    'Task', 'TaskUpdate',
    'TimeSession', 'TimeSessionCreate', 'TimeSessionUpdate',
]
