"""Timer feature module"""

from app.features.timer.api import router
from app.features.timer.domain import TaskStatus, TimerState, TimerStatus
from app.features.timer.engine import TimerEngine
from app.features.timer.errors import (
    SessionNotFoundError,
    TimerBusyError,
    TimerClosedError,
    TimerError,
    TimerValidationError,
)
from app.features.timer.local_store import SqlAlchemyLocalStore
from app.features.timer.state_store import TimerStateStore

__all__ = [
    "router",
    "TimerEngine",
    "TimerStateStore",
    "SqlAlchemyLocalStore",
    "TimerState",
    "TimerStatus",
    "TaskStatus",
    "TimerError",
    "SessionNotFoundError",
    "TimerBusyError",
    "TimerClosedError",
    "TimerValidationError",
]
