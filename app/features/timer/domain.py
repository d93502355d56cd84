"""Domain models for the timer feature"""

import re
import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from app.features.timer.duration import ZERO_DURATION
from app.features.timer.errors import TimerValidationError


class TimerStatus(str, Enum):
    """Timer state machine status"""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class TaskStatus(str, Enum):
    """Task lifecycle statuses the timer is allowed to write"""
    PENDING = "pending"
    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @classmethod
    def parse(cls, value: Union["TaskStatus", str, None]) -> Optional["TaskStatus"]:
        """
        Validate a caller-supplied status against the allow-list.

        None passes through so callers can fall back to their default.

        Raises:
            TimerValidationError: If the value is not a known status
        """
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise TimerValidationError(f"Invalid task status {value!r}; expected one of: {allowed}")


# Status written while a task is being timed
IN_PROGRESS_MARKER = TaskStatus.ACTIVE
DEFAULT_PAUSE_STATUS = TaskStatus.PAUSED
DEFAULT_STOP_STATUS = TaskStatus.COMPLETED

_NUMERIC_ID_RE = re.compile(r"^[1-9]\d*$")


def _normalise_id(value: Any, label: str) -> str:
    if isinstance(value, bool) or value is None:
        raise TimerValidationError(f"Invalid {label} id: {value!r}")

    if isinstance(value, int):
        if value > 0:
            return str(value)
        raise TimerValidationError(f"Invalid {label} id: {value!r}")

    if isinstance(value, uuid.UUID):
        return str(value)

    if isinstance(value, str):
        candidate = value.strip()
        if _NUMERIC_ID_RE.match(candidate):
            return candidate
        try:
            return str(uuid.UUID(candidate))
        except ValueError:
            pass

    raise TimerValidationError(f"Invalid {label} id: {value!r}")


def validate_task_id(task_id: Any) -> str:
    """
    Normalise a task identifier (UUID or positive integer).

    Raises:
        TimerValidationError: If the identifier is malformed
    """
    return _normalise_id(task_id, "task")


def validate_session_id(session_id: Any) -> str:
    """Same rules as task ids"""
    return _normalise_id(session_id, "session")


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch"""
    return int(time.time() * 1000)


def datetime_to_ms(value: datetime) -> int:
    """Convert a datetime (naive values are taken as UTC) to epoch milliseconds"""
    return int(ensure_utc(value).timestamp() * 1000)


def ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class TimerState(BaseModel):
    """
    The single timer value owned by a TimerStateStore.

    display_time is derived from previously_elapsed + elapsed_time and is
    recomputed by the store on every mutation.
    """
    status: TimerStatus = TimerStatus.IDLE
    task_id: Optional[str] = None
    session_id: Optional[str] = None
    start_time: Optional[int] = None  # epoch ms of the current running interval
    elapsed_time: int = Field(0, ge=0)  # ms in the current running interval
    previously_elapsed: int = Field(0, ge=0)  # ms from earlier intervals of this episode
    display_time: str = ZERO_DURATION

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_start_time(cls, value: Any) -> Any:
        """Persisted start times may be ISO strings or floats; both are absolute timestamps"""
        if isinstance(value, str):
            return datetime_to_ms(datetime.fromisoformat(value.replace("Z", "+00:00")))
        if isinstance(value, datetime):
            return datetime_to_ms(value)
        if isinstance(value, float):
            return int(value)
        return value

    @model_validator(mode="after")
    def check_consistency(self) -> "TimerState":
        if (self.status == TimerStatus.RUNNING) != (self.start_time is not None):
            raise ValueError("start_time must be set exactly when the timer is running")
        if self.status != TimerStatus.IDLE and not self.task_id:
            raise ValueError(f"A {self.status.value} timer needs a task_id")
        return self

    @property
    def total_elapsed(self) -> int:
        return self.previously_elapsed + self.elapsed_time

    def is_tracking(self, task_id: Optional[str]) -> bool:
        return self.status != TimerStatus.IDLE and task_id is not None and self.task_id == task_id


class ResetSummary(BaseModel):
    """What a user-wide timer reset managed to repair"""
    sessions_closed: int = 0
    tasks_reset: int = 0
    errors: List[str] = Field(default_factory=list)
