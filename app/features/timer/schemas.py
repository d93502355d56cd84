"""Request/response schemas for the timer API"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.features.timer.domain import ResetSummary, TaskStatus, TimerState
from app.models.time_session import TimeSession


class StartTimerRequest(BaseModel):
    task_id: str


class PauseTimerRequest(BaseModel):
    status: Optional[TaskStatus] = None


class StopTimerRequest(BaseModel):
    final_status: Optional[TaskStatus] = None


class TimerStateResponse(BaseModel):
    """Current timer state plus its formatted elapsed time"""
    state: TimerState
    formatted: str


class FormattedElapsedResponse(BaseModel):
    formatted: str
    compact: bool


class TaskDisplayTimeResponse(BaseModel):
    task_id: str
    display_time: str
    is_tracking: bool


class TaskSessionsResponse(BaseModel):
    task_id: str
    sessions: List[TimeSession]
    count: int
    total_time: str


class UpdateSessionNotesRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


class SessionsInRangeResponse(BaseModel):
    start: datetime
    end: datetime
    sessions: List[TimeSession]
    count: int
    total_time: str


class ResetAllResponse(BaseModel):
    """Outcome of a user-wide reset plus the resulting local state"""
    summary: ResetSummary
    state: TimerState
    formatted: str
