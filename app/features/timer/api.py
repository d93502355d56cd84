"""Timer API endpoints"""

import logging
from datetime import datetime
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.features.timer.domain import validate_task_id
from app.features.timer.duration import decode_duration, format_duration
from app.features.timer.engine import TimerEngine
from app.features.timer.errors import (
    SessionNotFoundError,
    TimerBusyError,
    TimerClosedError,
    TimerValidationError,
)
from app.features.timer.schemas import (
    FormattedElapsedResponse,
    PauseTimerRequest,
    ResetAllResponse,
    SessionsInRangeResponse,
    StartTimerRequest,
    StopTimerRequest,
    TaskDisplayTimeResponse,
    TaskSessionsResponse,
    TimerStateResponse,
    UpdateSessionNotesRequest,
)
from app.features.timer.stats import TimeStats
from app.infra.supabase.repositories import RepositoryFactory
from app.models.time_session import TimeSession

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/timer", tags=["timer"])


def get_timer_engine(request: Request) -> TimerEngine:
    """The process-wide engine created in the app lifespan"""
    engine = getattr(request.app.state, "timer_engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Timer engine is not running")
    return engine


def get_repositories(request: Request) -> RepositoryFactory:
    repositories = getattr(request.app.state, "repositories", None)
    if repositories is None:
        raise HTTPException(status_code=503, detail="Repositories are not configured")
    return repositories


def _state_response(engine: TimerEngine) -> TimerStateResponse:
    return TimerStateResponse(state=engine.get_state(), formatted=engine.format_elapsed())


def _total_time(sessions: List[TimeSession]) -> str:
    total_ms = 0
    for session in sessions:
        if session.duration:
            try:
                total_ms += decode_duration(session.duration)
            except ValueError:
                logger.warning(f"Ignoring unreadable duration on session {session.id}")
    return format_duration(total_ms)


def _raise_http(action: str, e: Exception) -> NoReturn:
    """Map timer errors onto HTTP status codes"""
    if isinstance(e, TimerValidationError):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, SessionNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, TimerBusyError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, TimerClosedError):
        raise HTTPException(status_code=503, detail=str(e))

    logger.error(f"Timer {action} failed: {e}")
    raise HTTPException(
        status_code=502,
        detail=f"Failed to {action} timer: {str(e)}"
    )


@router.get("/state", response_model=TimerStateResponse)
async def get_timer_state(engine: TimerEngine = Depends(get_timer_engine)):
    """Current timer state"""
    return _state_response(engine)


@router.post("/start", response_model=TimerStateResponse)
async def start_timer(request: StartTimerRequest, engine: TimerEngine = Depends(get_timer_engine)):
    """
    Start timing a task.

    Starting the paused task again resumes it; starting another task stops
    the current one first.

    Raises:
        400: Malformed task id
        409: Another timer action is in progress
        502: The backing store rejected the change
    """
    try:
        await engine.start(request.task_id)
    except Exception as e:
        _raise_http("start", e)
    return _state_response(engine)


@router.post("/pause", response_model=TimerStateResponse)
async def pause_timer(
    request: Optional[PauseTimerRequest] = None,
    engine: TimerEngine = Depends(get_timer_engine),
):
    """Pause the running timer, optionally with a task status"""
    try:
        await engine.pause(request.status if request else None)
    except Exception as e:
        _raise_http("pause", e)
    return _state_response(engine)


@router.post("/resume", response_model=TimerStateResponse)
async def resume_timer(engine: TimerEngine = Depends(get_timer_engine)):
    """Resume the paused timer with a new session"""
    try:
        await engine.resume()
    except Exception as e:
        _raise_http("resume", e)
    return _state_response(engine)


@router.post("/stop", response_model=TimerStateResponse)
async def stop_timer(
    request: Optional[StopTimerRequest] = None,
    engine: TimerEngine = Depends(get_timer_engine),
):
    """Stop the timer and set the task's final status (completed by default)"""
    try:
        await engine.stop(request.final_status if request else None)
    except Exception as e:
        _raise_http("stop", e)
    return _state_response(engine)


@router.post("/reset", response_model=TimerStateResponse)
async def reset_timer(engine: TimerEngine = Depends(get_timer_engine)):
    """Clear the local timer without touching sessions or tasks"""
    try:
        await engine.reset()
    except Exception as e:
        _raise_http("reset", e)
    return _state_response(engine)


@router.get("/format", response_model=FormattedElapsedResponse)
async def format_elapsed(
    compact: bool = Query(False),
    engine: TimerEngine = Depends(get_timer_engine),
):
    return FormattedElapsedResponse(formatted=engine.format_elapsed(compact=compact), compact=compact)


@router.post("/tasks/{task_id}/complete", response_model=TimerStateResponse)
async def complete_task(task_id: str, engine: TimerEngine = Depends(get_timer_engine)):
    """Mark a task completed, stopping the timer if it is tracking that task"""
    try:
        await engine.complete_task(task_id)
    except Exception as e:
        _raise_http("complete task with", e)
    return _state_response(engine)


@router.get("/tasks/{task_id}/display-time", response_model=TaskDisplayTimeResponse)
async def get_task_display_time(
    task_id: str,
    engine: TimerEngine = Depends(get_timer_engine),
    repositories: RepositoryFactory = Depends(get_repositories),
):
    """Live time for the tracked task, stored actual time otherwise"""
    try:
        task_id = validate_task_id(task_id)
    except TimerValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    task = await repositories.tasks.find_by_id(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    return TaskDisplayTimeResponse(
        task_id=task.id,
        display_time=engine.get_display_time(task),
        is_tracking=engine.get_state().is_tracking(task.id),
    )


@router.get("/tasks/{task_id}/sessions", response_model=TaskSessionsResponse)
async def list_task_sessions(
    task_id: str,
    limit: Optional[int] = Query(None, ge=1),
    repositories: RepositoryFactory = Depends(get_repositories),
):
    """Sessions recorded for a task, newest first"""
    try:
        task_id = validate_task_id(task_id)
    except TimerValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    sessions = await repositories.time_sessions.find_by_task(task_id, limit=limit)

    return TaskSessionsResponse(
        task_id=task_id,
        sessions=sessions,
        count=len(sessions),
        total_time=_total_time(sessions),
    )


@router.post("/reset-all", response_model=ResetAllResponse)
async def reset_all_timers(engine: TimerEngine = Depends(get_timer_engine)):
    """
    Close every open session of the user and move active/paused tasks to pending.

    Partial failures are reported in the summary rather than as an error.
    """
    try:
        summary = await engine.reset_all()
    except Exception as e:
        _raise_http("reset all", e)
    return ResetAllResponse(summary=summary, state=engine.get_state(), formatted=engine.format_elapsed())


@router.get("/sessions", response_model=SessionsInRangeResponse)
async def list_sessions_in_range(
    start: datetime = Query(...),
    end: datetime = Query(...),
    engine: TimerEngine = Depends(get_timer_engine),
):
    """The user's sessions that started between start and end, newest first"""
    try:
        sessions = await engine.list_sessions_between(start, end)
    except Exception as e:
        _raise_http("list sessions for", e)

    return SessionsInRangeResponse(
        start=start,
        end=end,
        sessions=sessions,
        count=len(sessions),
        total_time=_total_time(sessions),
    )


@router.patch("/sessions/{session_id}", response_model=TimeSession)
async def update_session_notes(
    session_id: str,
    request: UpdateSessionNotesRequest,
    engine: TimerEngine = Depends(get_timer_engine),
):
    """Replace the notes on a session"""
    try:
        return await engine.update_session_notes(session_id, request.notes)
    except Exception as e:
        _raise_http("update session for", e)


@router.delete("/sessions/{session_id}", response_model=TimeSession)
async def delete_session(session_id: str, engine: TimerEngine = Depends(get_timer_engine)):
    """
    Soft-delete a session and recompute its task's actual time.

    Raises:
        400: Malformed id, or the session the timer is currently running on
        404: No such session
    """
    try:
        return await engine.delete_session(session_id)
    except Exception as e:
        _raise_http("delete session for", e)


@router.get("/stats", response_model=TimeStats)
async def get_time_stats(
    days: int = Query(30, ge=1, le=366),
    engine: TimerEngine = Depends(get_timer_engine),
):
    """Tracked time over the last `days` days, overall and per task"""
    try:
        return await engine.get_time_stats(days)
    except Exception as e:
        _raise_http("compute stats for", e)
