"""Time statistics over a user's sessions"""
import logging
from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel

from app.features.timer.duration import decode_duration, format_duration
from app.models.time_session import TimeSession

logger = logging.getLogger(__name__)


class TaskTimeTotal(BaseModel):
    task_id: str
    session_count: int
    total_ms: int
    total_time: str


class TimeStats(BaseModel):
    """Tracked time between two instants, overall and per task"""
    since: datetime
    until: datetime
    session_count: int
    open_session_count: int
    total_ms: int
    total_time: str
    tasks: List[TaskTimeTotal]


def summarize_sessions(sessions: List[TimeSession], since: datetime, until: datetime) -> TimeStats:
    """
    Sum finalized session durations, per task and overall.

    Open sessions are counted but add no time; unreadable durations are skipped.
    Tasks are ordered by tracked time, largest first.
    """
    totals: Dict[str, int] = {}
    counts: Dict[str, int] = {}
    open_count = 0

    for session in sessions:
        counts[session.task_id] = counts.get(session.task_id, 0) + 1
        totals.setdefault(session.task_id, 0)

        if session.is_active:
            open_count += 1
            continue
        if not session.duration:
            continue
        try:
            totals[session.task_id] += decode_duration(session.duration)
        except ValueError:
            logger.warning(f"Ignoring unreadable duration on session {session.id}")

    tasks = [
        TaskTimeTotal(
            task_id=task_id,
            session_count=counts[task_id],
            total_ms=total,
            total_time=format_duration(total),
        )
        for task_id, total in sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    ]
    total_ms = sum(totals.values())

    return TimeStats(
        since=since,
        until=until,
        session_count=len(sessions),
        open_session_count=open_count,
        total_ms=total_ms,
        total_time=format_duration(total_ms),
        tasks=tasks,
    )
