"""Tests for the SessionRecorder"""

from datetime import timedelta

import pytest

from app.features.timer.domain import TaskStatus, ms_to_datetime
from app.features.timer.session_recorder import SessionRecorder
from app.models.time_session import TimeSession

from tests.conftest import TASK_A, TASK_B, USER_ID


@pytest.fixture()
def recorder(sessions, tasks) -> SessionRecorder:
    return SessionRecorder(sessions, tasks)


@pytest.mark.asyncio
async def test_create_session_opens_a_record(recorder, sessions) -> None:
    session_id = await recorder.create_session(TASK_A, USER_ID)

    record = sessions.sessions[session_id]
    assert record.task_id == TASK_A
    assert record.user_id == USER_ID
    assert record.end_time is None
    assert record.duration is None


@pytest.mark.asyncio
async def test_create_failure_propagates(recorder, sessions) -> None:
    sessions.fail_create = True

    with pytest.raises(RuntimeError):
        await recorder.create_session(TASK_A, USER_ID)
    assert sessions.sessions == {}


@pytest.mark.asyncio
async def test_finalize_sets_end_time_and_encoded_duration(recorder, sessions, clock) -> None:
    session_id = await recorder.create_session(TASK_A, USER_ID)
    clock.advance(5_250)

    assert await recorder.finalize_session(session_id, clock(), 5_250) is True

    record = sessions.sessions[session_id]
    assert record.end_time == ms_to_datetime(clock())
    assert record.duration == "00:00:05.250"


@pytest.mark.asyncio
async def test_second_finalize_is_a_noop(recorder, sessions, clock) -> None:
    session_id = await recorder.create_session(TASK_A, USER_ID)

    await recorder.finalize_session(session_id, clock(), 1_000)
    assert await recorder.finalize_session(session_id, clock(), 9_000) is False

    assert len(sessions.finalize_calls) == 1
    assert sessions.sessions[session_id].duration == "00:00:01"


@pytest.mark.asyncio
async def test_failed_finalize_can_be_retried(recorder, sessions, clock) -> None:
    session_id = await recorder.create_session(TASK_A, USER_ID)
    sessions.fail_finalize = True

    with pytest.raises(RuntimeError):
        await recorder.finalize_session(session_id, clock(), 1_000)

    sessions.fail_finalize = False
    assert await recorder.finalize_session(session_id, clock(), 1_000) is True


@pytest.mark.asyncio
async def test_recompute_sums_finalized_sessions_only(recorder, sessions, tasks, clock) -> None:
    start = ms_to_datetime(clock())
    end = start + timedelta(minutes=1)
    sessions.add(TimeSession(id="a", task_id=TASK_A, user_id=USER_ID, start_time=start, end_time=end, duration="00:00:05"))
    sessions.add(TimeSession(id="b", task_id=TASK_A, user_id=USER_ID, start_time=start, end_time=end, duration="3 seconds"))
    sessions.add(TimeSession(id="c", task_id=TASK_A, user_id=USER_ID, start_time=start))  # still open
    sessions.add(TimeSession(id="d", task_id=TASK_A, user_id=USER_ID, start_time=start, end_time=end, duration="01:00:00", is_deleted=True))
    sessions.add(TimeSession(id="e", task_id=TASK_B, user_id=USER_ID, start_time=start, end_time=end, duration="00:10:00"))
    sessions.add(TimeSession(id="f", task_id=TASK_A, user_id=USER_ID, start_time=start, end_time=end, duration="garbage"))

    total = await recorder.recompute_task_actual_time(TASK_A)

    assert total == 8_000
    assert tasks.tasks[TASK_A].actual_time == "00:00:08"


@pytest.mark.asyncio
async def test_recompute_with_no_sessions_writes_zero(recorder, tasks) -> None:
    assert await recorder.recompute_task_actual_time(TASK_B) == 0
    assert tasks.tasks[TASK_B].actual_time == "00:00:00"


@pytest.mark.asyncio
async def test_set_task_status_writes_enum_value(recorder, tasks) -> None:
    await recorder.set_task_status(TASK_A, TaskStatus.ACTIVE)
    assert tasks.status_writes == [(TASK_A, "active")]
