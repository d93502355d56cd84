"""Tests for the RemoteReconciler"""

import asyncio

import pytest

from app.features.timer.domain import TimerStatus, ms_to_datetime
from app.features.timer.reconciler import RemoteReconciler
from app.features.timer.state_store import TimerStateStore
from app.models.time_session import TimeSession

from tests.conftest import TASK_A, TASK_B, USER_ID
from tests.fakes import MemoryLocalStore


def remote_session(session_id: str, task_id: str, start_ms: int, user_id: str = USER_ID) -> TimeSession:
    return TimeSession(id=session_id, task_id=task_id, user_id=user_id, start_time=ms_to_datetime(start_ms))


@pytest.fixture()
def store() -> TimerStateStore:
    return TimerStateStore(MemoryLocalStore())


@pytest.fixture()
def adopted():
    return []


@pytest.fixture()
def reconciler(store, sessions, clock, adopted) -> RemoteReconciler:
    return RemoteReconciler(
        store,
        sessions,
        USER_ID,
        lock=asyncio.Lock(),
        clock=clock,
        interval_seconds=3600,
        on_adopted=adopted.append,
    )


@pytest.mark.asyncio
async def test_adopts_session_started_on_another_device(reconciler, store, sessions, clock, adopted) -> None:
    sessions.add(remote_session("remote-1", TASK_B, clock() - 10_000))

    assert await reconciler.reconcile() is True

    state = store.get()
    assert state.status == TimerStatus.RUNNING
    assert state.task_id == TASK_B
    assert state.session_id == "remote-1"
    assert state.start_time == clock() - 10_000
    assert state.elapsed_time == 10_000
    assert state.display_time == "00:00:10"
    assert adopted == [state]


@pytest.mark.asyncio
async def test_local_running_timer_is_not_clobbered(reconciler, store, sessions, clock) -> None:
    store.patch(status=TimerStatus.RUNNING, task_id=TASK_A, session_id="local-1", start_time=clock())
    sessions.add(remote_session("remote-1", TASK_B, clock() - 10_000))
    before = store.get()

    assert await reconciler.reconcile() is False
    assert store.get() == before


@pytest.mark.asyncio
async def test_absence_of_remote_session_changes_nothing(reconciler, store, clock) -> None:
    store.patch(status=TimerStatus.PAUSED, task_id=TASK_A, previously_elapsed=4_000)
    before = store.get()

    assert await reconciler.reconcile() is False
    assert store.get() == before


@pytest.mark.asyncio
async def test_adoption_keeps_time_already_accumulated_for_the_same_task(reconciler, store, sessions, clock) -> None:
    store.patch(status=TimerStatus.PAUSED, task_id=TASK_A, previously_elapsed=7_000)
    sessions.add(remote_session("remote-1", TASK_A, clock() - 2_000))

    await reconciler.reconcile()

    state = store.get()
    assert state.previously_elapsed == 7_000
    assert state.display_time == "00:00:09"


@pytest.mark.asyncio
async def test_adoption_of_another_task_starts_from_zero(reconciler, store, sessions, clock) -> None:
    store.patch(status=TimerStatus.PAUSED, task_id=TASK_A, previously_elapsed=7_000)
    sessions.add(remote_session("remote-1", TASK_B, clock() - 2_000))

    await reconciler.reconcile()

    assert store.get().previously_elapsed == 0


@pytest.mark.asyncio
async def test_other_users_sessions_are_ignored(reconciler, store, sessions, clock) -> None:
    sessions.add(remote_session("remote-1", TASK_B, clock() - 2_000, user_id="someone-else"))

    assert await reconciler.reconcile() is False
    assert store.get().status == TimerStatus.IDLE


@pytest.mark.asyncio
async def test_query_failure_skips_the_cycle(reconciler, store, sessions) -> None:
    sessions.fail_active = True

    assert await reconciler.reconcile() is False
    assert store.get().status == TimerStatus.IDLE


@pytest.mark.asyncio
async def test_waits_for_the_shared_lock(store, sessions, clock) -> None:
    lock = asyncio.Lock()
    reconciler = RemoteReconciler(store, sessions, USER_ID, lock=lock, clock=clock)
    sessions.add(remote_session("remote-1", TASK_B, clock() - 1_000))

    await lock.acquire()
    pending = asyncio.create_task(reconciler.reconcile())
    await asyncio.sleep(0.01)
    assert not pending.done()
    assert sessions.active_queries == 0

    lock.release()
    assert await pending is True


@pytest.mark.asyncio
async def test_periodic_loop_runs_and_stops(store, sessions, clock) -> None:
    reconciler = RemoteReconciler(store, sessions, USER_ID, lock=asyncio.Lock(), clock=clock, interval_seconds=0.01)

    reconciler.start()
    await asyncio.sleep(0.05)
    await reconciler.stop()
    queries = sessions.active_queries
    await asyncio.sleep(0.03)

    assert queries >= 2
    assert sessions.active_queries == queries
    assert not reconciler.is_active
