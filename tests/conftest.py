"""Shared fixtures for timer tests"""

import pytest

from app.features.timer.engine import TimerEngine

from tests.fakes import FakeSessionRepository, FakeTaskRepository, ManualClock, MemoryLocalStore

USER_ID = "6f1c1f1e-4a6b-4f57-9a1e-0c9a1d2b3c4d"
TASK_A = "11111111-1111-4111-8111-111111111111"
TASK_B = "22222222-2222-4222-8222-222222222222"


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def sessions(clock: ManualClock) -> FakeSessionRepository:
    return FakeSessionRepository(clock)


@pytest.fixture()
def tasks() -> FakeTaskRepository:
    repo = FakeTaskRepository()
    repo.add(TASK_A, created_by=USER_ID)
    repo.add(TASK_B, created_by=USER_ID)
    return repo


@pytest.fixture()
def local_store() -> MemoryLocalStore:
    return MemoryLocalStore()


@pytest.fixture()
def make_engine(sessions, tasks, local_store, clock):
    """
    Engine factory over the shared fakes.

    Tick and sync intervals are an hour so the background loops never fire
    on their own; tests drive ticks and reconciliation explicitly.
    """
    def factory(**overrides) -> TimerEngine:
        kwargs = dict(
            sessions=sessions,
            tasks=tasks,
            local_store=local_store,
            user_id=USER_ID,
            clock=clock,
            tick_interval_seconds=3600,
            sync_interval_seconds=3600,
        )
        kwargs.update(overrides)
        return TimerEngine(**kwargs)

    return factory


@pytest.fixture()
def engine(make_engine) -> TimerEngine:
    return make_engine()
