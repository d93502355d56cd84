"""SQLAlchemy-backed local durable store"""

import logging
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.engine import Engine

from app.db.base import Base
from app.db.models.timer_local_state import TimerLocalState
from app.db.session import create_local_engine, create_session_factory

logger = logging.getLogger(__name__)


class SqlAlchemyLocalStore:
    """
    Key/value store on a local database (SQLite by default).

    Building the store never touches the database: the table is created on
    the first load/save/remove, and an unreachable database surfaces there as
    an exception. Errors propagate; TimerStateStore decides how to degrade.

    Calls are synchronous and run on the event loop. Each save is a
    single-row upsert of a few hundred bytes, so the blocking commit is
    short; TimerStateStore.patch stays synchronous for the tick loop.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._schema_ready = False

    @classmethod
    def from_url(cls, database_url: str) -> "SqlAlchemyLocalStore":
        return cls(create_local_engine(database_url))

    @property
    def engine(self) -> Engine:
        return self._engine

    def _ensure_schema(self) -> None:
        # Retried on the next call if the database was unreachable
        if not self._schema_ready:
            Base.metadata.create_all(self._engine)
            self._schema_ready = True

    def load(self, key: str) -> Optional[bytes]:
        self._ensure_schema()
        with self._session_factory() as session:
            row = session.get(TimerLocalState, key)
            if row is None:
                return None
            return bytes(row.value)

    def save(self, key: str, data: bytes) -> None:
        self._ensure_schema()
        with self._session_factory() as session:
            session.merge(TimerLocalState(key=key, value=data))
            session.commit()

    def remove(self, key: str) -> None:
        self._ensure_schema()
        with self._session_factory() as session:
            session.execute(delete(TimerLocalState).where(TimerLocalState.key == key))
            session.commit()
        logger.debug(f"Removed local state key {key}")
