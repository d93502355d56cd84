"""SQLAlchemy ORM model for the local timer state table"""

from sqlalchemy import Column, String, DateTime, LargeBinary
from sqlalchemy.sql import func

from app.db.base import Base


class TimerLocalState(Base):
    """
    Key/value rows holding the serialized timer state on this machine.
    One row per key; the engine writes a single fixed key.
    """
    __tablename__ = "timer_local_state"

    key = Column(String, primary_key=True)
    value = Column(LargeBinary, nullable=False)

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<TimerLocalState(key='{self.key}', bytes={len(self.value or b'')})>"
