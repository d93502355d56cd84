"""SQLAlchemy ORM models"""

from app.db.models.timer_local_state import TimerLocalState

__all__ = ["TimerLocalState"]
