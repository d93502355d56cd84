"""Environment-driven settings"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv(dotenv_path=".env")


class SupabaseSettings(BaseModel):
    """Connection settings for the hosted session/task tables"""
    url: Optional[str] = None
    service_role_key: Optional[str] = None


class TimerSettings(BaseModel):
    """Timer engine settings"""
    user_id: Optional[str] = None
    state_db_url: str = "sqlite:///timer_state.sqlite3"
    state_key: str = "timerState"
    tick_interval_seconds: float = Field(1.0, gt=0)
    sync_interval_seconds: float = Field(30.0, gt=0)


def get_supabase_settings() -> SupabaseSettings:
    """Read SUPABASE_* environment variables"""
    return SupabaseSettings(
        url=os.getenv("SUPABASE_URL"),
        service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
    )


def get_timer_settings() -> TimerSettings:
    """Read TIMER_* environment variables"""
    return TimerSettings(
        user_id=os.getenv("TIMER_USER_ID") or None,
        state_db_url=os.getenv("TIMER_STATE_DB_URL", "sqlite:///timer_state.sqlite3"),
        state_key=os.getenv("TIMER_STATE_KEY", "timerState"),
        tick_interval_seconds=float(os.getenv("TIMER_TICK_INTERVAL_SECONDS", "1.0")),
        sync_interval_seconds=float(os.getenv("TIMER_SYNC_INTERVAL_SECONDS", "30.0")),
    )
