"""Time session domain model"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class TimeSessionBase(BaseModel):
    """Base time session fields"""
    task_id: str  # UUID or numeric id, as string
    user_id: str  # UUID as string
    start_time: datetime

    class Config:
        coerce_numbers_to_str = True


class TimeSessionCreate(TimeSessionBase):
    """Time session creation model (an open session has no end_time)"""
    notes: Optional[str] = None


class TimeSessionUpdate(BaseModel):
    """Time session update model - all fields optional"""
    end_time: Optional[datetime] = None
    duration: Optional[str] = None
    notes: Optional[str] = None
    is_deleted: Optional[bool] = None


class TimeSession(TimeSessionBase):
    """Complete time session model from database"""
    id: str  # UUID as string
    end_time: Optional[datetime] = None
    duration: Optional[str] = None  # PostgreSQL interval string, set once on finalize
    notes: Optional[str] = None
    is_deleted: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        coerce_numbers_to_str = True

    @property
    def is_active(self) -> bool:
        return self.end_time is None
