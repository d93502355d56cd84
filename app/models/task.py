"""Task domain model"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class TaskBase(BaseModel):
    """Task fields the timer reads and writes"""
    title: Optional[str] = None
    status: Optional[str] = None
    actual_time: Optional[str] = None  # PostgreSQL interval string


class TaskUpdate(BaseModel):
    """Task update model - all fields optional"""
    status: Optional[str] = None
    actual_time: Optional[str] = None


class Task(TaskBase):
    """Complete task model from database"""
    id: str  # UUID or numeric id, as string
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        coerce_numbers_to_str = True
