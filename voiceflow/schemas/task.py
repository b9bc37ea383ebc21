from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime
from voiceflow.utils.timezone import ensure_utc

class TaskBase(BaseModel):
    description: str
    due_date: Optional[datetime] = None

    @field_validator('description')
    def description_must_not_be_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Description cannot be empty')
        return v.strip()

    @field_validator('due_date')
    def normalize_due_date(cls, v):
        return ensure_utc(v)

class TaskCreate(TaskBase):
    user_id: str

class TaskUpdate(BaseModel):
    description: Optional[str] = None
    is_completed: Optional[bool] = None
    due_date: Optional[datetime] = None

    @field_validator('description')
    def description_must_not_be_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Description cannot be empty')
        return v.strip() if v else v

    @field_validator('due_date')
    def normalize_due_date(cls, v):
        return ensure_utc(v)

class Task(TaskBase):
    task_id: str
    user_id: str
    is_completed: bool = False
    created_at: datetime

    @field_validator('created_at')
    def normalize_created_at(cls, v):
        return ensure_utc(v)

    class Config:
        from_attributes = True
