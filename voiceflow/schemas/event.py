from pydantic import BaseModel, field_validator, model_validator
from typing import Optional
from datetime import datetime, timedelta
from voiceflow.core.config import settings
from voiceflow.utils.timezone import ensure_utc

class EventBase(BaseModel):
    title: str
    start_time: datetime
    end_time: datetime
    reminder_time: Optional[datetime] = None

    @field_validator('title')
    def title_must_not_be_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()

    @field_validator('start_time', 'end_time', 'reminder_time')
    def normalize_times(cls, v):
        return ensure_utc(v)

    @model_validator(mode='after')
    def check_time_range(self):
        if self.end_time < self.start_time:
            raise ValueError('End time cannot be before start time')
        # A reminder after the start is as good as none
        if self.reminder_time is None or self.reminder_time > self.start_time:
            self.reminder_time = self.start_time - timedelta(minutes=settings.EVENT_REMINDER_MINUTES)
        return self

class EventCreate(EventBase):
    user_id: str

class EventUpdate(BaseModel):
    title: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    reminder_time: Optional[datetime] = None

    @field_validator('title')
    def title_must_not_be_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip() if v else v

    @field_validator('start_time', 'end_time', 'reminder_time')
    def normalize_times(cls, v):
        return ensure_utc(v)

class Event(EventBase):
    event_id: str
    user_id: str
    created_at: datetime

    @field_validator('created_at')
    def normalize_created_at(cls, v):
        return ensure_utc(v)

    class Config:
        from_attributes = True
