from pydantic import BaseModel, Field
from typing import Optional, Literal, Union, Annotated
from datetime import datetime

class TaskIntent(BaseModel):
    kind: Literal["task"] = "task"
    description: str
    due_date: Optional[datetime] = None
    is_fallback: bool = False

class EventIntent(BaseModel):
    kind: Literal["event"] = "event"
    title: str
    start_time: datetime
    end_time: datetime
    reminder_time: datetime
    is_fallback: bool = False

# Tagged on `kind`; produced once per voice session and never persisted
ParsedIntent = Annotated[Union[TaskIntent, EventIntent], Field(discriminator="kind")]
