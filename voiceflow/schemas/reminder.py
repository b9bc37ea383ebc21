from pydantic import BaseModel
from typing import Literal, Tuple
from datetime import datetime

ReminderKind = Literal["task", "event"]
ReminderPurpose = Literal["due-soon", "due-now", "starting-soon"]
ReminderKey = Tuple[str, str, str]

class Reminder(BaseModel):
    kind: ReminderKind
    purpose: ReminderPurpose
    item_id: str
    title: str
    message: str
    scheduled_time: datetime
    is_active: bool = True

    @property
    def key(self) -> ReminderKey:
        return (self.kind, self.purpose, self.item_id)

    @property
    def dedupe_key(self) -> str:
        return f"{self.kind}-{self.purpose}-{self.item_id}"

class ReminderFired(BaseModel):
    kind: ReminderKind
    title: str
    message: str
    item_id: str
