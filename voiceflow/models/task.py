from sqlalchemy import Column, String, Boolean, DateTime
from voiceflow.core.database import Base
from voiceflow.utils.timezone import utc_now

class TaskRecord(Base):
    __tablename__ = "tasks"

    task_id = Column(String(32), primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    description = Column(String, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
