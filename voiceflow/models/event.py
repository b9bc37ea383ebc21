from sqlalchemy import Column, String, DateTime
from voiceflow.core.database import Base
from voiceflow.utils.timezone import utc_now

class EventRecord(Base):
    __tablename__ = "events"

    event_id = Column(String(32), primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    reminder_time = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
