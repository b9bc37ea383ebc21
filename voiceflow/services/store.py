"""
Entity store: the persistence contract consumed by the voice pipeline and the
reminder lifecycle, plus the async SQLAlchemy implementation of it.

Every operation reports failure with a falsy result (None, [] or False) and a
log line instead of raising; callers turn a falsy write into a
PersistenceError. "Not found" and "backend down" are not distinguished.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional, List, Protocol, Union

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from voiceflow.core.database import AsyncSessionLocal
from voiceflow.models.task import TaskRecord
from voiceflow.models.event import EventRecord
from voiceflow.schemas.task import Task, TaskCreate, TaskUpdate
from voiceflow.schemas.event import Event, EventCreate, EventUpdate
from voiceflow.utils.timezone import utc_now, ensure_utc

logger = logging.getLogger(__name__)

STORE_ERRORS = (SQLAlchemyError, OSError)


class EntityStore(Protocol):
    async def create_task(self, user_id: str, description: str, due_date: Optional[datetime] = None) -> Optional[Task]: ...

    async def create_event(self, user_id: str, title: str, start_time: datetime, end_time: datetime, reminder_time: Optional[datetime] = None) -> Optional[Event]: ...

    async def get_task(self, task_id: str) -> Optional[Task]: ...

    async def get_event(self, event_id: str) -> Optional[Event]: ...

    async def list_tasks(self, user_id: str) -> List[Task]: ...

    async def list_events(self, user_id: str) -> List[Event]: ...

    async def update_task(self, task_id: str, updates: Union[TaskUpdate, dict]) -> Optional[Task]: ...

    async def update_event(self, event_id: str, updates: Union[EventUpdate, dict]) -> Optional[Event]: ...

    async def delete_task(self, task_id: str) -> bool: ...

    async def delete_event(self, event_id: str) -> bool: ...


def new_id() -> str:
    return uuid.uuid4().hex


class SqlAlchemyEntityStore:
    def __init__(self, session_factory=None):
        self.session_factory = session_factory or AsyncSessionLocal

    # --- Tasks ---

    async def create_task(self, user_id: str, description: str, due_date: Optional[datetime] = None) -> Optional[Task]:
        try:
            data = TaskCreate(user_id=user_id, description=description, due_date=due_date)
        except ValidationError as e:
            logger.error(f"❌ Rejected task for user {user_id}: {e}")
            return None

        async with self.session_factory() as db:
            try:
                record = TaskRecord(
                    task_id=new_id(),
                    user_id=data.user_id,
                    description=data.description,
                    due_date=data.due_date,
                    is_completed=False,
                    created_at=utc_now()
                )
                db.add(record)
                await db.commit()
                await db.refresh(record)
                logger.info(f"✅ Task created successfully! ID: {record.task_id}")
                return Task.model_validate(record)
            except STORE_ERRORS as e:
                logger.error(f"❌ Failed to create task: {e}")
                await db.rollback()
                return None

    async def get_task(self, task_id: str) -> Optional[Task]:
        async with self.session_factory() as db:
            try:
                record = await db.get(TaskRecord, task_id)
                return Task.model_validate(record) if record else None
            except STORE_ERRORS as e:
                logger.error(f"❌ Failed to load task {task_id}: {e}")
                return None

    async def list_tasks(self, user_id: str) -> List[Task]:
        async with self.session_factory() as db:
            try:
                result = await db.execute(
                    select(TaskRecord)
                    .filter(TaskRecord.user_id == user_id)
                    .order_by(TaskRecord.created_at.desc())
                )
                return [Task.model_validate(r) for r in result.scalars().all()]
            except STORE_ERRORS as e:
                logger.error(f"❌ Failed to list tasks for user {user_id}: {e}")
                return []

    async def update_task(self, task_id: str, updates: Union[TaskUpdate, dict]) -> Optional[Task]:
        try:
            if not isinstance(updates, TaskUpdate):
                updates = TaskUpdate.model_validate(updates)
        except ValidationError as e:
            logger.error(f"❌ Rejected update for task {task_id}: {e}")
            return None

        update_data = updates.model_dump(exclude_unset=True)
        async with self.session_factory() as db:
            try:
                record = await db.get(TaskRecord, task_id)
                if not record:
                    logger.warning(f"⚠️ Task {task_id} not found for update")
                    return None

                for key, value in update_data.items():
                    # due_date may be cleared, the rest are NOT NULL
                    if value is None and key != "due_date":
                        continue
                    setattr(record, key, value)

                db.add(record)
                await db.commit()
                await db.refresh(record)
                return Task.model_validate(record)
            except STORE_ERRORS as e:
                logger.error(f"❌ Failed to update task {task_id}: {e}")
                await db.rollback()
                return None

    async def delete_task(self, task_id: str) -> bool:
        async with self.session_factory() as db:
            try:
                record = await db.get(TaskRecord, task_id)
                if not record:
                    return False
                await db.delete(record)
                await db.commit()
                return True
            except STORE_ERRORS as e:
                logger.error(f"❌ Failed to delete task {task_id}: {e}")
                await db.rollback()
                return False

    # --- Events ---

    async def create_event(self, user_id: str, title: str, start_time: datetime, end_time: datetime, reminder_time: Optional[datetime] = None) -> Optional[Event]:
        try:
            data = EventCreate(
                user_id=user_id,
                title=title,
                start_time=start_time,
                end_time=end_time,
                reminder_time=reminder_time
            )
        except ValidationError as e:
            logger.error(f"❌ Rejected event for user {user_id}: {e}")
            return None

        async with self.session_factory() as db:
            try:
                record = EventRecord(
                    event_id=new_id(),
                    user_id=data.user_id,
                    title=data.title,
                    start_time=data.start_time,
                    end_time=data.end_time,
                    reminder_time=data.reminder_time,
                    created_at=utc_now()
                )
                db.add(record)
                await db.commit()
                await db.refresh(record)
                logger.info(f"✅ Event created successfully! ID: {record.event_id}")
                return Event.model_validate(record)
            except STORE_ERRORS as e:
                logger.error(f"❌ Failed to create event: {e}")
                await db.rollback()
                return None

    async def get_event(self, event_id: str) -> Optional[Event]:
        async with self.session_factory() as db:
            try:
                record = await db.get(EventRecord, event_id)
                return Event.model_validate(record) if record else None
            except STORE_ERRORS as e:
                logger.error(f"❌ Failed to load event {event_id}: {e}")
                return None

    async def list_events(self, user_id: str) -> List[Event]:
        async with self.session_factory() as db:
            try:
                result = await db.execute(
                    select(EventRecord)
                    .filter(EventRecord.user_id == user_id)
                    .order_by(EventRecord.start_time.asc())
                )
                return [Event.model_validate(r) for r in result.scalars().all()]
            except STORE_ERRORS as e:
                logger.error(f"❌ Failed to list events for user {user_id}: {e}")
                return []

    async def update_event(self, event_id: str, updates: Union[EventUpdate, dict]) -> Optional[Event]:
        try:
            if not isinstance(updates, EventUpdate):
                updates = EventUpdate.model_validate(updates)
        except ValidationError as e:
            logger.error(f"❌ Rejected update for event {event_id}: {e}")
            return None

        update_data = {k: v for k, v in updates.model_dump(exclude_unset=True).items() if v is not None}
        async with self.session_factory() as db:
            try:
                record = await db.get(EventRecord, event_id)
                if not record:
                    logger.warning(f"⚠️ Event {event_id} not found for update")
                    return None

                # Moving an event drags its reminder along unless one was given
                if "start_time" in update_data and "reminder_time" not in update_data:
                    shift = update_data["start_time"] - ensure_utc(record.start_time)
                    update_data["reminder_time"] = ensure_utc(record.reminder_time) + shift

                for key, value in update_data.items():
                    setattr(record, key, value)

                try:
                    event = Event.model_validate(record)
                except ValidationError as e:
                    logger.error(f"❌ Rejected update for event {event_id}: {e}")
                    await db.rollback()
                    return None

                record.reminder_time = event.reminder_time
                db.add(record)
                await db.commit()
                return event
            except STORE_ERRORS as e:
                logger.error(f"❌ Failed to update event {event_id}: {e}")
                await db.rollback()
                return None

    async def delete_event(self, event_id: str) -> bool:
        async with self.session_factory() as db:
            try:
                record = await db.get(EventRecord, event_id)
                if not record:
                    return False
                await db.delete(record)
                await db.commit()
                return True
            except STORE_ERRORS as e:
                logger.error(f"❌ Failed to delete event {event_id}: {e}")
                await db.rollback()
                return False
