import logging
from typing import List, Tuple

from voiceflow.core.exceptions import PersistenceError
from voiceflow.schemas.event import Event, EventUpdate
from voiceflow.schemas.task import Task, TaskUpdate
from voiceflow.services.scheduler import ReminderScheduler
from voiceflow.services.store import EntityStore

logger = logging.getLogger(__name__)


class TaskService:
    """
    Task and event changes that must keep reminders in step.

    Reminders are cancelled at the moment an item is completed or deleted;
    nothing re-checks the store when a reminder fires.
    """

    def __init__(self, store: EntityStore, scheduler: ReminderScheduler):
        self.store = store
        self.scheduler = scheduler

    async def load_user_items(self, user_id: str) -> Tuple[List[Task], List[Event]]:
        tasks = await self.store.list_tasks(user_id)
        events = await self.store.list_events(user_id)
        self.scheduler.schedule_for_tasks(tasks)
        self.scheduler.schedule_for_events(events)
        logger.info(f"📊 Loaded {len(tasks)} tasks and {len(events)} events for user {user_id}")
        return tasks, events

    async def set_task_completed(self, task_id: str, completed: bool = True) -> Task:
        task = await self.store.update_task(task_id, TaskUpdate(is_completed=completed))
        if not task:
            raise PersistenceError("Failed to update task")

        if task.is_completed:
            self.scheduler.cancel_item_reminders(task.task_id, "task")
        else:
            self.scheduler.schedule_for_tasks([task])
        return task

    async def update_task(self, task_id: str, **fields) -> Task:
        task = await self.store.update_task(task_id, TaskUpdate(**fields))
        if not task:
            raise PersistenceError("Failed to update task")
        self.scheduler.schedule_for_tasks([task])
        return task

    async def delete_task(self, task_id: str) -> bool:
        if not await self.store.delete_task(task_id):
            raise PersistenceError("Failed to delete task")
        self.scheduler.cancel_item_reminders(task_id, "task")
        return True

    async def update_event(self, event_id: str, **fields) -> Event:
        event = await self.store.update_event(event_id, EventUpdate(**fields))
        if not event:
            raise PersistenceError("Failed to update event")
        self.scheduler.schedule_for_events([event])
        return event

    async def delete_event(self, event_id: str) -> bool:
        if not await self.store.delete_event(event_id):
            raise PersistenceError("Failed to delete event")
        self.scheduler.cancel_item_reminders(event_id, "event")
        return True
