"""
In-process reminder scheduler.

Each reminder is keyed by (kind, purpose, item_id) and moves Scheduled ->
Fired or Scheduled -> Cancelled; both end states remove it from the live set.
The scheduler is the only owner of the live reminders and of the timer
handles backing them. Timers come from an injected Timer (APScheduler in
production), notifications go to an injected sink, and every fire is
published on a ReminderSignal.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Protocol

import pytz
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from voiceflow.core.config import settings
from voiceflow.schemas.event import Event
from voiceflow.schemas.reminder import Reminder, ReminderFired, ReminderKey, ReminderKind
from voiceflow.schemas.task import Task
from voiceflow.services.notification_service import (
    NotificationSink,
    ReminderSignal,
    event_starting_message,
    task_due_now_message,
    task_due_soon_message,
)
from voiceflow.utils.timezone import ensure_utc, utc_now

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]

TASK_PURPOSES = ("due-soon", "due-now")
EVENT_PURPOSES = ("starting-soon",)


class Timer(Protocol):
    def arm(self, run_at: datetime, callback: TimerCallback): ...

    def disarm(self, handle) -> None: ...


class APSchedulerTimer:
    """One-shot 'date' jobs on an AsyncIOScheduler."""

    def __init__(self, scheduler: AsyncIOScheduler = None):
        self.scheduler = scheduler or AsyncIOScheduler(timezone=pytz.utc)

    def start(self):
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("🚀 Reminder timer started")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("🛑 Reminder timer stopped")

    def arm(self, run_at: datetime, callback: TimerCallback) -> str:
        job = self.scheduler.add_job(
            callback,
            "date",
            run_date=run_at,
            id=uuid.uuid4().hex,
            # A late loop still delivers the reminder instead of dropping it
            misfire_grace_time=None,
        )
        return job.id

    def disarm(self, handle) -> None:
        try:
            self.scheduler.remove_job(handle)
        except JobLookupError:
            # Already ran or was never added
            pass


class ReminderScheduler:
    def __init__(
        self,
        timer: Timer,
        sink: Optional[NotificationSink] = None,
        signal: Optional[ReminderSignal] = None,
        clock: Callable[[], datetime] = utc_now,
        tz_name: str = None,
    ):
        self.timer = timer
        self.sink = sink
        self.signal = signal or ReminderSignal()
        self.clock = clock
        self.tz_name = tz_name
        self.notifications_enabled = False
        self._reminders: Dict[ReminderKey, Reminder] = {}
        self._timers: Dict[ReminderKey, object] = {}

    # --- Building candidates ---

    def _task_candidates(self, task: Task) -> Dict[str, Reminder]:
        if task.is_completed or not task.due_date:
            return {}

        due = ensure_utc(task.due_date)
        soon_title, soon_message = task_due_soon_message(task)
        now_title, now_message = task_due_now_message(task)
        return {
            "due-soon": Reminder(
                kind="task",
                purpose="due-soon",
                item_id=task.task_id,
                title=soon_title,
                message=soon_message,
                scheduled_time=due - timedelta(minutes=settings.REMINDER_LEAD_MINUTES),
            ),
            "due-now": Reminder(
                kind="task",
                purpose="due-now",
                item_id=task.task_id,
                title=now_title,
                message=now_message,
                scheduled_time=due,
            ),
        }

    def _event_candidates(self, event: Event) -> Dict[str, Reminder]:
        title, message = event_starting_message(event, self.tz_name)
        return {
            "starting-soon": Reminder(
                kind="event",
                purpose="starting-soon",
                item_id=event.event_id,
                title=title,
                message=message,
                scheduled_time=ensure_utc(event.reminder_time),
            )
        }

    # --- Bulk (re)population ---

    def schedule_for_tasks(self, tasks: Iterable[Task]) -> None:
        now = self.clock()
        for task in tasks:
            candidates = self._task_candidates(task)
            for purpose in TASK_PURPOSES:
                self._sync(("task", purpose, task.task_id), candidates.get(purpose), now)

    def schedule_for_events(self, events: Iterable[Event]) -> None:
        now = self.clock()
        for event in events:
            candidates = self._event_candidates(event)
            for purpose in EVENT_PURPOSES:
                self._sync(("event", purpose, event.event_id), candidates.get(purpose), now)

    def _sync(self, key: ReminderKey, candidate: Optional[Reminder], now: datetime) -> None:
        existing = self._reminders.get(key)

        if existing and candidate and existing.scheduled_time == candidate.scheduled_time \
                and existing.message == candidate.message:
            return

        if existing:
            # Date or wording changed, or the item no longer needs it
            self.cancel_reminder(key)

        if candidate is None:
            return
        if candidate.scheduled_time <= now:
            logger.debug(f"⏭️ Skipping past reminder {key} at {candidate.scheduled_time}")
            return

        self._arm(candidate)

    def _arm(self, reminder: Reminder) -> None:
        key = reminder.key

        async def fire():
            await self._fire(key, reminder)

        self._reminders[key] = reminder
        self._timers[key] = self.timer.arm(reminder.scheduled_time, fire)
        logger.info(f"⏰ Scheduled {reminder.purpose} reminder for {reminder.kind} {reminder.item_id} at {reminder.scheduled_time}")

    async def _fire(self, key: ReminderKey, reminder: Reminder) -> None:
        if self._reminders.get(key) is not reminder:
            # Cancelled or replaced after the timer was armed
            return

        # Out of the live set before listeners run: they may reschedule this key
        self._reminders.pop(key, None)
        self._timers.pop(key, None)
        logger.info(f"🔔 Fired {reminder.purpose} reminder for {reminder.kind} {reminder.item_id}")

        self.signal.publish(ReminderFired(
            kind=reminder.kind,
            title=reminder.title,
            message=reminder.message,
            item_id=reminder.item_id,
        ))

        if self.sink is not None and self.notifications_enabled:
            try:
                await self.sink.deliver(reminder.title, reminder.message, reminder.dedupe_key)
            except Exception as e:
                logger.error(f"❌ Failed to deliver reminder notification: {e}")

    # --- Cancellation ---

    def cancel_reminder(self, key: ReminderKey) -> None:
        handle = self._timers.pop(key, None)
        if handle is not None:
            self.timer.disarm(handle)
        self._reminders.pop(key, None)

    def cancel_item_reminders(self, item_id: str, kind: ReminderKind) -> None:
        keys = [k for k, r in self._reminders.items() if r.item_id == item_id and r.kind == kind]
        for key in keys:
            self.cancel_reminder(key)
        if keys:
            logger.info(f"🧹 Cancelled {len(keys)} reminder(s) for {kind} {item_id}")

    def clear_all(self) -> None:
        for handle in self._timers.values():
            self.timer.disarm(handle)
        self._timers.clear()
        self._reminders.clear()
        logger.info("🧹 Cleared all reminders")

    # --- Permission ---

    async def request_notification_permission(self) -> bool:
        if self.sink is None:
            self.notifications_enabled = False
            return False
        try:
            granted = bool(await self.sink.request_permission())
        except Exception as e:
            logger.warning(f"⚠️ Notification permission request failed: {e}")
            granted = False
        self.notifications_enabled = granted
        return granted

    # --- Queries ---

    def get_active_reminders(self) -> List[Reminder]:
        return [r for r in self._reminders.values() if r.is_active]

    def get_upcoming_reminders(self, window: timedelta = None) -> List[Reminder]:
        now = self.clock()
        until = now + (window or timedelta(hours=settings.UPCOMING_WINDOW_HOURS))
        upcoming = [r for r in self.get_active_reminders() if now <= r.scheduled_time <= until]
        return sorted(upcoming, key=lambda r: r.scheduled_time)
