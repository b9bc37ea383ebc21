import logging
from typing import Callable, List, Protocol, Tuple

from voiceflow.core.fcm_manager import FCMManager
from voiceflow.schemas.event import Event
from voiceflow.schemas.reminder import ReminderFired
from voiceflow.schemas.task import Task
from voiceflow.utils.timezone import format_local_time

logger = logging.getLogger(__name__)

ReminderListener = Callable[[ReminderFired], None]


class NotificationSink(Protocol):
    async def request_permission(self) -> bool: ...

    async def deliver(self, title: str, message: str, dedupe_key: str) -> None: ...


class LogNotificationSink:
    """Sink for hosts without push: each reminder becomes a log line."""

    async def request_permission(self) -> bool:
        return True

    async def deliver(self, title: str, message: str, dedupe_key: str) -> None:
        logger.info(f"🔔 [{dedupe_key}] {title}: {message}")


class FCMNotificationSink:
    """Push reminders to one device through Firebase Cloud Messaging."""

    def __init__(self, token: str, manager: FCMManager = None):
        self.token = token
        self.manager = manager

    def _get_manager(self) -> FCMManager:
        if self.manager is None:
            self.manager = FCMManager()
        return self.manager

    async def request_permission(self) -> bool:
        if not self.token:
            logger.warning("⚠️ No FCM token registered, push reminders disabled")
            return False
        return self._get_manager().is_ready

    async def deliver(self, title: str, message: str, dedupe_key: str) -> None:
        # Same tag replaces an earlier notification on the device
        await self._get_manager().send_notification(
            token=self.token,
            title=title,
            body=message,
            data={"type": "reminder", "tag": dedupe_key},
        )


class ReminderSignal:
    """Publish/subscribe channel for reminder-fired notifications."""

    def __init__(self):
        self._listeners: List[ReminderListener] = []

    def subscribe(self, listener: ReminderListener) -> Callable[[], None]:
        if listener not in self._listeners:
            self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: ReminderListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish(self, fired: ReminderFired) -> None:
        # Copy: listeners may unsubscribe themselves while being notified
        for listener in list(self._listeners):
            try:
                listener(fired)
            except Exception as e:
                logger.error(f"❌ Reminder listener failed: {e}")


def task_due_soon_message(task: Task) -> Tuple[str, str]:
    return "Task Due Soon", f"Don't forget: {task.description}"


def task_due_now_message(task: Task) -> Tuple[str, str]:
    return "Task Overdue", f"Overdue task: {task.description}"


def event_starting_message(event: Event, tz_name: str = None) -> Tuple[str, str]:
    return "Upcoming Event", f"{event.title} starts at {format_local_time(event.start_time, tz_name)}"
