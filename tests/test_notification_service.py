from datetime import datetime, timezone

import pytest

from voiceflow.schemas.event import Event
from voiceflow.schemas.reminder import ReminderFired
from voiceflow.services.notification_service import (
    FCMNotificationSink,
    LogNotificationSink,
    ReminderSignal,
    event_starting_message,
)


class FakeFCMManager:
    def __init__(self, ready=True):
        self.is_ready = ready
        self.sent = []

    async def send_notification(self, token, title, body, data=None):
        self.sent.append((token, title, body, data))
        return "projects/x/messages/1"


def fired(item_id="t1"):
    return ReminderFired(kind="task", title="Task Due Soon", message="Don't forget: Buy milk", item_id=item_id)


class TestReminderSignal:

    def test_every_subscriber_receives_fire(self):
        signal = ReminderSignal()
        first, second = [], []
        signal.subscribe(first.append)
        signal.subscribe(second.append)

        signal.publish(fired())

        assert [f.item_id for f in first] == ["t1"]
        assert [f.item_id for f in second] == ["t1"]

    def test_unsubscribe_handle(self):
        signal = ReminderSignal()
        received = []
        unsubscribe = signal.subscribe(received.append)
        unsubscribe()

        signal.publish(fired())
        assert received == []
        assert signal.listener_count == 0

    def test_failing_listener_does_not_starve_others(self):
        signal = ReminderSignal()
        received = []

        def broken(_):
            raise RuntimeError("boom")

        signal.subscribe(broken)
        signal.subscribe(received.append)
        signal.publish(fired())

        assert len(received) == 1

    def test_listener_may_unsubscribe_while_notified(self):
        signal = ReminderSignal()
        received = []

        def once(f):
            received.append(f)
            unsubscribe()

        unsubscribe = signal.subscribe(once)
        signal.publish(fired("a"))
        signal.publish(fired("b"))

        assert [f.item_id for f in received] == ["a"]


class TestSinks:

    @pytest.mark.asyncio
    async def test_log_sink_always_permits(self):
        sink = LogNotificationSink()
        assert await sink.request_permission() is True
        await sink.deliver("Task Due Soon", "Don't forget: Buy milk", "task-due-soon-t1")

    @pytest.mark.asyncio
    async def test_fcm_sink_sends_tagged_data_message(self):
        manager = FakeFCMManager()
        sink = FCMNotificationSink("device-token", manager=manager)

        assert await sink.request_permission() is True
        await sink.deliver("Task Due Soon", "Don't forget: Buy milk", "task-due-soon-t1")

        assert manager.sent == [(
            "device-token",
            "Task Due Soon",
            "Don't forget: Buy milk",
            {"type": "reminder", "tag": "task-due-soon-t1"},
        )]

    @pytest.mark.asyncio
    async def test_fcm_sink_without_token_is_not_permitted(self):
        assert await FCMNotificationSink(None, manager=FakeFCMManager()).request_permission() is False

    @pytest.mark.asyncio
    async def test_fcm_sink_without_firebase_is_not_permitted(self):
        assert await FCMNotificationSink("device-token", manager=FakeFCMManager(ready=False)).request_permission() is False


def test_event_message_uses_local_time():
    start = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)
    event = Event(
        event_id="e1",
        user_id="u1",
        title="Meeting with John",
        start_time=start,
        end_time=start,
        created_at=start,
    )

    assert event_starting_message(event, "UTC") == ("Upcoming Event", "Meeting with John starts at 10:00 AM")
    assert event_starting_message(event, "Asia/Kolkata")[1] == "Meeting with John starts at 03:30 PM"
