from datetime import datetime, timedelta, timezone

import pytest

from voiceflow.schemas.event import EventUpdate
from voiceflow.schemas.task import TaskUpdate


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestTasks:

    @pytest.mark.asyncio
    async def test_create_and_get_task(self, sql_store):
        task = await sql_store.create_task("u1", "  Buy milk ", utc(2024, 1, 2, 17))

        assert task.task_id
        assert task.description == "Buy milk"
        assert task.is_completed is False
        assert task.due_date == utc(2024, 1, 2, 17)
        assert task.created_at.tzinfo is not None

        loaded = await sql_store.get_task(task.task_id)
        assert loaded.description == "Buy milk"
        assert loaded.due_date == utc(2024, 1, 2, 17)
        assert loaded.due_date.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_blank_description_is_rejected(self, sql_store):
        assert await sql_store.create_task("u1", "   ") is None
        assert await sql_store.list_tasks("u1") == []

    @pytest.mark.asyncio
    async def test_list_tasks_is_per_user(self, sql_store):
        await sql_store.create_task("u1", "mine")
        await sql_store.create_task("u2", "theirs")

        assert [t.description for t in await sql_store.list_tasks("u1")] == ["mine"]

    @pytest.mark.asyncio
    async def test_update_task_fields(self, sql_store):
        task = await sql_store.create_task("u1", "Buy milk", utc(2024, 1, 2, 17))

        updated = await sql_store.update_task(task.task_id, TaskUpdate(is_completed=True))
        assert updated.is_completed is True
        assert updated.description == "Buy milk"
        assert updated.due_date == utc(2024, 1, 2, 17)

        updated = await sql_store.update_task(task.task_id, {"due_date": None})
        assert updated.due_date is None

    @pytest.mark.asyncio
    async def test_update_missing_task_returns_none(self, sql_store):
        assert await sql_store.update_task("nope", {"is_completed": True}) is None

    @pytest.mark.asyncio
    async def test_update_with_blank_description_is_rejected(self, sql_store):
        task = await sql_store.create_task("u1", "Buy milk")
        assert await sql_store.update_task(task.task_id, {"description": " "}) is None
        assert (await sql_store.get_task(task.task_id)).description == "Buy milk"

    @pytest.mark.asyncio
    async def test_delete_task(self, sql_store):
        task = await sql_store.create_task("u1", "Buy milk")

        assert await sql_store.delete_task(task.task_id) is True
        assert await sql_store.get_task(task.task_id) is None
        assert await sql_store.delete_task(task.task_id) is False


class TestEvents:

    @pytest.mark.asyncio
    async def test_create_event_defaults_reminder(self, sql_store):
        event = await sql_store.create_event("u1", "Meeting with John", utc(2024, 1, 2, 10), utc(2024, 1, 2, 11))

        assert event.reminder_time == utc(2024, 1, 2, 9, 30)
        loaded = await sql_store.get_event(event.event_id)
        assert loaded.start_time == utc(2024, 1, 2, 10)
        assert loaded.reminder_time == utc(2024, 1, 2, 9, 30)

    @pytest.mark.asyncio
    async def test_end_before_start_is_rejected(self, sql_store):
        assert await sql_store.create_event("u1", "Backwards", utc(2024, 1, 2, 10), utc(2024, 1, 2, 9)) is None

    @pytest.mark.asyncio
    async def test_events_are_listed_by_start_time(self, sql_store):
        await sql_store.create_event("u1", "late", utc(2024, 1, 5, 10), utc(2024, 1, 5, 11))
        await sql_store.create_event("u1", "early", utc(2024, 1, 2, 10), utc(2024, 1, 2, 11))
        await sql_store.create_event("u2", "other", utc(2024, 1, 3, 10), utc(2024, 1, 3, 11))

        assert [e.title for e in await sql_store.list_events("u1")] == ["early", "late"]

    @pytest.mark.asyncio
    async def test_moving_start_shifts_reminder(self, sql_store):
        event = await sql_store.create_event("u1", "Standup", utc(2024, 1, 2, 10), utc(2024, 1, 2, 11), utc(2024, 1, 2, 9))

        moved = await sql_store.update_event(event.event_id, EventUpdate(start_time=utc(2024, 1, 2, 10, 30)))

        assert moved.start_time == utc(2024, 1, 2, 10, 30)
        assert moved.reminder_time == utc(2024, 1, 2, 9, 30)
        assert (await sql_store.get_event(event.event_id)).reminder_time == utc(2024, 1, 2, 9, 30)

    @pytest.mark.asyncio
    async def test_explicit_reminder_wins_over_shift(self, sql_store):
        event = await sql_store.create_event("u1", "Standup", utc(2024, 1, 2, 10), utc(2024, 1, 2, 11))

        moved = await sql_store.update_event(event.event_id, {
            "start_time": utc(2024, 1, 2, 10, 30),
            "reminder_time": utc(2024, 1, 2, 10, 20),
        })
        assert moved.reminder_time == utc(2024, 1, 2, 10, 20)

    @pytest.mark.asyncio
    async def test_update_that_breaks_time_range_is_rejected(self, sql_store):
        event = await sql_store.create_event("u1", "Standup", utc(2024, 1, 2, 10), utc(2024, 1, 2, 11))

        assert await sql_store.update_event(event.event_id, {"end_time": utc(2024, 1, 2, 8)}) is None
        assert (await sql_store.get_event(event.event_id)).end_time == utc(2024, 1, 2, 11)

    @pytest.mark.asyncio
    async def test_reminder_after_start_is_pulled_before_it(self, sql_store):
        event = await sql_store.create_event("u1", "Standup", utc(2024, 1, 2, 10), utc(2024, 1, 2, 11), utc(2024, 1, 2, 10, 15))

        assert event.reminder_time == utc(2024, 1, 2, 9, 30)
        assert (await sql_store.get_event(event.event_id)).reminder_time == utc(2024, 1, 2, 9, 30)

    @pytest.mark.asyncio
    async def test_update_with_reminder_after_start_is_pulled_before_it(self, sql_store):
        event = await sql_store.create_event("u1", "Standup", utc(2024, 1, 2, 10), utc(2024, 1, 2, 11))

        updated = await sql_store.update_event(event.event_id, {"reminder_time": utc(2024, 1, 2, 10, 45)})

        assert updated.reminder_time == utc(2024, 1, 2, 9, 30)
        assert (await sql_store.get_event(event.event_id)).reminder_time == utc(2024, 1, 2, 9, 30)

    @pytest.mark.asyncio
    async def test_delete_event(self, sql_store):
        event = await sql_store.create_event("u1", "Standup", utc(2024, 1, 2, 10), utc(2024, 1, 2, 11))

        assert await sql_store.delete_event(event.event_id) is True
        assert await sql_store.list_events("u1") == []
        assert await sql_store.delete_event("missing") is False
