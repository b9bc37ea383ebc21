from datetime import timedelta

import pytest

from voiceflow.core.exceptions import PersistenceError
from voiceflow.services.task_service import TaskService


@pytest.fixture
def service(memory_store, scheduler):
    return TaskService(memory_store, scheduler)


def reminder_items(scheduler):
    return {(r.kind, r.item_id) for r in scheduler.get_active_reminders()}


class TestLoad:

    @pytest.mark.asyncio
    async def test_load_user_items_schedules_everything(self, service, memory_store, scheduler, clock):
        task = await memory_store.create_task("u1", "Buy milk", clock() + timedelta(hours=2))
        await memory_store.create_task("u1", "Someday")
        event = await memory_store.create_event("u1", "Standup", clock() + timedelta(hours=3), clock() + timedelta(hours=4))
        await memory_store.create_task("u2", "Not mine", clock() + timedelta(hours=2))

        tasks, events = await service.load_user_items("u1")

        assert len(tasks) == 2
        assert events == [event]
        assert reminder_items(scheduler) == {("task", task.task_id), ("event", event.event_id)}

    @pytest.mark.asyncio
    async def test_reload_is_idempotent(self, service, memory_store, timer, clock):
        await memory_store.create_task("u1", "Buy milk", clock() + timedelta(hours=2))
        await service.load_user_items("u1")
        arms = timer.arm_count

        await service.load_user_items("u1")
        assert timer.arm_count == arms


class TestTaskLifecycle:

    @pytest.mark.asyncio
    async def test_completing_task_cancels_reminders(self, service, memory_store, scheduler, timer, clock, fired):
        task = await memory_store.create_task("u1", "Buy milk", clock() + timedelta(hours=2))
        scheduler.schedule_for_tasks([task])

        completed = await service.set_task_completed(task.task_id)

        assert completed.is_completed
        assert scheduler.get_active_reminders() == []
        await timer.advance(timedelta(hours=3))
        assert fired == []

    @pytest.mark.asyncio
    async def test_reopening_task_reschedules(self, service, memory_store, scheduler, clock):
        task = await memory_store.create_task("u1", "Buy milk", clock() + timedelta(hours=2))
        await service.set_task_completed(task.task_id)

        await service.set_task_completed(task.task_id, completed=False)
        assert {r.purpose for r in scheduler.get_active_reminders()} == {"due-soon", "due-now"}

    @pytest.mark.asyncio
    async def test_changing_due_date_moves_reminders(self, service, memory_store, scheduler, clock):
        task = await memory_store.create_task("u1", "Buy milk", clock() + timedelta(hours=2))
        scheduler.schedule_for_tasks([task])

        new_due = clock() + timedelta(hours=6)
        await service.update_task(task.task_id, due_date=new_due)

        times = sorted(r.scheduled_time for r in scheduler.get_active_reminders())
        assert times == [new_due - timedelta(hours=1), new_due]

    @pytest.mark.asyncio
    async def test_renaming_task_updates_message(self, service, memory_store, scheduler, clock):
        task = await memory_store.create_task("u1", "Buy milk", clock() + timedelta(hours=2))
        scheduler.schedule_for_tasks([task])

        await service.update_task(task.task_id, description="Buy oat milk")
        messages = {r.message for r in scheduler.get_active_reminders()}
        assert messages == {"Don't forget: Buy oat milk", "Overdue task: Buy oat milk"}

    @pytest.mark.asyncio
    async def test_deleting_task_cancels_reminders(self, service, memory_store, scheduler, clock):
        task = await memory_store.create_task("u1", "Buy milk", clock() + timedelta(hours=2))
        scheduler.schedule_for_tasks([task])

        assert await service.delete_task(task.task_id) is True
        assert scheduler.get_active_reminders() == []

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_reminders(self, service, memory_store, scheduler, clock):
        task = await memory_store.create_task("u1", "Buy milk", clock() + timedelta(hours=2))
        scheduler.schedule_for_tasks([task])
        memory_store.fail_writes = True

        with pytest.raises(PersistenceError):
            await service.delete_task(task.task_id)
        assert len(scheduler.get_active_reminders()) == 2

    @pytest.mark.asyncio
    async def test_failed_completion_raises(self, service, memory_store, scheduler, clock):
        task = await memory_store.create_task("u1", "Buy milk", clock() + timedelta(hours=2))
        scheduler.schedule_for_tasks([task])
        memory_store.fail_writes = True

        with pytest.raises(PersistenceError):
            await service.set_task_completed(task.task_id)
        assert len(scheduler.get_active_reminders()) == 2


class TestEventLifecycle:

    @pytest.mark.asyncio
    async def test_moving_event_reschedules(self, service, memory_store, scheduler, clock):
        event = await memory_store.create_event("u1", "Standup", clock() + timedelta(hours=3), clock() + timedelta(hours=4))
        scheduler.schedule_for_events([event])

        new_reminder = clock() + timedelta(hours=2)
        await service.update_event(event.event_id, reminder_time=new_reminder)

        [reminder] = scheduler.get_active_reminders()
        assert reminder.scheduled_time == new_reminder

    @pytest.mark.asyncio
    async def test_deleting_event_cancels_reminder(self, service, memory_store, scheduler, clock):
        event = await memory_store.create_event("u1", "Standup", clock() + timedelta(hours=3), clock() + timedelta(hours=4))
        scheduler.schedule_for_events([event])

        await service.delete_event(event.event_id)
        assert scheduler.get_active_reminders() == []

    @pytest.mark.asyncio
    async def test_deleting_missing_event_raises(self, service):
        with pytest.raises(PersistenceError):
            await service.delete_event("missing")
