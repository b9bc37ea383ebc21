import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Protocol, Union

from pydantic import BaseModel

from voiceflow.core.config import settings
from voiceflow.core.exceptions import (
    CaptureError,
    PersistenceError,
    SessionStateError,
    TranscriptionError,
    VoiceFlowError,
)
from voiceflow.schemas.event import Event
from voiceflow.schemas.intent import EventIntent, ParsedIntent
from voiceflow.schemas.task import Task
from voiceflow.services.ai_service import IntentParser
from voiceflow.services.scheduler import ReminderScheduler
from voiceflow.services.store import EntityStore
from voiceflow.services.transcription_service import Transcriber
from voiceflow.utils.timezone import utc_now

logger = logging.getLogger(__name__)


class AudioCapture(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> bytes: ...

    async def cancel(self) -> None: ...


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"


class SessionResult(BaseModel):
    kind: str
    transcript: str
    intent: ParsedIntent
    item: Union[Task, Event]


class VoiceSession:
    """
    One microphone button: record -> transcribe -> parse -> persist -> schedule.

    Every step can fail. A failure stops the cycle, leaves a readable message
    in `error`, keeps whatever was already learned (transcript, intent) and
    puts the session back to idle so the user can simply try again.
    """

    def __init__(
        self,
        user_id: str,
        capture: AudioCapture,
        transcriber: Transcriber,
        parser: IntentParser,
        store: EntityStore,
        scheduler: ReminderScheduler,
        clock: Callable[[], datetime] = utc_now,
        timeout: float = None,
        on_task_created: Callable[[Task], None] = None,
        on_event_created: Callable[[Event], None] = None,
    ):
        self.user_id = user_id
        self.capture = capture
        self.transcriber = transcriber
        self.parser = parser
        self.store = store
        self.scheduler = scheduler
        self.clock = clock
        self.timeout = settings.AI_TIMEOUT_SECONDS if timeout is None else timeout
        self.on_task_created = on_task_created
        self.on_event_created = on_event_created

        self.state = SessionState.IDLE
        self.transcript = ""
        self.last_intent: Optional[ParsedIntent] = None
        self.last_item: Optional[Union[Task, Event]] = None
        self.error: Optional[str] = None
        self._late_writes = set()

    @property
    def is_recording(self) -> bool:
        return self.state == SessionState.RECORDING

    @property
    def is_processing(self) -> bool:
        return self.state == SessionState.PROCESSING

    async def _bounded(self, awaitable, error_cls, message: str):
        """Run one external step under the session timeout."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise error_cls(f"{message} (timed out)") from e

    async def start_recording(self) -> None:
        if self.state != SessionState.IDLE:
            raise SessionStateError(f"Cannot start recording while {self.state.value}")

        self.error = None
        try:
            await self._bounded(self.capture.start(), CaptureError, "Failed to start recording")
        except CaptureError as e:
            self.error = e.message
            raise
        except Exception as e:
            self.error = CaptureError.default_message
            raise CaptureError(self.error) from e

        self.state = SessionState.RECORDING
        logger.info(f"🎙️ Recording started for user {self.user_id}")

    async def cancel_recording(self) -> None:
        if self.state != SessionState.RECORDING:
            return
        try:
            await self.capture.cancel()
        except Exception as e:
            logger.warning(f"⚠️ Failed to release microphone: {e}")
        finally:
            self.state = SessionState.IDLE
            logger.info(f"🛑 Recording cancelled for user {self.user_id}")

    async def stop_recording(self) -> Optional[SessionResult]:
        if self.state == SessionState.PROCESSING:
            logger.warning("⚠️ stop_recording ignored: previous recording is still processing")
            return None
        if self.state != SessionState.RECORDING:
            logger.warning("⚠️ stop_recording ignored: not recording")
            return None

        self.state = SessionState.PROCESSING
        self.error = None
        self.transcript = ""
        self.last_intent = None
        self.last_item = None
        try:
            return await self._process()
        except VoiceFlowError as e:
            self.error = e.message
            logger.error(f"❌ Voice session failed: {e.message}")
            raise
        finally:
            self.state = SessionState.IDLE

    async def _process(self) -> SessionResult:
        # 1. Audio
        try:
            audio = await self._bounded(self.capture.stop(), CaptureError, "Failed to stop recording")
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureError("Failed to stop recording") from e

        # 2. Transcript
        try:
            transcript = await self._bounded(self.transcriber.transcribe(audio), TranscriptionError, "Failed to transcribe audio")
        except TranscriptionError:
            raise
        except Exception as e:
            raise TranscriptionError() from e
        transcript = (transcript or "").strip()
        if not transcript:
            raise TranscriptionError("I couldn't hear anything. Please try again.")
        self.transcript = transcript

        # 3. Intent (never fails, falls back to a verbatim task)
        intent = await self.parser.parse(transcript, self.clock())
        self.last_intent = intent

        # 4. Persist, then 5. schedule reminders for the stored item
        if isinstance(intent, EventIntent):
            event = await self._persist(self.store.create_event(
                self.user_id,
                intent.title,
                intent.start_time,
                intent.end_time,
                intent.reminder_time,
            ), "Failed to create event", self.scheduler.schedule_for_events)
            self.last_item = event
            self.scheduler.schedule_for_events([event])
            if self.on_event_created:
                self.on_event_created(event)
            logger.info(f"📅 Event created from voice: {event.title}")
            return SessionResult(kind="event", transcript=transcript, intent=intent, item=event)

        task = await self._persist(self.store.create_task(
            self.user_id,
            intent.description,
            intent.due_date,
        ), "Failed to create task", self.scheduler.schedule_for_tasks)
        self.last_item = task
        self.scheduler.schedule_for_tasks([task])
        if self.on_task_created:
            self.on_task_created(task)
        logger.info(f"📝 Task created from voice: {task.description}")
        return SessionResult(kind="task", transcript=transcript, intent=intent, item=task)

    async def _persist(self, awaitable, message: str, schedule: Callable[[list], None]):
        # Shielded: a write that outlives the timeout may still commit
        write = asyncio.ensure_future(awaitable)
        try:
            item = await self._bounded(asyncio.shield(write), PersistenceError, message)
        except PersistenceError:
            if not write.done():
                self._late_writes.add(write)
                write.add_done_callback(lambda done: self._adopt_late_write(done, schedule))
            raise
        except Exception as e:
            raise PersistenceError(message) from e
        if not item:
            raise PersistenceError(message)
        return item

    def _adopt_late_write(self, write: asyncio.Future, schedule: Callable[[list], None]) -> None:
        """Schedule reminders for an item whose write finished after the session gave up on it."""
        self._late_writes.discard(write)
        if write.cancelled():
            return
        if write.exception() is not None:
            logger.error(f"❌ Late store write failed: {write.exception()}")
            return
        item = write.result()
        if not item:
            return
        schedule([item])
        logger.warning(f"⚠️ Store write for user {self.user_id} finished after the timeout, reminders scheduled")
