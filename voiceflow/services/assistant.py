import logging
from datetime import datetime
from typing import Callable, Optional

from voiceflow.core.groq_client import GroqCompletion, TextCompletion
from voiceflow.services.ai_service import IntentParser
from voiceflow.services.notification_service import (
    FCMNotificationSink,
    LogNotificationSink,
    NotificationSink,
    ReminderSignal,
)
from voiceflow.services.scheduler import APSchedulerTimer, ReminderScheduler, Timer
from voiceflow.services.store import EntityStore, SqlAlchemyEntityStore
from voiceflow.services.task_service import TaskService
from voiceflow.services.transcription_service import GroqTranscriber, Transcriber
from voiceflow.services.voice_service import AudioCapture, VoiceSession
from voiceflow.utils.timezone import utc_now

logger = logging.getLogger(__name__)


class Assistant:
    """
    Wires one scheduler, store, parser and voice session for a user.

    Build it once per process (or per signed-in user) and hand the parts to
    whoever needs them; nothing here is global.
    """

    def __init__(
        self,
        user_id: str,
        capture: AudioCapture,
        store: EntityStore = None,
        completion: TextCompletion = None,
        transcriber: Transcriber = None,
        timer: Timer = None,
        sink: NotificationSink = None,
        fcm_token: Optional[str] = None,
        signal: ReminderSignal = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.user_id = user_id
        self.timer = timer or APSchedulerTimer()
        self.signal = signal or ReminderSignal()
        if sink is None:
            sink = FCMNotificationSink(fcm_token) if fcm_token else LogNotificationSink()
        self.store = store or SqlAlchemyEntityStore()
        self.scheduler = ReminderScheduler(self.timer, sink=sink, signal=self.signal, clock=clock)
        self.parser = IntentParser(completion or GroqCompletion())
        self.tasks = TaskService(self.store, self.scheduler)
        self.session = VoiceSession(
            user_id,
            capture=capture,
            transcriber=transcriber or GroqTranscriber(),
            parser=self.parser,
            store=self.store,
            scheduler=self.scheduler,
            clock=clock,
        )

    async def start(self):
        """Start timers, negotiate notifications and schedule existing items."""
        if isinstance(self.timer, APSchedulerTimer):
            self.timer.start()
        granted = await self.scheduler.request_notification_permission()
        if not granted:
            logger.warning("⚠️ Notifications not permitted, reminders will only be published in-app")
        await self.tasks.load_user_items(self.user_id)

    async def shutdown(self):
        await self.session.cancel_recording()
        self.scheduler.clear_all()
        if isinstance(self.timer, APSchedulerTimer):
            self.timer.shutdown()
