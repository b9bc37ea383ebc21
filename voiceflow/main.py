"""
Command-line runner: turn a recorded voice note into a task or event and keep
delivering reminders until interrupted.

    python -m voiceflow.main --user demo --audio note.webm
"""
import argparse
import asyncio
import contextlib
import logging
import os
import signal

from voiceflow.core.database import init_db
from voiceflow.core.exceptions import VoiceFlowError
from voiceflow.core.log_config import setup_logging
from voiceflow.services.assistant import Assistant

logger = logging.getLogger(__name__)


class FileCapture:
    """AudioCapture over an audio file already on disk."""

    def __init__(self, path: str):
        self.path = path
        self._recording = False

    async def start(self) -> None:
        if not os.path.isfile(self.path):
            raise FileNotFoundError(self.path)
        self._recording = True

    async def stop(self) -> bytes:
        self._recording = False
        return await asyncio.to_thread(_read_bytes, self.path)

    async def cancel(self) -> None:
        self._recording = False


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def on_reminder(fired):
    print(f"🔔 {fired.title}: {fired.message}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="VoiceFlow voice productivity assistant")
    parser.add_argument("--user", required=True, help="user id that owns created items")
    parser.add_argument("--audio", help="recorded voice command to process")
    parser.add_argument("--fcm-token", help="device token for push reminders")
    parser.add_argument("--log-level", default=None)
    parser.add_argument("--once", action="store_true", help="exit after processing instead of waiting for reminders")
    args = parser.parse_args()
    setup_logging(args.log_level)

    await init_db()
    assistant = Assistant(args.user, capture=FileCapture(args.audio or ""), fcm_token=args.fcm_token)
    assistant.signal.subscribe(on_reminder)
    await assistant.start()

    if args.audio:
        try:
            await assistant.session.start_recording()
            result = await assistant.session.stop_recording()
            print(f"✅ Created {result.kind} from: \"{result.transcript}\"")
        except VoiceFlowError as e:
            print(f"❌ {e.message}")

    for reminder in assistant.scheduler.get_upcoming_reminders():
        print(f"⏰ {reminder.scheduled_time.isoformat()} {reminder.title}: {reminder.message}")

    if args.once:
        await assistant.shutdown()
        return

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _handle_signal(signum: int) -> None:
        logger.info(f"🛑 Received signal {signum}, shutting down")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handle_signal, sig)

    await stop_event.wait()
    await assistant.shutdown()


def run():
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())


if __name__ == "__main__":
    run()
