import asyncio
import logging
from typing import Protocol
from groq import Groq
from voiceflow.core.config import settings
from voiceflow.core.exceptions import TranscriptionError
from voiceflow.core.groq_client import get_groq_client

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    async def transcribe(self, audio: bytes) -> str: ...


class GroqTranscriber:
    """Speech-to-text through Groq's hosted Whisper."""

    def __init__(self, client: Groq = None, model: str = None, filename: str = "audio.webm"):
        self.client = client or get_groq_client()
        self.model = model or settings.GROQ_TRANSCRIPTION_MODEL
        self.filename = filename

    async def transcribe(self, audio: bytes) -> str:
        if not audio:
            raise TranscriptionError("No audio was captured")
        if self.client is None:
            raise TranscriptionError("Transcription is not configured (GROQ_API_KEY missing)")

        logger.info(f"🎙️ Transcribing {len(audio)} bytes with {self.model}")
        try:
            response = await asyncio.to_thread(
                self.client.audio.transcriptions.create,
                file=(self.filename, audio),
                model=self.model,
            )
        except Exception as e:
            logger.error(f"Error transcribing audio: {e}")
            raise TranscriptionError() from e

        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise TranscriptionError("I couldn't hear anything. Please try again.")
        return text
