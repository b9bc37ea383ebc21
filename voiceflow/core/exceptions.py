"""
Error taxonomy for the voice pipeline.

Capture, transcription and persistence failures are surfaced to the caller of
a voice session. CompletionError never leaves the intent parser: it is the
signal that triggers the verbatim-task fallback.
"""


class VoiceFlowError(Exception):
    """Base class for all VoiceFlow errors."""

    default_message = "Something went wrong"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class CaptureError(VoiceFlowError):
    default_message = "Microphone is unavailable or permission was denied"


class TranscriptionError(VoiceFlowError):
    default_message = "Failed to transcribe audio"


class PersistenceError(VoiceFlowError):
    default_message = "Failed to save your item"


class SessionStateError(VoiceFlowError):
    default_message = "Voice session is busy"


class CompletionError(VoiceFlowError):
    default_message = "No usable response from the language model"
