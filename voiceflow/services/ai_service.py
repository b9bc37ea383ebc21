import asyncio
import json
import logging
import re
from datetime import datetime, timedelta
from typing import Optional

import dateparser
from dateutil import parser as date_parser

from voiceflow.core.config import settings
from voiceflow.core.exceptions import CompletionError
from voiceflow.core.groq_client import TextCompletion
from voiceflow.schemas.intent import ParsedIntent, TaskIntent, EventIntent
from voiceflow.utils.timezone import ensure_local, ensure_utc

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a helpful assistant that parses voice commands into structured task "
    "or event data. Always return a single valid JSON object and nothing else."
)

PROMPT_TEMPLATE = """Parse the following voice command and determine if it's a task or calendar event.
Extract relevant details and return a JSON object.

Voice command: "{transcript}"

Return JSON in this format:
{{
  "type": "task" | "event",
  "description": "task description (for tasks)",
  "title": "event title (for events)",
  "dueDate": "ISO 8601 date-time (optional, tasks only)",
  "startTime": "ISO 8601 date-time (events)",
  "endTime": "ISO 8601 date-time (events)",
  "reminderTime": "ISO 8601 date-time (optional, events)"
}}

Rules:
- Resolve every relative expression ("tomorrow", "next Friday", "in 2 hours") against the current date/time below and return absolute ISO 8601 values.
- Interpret clock times in the user's timezone ({timezone}) and include the UTC offset.
- If the user only mentions a day, do not invent a precise clock time: return the date only (YYYY-MM-DD).
- Leave out fields the user did not mention.

Examples:
- "Remind me to buy milk tomorrow at 5 PM" -> task with dueDate
- "Schedule meeting with John for Tuesday at 10 AM" -> event
- "Call mom" -> simple task without date
- "Doctor appointment next Friday at 2 PM" -> event

Current date/time: {reference_time}
"""

FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)


def build_prompt(transcript: str, reference_time: datetime, tz_name: str = None) -> str:
    return PROMPT_TEMPLATE.format(
        transcript=transcript.replace('"', "'"),
        timezone=tz_name or settings.TIMEZONE,
        reference_time=ensure_local(ensure_utc(reference_time), tz_name).isoformat(),
    )


def extract_json_object(content: str) -> dict:
    """Decode the model's reply; anything but a JSON object is a CompletionError."""
    cleaned = FENCE_RE.sub("", content or "").strip()
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise CompletionError(f"Invalid JSON from AI: {e}") from e
    if not isinstance(payload, dict):
        raise CompletionError("AI response is not a JSON object")
    return payload


def coerce_timestamp(value, reference_time: datetime, tz_name: str = None) -> Optional[datetime]:
    """
    Turn a timestamp from the model into an aware UTC datetime.

    ISO 8601 is expected. Anything else ("tomorrow 5pm") is resolved with
    dateparser relative to the reference time. Unresolvable values are None.
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        dt = date_parser.isoparse(text)
    except ValueError:
        base = ensure_local(ensure_utc(reference_time), tz_name)
        dt = dateparser.parse(text, settings={
            'RELATIVE_BASE': base.replace(tzinfo=None),
            'PREFER_DATES_FROM': 'future',
            'TIMEZONE': tz_name or settings.TIMEZONE,
            'RETURN_AS_TIMEZONE_AWARE': True,
        })
        if dt is None:
            logger.warning(f"⚠️ [Intent] Could not resolve timestamp '{text}'")
            return None
        logger.info(f"🔍 [DateParser] '{text}' -> {dt}")

    # Naive values are in the user's timezone
    return ensure_utc(ensure_local(dt, tz_name))


def _text_field(payload: dict, *names: str) -> Optional[str]:
    for name in names:
        value = payload.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def build_intent(payload: dict, transcript: str, reference_time: datetime, tz_name: str = None) -> ParsedIntent:
    """Validate a decoded payload into a tagged intent."""
    kind = payload.get("type")
    kind = kind.strip().lower() if isinstance(kind, str) else None

    if kind == "task":
        return TaskIntent(
            description=_text_field(payload, "description", "title") or transcript,
            due_date=coerce_timestamp(payload.get("dueDate"), reference_time, tz_name),
        )

    if kind == "event":
        start = coerce_timestamp(payload.get("startTime"), reference_time, tz_name) or ensure_utc(reference_time)
        end = coerce_timestamp(payload.get("endTime"), reference_time, tz_name)
        if end is None or end < start:
            end = start + timedelta(hours=1)
        reminder = coerce_timestamp(payload.get("reminderTime"), reference_time, tz_name)
        if reminder is None or reminder > start:
            reminder = start - timedelta(minutes=settings.EVENT_REMINDER_MINUTES)
        return EventIntent(
            title=_text_field(payload, "title", "description") or transcript,
            start_time=start,
            end_time=end,
            reminder_time=reminder,
        )

    raise CompletionError(f"Unrecognized intent type: {payload.get('type')!r}")


def fallback_intent(transcript: str) -> TaskIntent:
    """Never lose the user's words: keep them verbatim as a plain task."""
    return TaskIntent(description=transcript, is_fallback=True)


class IntentParser:
    """
    Turns a transcript into a task or event intent using a text-completion
    model. The model is treated as unreliable: transport errors, timeouts,
    invalid JSON and unknown shapes all fall back to a verbatim task.
    """

    def __init__(self, completion: TextCompletion, timeout: float = None, tz_name: str = None):
        self.completion = completion
        self.timeout = settings.AI_TIMEOUT_SECONDS if timeout is None else timeout
        self.tz_name = tz_name

    async def parse(self, transcript: str, reference_time: datetime) -> ParsedIntent:
        logger.info(f"Processing Voice: '{transcript}' at {reference_time}")
        try:
            content = await asyncio.wait_for(
                self.completion.complete(SYSTEM_INSTRUCTION, build_prompt(transcript, reference_time, self.tz_name)),
                timeout=self.timeout,
            )
            payload = extract_json_object(content)
            intent = build_intent(payload, transcript, reference_time, self.tz_name)
        except asyncio.TimeoutError:
            logger.error(f"⏱️ [Intent] Completion timed out after {self.timeout}s, keeping transcript as task")
            return fallback_intent(transcript)
        except Exception as e:
            logger.error(f"Error parsing voice command: {e}")
            return fallback_intent(transcript)

        logger.info(f"🧠 [Intent] {intent.kind}: {intent.model_dump(exclude={'kind', 'is_fallback'})}")
        return intent
