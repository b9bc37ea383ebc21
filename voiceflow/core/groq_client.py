import asyncio
import logging
from typing import Protocol
from groq import Groq
from voiceflow.core.config import settings
from voiceflow.core.exceptions import CompletionError

logger = logging.getLogger(__name__)

# Initialize the Groq client only once
if settings.GROQ_API_KEY:
    groq_client = Groq(api_key=settings.GROQ_API_KEY, timeout=settings.AI_TIMEOUT_SECONDS)
else:
    groq_client = None

def get_groq_client():
    """Returns the initialized Groq client."""
    return groq_client


class TextCompletion(Protocol):
    async def complete(self, system_instruction: str, user_prompt: str) -> str: ...


class GroqCompletion:
    """Chat completion over Groq, asking for a JSON object back."""

    def __init__(self, client: Groq = None, model: str = None, temperature: float = None):
        self.client = client or get_groq_client()
        self.model = model or settings.GROQ_MODEL
        self.temperature = settings.AI_TEMPERATURE if temperature is None else temperature

    async def complete(self, system_instruction: str, user_prompt: str) -> str:
        if self.client is None:
            raise CompletionError("GROQ_API_KEY is not configured")

        try:
            # The SDK call is blocking
            response = await asyncio.to_thread(
                self.client.chat.completions.create,
                model=self.model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error(f"❌ Groq completion failed: {e}")
            raise CompletionError(str(e)) from e

        if not response.choices:
            raise CompletionError("No response from AI")
        content = response.choices[0].message.content
        if not content:
            raise CompletionError("No response from AI")
        return content
