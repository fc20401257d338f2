"""
Groq AI Service.
Alternative insight provider using Groq-hosted Llama models.
"""
import logging
from typing import Optional
from groq import AsyncGroq, APIError, APIStatusError
from app.core.config import Settings
from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class GroqEngine:
    """Text-in/text-out client for Groq chat completions."""

    provider_name = "Groq"

    def __init__(self, settings: Settings, client: Optional[AsyncGroq] = None):
        """Initialize Groq client with API key from settings."""
        self.api_key = settings.groq_api_key
        self.model = settings.groq_model
        self.temperature = settings.ai_temperature
        self.top_p = settings.ai_top_p
        self.max_tokens = settings.ai_max_output_tokens
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> AsyncGroq:
        if self._client is None:
            self._client = AsyncGroq(api_key=self.api_key)
        return self._client

    async def generate(self, prompt: str) -> str:
        """
        Generate text for a prompt. Groq has no top-k sampling parameter.

        Raises:
            UpstreamError: Groq API or connection failure
        """
        logger.info(f"Requesting insight from Groq ({self.model})")
        try:
            chat_completion = await self.client.chat.completions.create(
                messages=[{"role": "user", "content": prompt}],
                model=self.model,
                temperature=self.temperature,
                top_p=self.top_p,
                max_tokens=self.max_tokens,
            )
        except APIStatusError as e:
            logger.error(f"Groq API HTTP error {e.status_code}: {e.body}")
            raise UpstreamError(e.status_code, e.body) from e
        except APIError as e:
            logger.error(f"Groq request failed: {e}")
            raise UpstreamError(None, str(e)) from e

        if not chat_completion.choices:
            logger.error("Groq returned no choices")
            raise UpstreamError(None, {"message": "Groq returned no choices"})
        return chat_completion.choices[0].message.content or ""
