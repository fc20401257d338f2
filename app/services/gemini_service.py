"""
Gemini AI Service.
Sends the customer health prompt to Google's generateContent endpoint.
"""
import logging
from typing import Optional
import httpx
from app.core.config import Settings
from app.core.errors import UpstreamError, response_details

logger = logging.getLogger(__name__)


class GeminiEngine:
    """Text-in/text-out client for the Gemini REST API."""

    provider_name = "Gemini"

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.gemini_api_key
        self.api_base = settings.gemini_api_base.rstrip("/")
        self.model = settings.gemini_model
        self.timeout = settings.http_timeout
        self.generation_config = {
            "temperature": settings.ai_temperature,
            "topK": settings.ai_top_k,
            "topP": settings.ai_top_p,
            "maxOutputTokens": settings.ai_max_output_tokens,
        }
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, prompt: str) -> str:
        """
        Generate text for a prompt.

        Returns:
            Text of the first candidate

        Raises:
            UpstreamError: non-2xx response, network failure or a response
                without candidate text
        """
        logger.info(f"Requesting insight from Gemini ({self.model})")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.api_base}/models/{self.model}:generateContent",
                    params={"key": self.api_key},
                    headers={"Content-Type": "application/json"},
                    json={
                        "contents": [{"parts": [{"text": prompt}]}],
                        "generationConfig": self.generation_config,
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"Gemini request failed: {e}")
            raise UpstreamError(None, str(e)) from e

        if response.is_error:
            details = response_details(response)
            logger.error(f"Gemini API HTTP error {response.status_code}: {details}")
            raise UpstreamError(response.status_code, details)

        data = response_details(response)
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"Gemini response has no candidate text: {data}")
            raise UpstreamError(None, {"message": "Gemini returned no candidate text", "response": data}) from e
