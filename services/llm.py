"""
LLM client for the OpenAI chat completions API.

Rewrites the avatar label list into a richer image description.
"""

import logging

import httpx

from config.models import LLM_MODEL
from config.settings import Settings
from services.errors import CompletionError
from utils.api import OPENAI_CHAT_URL, get_openai_headers

logger = logging.getLogger(__name__)


class LLMClient:
    """Async client for OpenAI chat completions."""

    def __init__(
        self,
        settings: Settings,
        model: str = LLM_MODEL,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        """
        Initialize LLM client.

        Args:
            settings: Application settings (API key, timeout).
            model: OpenAI model identifier.
            transport: Optional httpx transport, used by tests.
        """
        self.api_key = settings.openai_api_key
        self.timeout = settings.request_timeout_seconds
        self.model = model
        self.transport = transport

    async def complete(self, prompt: str) -> str:
        """
        Send a single user prompt and return the reply text.

        Args:
            prompt: Fully rendered prompt.

        Returns:
            Generated text response, stripped.

        Raises:
            CompletionError: On HTTP failure or an empty/malformed response.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    OPENAI_CHAT_URL,
                    headers=get_openai_headers(self.api_key),
                    json={
                        "model": self.model,
                        "messages": [{"role": "user", "content": prompt}]
                    }
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise CompletionError(f"OpenAI API error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise CompletionError(f"OpenAI request failed: {e}") from e
        except ValueError as e:
            raise CompletionError(f"OpenAI returned invalid JSON: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise CompletionError("OpenAI response did not include message content") from e

        content = (content or "").strip()
        if not content:
            raise CompletionError("OpenAI returned an empty completion")

        logger.info(f"[LLM] Generated response: {content[:100]}...")
        return content
