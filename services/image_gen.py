"""
Image generation client using the OpenAI images API.

Generates a single DALL-E 3 image and returns it base64-encoded.
Model, quality and response format are fixed in config.models.
"""

import logging

import httpx

from config.models import IMAGE_MODEL, IMAGE_QUALITY
from config.settings import Settings
from services.errors import ImageGenerationError
from services.images import Image
from utils.api import OPENAI_IMAGES_URL, get_openai_headers

logger = logging.getLogger(__name__)


class ImageGenClient:
    """Async client for OpenAI image generation."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = settings.openai_api_key
        self.timeout = settings.image_timeout_seconds
        self.transport = transport

    async def generate(self, description: str, width: int, height: int) -> Image:
        """
        Generate an image from a text description.

        Args:
            description: Prompt for the image.
            width: Image width in pixels.
            height: Image height in pixels.

        Returns:
            Generated Image.

        Raises:
            ImageGenerationError: On timeout, HTTP failure or missing image data.
        """
        logger.info(f"[IMAGE_GEN] Starting generation for prompt: {description[:100]}...")

        payload = {
            "prompt": description,
            "n": 1,
            "response_format": "b64_json",
            "model": IMAGE_MODEL,
            "quality": IMAGE_QUALITY,
            "size": f"{width}x{height}"
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    OPENAI_IMAGES_URL,
                    headers=get_openai_headers(self.api_key),
                    json=payload
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise ImageGenerationError(f"Timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise ImageGenerationError(f"API error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ImageGenerationError(f"Request failed: {e}") from e
        except ValueError as e:
            raise ImageGenerationError(f"Invalid JSON response: {e}") from e

        if not isinstance(data, dict):
            raise ImageGenerationError("Images API returned an unexpected payload")

        images = data.get("data") or []
        if not isinstance(images, list) or not all(isinstance(item, dict) for item in images):
            raise ImageGenerationError("Images API returned an unexpected payload")

        b64 = images[0].get("b64_json") if images else None
        if not b64:
            raise ImageGenerationError("No image data in response")

        image = Image.from_base64(b64)
        logger.info(f"[IMAGE_GEN] Generated image: {len(b64)} base64 chars")
        return image
