"""
Google Cloud Vision client.

Labels an image via the images:annotate LABEL_DETECTION feature.
"""

import base64
import logging

import httpx

from config.settings import Settings
from services.errors import VisionError
from utils.api import GOOGLE_VISION_URL

logger = logging.getLogger(__name__)


class GoogleVisionClient:
    """Async client for Google Vision label detection."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = settings.google_vision_api_key
        self.timeout = settings.request_timeout_seconds
        self.transport = transport

    async def describe(self, image_bytes: bytes, max_labels: int) -> list[str]:
        """
        Label an image.

        Args:
            image_bytes: Raw image bytes.
            max_labels: Maximum number of labels to request.

        Returns:
            Label descriptions, most confident first.

        Raises:
            VisionError: On HTTP failure, an API error payload, or no labels.
        """
        payload = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image_bytes).decode()},
                    "features": [{"type": "LABEL_DETECTION", "maxResults": max_labels}]
                }
            ]
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    GOOGLE_VISION_URL,
                    params={"key": self.api_key},
                    json=payload
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise VisionError(f"Vision API error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise VisionError(f"Vision request failed: {e}") from e
        except ValueError as e:
            raise VisionError(f"Vision returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise VisionError("Vision API returned an unexpected payload")

        result = (data.get("responses") or [{}])[0]
        if "error" in result:
            raise VisionError(f"Vision API error: {result['error'].get('message', result['error'])}")

        labels = [
            annotation["description"]
            for annotation in result.get("labelAnnotations", [])
            if annotation.get("description")
        ][:max_labels]

        if not labels:
            raise VisionError("Vision API returned no labels")

        logger.info(f"[VISION] Labels: {', '.join(labels)}")
        return labels
