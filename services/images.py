"""
Image value type and helpers.

Images are held as standard base64 text and decoded on demand.
"""

import base64
import binascii
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Image:
    """Immutable base64-encoded image."""

    base64: str

    @classmethod
    def from_base64(cls, data: str) -> "Image":
        return cls(base64=data)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Image":
        return cls(base64=base64.b64encode(data).decode())

    @classmethod
    def from_file(cls, path: str | Path) -> "Image":
        with open(path, "rb") as f:
            return cls.from_bytes(f.read())

    def bytes(self) -> bytes:
        """
        Decode the image to raw bytes.

        Raises:
            ValueError: If the stored text is not valid base64.
        """
        try:
            return base64.b64decode(self.base64, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 image data: {e}") from e

    def save(self, path: str | Path) -> Path:
        """Write the decoded image to path, returning the path."""
        path = Path(path)
        path.write_bytes(self.bytes())
        return path


async def fetch_image(
    url: str,
    timeout: float = 60.0,
    transport: httpx.AsyncBaseTransport | None = None
) -> Image:
    """
    Download an image.

    Args:
        url: Image URL.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use MockTransport).

    Returns:
        The downloaded Image.
    """
    async with httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True) as client:
        response = await client.get(url)
        response.raise_for_status()
        data = response.content

    logger.info(f"[IMAGE] Fetched {len(data)} bytes from {url}")
    return Image.from_bytes(data)


def new_image_path(images_dir: str | Path) -> Path:
    """Return a unique image-<uuid>.png path, creating the directory if needed."""
    directory = Path(images_dir)
    directory.mkdir(parents=True, exist_ok=True)
    return directory / f"image-{uuid.uuid4()}.png"
