"""
Capability interfaces consumed by the mention pipeline.

Production clients (TwitterClient, GoogleVisionClient, LLMClient,
ImageGenClient) and test fakes both satisfy these protocols.
"""

from typing import Any, Protocol

from services.images import Image
from services.types import Mention, Profile


class SocialPlatform(Protocol):
    async def search_mentions(self, query: str, limit: int) -> list[Mention]: ...

    async def get_profile(self, username: str) -> Profile: ...

    async def resolve_avatar_url(self, profile: Profile) -> str | None: ...

    async def post_reply(
        self,
        text: str,
        reply_to: str | None = None,
        media: bytes | None = None,
        media_type: str | None = None
    ) -> dict[str, Any]: ...


class VisionProvider(Protocol):
    async def describe(self, image_bytes: bytes, max_labels: int) -> list[str]: ...


class TextProvider(Protocol):
    async def complete(self, prompt: str) -> str: ...


class ImageGenerator(Protocol):
    async def generate(self, description: str, width: int, height: int) -> Image: ...
