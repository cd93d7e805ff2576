"""
Utility modules for the avatar remix bot.

Contains shared functionality used across services.
"""

from utils.api import (
    GOOGLE_VISION_URL,
    OPENAI_CHAT_URL,
    OPENAI_IMAGES_URL,
    get_openai_headers,
)

__all__ = ["GOOGLE_VISION_URL", "OPENAI_CHAT_URL", "OPENAI_IMAGES_URL", "get_openai_headers"]
