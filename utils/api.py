"""
Provider API configuration.

Centralized endpoints and header helpers for the HTTP providers.
Keys are passed in from Settings, never read from the environment here.
"""

# OpenAI API endpoints
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_IMAGES_URL = "https://api.openai.com/v1/images/generations"

# Google Cloud Vision endpoint
GOOGLE_VISION_URL = "https://vision.googleapis.com/v1/images:annotate"


def get_openai_headers(api_key: str) -> dict:
    """
    Get headers for OpenAI API requests.

    Args:
        api_key: OpenAI API key.

    Returns:
        dict: Headers including authorization and content type.
    """
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json"
    }
