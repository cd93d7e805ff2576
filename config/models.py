"""
Model configuration for the avatar remix bot.

Centralized provider models and fixed request parameters.
Change models here to update them everywhere.
"""

# LLM Models (for rewriting avatar descriptions)
LLM_MODEL = "gpt-4"

# Image Models (for image generation)
IMAGE_MODEL = "dall-e-3"
IMAGE_QUALITY = "hd"
IMAGE_WIDTH = 1792
IMAGE_HEIGHT = 1024

# Vision labeling
VISION_MAX_LABELS = 10

# Media type attached to replies (DALL-E returns PNG)
REPLY_MEDIA_TYPE = "image/png"
