"""
Exception types shared across services.

ConfigError is fatal at startup, ProviderError subclasses abort a single
mention, StorageError fails the whole poll cycle.
"""


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class ProviderError(RuntimeError):
    """Raised when an external provider call fails."""


class TwitterError(ProviderError):
    """Raised when a Twitter API call fails."""


class VisionError(ProviderError):
    """Raised when image labeling fails or returns nothing."""


class CompletionError(ProviderError):
    """Raised when the language model call fails or returns nothing."""


class ImageGenerationError(ProviderError):
    """Raised when image generation fails or returns no image."""


class StorageError(RuntimeError):
    """Raised when the dedup store cannot be written."""
