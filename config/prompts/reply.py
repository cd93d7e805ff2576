"""
Reply Prompt - Text posted alongside the generated image.

Used by MentionPipeline when replying to a mention.
"""

REPLY_TEXT_TEMPLATE = "Check out this image! @{username}"


def build_reply_text(username: str) -> str:
    """Render the reply text for the mention author."""
    return REPLY_TEXT_TEMPLATE.format(username=username.lstrip("@"))
