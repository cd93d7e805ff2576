"""
Prompts module - text templates for different services.

Contains:
- reply.py: Reply text posted with the generated image

The description rewrite prompt is operator-supplied (TRANSLATE_PROMPT).
"""

from config.prompts.reply import REPLY_TEXT_TEMPLATE, build_reply_text

__all__ = [
    "REPLY_TEXT_TEMPLATE",
    "build_reply_text",
]
