"""
Domain types passed between the poller, pipeline and providers.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Mention(BaseModel):
    """A tweet that mentions the bot account."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    username: str | None = None
    name: str | None = None
    user_id: str | None = None
    text: str | None = None
    timestamp: datetime | None = None
    permanent_url: str | None = None


class Profile(BaseModel):
    """Author metadata resolved from a handle."""

    model_config = ConfigDict(frozen=True)

    username: str
    name: str | None = None
    avatar_url: str | None = None


class PipelineResult(str, Enum):
    """How a pipeline run ended when it did not raise."""

    REPLIED = "replied"
    SKIPPED_NO_AUTHOR = "skipped_no_author"
    SKIPPED_SELF = "skipped_self"
    SKIPPED_NO_AVATAR = "skipped_no_avatar"

    @property
    def committed(self) -> bool:
        return self is PipelineResult.REPLIED
