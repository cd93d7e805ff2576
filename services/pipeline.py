"""
Mention pipeline.

Turns one mention into one reply:
1. Resolve the author's profile
2. Resolve and fetch the avatar
3. Label the avatar (vision)
4. Rewrite the labels (LLM)
5. Generate a new image and save a copy
6. Reply to the mention with the image

Steps run strictly in order with no retries. A skip is returned as a
PipelineResult; any failure raises and leaves the dedup store untouched.
"""

import logging
import time

from config.models import IMAGE_HEIGHT, IMAGE_WIDTH, REPLY_MEDIA_TYPE, VISION_MAX_LABELS
from config.prompts import build_reply_text
from config.settings import PROMPT_PLACEHOLDER, Settings
from services.errors import CompletionError, VisionError
from services.images import Image, fetch_image, new_image_path
from services.providers import ImageGenerator, SocialPlatform, TextProvider, VisionProvider
from services.types import Mention, PipelineResult

logger = logging.getLogger(__name__)


def build_prompt(template: str, description: str) -> str:
    """Substitute the description into the rewrite prompt template."""
    return template.replace(PROMPT_PLACEHOLDER, description)


def _same_handle(a: str, b: str) -> bool:
    return a.lstrip("@").lower() == b.lstrip("@").lower()


class MentionPipeline:
    """Drives a single mention through describe, rewrite, generate and reply."""

    def __init__(
        self,
        settings: Settings,
        twitter: SocialPlatform,
        vision: VisionProvider,
        llm: TextProvider,
        image_gen: ImageGenerator,
        image_fetcher=fetch_image
    ):
        self.settings = settings
        self.twitter = twitter
        self.vision = vision
        self.llm = llm
        self.image_gen = image_gen
        self.image_fetcher = image_fetcher

    async def run(self, mention: Mention) -> PipelineResult:
        """
        Process one mention.

        Args:
            mention: The mention to reply to.

        Returns:
            REPLIED when the reply was posted, otherwise the skip reason.
        """
        if not mention.username:
            logger.info(f"[PIPELINE] {mention.id}: No author handle. Skipping")
            return PipelineResult.SKIPPED_NO_AUTHOR

        start_time = time.time()
        author = mention.username

        logger.info(f"[PIPELINE] {mention.id}: [1/6] Resolving profile @{author}...")
        profile = await self.twitter.get_profile(author)

        if _same_handle(profile.username, self.settings.twitter_username):
            logger.info(f"[PIPELINE] {mention.id}: Author is the bot itself. Skipping")
            return PipelineResult.SKIPPED_SELF

        avatar_url = await self.twitter.resolve_avatar_url(profile)
        if not avatar_url:
            logger.info(f"[PIPELINE] {mention.id}: @{author} has no avatar. Skipping")
            return PipelineResult.SKIPPED_NO_AVATAR

        logger.info(f"[PIPELINE] {mention.id}: [2/6] Fetching avatar {avatar_url}")
        avatar = await self.image_fetcher(avatar_url, timeout=self.settings.request_timeout_seconds)

        logger.info(f"[PIPELINE] {mention.id}: [3/6] Describing avatar...")
        description = await self.describe(avatar)

        logger.info(f"[PIPELINE] {mention.id}: [4/6] Rewriting description: {description}")
        rewritten = await self.rewrite(description)

        logger.info(f"[PIPELINE] {mention.id}: [5/6] Generating image...")
        image = await self.generate(rewritten)

        logger.info(f"[PIPELINE] {mention.id}: [6/6] Replying to @{author}...")
        await self.reply(mention, image)

        duration = round(time.time() - start_time, 1)
        logger.info(f"[PIPELINE] {mention.id}: Replied to @{author} in {duration}s")
        return PipelineResult.REPLIED

    async def describe(self, image: Image) -> str:
        """Label the image and join the labels with commas."""
        labels = await self.vision.describe(image.bytes(), VISION_MAX_LABELS)
        if not labels:
            raise VisionError("No labels for avatar")
        return ",".join(labels)

    async def rewrite(self, description: str) -> str:
        """Run the description through the configured prompt template."""
        prompt = build_prompt(self.settings.translate_prompt, description)
        rewritten = await self.llm.complete(prompt)
        if not rewritten.strip():
            raise CompletionError("Empty rewritten description")
        return rewritten

    async def generate(self, description: str) -> Image:
        """Generate the reply image and keep a copy in the images directory."""
        image = await self.image_gen.generate(description, IMAGE_WIDTH, IMAGE_HEIGHT)
        output_path = image.save(new_image_path(self.settings.images_dir))
        logger.info(f"[PIPELINE] Saved image to {output_path}")
        return image

    async def reply(self, mention: Mention, image: Image) -> dict:
        """
        Post the generated image as a reply to the mention.

        If this call fails after Twitter accepted the tweet (e.g. a timeout
        reading the response), the mention is not committed and the next
        cycle replies again.
        """
        try:
            return await self.twitter.post_reply(
                text=build_reply_text(mention.username),
                reply_to=mention.id,
                media=image.bytes(),
                media_type=REPLY_MEDIA_TYPE
            )
        except Exception:
            logger.warning(
                f"[PIPELINE] {mention.id}: Reply failed. If Twitter accepted it anyway, "
                f"the next cycle will post a duplicate"
            )
            raise
