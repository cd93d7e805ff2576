"""
Mention poller.

Fetches recent mentions of the bot, filters out the ones already in the
dedup store and runs the pipeline over the rest, one at a time. Every
successful reply is committed and persisted before the next mention starts.
"""

import asyncio
import logging
import time
from typing import Any

from config.settings import Settings
from services.errors import StorageError
from services.pipeline import MentionPipeline
from services.providers import SocialPlatform
from services.storage import DedupStore

logger = logging.getLogger(__name__)


class MentionPoller:
    """Runs poll cycles against the live mention feed."""

    def __init__(
        self,
        settings: Settings,
        twitter: SocialPlatform,
        pipeline: MentionPipeline,
        store: DedupStore
    ):
        self.settings = settings
        self.twitter = twitter
        self.pipeline = pipeline
        self.store = store
        # Serialises every store mutation (scheduled cycles, manual triggers, forget)
        self.lock = asyncio.Lock()
        self.last_cycle: dict[str, Any] | None = None

    @property
    def query(self) -> str:
        return f"@{self.settings.twitter_username}"

    async def run_cycle(self) -> dict[str, Any]:
        """
        Run one poll cycle.

        Returns:
            Summary of what happened.

        Raises:
            TwitterError: If the mention search itself fails.
            StorageError: If a commit cannot be persisted.
        """
        async with self.lock:
            return await self._run_cycle()

    async def _run_cycle(self) -> dict[str, Any]:
        start_time = time.time()
        logger.info("[POLLER] === Starting a new iteration ===")

        mentions = await self.twitter.search_mentions(self.query, self.settings.max_mentions)
        logger.info(f"[POLLER] Found {len(mentions)} mentions")

        stats = {
            "found": len(mentions),
            "skipped_missing_id": 0,
            "already_processed": 0,
            "replied": 0,
            "skipped": 0,
            "failed": 0
        }

        for mention in mentions:
            if not mention.id:
                stats["skipped_missing_id"] += 1
                continue

            if self.store.contains(mention.id):
                logger.info(f"[POLLER] Mention {mention.id} already processed. Skipping")
                stats["already_processed"] += 1
                continue

            try:
                result = await self.pipeline.run(mention)
            except Exception as e:
                logger.error(f"[POLLER] Error processing mention {mention.id}: {e}")
                logger.exception(e)
                stats["failed"] += 1
                continue

            if result.committed:
                self._commit(mention.id)
                stats["replied"] += 1
            else:
                logger.info(f"[POLLER] Mention {mention.id}: {result.value}")
                stats["skipped"] += 1

        duration = round(time.time() - start_time, 1)
        logger.info(f"[POLLER] === Completed in {duration}s ===")
        logger.info(
            f"[POLLER] Summary: found={stats['found']} | replied={stats['replied']} | "
            f"failed={stats['failed']} | already_processed={stats['already_processed']}"
        )

        summary = {"success": True, **stats, "duration_seconds": duration}
        self.last_cycle = summary
        return summary

    def _commit(self, mention_id: str) -> None:
        """Insert and persist, undoing the insert if the write fails."""
        self.store.insert(mention_id)
        try:
            self.store.persist()
        except StorageError:
            self.store.remove(mention_id)
            raise

    async def check_mentions(self) -> dict[str, Any]:
        """
        Fetch mentions WITHOUT processing (dry run).

        Returns:
            Mentions found and whether each would be processed.
        """
        logger.info("[POLLER] Checking mentions (dry run)")
        mentions = await self.twitter.search_mentions(self.query, self.settings.max_mentions)

        found = []
        for mention in mentions:
            found.append({
                "tweet_id": mention.id,
                "author": mention.username,
                "text": (mention.text or "")[:100],
                "pending": bool(mention.id) and not self.store.contains(mention.id)
            })

        return {
            "found": len(found),
            "pending": sum(1 for m in found if m["pending"]),
            "mentions": found,
            "dry_run": True
        }

    async def forget(self, mention_id: str) -> bool:
        """
        Remove a mention from the dedup store so it is processed again.

        Returns:
            True if the mention was in the store.
        """
        async with self.lock:
            if not self.store.remove(mention_id):
                return False
            try:
                self.store.persist()
            except StorageError:
                self.store.insert(mention_id)
                raise
            logger.info(f"[POLLER] Forgot mention {mention_id}")
            return True
