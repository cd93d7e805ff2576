"""
Avatar Remix Bot - replies to mentions with a reimagined avatar.

FastAPI application with APScheduler for the mention poll loop.
"""

import logging
import os
import signal
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, HTTPException

from config.settings import Settings, load_settings
from services.errors import ConfigError
from services.image_gen import ImageGenClient
from services.llm import LLMClient
from services.pipeline import MentionPipeline
from services.poller import MentionPoller
from services.storage import DedupStore
from services.twitter import TwitterClient
from services.vision import GoogleVisionClient

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
POLL_JOB_ID = "mentions"

# Errors from poll cycles that brought the process down
_fatal_errors: list[BaseException] = []


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def build_poller(settings: Settings) -> MentionPoller:
    """Wire the dedup store, providers and pipeline into a poller."""
    store = DedupStore.load(settings.storage_file)
    twitter = TwitterClient(settings)
    pipeline = MentionPipeline(
        settings,
        twitter=twitter,
        vision=GoogleVisionClient(settings),
        llm=LLMClient(settings),
        image_gen=ImageGenClient(settings)
    )
    return MentionPoller(settings, twitter, pipeline, store)


def _on_job_error(event: JobExecutionEvent) -> None:
    """A failed poll cycle is fatal: stop the process and let the supervisor restart it."""
    logger.critical(f"[SCHEDULER] Poll cycle failed, shutting down: {event.exception!r}")
    _fatal_errors.append(event.exception)
    os.kill(os.getpid(), signal.SIGTERM)


def create_app(settings: Settings, poller: MentionPoller) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings.
        poller: Poller that owns the dedup store.

    Returns:
        Configured FastAPI app.
    """
    scheduler = AsyncIOScheduler()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application startup and shutdown."""
        logger.info("Starting application...")
        logger.info("=" * 50)
        logger.info(f"TWITTER ACCOUNT: @{settings.twitter_username}")
        logger.info(f"PROCESSED MENTIONS: {len(poller.store)}")
        logger.info("=" * 50)

        scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
        scheduler.add_job(
            poller.run_cycle,
            "interval",
            seconds=settings.poll_interval_seconds,
            id=POLL_JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True
        )
        scheduler.start()
        logger.info(f"Scheduled mentions every {settings.poll_interval_seconds} seconds")

        yield

        logger.info("Shutting down application...")
        scheduler.shutdown(wait=False)
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Avatar Remix Bot",
        description="Replies to mentions with an image generated from the author's avatar",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.poller = poller
    app.state.scheduler = scheduler

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "scheduler_running": scheduler.running,
            "processed_mentions": len(poller.store),
            "version": VERSION
        }

    @app.get("/metrics")
    async def metrics():
        """Get bot metrics and the last cycle summary."""
        return {
            "processed_mentions": len(poller.store),
            "last_cycle": poller.last_cycle
        }

    @app.get("/check-mentions")
    async def check_mentions():
        """Fetch mentions WITHOUT processing (dry run)."""
        try:
            return await poller.check_mentions()
        except Exception as e:
            logger.error(f"Error checking mentions: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/process-mentions")
    async def process_mentions():
        """Run one poll cycle now."""
        try:
            return await poller.run_cycle()
        except Exception as e:
            logger.error(f"Error processing mentions: {e}")
            logger.exception(e)
            raise HTTPException(status_code=500, detail=str(e))

    @app.delete("/processed/{mention_id}")
    async def forget_mention(mention_id: str):
        """Remove a mention from the dedup store so it is processed again."""
        try:
            removed = await poller.forget(mention_id)
        except Exception as e:
            logger.error(f"Error forgetting mention {mention_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        if not removed:
            raise HTTPException(status_code=404, detail=f"Mention {mention_id} not processed")
        return {"status": "forgotten", "mention_id": mention_id}

    return app


def main() -> int:
    configure_logging()

    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    logging.getLogger().setLevel(settings.log_level.upper())
    app = create_app(settings, build_poller(settings))

    _fatal_errors.clear()
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
    return 1 if _fatal_errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
