"""
Twitter client using tweepy for Twitter API v2.

Handles mention search, profile lookup, media uploads and replies.
"""

import io
import logging
import mimetypes
from typing import Any

import tweepy

from config.settings import Settings
from services.errors import TwitterError
from services.types import Mention, Profile

logger = logging.getLogger(__name__)

# search_recent_tweets accepts 10..100 results per page
SEARCH_MIN_RESULTS = 10
SEARCH_MAX_RESULTS = 100


class TwitterClient:
    """Twitter API v2 client using tweepy."""

    def __init__(
        self,
        settings: Settings,
        client: tweepy.Client | None = None,
        api_v1: tweepy.API | None = None
    ):
        """
        Initialize Twitter client with credentials from settings.

        Args:
            settings: Application settings.
            client: Prebuilt v2 client (tests pass a fake).
            api_v1: Prebuilt v1.1 API for media uploads.
        """
        self.username = settings.twitter_username

        # API v2 client for tweets
        self.client = client or tweepy.Client(
            bearer_token=settings.twitter_bearer_token,
            consumer_key=settings.twitter_api_key,
            consumer_secret=settings.twitter_api_secret,
            access_token=settings.twitter_access_token,
            access_token_secret=settings.twitter_access_secret
        )

        # API v1.1 auth for media uploads (v2 doesn't support media upload yet)
        if api_v1 is None:
            auth = tweepy.OAuth1UserHandler(
                settings.twitter_api_key,
                settings.twitter_api_secret,
                settings.twitter_access_token,
                settings.twitter_access_secret
            )
            api_v1 = tweepy.API(auth)
        self.api_v1 = api_v1

    async def search_mentions(self, query: str, limit: int) -> list[Mention]:
        """
        Search recent tweets matching query.

        Args:
            query: Search query, e.g. "@botname".
            limit: Maximum number of mentions to return.

        Returns:
            Mentions, newest first as returned by the API.
        """
        max_results = max(SEARCH_MIN_RESULTS, min(limit, SEARCH_MAX_RESULTS))
        try:
            response = self.client.search_recent_tweets(
                query=query,
                max_results=max_results,
                expansions=["author_id"],
                tweet_fields=["created_at", "author_id"],
                user_fields=["username", "name"]
            )
        except tweepy.TweepyException as e:
            logger.error(f"[TWITTER] Error searching mentions: {e}")
            raise TwitterError(f"Mention search failed: {e}") from e

        if not response.data:
            logger.info("[TWITTER] No mentions found")
            return []

        # Build user lookup from includes
        users = {}
        if response.includes and "users" in response.includes:
            for user in response.includes["users"]:
                users[str(user.id)] = user

        mentions = []
        for tweet in response.data[:limit]:
            author_id = str(tweet.author_id) if tweet.author_id is not None else None
            author = users.get(author_id)
            username = author.username if author else None
            tweet_id = str(tweet.id) if tweet.id is not None else None
            permanent_url = None
            if username and tweet_id:
                permanent_url = f"https://twitter.com/{username}/status/{tweet_id}"

            mentions.append(Mention(
                id=tweet_id,
                username=username,
                name=author.name if author else None,
                user_id=author_id,
                text=tweet.text,
                timestamp=tweet.created_at,
                permanent_url=permanent_url
            ))

        logger.info(f"[TWITTER] Found {len(mentions)} mentions for {query}")
        return mentions

    async def get_profile(self, username: str) -> Profile:
        """
        Get Twitter user profile by username.

        Args:
            username: Twitter handle (with or without @).

        Returns:
            Profile with avatar URL when the user has one.

        Raises:
            TwitterError: If the lookup fails or the user does not exist.
        """
        username = username.lstrip("@")
        try:
            response = self.client.get_user(
                username=username,
                user_fields=["profile_image_url", "name"]
            )
        except tweepy.TweepyException as e:
            raise TwitterError(f"Profile lookup for @{username} failed: {e}") from e

        if not response.data:
            raise TwitterError(f"User @{username} not found")

        user = response.data
        return Profile(
            username=user.username,
            name=user.name,
            avatar_url=user.profile_image_url or None
        )

    async def resolve_avatar_url(self, profile: Profile) -> str | None:
        """Return the profile's avatar URL, or None when it has none."""
        return profile.avatar_url

    async def upload_media(self, image_bytes: bytes, media_type: str = "image/png") -> str:
        """
        Upload media to Twitter.

        Uses v1.1 API as v2 doesn't support media uploads yet.

        Args:
            image_bytes: Raw image bytes to upload.
            media_type: MIME type of the image.

        Returns:
            Media ID string for use in tweets.
        """
        extension = mimetypes.guess_extension(media_type) or ".png"
        filename = f"image{extension}"

        try:
            file_obj = io.BytesIO(image_bytes)
            file_obj.name = filename
            media = self.api_v1.media_upload(filename=filename, file=file_obj)
        except tweepy.TweepyException as e:
            raise TwitterError(f"Media upload failed: {e}") from e

        media_id = str(media.media_id)
        logger.info(f"[TWITTER] Uploaded media with ID {media_id}")
        return media_id

    async def post_reply(
        self,
        text: str,
        reply_to: str | None = None,
        media: bytes | None = None,
        media_type: str | None = None
    ) -> dict[str, Any]:
        """
        Post a tweet, optionally as a reply and with one image attached.

        Args:
            text: Tweet text content.
            reply_to: ID of the tweet to reply to.
            media: Raw image bytes to attach.
            media_type: MIME type of media.

        Returns:
            Tweet data including id and text.
        """
        media_ids = None
        if media is not None:
            media_ids = [await self.upload_media(media, media_type or "image/png")]

        try:
            response = self.client.create_tweet(
                text=text,
                in_reply_to_tweet_id=reply_to,
                media_ids=media_ids
            )
        except tweepy.TweepyException as e:
            raise TwitterError(f"Posting reply failed: {e}") from e

        tweet_id = str(response.data["id"])
        logger.info(f"[TWITTER] Replied with tweet {tweet_id} to {reply_to}")
        return {"id": tweet_id, "text": text, "reply_to": reply_to}
