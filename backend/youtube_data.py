"""
YouTube Data Fetcher
Fetches video and channel metadata with the YouTube Data API v3, and
transcripts with youtube-transcript-api.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

import httpx
from pydantic import ValidationError
from youtube_transcript_api import YouTubeTranscriptApi

from models import ChannelMetadata, VideoRecord
from rate_limiter import MinIntervalLimiter

logger = logging.getLogger(__name__)

API_BASE_URL = "https://www.googleapis.com/youtube/v3"
VIDEO_BATCH_SIZE = 50              # videos.list accepts at most 50 ids per request
VIDEO_PARTS = "snippet,contentDetails,statistics,status"
CHANNEL_PARTS = "snippet,statistics,contentDetails"
REQUEST_TIMEOUT = 30.0


def _to_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_video_item(item: dict, fetched_at: Optional[str] = None) -> VideoRecord:
    """Map one videos.list item to a VideoRecord. Raises ValidationError on bad input."""
    snippet = item.get("snippet") or {}
    content_details = item.get("contentDetails") or {}
    statistics = item.get("statistics") or {}
    status = item.get("status") or {}

    return VideoRecord(
        id=item.get("id") or "",
        title=snippet.get("title", ""),
        description=snippet.get("description"),
        channel_id=snippet.get("channelId"),
        channel_title=snippet.get("channelTitle"),
        published_at=snippet.get("publishedAt"),
        category_id=snippet.get("categoryId"),
        tags=snippet.get("tags") or [],
        duration=content_details.get("duration"),
        has_caption=content_details.get("caption") == "true",
        content_rating=content_details.get("contentRating") or {},
        view_count=_to_int(statistics.get("viewCount")),
        like_count=_to_int(statistics.get("likeCount")),
        comment_count=_to_int(statistics.get("commentCount")),
        privacy_status=status.get("privacyStatus"),
        made_for_kids=status.get("madeForKids"),
        self_declared_made_for_kids=status.get("selfDeclaredMadeForKids"),
        embeddable=status.get("embeddable"),
        fetched_at=fetched_at or _now(),
    )


def parse_channel_item(item: dict, fetched_at: Optional[str] = None) -> ChannelMetadata:
    snippet = item.get("snippet") or {}
    statistics = item.get("statistics") or {}
    return ChannelMetadata(
        subscriber_count=_to_int(statistics.get("subscriberCount")),
        video_count=_to_int(statistics.get("videoCount")),
        view_count=_to_int(statistics.get("viewCount")),
        description=snippet.get("description") or "",
        published_at=snippet.get("publishedAt"),
        thumbnails=snippet.get("thumbnails") or {},
        fetched_at=fetched_at or _now(),
    )


class YouTubeDataFetcher:
    """
    Thin async client for videos.list and channels.list.

    Per-request failures are logged and reported as empty results so one bad
    batch or channel never stops a run.
    """

    def __init__(self, api_key: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        """Initialize with a YouTube Data API key."""
        self.api_key = api_key
        self.client = client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT)

    async def __aenter__(self) -> "YouTubeDataFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _make_request_with_retry(self, url: str, params: dict, retries: int = 3) -> Optional[httpx.Response]:
        """Make HTTP request with retry logic for transient errors"""
        delay = 1.0
        last_exception = None

        for attempt in range(retries):
            try:
                response = await self.client.get(url, params=params)
                # Success or client error (4xx) - return immediately
                if response.status_code < 500:
                    return response

                logger.warning(f"Server error {response.status_code}, retrying (attempt {attempt+1}/{retries})...")
            except (httpx.RequestError, httpx.TimeoutException) as e:
                last_exception = e
                logger.warning(f"Network error {e!r}, retrying (attempt {attempt+1}/{retries})...")

            if attempt < retries - 1:
                await asyncio.sleep(delay)
                delay *= 2.0

        if last_exception:
            raise last_exception
        return None

    async def _get_items(self, endpoint: str, params: dict) -> list[dict]:
        if not self.api_key:
            logger.info("Note: YouTube API key required for metadata")
            return []

        url = f"{API_BASE_URL}/{endpoint}"
        try:
            response = await self._make_request_with_retry(url, {**params, "key": self.api_key})
            if response is not None and response.status_code == 200:
                return response.json().get("items", [])
            status = response.status_code if response is not None else "no response"
            logger.error(f"YouTube API error on {endpoint}: {status}")
        except Exception as e:
            logger.error(f"Error calling {endpoint}: {e}")
        return []

    async def fetch_video_batch(self, video_ids: list[str]) -> list[VideoRecord]:
        """Fetch up to 50 videos in one request. Unavailable ids are simply absent."""
        items = await self._get_items("videos", {
            "part": VIDEO_PARTS,
            "id": ",".join(video_ids),
            "maxResults": VIDEO_BATCH_SIZE,
        })
        fetched_at = _now()
        records = []
        for item in items:
            try:
                records.append(parse_video_item(item, fetched_at))
            except ValidationError as e:
                logger.warning(f"Skipping malformed video item {item.get('id')!r}: {e.error_count()} errors")
        return records

    async def fetch_videos(self, video_ids: Iterable[str],
                           limiter: Optional[MinIntervalLimiter] = None,
                           on_batch: Optional[Callable[[list[VideoRecord]], object]] = None) -> list[VideoRecord]:
        """
        Fetch any number of videos in batches of 50, one batch at a time.

        `on_batch` receives each batch's records before the next request,
        so callers can persist progress.
        """
        ids = list(dict.fromkeys(video_ids))
        batches = [ids[i:i + VIDEO_BATCH_SIZE] for i in range(0, len(ids), VIDEO_BATCH_SIZE)]
        records = []
        for n, batch in enumerate(batches, start=1):
            logger.info(f"  Processing batch {n}/{len(batches)}...")
            if limiter is not None:
                await limiter.wait()
            fetched = await self.fetch_video_batch(batch)
            if on_batch is not None and fetched:
                on_batch(fetched)
            records.extend(fetched)
        return records

    async def get_channel_metadata(self, channel_id: str) -> Optional[ChannelMetadata]:
        """Channel statistics and snippet, or None when the channel cannot be fetched."""
        items = await self._get_items("channels", {"part": CHANNEL_PARTS, "id": channel_id})
        if not items:
            return None
        try:
            return parse_channel_item(items[0])
        except ValidationError as e:
            logger.warning(f"Malformed channel item for {channel_id}: {e.error_count()} errors")
            return None

    async def close(self) -> None:
        await self.client.aclose()


async def fetch_transcript(video_id: str) -> Optional[str]:
    """Plain transcript text for a video, or None when no transcript is available."""
    try:
        # Run in thread pool since youtube_transcript_api is blocking
        loop = asyncio.get_event_loop()

        def fetch():
            ytt_api = YouTubeTranscriptApi()
            return ytt_api.fetch(video_id)

        transcript = await loop.run_in_executor(None, fetch)
        text = " ".join(segment.text for segment in transcript)
        return text or None
    except Exception as e:
        logger.warning(f"Transcript extraction failed for {video_id}: {e}")
        return None
