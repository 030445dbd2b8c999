"""YouTube Guardian - Channel Profiler
Copyright (c) 2026 beautifulplanet
Licensed under MIT License

Builds one reputation profile per channel from every watched video, and
optionally enriches it with channel-level metadata from the YouTube Data API.
"""

import dataclasses
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Mapping, Optional

from models import ChannelMetadata, ChannelProfile, VideoRecord, WatchEvent
from rate_limiter import MinIntervalLimiter

logger = logging.getLogger(__name__)

TOP_CATEGORIES = 3
TOP_TAGS = 10

FetchChannelMetadata = Callable[[str], Awaitable[Optional[ChannelMetadata]]]
OnFetched = Callable[[str, ChannelMetadata], None]


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _top_items(counts: Mapping[str, int], limit: int) -> list[tuple[str, int]]:
    # sorted() is stable, so equal counts keep first-seen order
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:limit]


class ChannelProfiler:
    """
    Aggregates VideoRecords per channel.

    Videos without a channel id and watch events without a resolvable video
    id are skipped and counted in `stats`.
    """

    def __init__(self):
        self.stats = Counter()

    def _watch_times(self, watch_events: Iterable[WatchEvent]) -> dict[str, list[tuple[datetime, str]]]:
        times: dict[str, list[tuple[datetime, str]]] = {}
        for event in watch_events:
            video_id = event.resolved_video_id()
            if not video_id:
                self.stats["unresolved_watch_events"] += 1
                continue
            parsed = parse_timestamp(event.watched_at)
            if parsed is None:
                self.stats["unparseable_timestamps"] += 1
                continue
            times.setdefault(video_id, []).append((parsed, event.watched_at))
        return times

    def build(self, videos: Iterable[VideoRecord],
              watch_events: Iterable[WatchEvent] = ()) -> list[ChannelProfile]:
        self.stats = Counter()
        watch_times = self._watch_times(watch_events)

        profiles: dict[str, ChannelProfile] = {}
        first_seen: dict[str, tuple[datetime, str]] = {}
        last_seen: dict[str, tuple[datetime, str]] = {}
        latest_per_video: dict[str, dict[str, Optional[tuple[datetime, str]]]] = {}

        for video in videos:
            channel_id = video.channel_id
            if not channel_id:
                self.stats["videos_without_channel"] += 1
                continue

            profile = profiles.get(channel_id)
            if profile is None:
                profile = ChannelProfile(channel_id=channel_id, channel_title=video.channel_title)
                profiles[channel_id] = profile
                latest_per_video[channel_id] = {}

            profile.videos_watched += 1
            profile.total_views += video.view_count
            profile.total_likes += video.like_count

            if video.category_id:
                profile.categories[video.category_id] = profile.categories.get(video.category_id, 0) + 1
            for tag in video.tags:
                profile.tags[tag] = profile.tags.get(tag, 0) + 1
            if video.made_for_kids is True:
                profile.made_for_kids_count += 1
            if video.content_rating:
                profile.has_age_restriction = True

            times = watch_times.get(video.id, [])
            for moment in times:
                if channel_id not in first_seen or moment[0] < first_seen[channel_id][0]:
                    first_seen[channel_id] = moment
                if channel_id not in last_seen or moment[0] > last_seen[channel_id][0]:
                    last_seen[channel_id] = moment
            latest_per_video[channel_id][video.id] = max(times, key=lambda m: m[0]) if times else None
            profile.videos.append({"videoId": video.id, "title": video.title})

        for channel_id, profile in profiles.items():
            self._finalize(profile, latest_per_video[channel_id])
            if channel_id in first_seen:
                profile.first_watched = first_seen[channel_id][1]
                profile.last_watched = last_seen[channel_id][1]

        ordered = sorted(profiles.values(), key=lambda p: p.videos_watched, reverse=True)
        logger.info(f"📊 Built {len(ordered)} channel profiles")
        if self.stats:
            logger.info(f"Skipped inputs: {dict(self.stats)}")
        return ordered

    @staticmethod
    def _finalize(profile: ChannelProfile, latest: dict) -> None:
        """Derived statistics, computed once the whole corpus has been scanned."""
        profile.top_categories = _top_items(profile.categories, TOP_CATEGORIES)
        profile.top_tags = _top_items(profile.tags, TOP_TAGS)

        for entry in profile.videos:
            moment = latest.get(entry["videoId"])
            entry["watchedAt"] = moment[1] if moment else None

        # Newest first; videos never seen in the history go last
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        profile.videos.sort(
            key=lambda e: latest[e["videoId"]][0] if latest.get(e["videoId"]) else epoch,
            reverse=True,
        )


def build_channel_profiles(videos: Iterable[VideoRecord],
                           watch_events: Iterable[WatchEvent] = ()) -> list[ChannelProfile]:
    return ChannelProfiler().build(videos, watch_events)


@dataclass
class EnrichmentResult:
    profiles: list[ChannelProfile]
    fetched: int = 0
    cached: int = 0
    failed: list[str] = field(default_factory=list)


async def enrich_channel_profiles(
    profiles: list[ChannelProfile],
    cache: Mapping[str, ChannelMetadata],
    fetch_channel_metadata: Optional[FetchChannelMetadata],
    on_fetched: Optional[OnFetched] = None,
    limiter: Optional[MinIntervalLimiter] = None,
) -> EnrichmentResult:
    """
    Attach channel metadata to each profile.

    Cached channels are attached without a call. Uncached channels are fetched
    one at a time through the limiter and handed to `on_fetched` (which
    persists them) before the next fetch starts. A failed or empty fetch
    leaves that profile un-enriched so it is retried on the next run.
    Without a fetch capability only cached metadata is attached.
    The input profiles are not modified.
    """
    result = EnrichmentResult(profiles=[])
    attempted = set()

    for profile in profiles:
        channel_id = profile.channel_id
        info = cache.get(channel_id)
        if info is not None:
            result.cached += 1
            result.profiles.append(dataclasses.replace(profile, channel_info=info))
            continue

        if fetch_channel_metadata is None or channel_id in attempted:
            result.profiles.append(dataclasses.replace(profile))
            continue
        attempted.add(channel_id)

        logger.info(f"  Fetching channel: {profile.channel_title or channel_id}...")
        try:
            if limiter is not None:
                await limiter.wait()
            info = await fetch_channel_metadata(channel_id)
        except Exception as e:
            logger.warning(f"Channel metadata fetch failed for {channel_id}: {e}")
            info = None

        if info is None:
            result.failed.append(channel_id)
            result.profiles.append(dataclasses.replace(profile))
            continue

        if on_fetched is not None:
            try:
                on_fetched(channel_id, info)
            except OSError as e:
                logger.warning(f"Could not cache channel {channel_id}: {e}")
                result.failed.append(channel_id)
                result.profiles.append(dataclasses.replace(profile))
                continue
        result.fetched += 1
        result.profiles.append(dataclasses.replace(profile, channel_info=info))

    if result.fetched:
        logger.info(f"✓ Fetched {result.fetched} new channel details")
    if result.failed:
        logger.warning(f"⚠️ {len(result.failed)} channel fetches failed, will retry next run")
    return result
