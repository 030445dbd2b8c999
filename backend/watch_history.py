"""
Watch History Parser - reads a Google Takeout watch-history.json export.

Ads and playables (YouTube games) are dropped, entries without a watch URL
are counted as "other". Everything else becomes a WatchEvent.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from errors import GuardianError
from models import WATCH_URL_PATTERN, WatchEvent

logger = logging.getLogger(__name__)

AD_DETAIL_NAME = "From Google Ads"
AD_URL_MARKER = "googleadservices.com"
PLAYABLE_TITLE_PREFIX = "Played "
PLAYABLE_URL_MARKERS = ("/playables/", "/games/")
WATCHED_PREFIX = "Watched "
UNKNOWN_CHANNEL = "Unknown"


@dataclass
class HistoryStats:
    total: int = 0
    videos: int = 0
    ads: int = 0
    playables: int = 0
    other: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "videos": self.videos,
            "ads": self.ads,
            "playables": self.playables,
            "other": self.other,
        }


@dataclass
class ParsedHistory:
    events: list[WatchEvent] = field(default_factory=list)
    stats: HistoryStats = field(default_factory=HistoryStats)

    @property
    def video_ids(self) -> list[str]:
        """Distinct video ids in first-watched order of the export."""
        return list(dict.fromkeys(e.resolved_video_id() for e in self.events))


def _is_ad(entry: dict) -> bool:
    details = entry.get("details") or []
    if any(isinstance(d, dict) and d.get("name") == AD_DETAIL_NAME for d in details):
        return True
    return AD_URL_MARKER in (entry.get("titleUrl") or "")


def _is_playable(entry: dict) -> bool:
    title = entry.get("title") or ""
    url = entry.get("titleUrl") or ""
    if any(marker in url for marker in PLAYABLE_URL_MARKERS):
        return title.startswith(PLAYABLE_TITLE_PREFIX) or "/games/" in url
    return False


def _channel_name(entry: dict) -> str:
    subtitles = entry.get("subtitles") or []
    if subtitles and isinstance(subtitles[0], dict) and subtitles[0].get("name"):
        return subtitles[0]["name"]
    return UNKNOWN_CHANNEL


def parse_entries(entries: Iterable) -> ParsedHistory:
    parsed = ParsedHistory()
    stats = parsed.stats

    for entry in entries:
        stats.total += 1
        if not isinstance(entry, dict):
            stats.other += 1
            continue
        if _is_ad(entry):
            stats.ads += 1
            continue
        if _is_playable(entry):
            stats.playables += 1
            continue

        url = entry.get("titleUrl") or ""
        match = WATCH_URL_PATTERN.search(url)
        if not match:
            stats.other += 1
            continue

        title = entry.get("title") or ""
        if title.startswith(WATCHED_PREFIX):
            title = title[len(WATCHED_PREFIX):]

        try:
            event = WatchEvent(
                video_id=match.group(1),
                watched_at=entry.get("time") or "",
                title=title,
                channel=_channel_name(entry),
                title_url=url,
            )
        except ValidationError as e:
            logger.warning(f"Skipping malformed history entry: {e.error_count()} errors")
            stats.other += 1
            continue

        parsed.events.append(event)
        stats.videos += 1

    logger.info(
        f"Total: {stats.total} | Videos: {stats.videos} | Ads: {stats.ads} | "
        f"Games: {stats.playables} | Other: {stats.other}"
    )
    return parsed


def parse_watch_history(path) -> ParsedHistory:
    """Parse the export file. A missing or unreadable export is fatal."""
    history_path = Path(path)
    if not history_path.exists():
        raise GuardianError(
            f"watch-history.json not found at {history_path}. "
            "Export your YouTube history from Google Takeout and place it there."
        )
    try:
        with open(history_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise GuardianError(f"Could not read watch history {history_path}: {e}") from e
    if not isinstance(data, list):
        raise GuardianError(f"Watch history {history_path} is not a JSON list")

    return parse_entries(data)
