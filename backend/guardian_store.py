"""
Guardian Store - JSON-file persistence for the pipeline.

Every file is rewritten atomically (temp file in the same directory, then
os.replace), so an interrupted run leaves each file either fully old or
fully new. Layout inside the data directory:

    videos.json            video id -> VideoRecord      (create-only cache)
    watch_history.json     [WatchEvent]                 (replaced on ingest)
    channels.json          channel id -> ChannelMetadata (cached until cleared)
    classifications.json   [ClassificationResult]       (replaced every run)
    ai_analysis.json       {verdicts, tags}             (append-only per video)
    analysis-results.json  last report export
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from models import AIVerdict, ChannelMetadata, ClassificationResult, VideoRecord, WatchEvent

logger = logging.getLogger(__name__)

VIDEOS_FILE = "videos.json"
WATCH_HISTORY_FILE = "watch_history.json"
CHANNELS_FILE = "channels.json"
CLASSIFICATIONS_FILE = "classifications.json"
AI_ANALYSIS_FILE = "ai_analysis.json"
EXPORT_FILE = "analysis-results.json"


class GuardianStore:
    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------ #
    #  File helpers                                                      #
    # ------------------------------------------------------------------ #

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def _read(self, name: str, default: Any) -> Any:
        path = self._path(name)
        if not path.exists():
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {path}: {e}")
            return default

    def _write(self, name: str, data: Any) -> None:
        path = self._path(name)
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    # ------------------------------------------------------------------ #
    #  Videos                                                            #
    # ------------------------------------------------------------------ #

    def load_videos(self) -> dict[str, VideoRecord]:
        videos = {}
        for video_id, raw in self._read(VIDEOS_FILE, {}).items():
            try:
                videos[video_id] = VideoRecord.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping invalid cached video {video_id}: {e.error_count()} errors")
        return videos

    def get_video(self, video_id: str) -> Optional[VideoRecord]:
        return self.load_videos().get(video_id)

    def add_videos(self, records: Iterable[VideoRecord]) -> int:
        """Add records not cached yet. Existing entries are never overwritten."""
        raw = self._read(VIDEOS_FILE, {})
        added = 0
        for record in records:
            if record.id in raw:
                continue
            raw[record.id] = record.model_dump(by_alias=True)
            added += 1
        if added:
            self._write(VIDEOS_FILE, raw)
        return added

    def cached_video_ids(self) -> set[str]:
        return set(self._read(VIDEOS_FILE, {}))

    # ------------------------------------------------------------------ #
    #  Watch history                                                     #
    # ------------------------------------------------------------------ #

    def replace_watch_history(self, events: Iterable[WatchEvent]) -> None:
        self._write(WATCH_HISTORY_FILE, [e.model_dump(by_alias=True) for e in events])

    def load_watch_history(self) -> list[WatchEvent]:
        events = []
        for raw in self._read(WATCH_HISTORY_FILE, []):
            try:
                events.append(WatchEvent.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping invalid stored watch event")
        return events

    # ------------------------------------------------------------------ #
    #  Channel metadata                                                  #
    # ------------------------------------------------------------------ #

    def load_channel_cache(self) -> dict[str, ChannelMetadata]:
        cache = {}
        for channel_id, raw in self._read(CHANNELS_FILE, {}).items():
            try:
                cache[channel_id] = ChannelMetadata.model_validate(raw)
            except ValidationError:
                logger.warning(f"Dropping invalid cached channel {channel_id}")
        return cache

    def save_channel_metadata(self, channel_id: str, info: ChannelMetadata) -> None:
        raw = self._read(CHANNELS_FILE, {})
        raw[channel_id] = info.model_dump(by_alias=True)
        self._write(CHANNELS_FILE, raw)

    def clear_channel_cache(self) -> int:
        cleared = len(self._read(CHANNELS_FILE, {}))
        self._write(CHANNELS_FILE, {})
        logger.info(f"Cleared {cleared} cached channels")
        return cleared

    # ------------------------------------------------------------------ #
    #  Classifications                                                   #
    # ------------------------------------------------------------------ #

    def save_classifications(self, results: Iterable[ClassificationResult]) -> None:
        """Replace every stored classification with this run's results."""
        self._write(CLASSIFICATIONS_FILE, [r.to_dict() for r in results])

    def load_classifications(self) -> list[ClassificationResult]:
        return [ClassificationResult.from_dict(d) for d in self._read(CLASSIFICATIONS_FILE, [])]

    def get_classification(self, video_id: str) -> Optional[ClassificationResult]:
        for data in self._read(CLASSIFICATIONS_FILE, []):
            if data.get("videoId") == video_id:
                return ClassificationResult.from_dict(data)
        return None

    # ------------------------------------------------------------------ #
    #  AI verdicts and tags                                              #
    # ------------------------------------------------------------------ #

    def _load_ai(self) -> dict:
        data = self._read(AI_ANALYSIS_FILE, {})
        data.setdefault("verdicts", {})
        data.setdefault("tags", {})
        return data

    def save_ai_verdict(self, verdict: AIVerdict) -> None:
        """
        Store a verdict and associate its tags with the video, in one write.

        Tags are created if absent. Existing associations are kept.
        """
        data = self._load_ai()
        data["verdicts"][verdict.video_id] = verdict.model_dump(mode="json", by_alias=True)
        for tag in verdict.tags:
            video_ids = data["tags"].setdefault(tag, [])
            if verdict.video_id not in video_ids:
                video_ids.append(verdict.video_id)
        self._write(AI_ANALYSIS_FILE, data)

    def analyzed_video_ids(self) -> set[str]:
        return set(self._load_ai()["verdicts"])

    def load_ai_verdicts(self) -> dict[str, AIVerdict]:
        verdicts = {}
        for video_id, raw in self._load_ai()["verdicts"].items():
            try:
                verdicts[video_id] = AIVerdict.model_validate(raw)
            except ValidationError:
                logger.warning(f"Skipping invalid AI verdict for {video_id}")
        return verdicts

    def get_ai_verdict(self, video_id: str) -> Optional[AIVerdict]:
        return self.load_ai_verdicts().get(video_id)

    def load_tags(self) -> dict[str, list[str]]:
        """tag -> video ids"""
        return self._load_ai()["tags"]

    def tags_for_video(self, video_id: str) -> list[str]:
        return [tag for tag, ids in self.load_tags().items() if video_id in ids]

    # ------------------------------------------------------------------ #
    #  Report export                                                     #
    # ------------------------------------------------------------------ #

    def save_export(self, export: dict) -> Path:
        self._write(EXPORT_FILE, export)
        return self._path(EXPORT_FILE)

    def load_export(self) -> Optional[dict]:
        return self._read(EXPORT_FILE, None)
