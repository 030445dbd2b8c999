"""YouTube Guardian - Records
Copyright (c) 2026 beautifulplanet
Licensed under MIT License

Typed records shared by the pipeline. Records that cross the ingestion
boundary (videos, watch events, channel metadata, AI verdicts) are pydantic
models so malformed input is rejected before it reaches the classifier.
Derived results are plain dataclasses.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Google Takeout stores the watched video as a URL, e.g.
# https://www.youtube.com/watch?v=dQw4w9WgXcQ or watch?feature=share&v=dQw4w9WgXcQ
WATCH_URL_PATTERN = re.compile(r"[?&]v=([a-zA-Z0-9_-]+)")


class RiskLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class SignalTier(str, Enum):
    """Bucket a classification signal belongs to. Drives the risk level."""
    FLAGS = "flags"
    WARNINGS = "warnings"
    INFO = "info"


class FlaggedSeverity(str, Enum):
    SEVERE = "SEVERE"
    MODERATE = "MODERATE"
    NONE = "NONE"


class _Record(BaseModel):
    """Base for records read from the JSON cache (camelCase) or built in code (snake_case)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class VideoRecord(_Record):
    """One fetched video. Immutable once cached."""
    id: str = Field(min_length=1)
    title: str = ""
    description: Optional[str] = None
    channel_id: Optional[str] = None
    channel_title: Optional[str] = None
    published_at: Optional[str] = None
    category_id: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    duration: Optional[str] = None
    has_caption: bool = False
    content_rating: dict[str, Any] = Field(default_factory=dict)
    view_count: int = Field(0, ge=0)
    like_count: int = Field(0, ge=0)
    comment_count: int = Field(0, ge=0)
    privacy_status: Optional[str] = None
    made_for_kids: Optional[bool] = None
    self_declared_made_for_kids: Optional[bool] = None
    embeddable: Optional[bool] = None
    fetched_at: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title_not_null(cls, v):
        return v or ""

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, v):
        if v is None:
            return []
        return [str(t) for t in v if t is not None]

    @field_validator("content_rating", mode="before")
    @classmethod
    def _rating_default(cls, v):
        return v or {}

    @field_validator("view_count", "like_count", "comment_count", mode="before")
    @classmethod
    def _count_default(cls, v):
        return 0 if v in (None, "") else v

    @field_validator("channel_id", "category_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return str(v)


class WatchEvent(_Record):
    """One entry of the watch history export."""
    video_id: Optional[str] = None
    watched_at: str = ""
    title: Optional[str] = None
    channel: Optional[str] = None
    title_url: Optional[str] = None

    def resolved_video_id(self) -> Optional[str]:
        """Explicit video id, or the id embedded in the watch URL, or None."""
        if self.video_id:
            return self.video_id
        if self.title_url:
            match = WATCH_URL_PATTERN.search(self.title_url)
            if match:
                return match.group(1)
        return None


class ChannelMetadata(_Record):
    """Channel-level enrichment fetched from the provider and cached indefinitely."""
    subscriber_count: int = 0
    video_count: int = 0
    view_count: int = 0
    description: str = ""
    published_at: Optional[str] = None
    thumbnails: dict[str, Any] = Field(default_factory=dict)
    fetched_at: Optional[str] = None

    @field_validator("subscriber_count", "video_count", "view_count", mode="before")
    @classmethod
    def _count_default(cls, v):
        return 0 if v in (None, "") else v

    @field_validator("description", mode="before")
    @classmethod
    def _description_default(cls, v):
        return v or ""

    @field_validator("thumbnails", mode="before")
    @classmethod
    def _thumbnails_default(cls, v):
        return v or {}


class AIVerdict(_Record):
    """Transcript-based verdict from the AI oracle, stored verbatim."""
    video_id: str
    risk_level: RiskLevel
    summary: str = ""
    content_flags: list[str] = Field(default_factory=list)
    flagged_severity: FlaggedSeverity = FlaggedSeverity.NONE
    reasoning: str = ""
    tags: list[str] = Field(default_factory=list)
    model: Optional[str] = None
    analyzed_at: Optional[str] = None


@dataclass(frozen=True)
class Signal:
    """A single triggered classification signal."""
    tier: SignalTier
    type: str
    severity: str  # display priority: HIGH, MEDIUM, LOW
    message: str

    def to_dict(self) -> dict:
        return {
            "flagType": self.tier.value,
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
        }


def derive_risk_level(signals: list[Signal]) -> RiskLevel:
    """HIGH iff any flag, MEDIUM iff no flags but a warning, LOW otherwise."""
    tiers = {s.tier for s in signals}
    if SignalTier.FLAGS in tiers:
        return RiskLevel.HIGH
    if SignalTier.WARNINGS in tiers:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


@dataclass(frozen=True)
class ClassificationResult:
    video_id: str
    title: str = ""
    channel_title: Optional[str] = None
    category_id: Optional[str] = None
    category_name: str = "Unknown"
    signals: tuple[Signal, ...] = ()

    @property
    def risk_level(self) -> RiskLevel:
        return derive_risk_level(list(self.signals))

    def _tier(self, tier: SignalTier) -> list[Signal]:
        return [s for s in self.signals if s.tier == tier]

    @property
    def flags(self) -> list[Signal]:
        return self._tier(SignalTier.FLAGS)

    @property
    def warnings(self) -> list[Signal]:
        return self._tier(SignalTier.WARNINGS)

    @property
    def info(self) -> list[Signal]:
        return self._tier(SignalTier.INFO)

    @property
    def flag_count(self) -> int:
        return len(self.flags)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def info_count(self) -> int:
        return len(self.info)

    def to_dict(self) -> dict:
        return {
            "videoId": self.video_id,
            "title": self.title,
            "channelTitle": self.channel_title,
            "categoryId": self.category_id,
            "categoryName": self.category_name,
            "riskLevel": self.risk_level.value,
            "flagCount": self.flag_count,
            "warningCount": self.warning_count,
            "infoCount": self.info_count,
            "flags": [s.to_dict() for s in self.flags],
            "warnings": [s.to_dict() for s in self.warnings],
            "info": [s.to_dict() for s in self.info],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClassificationResult":
        """Rebuild a stored result. Signals keep flags, warnings, info order."""
        signals = []
        for key in ("flags", "warnings", "info"):
            for s in data.get(key, []):
                signals.append(Signal(
                    tier=SignalTier(s.get("flagType", key)),
                    type=s["type"],
                    severity=s["severity"],
                    message=s["message"],
                ))
        return cls(
            video_id=data["videoId"],
            title=data.get("title", ""),
            channel_title=data.get("channelTitle"),
            category_id=data.get("categoryId"),
            category_name=data.get("categoryName", "Unknown"),
            signals=tuple(signals),
        )


@dataclass
class ChannelProfile:
    """Aggregated statistics for every watched video of one channel."""
    channel_id: str
    channel_title: Optional[str] = None
    videos_watched: int = 0
    total_views: int = 0
    total_likes: int = 0
    categories: dict[str, int] = field(default_factory=dict)
    tags: dict[str, int] = field(default_factory=dict)
    made_for_kids_count: int = 0
    has_age_restriction: bool = False
    first_watched: Optional[str] = None
    last_watched: Optional[str] = None
    videos: list[dict] = field(default_factory=list)
    top_categories: list[tuple[str, int]] = field(default_factory=list)
    top_tags: list[tuple[str, int]] = field(default_factory=list)
    channel_info: Optional[ChannelMetadata] = None

    # Derived from the counts so they can never go stale
    def _per_video(self, total: int) -> float:
        return total / self.videos_watched if self.videos_watched else 0.0

    @property
    def avg_view_count(self) -> float:
        return self._per_video(self.total_views)

    @property
    def avg_like_count(self) -> float:
        return self._per_video(self.total_likes)

    @property
    def made_for_kids_ratio(self) -> float:
        return self._per_video(self.made_for_kids_count)

    def to_dict(self) -> dict:
        return {
            "channelId": self.channel_id,
            "channelTitle": self.channel_title,
            "videosWatched": self.videos_watched,
            "totalViews": self.total_views,
            "totalLikes": self.total_likes,
            "avgViewCount": self.avg_view_count,
            "avgLikeCount": self.avg_like_count,
            "categories": dict(self.categories),
            "tags": dict(self.tags),
            "madeForKidsCount": self.made_for_kids_count,
            "madeForKidsRatio": self.made_for_kids_ratio,
            "hasAgeRestriction": self.has_age_restriction,
            "firstWatched": self.first_watched,
            "lastWatched": self.last_watched,
            "topCategories": [{"categoryId": c, "count": n} for c, n in self.top_categories],
            "topTags": [{"tag": t, "count": n} for t, n in self.top_tags],
            "videos": list(self.videos),
            "channelInfo": self.channel_info.model_dump(by_alias=True) if self.channel_info else None,
        }
