"""
Risk Aggregator - runs the classifier over the whole corpus.

Every video is classified exactly once; results are ranked HIGH, MEDIUM, LOW
and then by flag count, with original order kept for ties.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Union

from classifier import ContentClassifier
from models import ChannelProfile, ClassificationResult, RiskLevel, VideoRecord
from rule_set import RuleSet, category_name

logger = logging.getLogger(__name__)

RISK_ORDER = {RiskLevel.HIGH: 0, RiskLevel.MEDIUM: 1, RiskLevel.LOW: 2}


@dataclass(frozen=True)
class RiskSummary:
    total: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "highRisk": self.high,
            "mediumRisk": self.medium,
            "lowRisk": self.low,
        }


@dataclass
class BatchClassification:
    results: list[ClassificationResult]
    summary: RiskSummary
    errors: list[dict] = field(default_factory=list)


def summarize(results: Iterable[ClassificationResult]) -> RiskSummary:
    counts = {level: 0 for level in RiskLevel}
    total = 0
    for result in results:
        counts[result.risk_level] += 1
        total += 1
    return RiskSummary(total, counts[RiskLevel.HIGH], counts[RiskLevel.MEDIUM], counts[RiskLevel.LOW])


def rank_results(results: Iterable[ClassificationResult]) -> list[ClassificationResult]:
    """Most severe first, then most flags. sorted() is stable for exact ties."""
    return sorted(results, key=lambda r: (RISK_ORDER[r.risk_level], -r.flag_count))


def classify_all_videos(
    videos: Iterable[VideoRecord],
    channel_profiles: Union[Mapping[str, ChannelProfile], Iterable[ChannelProfile]],
    rule_set: Optional[RuleSet] = None,
) -> BatchClassification:
    """
    Classify the corpus against the current rule set.

    The returned results replace any earlier run. A video that makes the
    classifier raise is logged and recorded in `errors`, and gets a LOW
    result with no signals so the batch always covers every video.
    """
    if isinstance(channel_profiles, Mapping):
        lookup = dict(channel_profiles)
    else:
        lookup = {p.channel_id: p for p in channel_profiles}

    classifier = ContentClassifier(rule_set)
    results: list[ClassificationResult] = []
    errors: list[dict] = []
    seen: set[str] = set()

    for video in videos:
        if video.id in seen:
            continue
        seen.add(video.id)

        profile = lookup.get(video.channel_id) if video.channel_id else None
        try:
            result = classifier.classify(video, profile)
        except Exception as e:
            logger.error(f"Classification failed for {video.id}: {e}")
            errors.append({"videoId": video.id, "error": str(e)})
            result = ClassificationResult(
                video_id=video.id,
                title=video.title,
                channel_title=video.channel_title,
                category_id=video.category_id,
                category_name=category_name(video.category_id),
            )
        results.append(result)

    summary = summarize(results)
    logger.info(f"HIGH: {summary.high} | MEDIUM: {summary.medium} | LOW: {summary.low}")
    return BatchClassification(results=rank_results(results), summary=summary, errors=errors)
