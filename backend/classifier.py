"""YouTube Guardian - Content Classifier
Copyright (c) 2026 beautifulplanet
Licensed under MIT License

Central decision engine. For one video, its channel profile and the rule set
it produces an ordered list of signals and a HIGH / MEDIUM / LOW verdict.
The verdict depends only on signal tiers: any flag is HIGH, otherwise any
warning is MEDIUM, otherwise LOW.
"""

import logging
from typing import Optional

from models import ChannelProfile, ClassificationResult, Signal, SignalTier, VideoRecord
from rating_taxonomy import Severity, flag_severity, format_rating, parse_content_rating, signal_tier_for
from rule_set import KIDS_MIN_VIDEOS_WATCHED, KIDS_RATIO_THRESHOLD, RuleSet, category_name

logger = logging.getLogger(__name__)

# Rating severity -> signal type
RATING_SIGNAL_TYPES = {
    Severity.ADULT: "AGE_RATING_MATURE",
    Severity.MATURE: "AGE_RATING_MATURE",
    Severity.TEEN: "AGE_RATING_TEEN",
    Severity.UNKNOWN: "AGE_RATING_UNKNOWN",
    Severity.GUIDANCE: "AGE_RATING_GUIDANCE",
}


class ContentClassifier:
    """
    Rule-based video classifier.

    Checks run in a fixed order so the signal list is reproducible:
    1. Blocklisted keywords in title, description and tags
    2. Blocklisted channel and category
    3. Content ratings (MPAA / BBFC)
    4. Made-for-kids declaration mismatch and "not for kids"
    5. Channel reputation (needs a channel profile)
    """

    def __init__(self, rule_set: Optional[RuleSet] = None):
        self.rule_set = rule_set or RuleSet()

    def classify(self, video: VideoRecord,
                 channel_profile: Optional[ChannelProfile] = None) -> ClassificationResult:
        signals: list[Signal] = []
        signals.extend(self._check_keywords(video))
        signals.extend(self._check_blocklists(video))
        signals.extend(self._check_ratings(video))
        signals.extend(self._check_made_for_kids(video))
        if video.channel_id and channel_profile is not None:
            signals.extend(self._check_channel(channel_profile))

        return ClassificationResult(
            video_id=video.id,
            title=video.title,
            channel_title=video.channel_title,
            category_id=video.category_id,
            category_name=category_name(video.category_id),
            signals=tuple(signals),
        )

    def _check_keywords(self, video: VideoRecord) -> list[Signal]:
        signals = []
        title_matches = self.rule_set.match_keywords(video.title)
        if title_matches:
            signals.append(Signal(
                SignalTier.FLAGS, "BLOCKLIST_TITLE", "HIGH",
                f"Title contains blocklisted keywords: {', '.join(title_matches)}",
            ))

        # Body matches carry a lower display label but are still flags
        desc_matches = self.rule_set.match_keywords(video.description)
        if desc_matches:
            signals.append(Signal(
                SignalTier.FLAGS, "BLOCKLIST_DESCRIPTION", "MEDIUM",
                f"Description contains blocklisted keywords: {', '.join(desc_matches)}",
            ))

        tag_matches = self.rule_set.match_keywords(" ".join(video.tags))
        if tag_matches:
            signals.append(Signal(
                SignalTier.FLAGS, "BLOCKLIST_TAGS", "MEDIUM",
                f"Tags contain blocklisted keywords: {', '.join(tag_matches)}",
            ))
        return signals

    def _check_blocklists(self, video: VideoRecord) -> list[Signal]:
        signals = []
        if video.channel_id and video.channel_id in self.rule_set.channels:
            signals.append(Signal(
                SignalTier.FLAGS, "BLOCKLIST_CHANNEL", "HIGH",
                f'Channel "{video.channel_title or video.channel_id}" is on blocklist',
            ))
        if video.category_id and video.category_id in self.rule_set.categories:
            name = category_name(video.category_id)
            if name == "Unknown":
                name = video.category_id
            signals.append(Signal(
                SignalTier.FLAGS, "BLOCKLIST_CATEGORY", "HIGH",
                f'Category "{name}" is on blocklist',
            ))
        return signals

    def _check_ratings(self, video: VideoRecord) -> list[Signal]:
        signals = []
        for rating in parse_content_rating(video.content_rating):
            signal_type = RATING_SIGNAL_TYPES.get(rating.severity)
            if signal_type is None:
                # SAFE ratings (G, U) are not worth surfacing
                continue
            signals.append(Signal(
                signal_tier_for(rating.severity),
                signal_type,
                flag_severity(rating.severity),
                format_rating(rating),
            ))
        return signals

    @staticmethod
    def _check_made_for_kids(video: VideoRecord) -> list[Signal]:
        signals = []
        declared = video.self_declared_made_for_kids
        determined = video.made_for_kids
        if declared is not None and determined is not None and declared != determined:
            if declared is False:
                message = "Creator declared NOT for kids, but YouTube determined it IS for kids"
            else:
                message = "Creator declared for kids, but YouTube determined it is NOT for kids"
            signals.append(Signal(SignalTier.INFO, "MADE_FOR_KIDS_MISMATCH", "LOW", message))

        if determined is False:
            signals.append(Signal(SignalTier.INFO, "NOT_FOR_KIDS", "LOW", "Not marked for kids"))
        return signals

    @staticmethod
    def _check_channel(profile: ChannelProfile) -> list[Signal]:
        signals = []
        if profile.has_age_restriction:
            signals.append(Signal(
                SignalTier.WARNINGS, "CHANNEL_HAS_RESTRICTED_CONTENT", "MEDIUM",
                "Channel has age-restricted content",
            ))
        if (profile.made_for_kids_ratio < KIDS_RATIO_THRESHOLD
                and profile.videos_watched > KIDS_MIN_VIDEOS_WATCHED):
            signals.append(Signal(
                SignalTier.INFO, "CHANNEL_NOT_KID_FOCUSED", "LOW",
                "Channel rarely posts kid content",
            ))
        return signals


def classify_video(video: VideoRecord, rule_set: RuleSet,
                   channel_profile: Optional[ChannelProfile] = None) -> ClassificationResult:
    return ContentClassifier(rule_set).classify(video, channel_profile)
