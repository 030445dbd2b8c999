"""YouTube Guardian - Report Generator
Copyright (c) 2026 beautifulplanet
Licensed under MIT License

Presentation layer: the JSON export served by the API, the ranked plain-text
report and the AI verdict report.
"""

import logging
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

from models import AIVerdict, ChannelProfile, ClassificationResult, RiskLevel, VideoRecord
from rating_taxonomy import format_rating, most_restrictive, parse_content_rating
from risk_aggregator import RISK_ORDER, RiskSummary, rank_results
from rule_set import category_name

logger = logging.getLogger(__name__)

TOP_CHANNELS = 10
WIDTH = 80
DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def format_duration(duration: Optional[str]) -> str:
    """ISO-8601 'PT1H2M3S' -> '1h 2m 3s'."""
    if not duration:
        return "Unknown"
    match = DURATION_PATTERN.fullmatch(duration)
    if not match:
        return duration
    parts = [f"{value}{unit}" for value, unit in zip(match.groups(), "hms") if value]
    return " ".join(parts) or "0s"


def format_number(value) -> str:
    return f"{int(round(value or 0)):,}"


def _header(text: str) -> list[str]:
    return ["", text, "=" * WIDTH]


# ---------------------------------------------------------------------- #
#  JSON export                                                           #
# ---------------------------------------------------------------------- #

def build_export(results: list[ClassificationResult], summary: RiskSummary,
                 channel_profiles: list[ChannelProfile],
                 generated_at: Optional[str] = None) -> dict:
    """Flat export {generatedAt, summary, concerningVideos, topChannels, allResults}."""
    all_results = [r.to_dict() for r in results]
    return {
        "generatedAt": generated_at or datetime.now(timezone.utc).isoformat(),
        "summary": {
            "total": summary.total,
            "highRisk": summary.high,
            "mediumRisk": summary.medium,
            "lowRisk": summary.low,
        },
        "concerningVideos": [r for r in all_results if r["riskLevel"] != RiskLevel.LOW.value],
        "topChannels": [p.to_dict() for p in channel_profiles[:TOP_CHANNELS]],
        "allResults": all_results,
    }


# ---------------------------------------------------------------------- #
#  Plain-text report                                                     #
# ---------------------------------------------------------------------- #

def _overview(video_count: int, channel_count: int, summary: RiskSummary) -> list[str]:
    lines = _header("📊 YOUTUBE GUARDIAN - WATCH HISTORY ANALYSIS")
    lines += [
        "",
        f"Total Videos: {video_count}",
        f"Unique Channels: {channel_count}",
        "",
        "Risk Assessment:",
        f"  HIGH    {summary.high} videos",
        f"  MEDIUM  {summary.medium} videos",
        f"  LOW     {summary.low} videos",
    ]
    return lines


def _concerning(results: list[ClassificationResult], videos: Mapping[str, VideoRecord]) -> list[str]:
    concerning = [r for r in rank_results(results) if r.risk_level != RiskLevel.LOW]
    if not concerning:
        return _header("✅ NO CONCERNING CONTENT FOUND") + ["", "All videos passed content screening!"]

    lines = _header("⚠️ CONCERNING CONTENT DETECTED")
    lines += ["", f"Found {len(concerning)} videos requiring attention:", ""]
    for i, result in enumerate(concerning, start=1):
        badge = "HIGH" if result.risk_level == RiskLevel.HIGH else "MED"
        video = videos.get(result.video_id)
        lines.append(f"{i}. [{badge}] {result.title}")
        lines.append(f"   Channel: {result.channel_title or 'Unknown'} | Category: {result.category_name}")
        lines.append(f"   Video ID: {result.video_id}")
        if video is not None:
            lines.append(f"   Duration: {format_duration(video.duration)} | Views: {format_number(video.view_count)}")
            rating = most_restrictive(parse_content_rating(video.content_rating))
            if rating is not None:
                lines.append(f"   Rating: {format_rating(rating)}")
        if result.flags:
            lines.append("   ⚠️ Flags:")
            lines += [f"      • {s.message}" for s in result.flags]
        if result.warnings:
            lines.append("   ⚠️ Warnings:")
            lines += [f"      • {s.message}" for s in result.warnings]
        lines.append("")
    return lines


def _channels(channel_profiles: list[ChannelProfile]) -> list[str]:
    lines = _header("📺 TOP CHANNELS")
    lines += ["", f"Top {TOP_CHANNELS} most watched channels:", ""]
    for i, profile in enumerate(channel_profiles[:TOP_CHANNELS], start=1):
        lines.append(f"{i}. {profile.channel_title or profile.channel_id}")
        lines.append(f"   Videos: {profile.videos_watched} | Avg Views: {format_number(profile.avg_view_count)}")
        if profile.channel_info is not None:
            lines.append(f"   Subscribers: {format_number(profile.channel_info.subscriber_count)}")
        if profile.has_age_restriction:
            lines.append("   ⚠️ Has age-restricted content")
        lines.append("")
    return lines


def category_breakdown(videos: Iterable[VideoRecord]) -> list[tuple[str, int, float]]:
    """(category name, count, percent) by descending count."""
    counts = Counter(category_name(v.category_id) for v in videos)
    total = sum(counts.values())
    if not total:
        return []
    return [(name, n, n / total * 100) for name, n in counts.most_common()]


def _categories(videos: Iterable[VideoRecord]) -> list[str]:
    lines = _header("📊 CONTENT CATEGORIES") + ["", "Video count by category:", ""]
    for name, count, pct in category_breakdown(videos):
        bar = "█" * round(pct / 2)
        lines.append(f"{name:<25} {bar} {count} ({pct:.1f}%)")
    return lines


def _recommendations(summary: RiskSummary) -> list[str]:
    lines = _header("💡 RECOMMENDATIONS")
    if summary.high:
        lines.append(f"▸ {summary.high} high-risk videos - Review immediately")
        lines.append("  Consider adding flagged channels/keywords to blocklist")
    if summary.medium:
        lines.append(f"▸ {summary.medium} medium-risk videos - Review when possible")
    if not summary.high and not summary.medium:
        lines.append("▸ No concerning content detected")
    lines += ["", "Customize screening: config/blocklist.json", ""]
    return lines


def render_text_report(results: list[ClassificationResult], summary: RiskSummary,
                       videos: Mapping[str, VideoRecord],
                       channel_profiles: list[ChannelProfile]) -> str:
    lines = []
    lines += _overview(len(videos), len(channel_profiles), summary)
    lines += _concerning(results, videos)
    lines += _channels(channel_profiles)
    lines += _categories(videos.values())
    lines += _recommendations(summary)
    lines.append("=" * WIDTH)
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------- #
#  AI report                                                             #
# ---------------------------------------------------------------------- #

def render_ai_report(verdicts: Mapping[str, AIVerdict], videos: Mapping[str, VideoRecord],
                     classifications: Mapping[str, ClassificationResult],
                     tags_by_video: Mapping[str, list[str]]) -> str:
    """AI verdicts ranked by AI risk, with the rule-based verdict beside each."""
    if not verdicts:
        return "❌ No AI analysis found. Run 'analyze-ai' first.\n"

    ordered = sorted(verdicts.values(), key=lambda v: RISK_ORDER[v.risk_level])
    counts = Counter(v.risk_level for v in ordered)

    lines = ["", "🤖 AI Content Analysis Report", "=" * WIDTH, ""]
    lines += [
        "Summary:",
        f"  Total analyzed: {len(ordered)} videos",
        f"  HIGH risk: {counts[RiskLevel.HIGH]}",
        f"  MEDIUM risk: {counts[RiskLevel.MEDIUM]}",
        f"  LOW risk: {counts[RiskLevel.LOW]}",
        "",
        "RANK  AI      RULES   VIDEO",
        "─" * WIDTH,
        "",
    ]
    indent = " " * 22
    for rank, verdict in enumerate(ordered, start=1):
        video = videos.get(verdict.video_id)
        title = video.title if video is not None else verdict.video_id
        rules = classifications.get(verdict.video_id)
        rule_level = rules.risk_level.value if rules is not None else "-"
        lines.append(f"{str(rank):<6}{verdict.risk_level.value:<8}{rule_level:<8}{title}")
        if verdict.summary:
            lines.append(f"{indent}{verdict.summary}")
        video_tags = tags_by_video.get(verdict.video_id) or verdict.tags
        lines.append(f"{indent}{', '.join(video_tags) if video_tags else '(no tags)'}")
        if verdict.content_flags:
            lines.append(f"{indent}Flags: {', '.join(verdict.content_flags)} ({verdict.flagged_severity.value})")
        if verdict.reasoning and verdict.risk_level != RiskLevel.LOW:
            lines.append(f"{indent}→ {verdict.reasoning}")
        lines.append("")
    lines.append("=" * WIDTH)
    return "\n".join(lines) + "\n"
