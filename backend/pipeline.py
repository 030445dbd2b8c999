"""YouTube Guardian - Pipeline
Copyright (c) 2026 beautifulplanet
Licensed under MIT License

Wires the stages together:

    ingest      watch-history.json -> watch events + cached video metadata
    analyze     channel profiles -> enrichment -> classification -> export
    analyze_ai  transcripts -> AI verdicts and tags

Each stage persists as it goes, so an interrupted run resumes from the
cache on the next invocation.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ai_analyzer import AIBatchResult, TranscriptAnalyzer, TranscriptSource, analyze_all_videos
from channel_profiler import ChannelProfiler, EnrichmentResult, enrich_channel_profiles
from errors import GuardianError
from guardian_store import GuardianStore
from models import ChannelProfile, VideoRecord
from rate_limiter import MinIntervalLimiter
from report_generator import build_export
from risk_aggregator import BatchClassification, classify_all_videos
from rule_set import RuleSet, load_rule_set
from settings import Settings
from watch_history import HistoryStats, parse_watch_history
from youtube_data import YouTubeDataFetcher, fetch_transcript

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    history: HistoryStats
    unique_videos: int = 0
    cached: int = 0
    fetched: int = 0
    unavailable: int = 0


@dataclass
class AnalysisRun:
    videos: dict[str, VideoRecord]
    profiles: list[ChannelProfile]
    classification: BatchClassification
    export: dict
    enrichment: Optional[EnrichmentResult] = None
    profiler_stats: dict = field(default_factory=dict)


class GuardianPipeline:
    def __init__(
        self,
        settings: Settings,
        store: Optional[GuardianStore] = None,
        fetcher: Optional[YouTubeDataFetcher] = None,
        analyzer: Optional[TranscriptAnalyzer] = None,
        transcript_source: TranscriptSource = fetch_transcript,
        rule_set: Optional[RuleSet] = None,
    ):
        self.settings = settings
        self.store = store or GuardianStore(settings.data_dir)
        self.fetcher = fetcher
        self.analyzer = analyzer
        self.transcript_source = transcript_source
        self._rule_set = rule_set
        self.youtube_limiter = MinIntervalLimiter(settings.youtube_call_delay, name="youtube")
        self.ai_limiter = MinIntervalLimiter(settings.ai_call_delay, name="ai")

    @property
    def rule_set(self) -> RuleSet:
        if self._rule_set is None:
            self._rule_set = load_rule_set(self.settings.rules_path)
        return self._rule_set

    async def ingest(self, history_path: Optional[Path] = None) -> IngestResult:
        """Parse the export, replace stored history, and fetch metadata for uncached videos."""
        parsed = parse_watch_history(history_path or self.settings.watch_history_path)
        self.store.replace_watch_history(parsed.events)

        video_ids = parsed.video_ids
        cached = self.store.cached_video_ids()
        uncached = [vid for vid in video_ids if vid not in cached]
        result = IngestResult(
            history=parsed.stats,
            unique_videos=len(video_ids),
            cached=len(video_ids) - len(uncached),
        )

        if not uncached:
            logger.info("✓ All videos already cached")
            return result
        if self.fetcher is None:
            logger.warning("YOUTUBE_API_KEY not set, skipping metadata fetch for "
                           f"{len(uncached)} videos")
            result.unavailable = len(uncached)
            return result

        logger.info(f"Fetching details for {len(uncached)} new videos...")
        records = await self.fetcher.fetch_videos(
            uncached, limiter=self.youtube_limiter, on_batch=self.store.add_videos
        )
        result.fetched = len(records)
        result.unavailable = len(uncached) - len(records)
        logger.info(f"✓ Fetched {result.fetched} videos, {result.unavailable} unavailable")
        return result

    async def analyze(self) -> AnalysisRun:
        """Rebuild profiles, enrich channels, classify every video, and store the export."""
        videos = self.store.load_videos()
        if not videos:
            raise GuardianError("No videos found. Run 'ingest' first.")
        events = self.store.load_watch_history()
        logger.info(f"Analyzing {len(videos)} videos from {len(events)} watch history entries...")

        profiler = ChannelProfiler()
        profiles = profiler.build(videos.values(), events)

        if self.fetcher is not None:
            logger.info("📡 Fetching channel information...")
            fetch = self.fetcher.get_channel_metadata
        else:
            logger.warning("YOUTUBE_API_KEY not set, using cached channel details only")
            fetch = None
        enrichment = await enrich_channel_profiles(
            profiles,
            self.store.load_channel_cache(),
            fetch,
            on_fetched=self.store.save_channel_metadata,
            limiter=self.youtube_limiter,
        )
        profiles = enrichment.profiles

        classification = classify_all_videos(videos.values(), profiles, self.rule_set)
        self.store.save_classifications(classification.results)

        export = build_export(classification.results, classification.summary, profiles)
        path = self.store.save_export(export)
        logger.info(f"✓ Report saved: {path}")

        return AnalysisRun(
            videos=videos,
            profiles=profiles,
            classification=classification,
            export=export,
            enrichment=enrichment,
            profiler_stats=dict(profiler.stats),
        )

    def pending_ai_videos(self) -> list[VideoRecord]:
        analyzed = self.store.analyzed_video_ids()
        return [v for v in self.store.load_videos().values() if v.id not in analyzed]

    async def analyze_ai(self, limit: Optional[int] = None) -> AIBatchResult:
        if self.analyzer is None or not self.analyzer.is_enabled:
            raise GuardianError("No AI provider configured. Set OPENAI_API_KEY or ANTHROPIC_API_KEY.")
        videos = list(self.store.load_videos().values())
        if not videos:
            raise GuardianError("No videos found. Run 'ingest' first.")
        return await analyze_all_videos(
            videos,
            self.transcript_source,
            self.analyzer,
            self.store,
            limiter=self.ai_limiter,
            limit=limit,
        )


def build_pipeline(settings: Settings) -> GuardianPipeline:
    """Pipeline with real clients for whichever API keys are configured."""
    fetcher = YouTubeDataFetcher(settings.youtube_api_key) if settings.youtube_api_key else None
    analyzer = None
    if settings.openai_api_key or settings.anthropic_api_key:
        analyzer = TranscriptAnalyzer(
            openai_api_key=settings.openai_api_key,
            anthropic_api_key=settings.anthropic_api_key,
            provider=settings.ai_provider,
            model=settings.ai_model,
        )
    return GuardianPipeline(settings, fetcher=fetcher, analyzer=analyzer)
