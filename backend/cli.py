#!/usr/bin/env python3
"""YouTube Guardian - command line interface.

Usage:
    # Parse data/watch-history.json and fetch metadata for new videos
    python cli.py ingest

    # Build channel profiles, classify every video and print the report
    python cli.py analyze

    # Transcript analysis with the configured LLM (asks before spending money)
    python cli.py analyze-ai --limit 3

    # Re-print the last report, or the AI verdicts
    python cli.py report
    python cli.py report --ai

    # Force channel details to be fetched again on the next analyze
    python cli.py clear-channel-cache
"""

import argparse
import asyncio
import logging
import sys
from typing import Callable, Optional

from ai_analyzer import estimate_cost
from channel_profiler import ChannelProfiler, enrich_channel_profiles
from errors import GuardianError
from pipeline import GuardianPipeline, build_pipeline
from report_generator import render_ai_report, render_text_report
from risk_aggregator import rank_results, summarize
from settings import load_settings, setup_logging

logger = logging.getLogger(__name__)

MAX_ERRORS_SHOWN = 5


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("limit must be a positive number")
    if number <= 0:
        raise argparse.ArgumentTypeError("limit must be a positive number")
    return number


def ask_confirmation(question: str, input_func: Callable[[str], str] = input) -> bool:
    try:
        answer = input_func(question)
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


async def cmd_ingest(pipeline: GuardianPipeline, args) -> int:
    print("🛡️ YOUTUBE GUARDIAN - INGEST")
    result = await pipeline.ingest(args.history)
    stats = result.history
    print(f"  Total entries: {stats.total}")
    print(f"  Videos: {stats.videos}")
    print(f"  Ads filtered: {stats.ads}")
    print(f"  Games filtered: {stats.playables}")
    print(f"  Other: {stats.other}")
    print(f"\n  Unique videos: {result.unique_videos} ({result.cached} cached, "
          f"{result.fetched} fetched, {result.unavailable} unavailable)\n")
    return 0


async def cmd_analyze(pipeline: GuardianPipeline, args) -> int:
    run = await pipeline.analyze()
    batch = run.classification
    print(render_text_report(batch.results, batch.summary, run.videos, run.profiles))
    if batch.errors:
        print(f"⚠️ {len(batch.errors)} videos could not be classified")
    return 0


async def cmd_analyze_ai(pipeline: GuardianPipeline, args) -> int:
    print("🤖 YouTube Guardian - AI Content Analyzer\n")
    if pipeline.analyzer is None or not pipeline.analyzer.is_enabled:
        print("❌ Error: OPENAI_API_KEY or ANTHROPIC_API_KEY environment variable not set\n")
        print("Add one to .env file:")
        print("  OPENAI_API_KEY=sk-proj-...\n")
        return 1

    pending = pipeline.pending_ai_videos()
    if not pending:
        print("✓ No videos left to analyze\n")
        return 0

    to_process = min(args.limit, len(pending)) if args.limit else len(pending)
    print(f"Found {len(pending)} videos not yet analyzed")
    if args.limit:
        print(f"Limit: {args.limit} videos")
    print(f"Model: {pipeline.analyzer.model}")
    print(f"Estimated cost: ${estimate_cost(to_process):.3f}\n")

    if not args.yes and not ask_confirmation("Proceed with AI analysis? (y/N): "):
        print("\nCancelled.\n")
        return 0

    results = await pipeline.analyze_ai(limit=args.limit)

    print("\n" + "=" * 60)
    print("\nAI Analysis Summary:")
    print(f"  ✓ Analyzed: {results.analyzed} videos")
    print(f"  ⊘ Skipped: {results.skipped} videos (already analyzed or no transcript)")
    print(f"  ✗ Failed: {results.failed} videos")
    if results.errors:
        print("\nErrors:")
        for error in results.errors[:MAX_ERRORS_SHOWN]:
            print(f"  - {error['videoId']}: {error['error']}")
        if len(results.errors) > MAX_ERRORS_SHOWN:
            print(f"  ... and {len(results.errors) - MAX_ERRORS_SHOWN} more errors")
    print()
    return 0


async def cmd_report(pipeline: GuardianPipeline, args) -> int:
    store = pipeline.store
    videos = store.load_videos()

    if args.ai:
        classifications = {r.video_id: r for r in store.load_classifications()}
        tags_by_video = {}
        for tag, video_ids in store.load_tags().items():
            for video_id in video_ids:
                tags_by_video.setdefault(video_id, []).append(tag)
        print(render_ai_report(store.load_ai_verdicts(), videos, classifications, tags_by_video))
        return 0

    results = store.load_classifications()
    if not results:
        print("❌ No classifications found. Run 'analyze' first.\n")
        return 1
    profiler = ChannelProfiler()
    profiles = profiler.build(videos.values(), store.load_watch_history())
    enriched = await enrich_channel_profiles(profiles, store.load_channel_cache(), None)
    print(render_text_report(rank_results(results), summarize(results), videos, enriched.profiles))
    return 0


async def cmd_clear_channel_cache(pipeline: GuardianPipeline, args) -> int:
    cleared = pipeline.store.clear_channel_cache()
    print(f"✓ Cleared {cleared} cached channels\n")
    return 0


COMMANDS = {
    "ingest": cmd_ingest,
    "analyze": cmd_analyze,
    "analyze-ai": cmd_analyze_ai,
    "report": cmd_report,
    "clear-channel-cache": cmd_clear_channel_cache,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="youtube-guardian",
        description="Audit a YouTube watch history for content that is not suitable for kids.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Parse watch history and fetch video metadata")
    ingest.add_argument("--history", default=None, help="Path to watch-history.json")

    sub.add_parser("analyze", help="Classify all videos and print the report")

    analyze_ai = sub.add_parser("analyze-ai", help="Analyze transcripts with an LLM")
    analyze_ai.add_argument("--limit", type=_positive_int, default=None,
                            help="Analyze at most this many videos")
    analyze_ai.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")

    report = sub.add_parser("report", help="Print the last report")
    report.add_argument("--ai", action="store_true", help="Show AI verdicts instead")

    sub.add_parser("clear-channel-cache", help="Drop cached channel details")
    return parser


async def _run(pipeline: GuardianPipeline, args) -> int:
    try:
        return await COMMANDS[args.command](pipeline, args)
    finally:
        if pipeline.fetcher is not None:
            await pipeline.fetcher.close()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    pipeline = build_pipeline(load_settings())
    try:
        return asyncio.run(_run(pipeline, args))
    except GuardianError as e:
        print(f"\n❌ Error: {e}\n", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted. Cached progress is kept.\n", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
