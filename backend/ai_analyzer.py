"""YouTube Guardian - AI Transcript Analyzer
Copyright (c) 2026 beautifulplanet
Licensed under MIT License

Optional deep analysis: a video's transcript is sent to an LLM which returns
a summary, topic tags and its own risk verdict. The verdict is stored next to
the rule-based classification and never replaces it.

Supports:
- OpenAI (gpt-4o-mini by default, JSON mode)
- Anthropic (Claude)
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Optional

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import OracleError
from models import AIVerdict, FlaggedSeverity, RiskLevel, VideoRecord
from rate_limiter import MinIntervalLimiter

logger = logging.getLogger(__name__)

# --- Oracle constants ---
MAX_TRANSCRIPT_CHARS = 10000       # transcript budget per request
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"
TEMPERATURE = 0.3
MAX_TOKENS = 500
COST_PER_VIDEO_USD = 0.0002        # rough gpt-4o-mini cost for one transcript

SYSTEM_PROMPT = """You are a content safety analyzer for parental monitoring of children's YouTube viewing.

Analyze the video transcript and provide:
1. Summary - very concise 1-sentence description of what the video is about
2. Tags - relevant topics/themes/concerns (e.g., violence, education, gaming, profanity, scary-content, adult-themes)
3. Risk level - HIGH (inappropriate for kids), MEDIUM (parental guidance recommended), or LOW (safe for kids)
4. Reasoning - brief explanation of the risk assessment
5. Content flags - specific concerns found (e.g., profanity, violence, sexual-content), empty if none
6. Flagged severity - SEVERE, MODERATE or NONE for the content flags

Respond with ONLY valid JSON (no markdown, no code fences):
{
  "summary": "One sentence describing the video content",
  "tags": ["tag1", "tag2", "tag3"],
  "riskLevel": "HIGH|MEDIUM|LOW",
  "reasoning": "Brief explanation",
  "contentFlags": ["flag1"],
  "flaggedSeverity": "SEVERE|MODERATE|NONE"
}"""

TranscriptSource = Callable[[str], Awaitable[Optional[str]]]


class OracleResponse(BaseModel):
    """Structured oracle reply. Anything that fails validation is an OracleError."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: str = ""
    tags: list[str] = Field(default_factory=list)
    risk_level: RiskLevel = Field(alias="riskLevel")
    reasoning: str = ""
    content_flags: list[str] = Field(default_factory=list, alias="contentFlags")
    flagged_severity: FlaggedSeverity = Field(FlaggedSeverity.NONE, alias="flaggedSeverity")

    @field_validator("risk_level", "flagged_severity", mode="before")
    @classmethod
    def _upper(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("flagged_severity", mode="before")
    @classmethod
    def _severity_default(cls, v):
        return v or FlaggedSeverity.NONE

    @field_validator("tags", "content_flags", mode="before")
    @classmethod
    def _string_list(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("expected a list of strings")
        return [str(t) for t in v if t is not None]

    @field_validator("summary", "reasoning", mode="before")
    @classmethod
    def _text_default(cls, v):
        return v or ""


def truncate_transcript(text: str, limit: int = MAX_TRANSCRIPT_CHARS) -> str:
    """Cap text at `limit` characters without leaving half of a surrogate pair."""
    if not text or len(text) <= limit:
        return text or ""
    truncated = text[:limit]
    if truncated and "\ud800" <= truncated[-1] <= "\udbff":
        truncated = truncated[:-1]
    return truncated


def merge_tags(native: Iterable[str], ai: Iterable[str]) -> list[str]:
    """Union of native and AI tags, lower-cased, first occurrence wins."""
    merged = []
    seen = set()
    for tag in list(native or []) + list(ai or []):
        if not isinstance(tag, str):
            continue
        name = tag.strip().lower()
        if name and name not in seen:
            seen.add(name)
            merged.append(name)
    return merged


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
    return text.strip()


class TranscriptAnalyzer:
    """LLM client that turns a transcript into an OracleResponse."""

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        provider: str = "auto",
        model: Optional[str] = None,
    ):
        """
        Args:
            openai_api_key: OpenAI API key
            anthropic_api_key: Anthropic API key
            provider: "openai", "anthropic", or "auto" (OpenAI first, as it is the cheaper default)
            model: Override model name
        """
        if provider == "auto":
            if openai_api_key:
                provider = "openai"
            elif anthropic_api_key:
                provider = "anthropic"
            else:
                provider = "none"
        self.provider = provider

        self._openai_client = None
        self._anthropic_client = None
        if self.provider == "openai" and openai_api_key:
            self._openai_client = AsyncOpenAI(api_key=openai_api_key)
        elif self.provider == "anthropic" and anthropic_api_key:
            self._anthropic_client = AsyncAnthropic(api_key=anthropic_api_key)

        if model:
            self.model = model
        elif self.provider == "anthropic":
            self.model = DEFAULT_ANTHROPIC_MODEL
        else:
            self.model = DEFAULT_OPENAI_MODEL

        logger.info(f"🧠 Transcript analyzer initialized: provider={self.provider}, model={self.model}")

    @property
    def is_enabled(self) -> bool:
        return self._openai_client is not None or self._anthropic_client is not None

    async def analyze_transcript(self, text: str) -> OracleResponse:
        """Send one transcript to the oracle. Every failure surfaces as OracleError."""
        if not self.is_enabled:
            raise OracleError("No AI provider configured")

        user_message = f"Analyze this transcript:\n\n{truncate_transcript(text)}"
        try:
            if self._openai_client is not None:
                raw = await self._call_openai(user_message)
            else:
                raw = await self._call_anthropic(user_message)
        except OracleError:
            raise
        except Exception as e:
            raise OracleError(f"Oracle request failed: {e}") from e

        return self._parse(raw)

    async def _call_openai(self, user_message: str) -> str:
        response = await self._openai_client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_message},
            ],
            temperature=TEMPERATURE,
            max_tokens=MAX_TOKENS,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
        if not content:
            raise OracleError("Oracle returned an empty response")
        return content

    async def _call_anthropic(self, user_message: str) -> str:
        response = await self._anthropic_client.messages.create(
            model=self.model,
            max_tokens=MAX_TOKENS,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": user_message}],
            temperature=TEMPERATURE,
        )
        if not response.content:
            raise OracleError("Oracle returned an empty response")
        return _strip_code_fences(response.content[0].text)

    @staticmethod
    def _parse(raw: str) -> OracleResponse:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise OracleError(f"Oracle returned malformed JSON: {e}") from e
        if not isinstance(data, dict):
            raise OracleError("Oracle response is not a JSON object")
        try:
            result = OracleResponse.model_validate(data)
        except ValidationError as e:
            raise OracleError(f"Oracle response failed validation: {e.error_count()} errors") from e

        logger.info(f"🧠 Oracle verdict: risk={result.risk_level.value}, "
                    f"{len(result.tags)} tags, {len(result.content_flags)} flags")
        return result


async def analyze_video(video: VideoRecord, transcript: str,
                        analyzer: TranscriptAnalyzer, store) -> AIVerdict:
    """
    Analyze one transcript and persist the verdict with its merged tags.

    Nothing is written unless the oracle call and validation succeed, and the
    verdict and tags are written together.
    """
    response = await analyzer.analyze_transcript(transcript)
    tags = merge_tags(video.tags, response.tags)
    verdict = AIVerdict(
        video_id=video.id,
        risk_level=response.risk_level,
        summary=response.summary,
        content_flags=response.content_flags,
        flagged_severity=response.flagged_severity,
        reasoning=response.reasoning,
        tags=tags,
        model=analyzer.model,
        analyzed_at=datetime.now(timezone.utc).isoformat(),
    )
    store.save_ai_verdict(verdict)
    return verdict


@dataclass
class AIBatchResult:
    analyzed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "analyzed": self.analyzed,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


def estimate_cost(video_count: int) -> float:
    return video_count * COST_PER_VIDEO_USD


async def analyze_all_videos(
    videos: Iterable[VideoRecord],
    transcript_source: TranscriptSource,
    analyzer: TranscriptAnalyzer,
    store,
    limiter: Optional[MinIntervalLimiter] = None,
    limit: Optional[int] = None,
) -> AIBatchResult:
    """
    Run the oracle over every video that has not been analyzed yet.

    Videos already analyzed or without a transcript count as skipped. `limit`
    caps the number of oracle calls. A failed oracle call or store write is recorded
    for that video and the batch moves on.
    """
    result = AIBatchResult()
    analyzed_ids = store.analyzed_video_ids()
    pending = []
    for video in videos:
        if video.id in analyzed_ids:
            result.skipped += 1
        else:
            pending.append(video)

    logger.info(f"Analyzing up to {limit or len(pending)} of {len(pending)} videos with AI...")

    attempts = 0
    for video in pending:
        if limit is not None and attempts >= limit:
            result.skipped += 1
            continue

        try:
            transcript = await transcript_source(video.id)
        except Exception as e:
            logger.warning(f"Transcript unavailable for {video.id}: {e}")
            transcript = None
        if not transcript:
            result.skipped += 1
            continue

        attempts += 1
        progress = f"[{attempts}/{limit or len(pending)}]"
        try:
            if limiter is not None:
                await limiter.wait()
            verdict = await analyze_video(video, transcript, analyzer, store)
        except (OracleError, OSError) as e:
            result.failed += 1
            result.errors.append({"videoId": video.id, "error": str(e)})
            logger.warning(f"{progress} ✗ {video.id} - {e}")
            continue

        result.analyzed += 1
        logger.info(f"{progress} ✓ {video.id} - {len(verdict.tags)} tags, {verdict.risk_level.value} risk")

    return result
