"""
YouTube Guardian - Backend API
Copyright (c) 2026 beautifulplanet
Licensed under MIT License

Read-only FastAPI server over the results of the last analysis run.

Data provided by YouTube Data API
https://developers.google.com/youtube
"""

import logging

from settings import LOG_FORMAT, load_settings

settings = load_settings()

# Configure logging
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

import re
import secrets
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from guardian_store import GuardianStore

# Security: Video ID validation pattern (11 chars, alphanumeric + hyphen/underscore)
VIDEO_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]{11}$')


def validate_video_id(video_id: str) -> str:
    """Validate YouTube video ID format to prevent injection attacks"""
    if not video_id or not VIDEO_ID_PATTERN.match(video_id):
        raise HTTPException(status_code=400, detail="Invalid video ID format")
    return video_id


app = FastAPI(
    title="YouTube Guardian API",
    description="Risk report for an audited YouTube watch history",
    version="1.0.0"
)

store = GuardianStore(settings.data_dir)


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Attach security headers (X-Content-Type-Options, X-Frame-Options, etc.)."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
    return response


# API Key Authentication middleware (optional, set API_SECRET_KEY in .env to enable)
_api_secret = settings.api_secret_key
# Endpoints that don't require authentication
_PUBLIC_ENDPOINTS = {"/health", "/docs", "/openapi.json", "/redoc"}

if _api_secret:
    logger.info("API authentication: ENABLED (API_SECRET_KEY set)")
else:
    logger.warning("API authentication: DISABLED. Set API_SECRET_KEY in .env to require auth.")


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    """Require X-API-Key header on protected endpoints when API_SECRET_KEY is configured."""
    if not _api_secret:
        return await call_next(request)

    path = request.url.path.rstrip("/")
    if path in _PUBLIC_ENDPOINTS or request.method == "OPTIONS":
        return await call_next(request)

    provided_key = request.headers.get("X-API-Key", "")
    if not secrets.compare_digest(provided_key, _api_secret):
        return JSONResponse(status_code=401, content={"detail": "Invalid or missing API key"})

    return await call_next(request)


class HealthResponse(BaseModel):
    status: str
    videos: int
    classified: int
    ai_analyzed: int
    last_report: Optional[str] = None


class VideoVerdicts(BaseModel):
    video_id: str
    video: Optional[dict] = None
    classification: Optional[dict] = None
    ai_verdict: Optional[dict] = None
    tags: list[str] = []


class TagCount(BaseModel):
    tag: str
    video_count: int
    video_ids: list[str]


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    export = store.load_export()
    return HealthResponse(
        status="healthy",
        videos=len(store.cached_video_ids()),
        classified=len(store.load_classifications()),
        ai_analyzed=len(store.analyzed_video_ids()),
        last_report=export.get("generatedAt") if export else None,
    )


def _require_export() -> dict:
    export = store.load_export()
    if not export:
        raise HTTPException(status_code=404, detail="No report yet. Run 'analyze' first.")
    return export


@app.get("/report")
async def get_report():
    """The last JSON export: summary, concerning videos, top channels, all results."""
    return _require_export()


@app.get("/videos/{video_id}", response_model=VideoVerdicts)
async def get_video(video_id: str):
    """Rule-based and AI verdicts for one video, side by side."""
    video_id = validate_video_id(video_id)

    video = store.get_video(video_id)
    classification = store.get_classification(video_id)
    verdict = store.get_ai_verdict(video_id)
    if video is None and classification is None and verdict is None:
        raise HTTPException(status_code=404, detail="Video not found")

    return VideoVerdicts(
        video_id=video_id,
        video=video.model_dump(by_alias=True) if video else None,
        classification=classification.to_dict() if classification else None,
        ai_verdict=verdict.model_dump(mode="json", by_alias=True) if verdict else None,
        tags=store.tags_for_video(video_id),
    )


@app.get("/tags", response_model=list[TagCount])
async def get_tags():
    """All tags with the videos they are attached to, most used first."""
    tags = [
        TagCount(tag=tag, video_count=len(ids), video_ids=list(ids))
        for tag, ids in store.load_tags().items()
    ]
    tags.sort(key=lambda t: t.video_count, reverse=True)
    return tags


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
