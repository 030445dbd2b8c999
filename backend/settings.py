"""Configuration loading for YouTube Guardian."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Project root is one level up from backend/
PROJECT_ROOT = Path(__file__).parent.parent

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    youtube_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    ai_provider: str = "auto"
    ai_model: Optional[str] = None
    data_dir: Path = PROJECT_ROOT / "data"
    rules_path: Path = PROJECT_ROOT / "config" / "blocklist.json"
    youtube_call_delay: float = 1.0
    ai_call_delay: float = 1.0
    api_secret_key: str = ""

    @property
    def watch_history_path(self) -> Path:
        return self.data_dir / "watch-history.json"


def _resolve_path(value: Optional[str], default: Path) -> Path:
    if not value:
        return default
    path = Path(value)
    return path if path.is_absolute() else PROJECT_ROOT / path


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a number, using {default}")
        return default
    if value < 0:
        logger.warning(f"{name} must not be negative, using {default}")
        return default
    return value


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Load settings from the environment, after reading .env from the project root."""
    load_dotenv(env_file or PROJECT_ROOT / ".env")

    return Settings(
        youtube_api_key=os.getenv("YOUTUBE_API_KEY") or None,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        ai_provider=os.getenv("AI_PROVIDER", "auto").strip().lower() or "auto",
        ai_model=os.getenv("AI_MODEL") or None,
        data_dir=_resolve_path(os.getenv("GUARDIAN_DATA_DIR"), PROJECT_ROOT / "data"),
        rules_path=_resolve_path(os.getenv("GUARDIAN_RULES_PATH"), PROJECT_ROOT / "config" / "blocklist.json"),
        youtube_call_delay=_float("YOUTUBE_CALL_DELAY", 1.0),
        ai_call_delay=_float("AI_CALL_DELAY", 1.0),
        api_secret_key=os.getenv("API_SECRET_KEY", "").strip(),
    )


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
