"""YouTube Guardian - Rule Set
Copyright (c) 2026 beautifulplanet
Licensed under MIT License

The user-editable blocklist (keywords, channel ids, category ids) and the
built-in kids-content heuristics. Think of it like the definitions file of an
antivirus scanner: the classifier supplies the engine, this supplies the rules.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent.parent / "config" / "blocklist.json"

# Kids-content heuristic for channel profiles
KIDS_RATIO_THRESHOLD = 0.1      # below this a channel "rarely posts kid content"
KIDS_MIN_VIDEOS_WATCHED = 3     # profile must have strictly more watched videos

# YouTube video category ids -> display names
CATEGORY_NAMES = MappingProxyType({
    "1": "Film & Animation", "2": "Autos & Vehicles", "10": "Music", "15": "Pets & Animals",
    "17": "Sports", "18": "Short Movies", "19": "Travel & Events", "20": "Gaming",
    "21": "Videoblogging", "22": "People & Blogs", "23": "Comedy", "24": "Entertainment",
    "25": "News & Politics", "26": "Howto & Style", "27": "Education", "28": "Science & Technology",
    "29": "Nonprofits & Activism", "30": "Movies", "31": "Anime/Animation", "32": "Action/Adventure",
    "33": "Classics", "34": "Comedy", "35": "Documentary", "36": "Drama", "37": "Family",
    "38": "Foreign", "39": "Horror", "40": "Sci-Fi/Fantasy", "41": "Thriller", "42": "Shorts",
    "43": "Shows", "44": "Trailers",
})


def category_name(category_id: Optional[str]) -> str:
    """Display name for a category id, 'Unknown' when absent or unmapped."""
    if category_id is None:
        return "Unknown"
    return CATEGORY_NAMES.get(str(category_id), "Unknown")


def _clean(values: Iterable) -> tuple[str, ...]:
    cleaned = []
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return tuple(cleaned)


@dataclass(frozen=True)
class RuleSet:
    keywords: tuple[str, ...] = ()
    channels: frozenset = frozenset()
    categories: frozenset = frozenset()

    @classmethod
    def from_dict(cls, data: dict) -> "RuleSet":
        """Build from the blocklist JSON shape {keywords, channels, categories}."""
        if not isinstance(data, dict):
            raise ValueError("rule set must be a JSON object")
        sections = {}
        for key in ("keywords", "channels", "categories"):
            value = data.get(key) or []
            if not isinstance(value, list):
                raise ValueError(f"'{key}' must be a list")
            sections[key] = _clean(value)
        return cls(
            keywords=sections["keywords"],
            channels=frozenset(sections["channels"]),
            categories=frozenset(sections["categories"]),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.keywords or self.channels or self.categories)

    def match_keywords(self, text: Optional[str]) -> list[str]:
        """Blocklist keywords found in text (case-insensitive substring), in rule order."""
        if not text:
            return []
        lowered = text.lower()
        return [k for k in self.keywords if k.lower() in lowered]

    def to_dict(self) -> dict:
        return {
            "keywords": list(self.keywords),
            "channels": sorted(self.channels),
            "categories": sorted(self.categories),
        }


EMPTY_RULE_SET = RuleSet()


def load_rule_set(path=None) -> RuleSet:
    """
    Load the blocklist file.

    A missing, unreadable or malformed file degrades to an empty rule set so
    the classifier still runs its rating and channel checks.
    """
    rules_path = Path(path) if path else DEFAULT_RULES_PATH

    if not rules_path.exists():
        logger.warning(f"⚠️ Blocklist not found at {rules_path}, using empty rule set")
        return EMPTY_RULE_SET

    try:
        with open(rules_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        rule_set = RuleSet.from_dict(data)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading blocklist {rules_path}: {e}")
        return EMPTY_RULE_SET

    logger.info(
        f"Blocklist: {len(rule_set.keywords)} keywords, "
        f"{len(rule_set.channels)} channels, {len(rule_set.categories)} categories"
    )
    return rule_set
