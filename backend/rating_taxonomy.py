"""YouTube Guardian - Rating Taxonomy
Copyright (c) 2026 beautifulplanet
Licensed under MIT License

Maps regional content-rating codes (MPAA for the US, BBFC for the UK) to a
minimum viewer age and a normalized severity tier.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from models import SignalTier

logger = logging.getLogger(__name__)

DEFAULT_AGE_THRESHOLD = 13  # exceeds_threshold() default


class Severity(str, Enum):
    SAFE = "SAFE"
    GUIDANCE = "GUIDANCE"
    TEEN = "TEEN"
    MATURE = "MATURE"
    ADULT = "ADULT"
    UNKNOWN = "UNKNOWN"


# SAFE < GUIDANCE < TEEN < MATURE < ADULT < UNKNOWN
SEVERITY_RANK = MappingProxyType({s: i for i, s in enumerate(Severity)})


@dataclass(frozen=True)
class RatingInfo:
    age: Optional[int]
    severity: Severity
    description: str


@dataclass(frozen=True)
class ParsedRating:
    scheme: str          # "MPAA" or "BBFC"
    value: str           # code as supplied, upper-cased
    age: Optional[int]
    severity: Severity
    description: str


MPAA_RATINGS = MappingProxyType({
    "g": RatingInfo(0, Severity.SAFE, "General Audiences"),
    "pg": RatingInfo(7, Severity.GUIDANCE, "Parental Guidance Suggested"),
    "pg13": RatingInfo(13, Severity.TEEN, "Parents Strongly Cautioned"),
    "r": RatingInfo(17, Severity.MATURE, "Restricted"),
    "nc17": RatingInfo(18, Severity.ADULT, "Adults Only"),
    "unrated": RatingInfo(None, Severity.UNKNOWN, "Unrated"),
})

BBFC_RATINGS = MappingProxyType({
    "u": RatingInfo(0, Severity.SAFE, "Universal"),
    "pg": RatingInfo(8, Severity.GUIDANCE, "Parental Guidance"),
    "12": RatingInfo(12, Severity.TEEN, "Suitable for 12 years and over"),
    "12a": RatingInfo(12, Severity.TEEN, "Suitable for 12 years and over (with adult)"),
    "15": RatingInfo(15, Severity.TEEN, "Suitable only for 15 years and over"),
    "18": RatingInfo(18, Severity.ADULT, "Suitable only for adults"),
    "r18": RatingInfo(18, Severity.ADULT, "Restricted 18"),
})

# content-rating map key -> (scheme label, table)
RATING_SCHEMES = MappingProxyType({
    "mpaa": ("MPAA", MPAA_RATINGS),
    "mpaarating": ("MPAA", MPAA_RATINGS),
    "bbfc": ("BBFC", BBFC_RATINGS),
    "bbfcrating": ("BBFC", BBFC_RATINGS),
})

SEVERITY_TIERS = MappingProxyType({
    Severity.ADULT: SignalTier.FLAGS,
    Severity.MATURE: SignalTier.FLAGS,
    Severity.TEEN: SignalTier.WARNINGS,
    Severity.UNKNOWN: SignalTier.WARNINGS,
    Severity.GUIDANCE: SignalTier.INFO,
    Severity.SAFE: SignalTier.INFO,
})

FLAG_SEVERITIES = MappingProxyType({
    Severity.ADULT: "HIGH",
    Severity.MATURE: "HIGH",
    Severity.TEEN: "MEDIUM",
    Severity.UNKNOWN: "MEDIUM",
    Severity.GUIDANCE: "LOW",
    Severity.SAFE: "LOW",
})

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _normalize_code(code: str, scheme_key: str) -> str:
    """'PG-13', 'pg13' and the API's 'mpaaPg13' all become 'pg13'."""
    normalized = _NON_ALNUM.sub("", code.lower())
    prefix = scheme_key[:4]
    if normalized.startswith(prefix) and len(normalized) > len(prefix):
        normalized = normalized[len(prefix):]
    return normalized


def parse_content_rating(content_rating: Optional[Mapping]) -> list[ParsedRating]:
    """Resolve every recognized scheme entry, in map order. Unknown entries are dropped."""
    if not content_rating:
        return []

    ratings = []
    for key, code in content_rating.items():
        if not isinstance(key, str) or not isinstance(code, str):
            continue
        scheme = RATING_SCHEMES.get(key.lower())
        if scheme is None:
            continue
        label, table = scheme
        info = table.get(_normalize_code(code, key.lower()))
        if info is None:
            logger.debug(f"Unrecognized {label} rating code: {code!r}")
            continue
        ratings.append(ParsedRating(
            scheme=label,
            value=code.upper(),
            age=info.age,
            severity=info.severity,
            description=info.description,
        ))
    return ratings


def _outranks(candidate: ParsedRating, current: ParsedRating) -> bool:
    if candidate.age != current.age:
        return candidate.age > current.age
    cand_rank = SEVERITY_RANK[candidate.severity]
    curr_rank = SEVERITY_RANK[current.severity]
    if cand_rank != curr_rank:
        return cand_rank > curr_rank
    return candidate.scheme < current.scheme


def most_restrictive(ratings: Iterable[ParsedRating]) -> Optional[ParsedRating]:
    """
    Pick the rating with the highest minimum age.

    Equal ages fall back to severity rank, then scheme name, so reordering the
    input never changes the answer. When no rating has an age the first one
    seen is returned.
    """
    ratings = list(ratings)
    if not ratings:
        return None

    best = None
    for rating in ratings:
        if rating.age is None:
            continue
        if best is None or _outranks(rating, best):
            best = rating
    return best if best is not None else ratings[0]


def signal_tier_for(severity: Severity) -> SignalTier:
    return SEVERITY_TIERS[severity]


def flag_severity(severity: Severity) -> str:
    return FLAG_SEVERITIES[severity]


def exceeds_threshold(rating: Optional[ParsedRating], threshold: int = DEFAULT_AGE_THRESHOLD) -> bool:
    """True when the rating's minimum age is strictly above threshold."""
    if rating is None or rating.age is None:
        return False
    return rating.age > threshold


def format_rating(rating: Optional[ParsedRating]) -> str:
    if rating is None:
        return "Not rated"
    if rating.age is None:
        return f"{rating.scheme} {rating.value} ({rating.description})"
    return f"{rating.scheme} {rating.value} (ages {rating.age}+) - {rating.description}"
