import itertools

import pytest

from models import SignalTier
from rating_taxonomy import (
    MPAA_RATINGS, ParsedRating, Severity, exceeds_threshold, flag_severity,
    format_rating, most_restrictive, parse_content_rating, signal_tier_for,
)


class TestParseContentRating:
    def test_empty_map(self):
        assert parse_content_rating({}) == []
        assert parse_content_rating(None) == []

    @pytest.mark.parametrize("code", ["PG-13", "pg13", "Pg-13", "mpaaPg13"])
    def test_mpaa_code_variants(self, code):
        ratings = parse_content_rating({"mpaa": code})
        assert len(ratings) == 1
        assert ratings[0].scheme == "MPAA"
        assert ratings[0].age == 13
        assert ratings[0].severity == Severity.TEEN

    def test_api_style_keys(self):
        ratings = parse_content_rating({"mpaaRating": "mpaaR", "bbfcRating": "bbfc15"})
        assert [(r.scheme, r.age) for r in ratings] == [("MPAA", 17), ("BBFC", 15)]

    def test_bbfc_12a(self):
        [rating] = parse_content_rating({"bbfc": "12A"})
        assert rating.severity == Severity.TEEN
        assert "with adult" in rating.description

    def test_unknown_codes_and_schemes_dropped(self):
        ratings = parse_content_rating({
            "mpaa": "XYZ",
            "fsk": "fsk16",
            "bbfc": 18,
            "bbfcRating": "bbfcR18",
        })
        assert len(ratings) == 1
        assert ratings[0].description == "Restricted 18"

    def test_unrated_has_no_age(self):
        [rating] = parse_content_rating({"mpaa": "unrated"})
        assert rating.age is None
        assert rating.severity == Severity.UNKNOWN

    def test_value_is_uppercased(self):
        [rating] = parse_content_rating({"mpaa": "pg-13"})
        assert rating.value == "PG-13"

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            MPAA_RATINGS["x"] = None


def _rating(scheme, age, severity=Severity.TEEN, value="X"):
    return ParsedRating(scheme=scheme, value=value, age=age, severity=severity, description="")


class TestMostRestrictive:
    def test_empty(self):
        assert most_restrictive([]) is None

    def test_highest_age_wins(self):
        ratings = parse_content_rating({"mpaa": "PG", "bbfc": "15"})
        assert most_restrictive(ratings).scheme == "BBFC"

    def test_null_ages_skipped_when_any_age_present(self):
        ratings = parse_content_rating({"mpaa": "unrated", "bbfc": "U"})
        assert most_restrictive(ratings).scheme == "BBFC"

    def test_all_null_returns_first(self):
        first = _rating("MPAA", None, Severity.UNKNOWN, value="UNRATED")
        second = _rating("BBFC", None, Severity.UNKNOWN, value="OTHER")
        assert most_restrictive([first, second]) is first
        assert most_restrictive([second, first]) is second

    def test_order_independent(self):
        ratings = [
            _rating("MPAA", 18, Severity.ADULT),
            _rating("BBFC", 18, Severity.ADULT),
            _rating("BBFC", 12, Severity.TEEN),
            _rating("MPAA", None, Severity.UNKNOWN),
        ]
        expected = most_restrictive(ratings)
        for perm in itertools.permutations(ratings):
            assert most_restrictive(list(perm)) == expected

    def test_equal_age_prefers_higher_severity(self):
        teen = _rating("MPAA", 17, Severity.TEEN)
        mature = _rating("BBFC", 17, Severity.MATURE)
        assert most_restrictive([teen, mature]) is mature
        assert most_restrictive([mature, teen]) is mature


class TestSeverityMapping:
    @pytest.mark.parametrize("severity,tier", [
        (Severity.ADULT, SignalTier.FLAGS),
        (Severity.MATURE, SignalTier.FLAGS),
        (Severity.TEEN, SignalTier.WARNINGS),
        (Severity.UNKNOWN, SignalTier.WARNINGS),
        (Severity.GUIDANCE, SignalTier.INFO),
        (Severity.SAFE, SignalTier.INFO),
    ])
    def test_signal_tier(self, severity, tier):
        assert signal_tier_for(severity) == tier

    def test_flag_severity(self):
        assert flag_severity(Severity.ADULT) == "HIGH"
        assert flag_severity(Severity.TEEN) == "MEDIUM"
        assert flag_severity(Severity.UNKNOWN) == "MEDIUM"
        assert flag_severity(Severity.SAFE) == "LOW"


class TestHelpers:
    def test_exceeds_threshold_is_strict(self):
        [pg13] = parse_content_rating({"mpaa": "pg13"})
        [r] = parse_content_rating({"mpaa": "r"})
        assert exceeds_threshold(pg13) is False
        assert exceeds_threshold(r) is True
        assert exceeds_threshold(None) is False

    def test_format_rating_with_age(self):
        [rating] = parse_content_rating({"mpaa": "PG-13"})
        assert format_rating(rating) == "MPAA PG-13 (ages 13+) - Parents Strongly Cautioned"

    def test_format_rating_without_age(self):
        [rating] = parse_content_rating({"mpaa": "unrated"})
        assert format_rating(rating) == "MPAA UNRATED (Unrated)"
