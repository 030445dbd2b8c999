import json

import pytest

from rule_set import EMPTY_RULE_SET, RuleSet, category_name, load_rule_set


def test_missing_file_gives_empty_rule_set(tmp_path):
    rules = load_rule_set(tmp_path / "nope.json")
    assert rules.is_empty
    assert rules == EMPTY_RULE_SET


def test_loads_blocklist(tmp_path):
    path = tmp_path / "blocklist.json"
    path.write_text(json.dumps({
        "keywords": ["Graphic", "gore", "gore", ""],
        "channels": ["UC1"],
        "categories": [39, "20"],
    }))
    rules = load_rule_set(path)
    assert rules.keywords == ("Graphic", "gore")
    assert rules.channels == frozenset({"UC1"})
    assert rules.categories == frozenset({"39", "20"})


def test_malformed_json_degrades_to_empty(tmp_path):
    path = tmp_path / "blocklist.json"
    path.write_text("{not json")
    assert load_rule_set(path).is_empty


def test_wrong_shape_degrades_to_empty(tmp_path):
    path = tmp_path / "blocklist.json"
    path.write_text(json.dumps({"keywords": "graphic"}))
    assert load_rule_set(path).is_empty


def test_missing_sections_default_to_empty(tmp_path):
    path = tmp_path / "blocklist.json"
    path.write_text(json.dumps({"keywords": ["gore"]}))
    rules = load_rule_set(path)
    assert rules.keywords == ("gore",)
    assert rules.channels == frozenset()


def test_shipped_blocklist_loads():
    rules = load_rule_set()
    assert not rules.is_empty


def test_from_dict_rejects_non_object():
    with pytest.raises(ValueError):
        RuleSet.from_dict(["graphic"])


class TestMatchKeywords:
    def test_case_insensitive_substring(self):
        rules = RuleSet(keywords=("graphic", "GORE"))
        assert rules.match_keywords("Graphic Novel Review") == ["graphic"]
        assert rules.match_keywords("gorey details") == ["GORE"]

    def test_none_text(self):
        assert RuleSet(keywords=("x",)).match_keywords(None) == []

    def test_rule_order_preserved(self):
        rules = RuleSet(keywords=("b", "a"))
        assert rules.match_keywords("a b") == ["b", "a"]


def test_category_name():
    assert category_name("20") == "Gaming"
    assert category_name("999") == "Unknown"
    assert category_name(None) == "Unknown"
