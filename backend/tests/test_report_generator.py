from models import AIVerdict, ChannelMetadata, RiskLevel
from report_generator import (
    build_export, category_breakdown, format_duration, format_number,
    render_ai_report, render_text_report,
)
from risk_aggregator import classify_all_videos


def _batch(make_video, rules):
    videos = [
        make_video("high0000000", title="gore compilation", duration="PT10M5S", content_rating={"bbfc": "18"}),
        make_video("medium00000", title="teen drama", content_rating={"mpaa": "pg13"}),
        make_video("low00000000", title="Lego build", category_id="20"),
    ]
    return {v.id: v for v in videos}, classify_all_videos(videos, {}, rules)


def test_format_helpers():
    assert format_duration("PT1H2M3S") == "1h 2m 3s"
    assert format_duration("PT45S") == "45s"
    assert format_duration(None) == "Unknown"
    assert format_number(1234567) == "1,234,567"
    assert format_number(None) == "0"


class TestExport:
    def test_shape(self, make_video, make_profile, sample_rules):
        _, batch = _batch(make_video, sample_rules)
        profiles = [make_profile(f"UC{i}") for i in range(12)]
        export = build_export(batch.results, batch.summary, profiles, generated_at="2025-01-01T00:00:00Z")

        assert export["generatedAt"] == "2025-01-01T00:00:00Z"
        assert export["summary"] == {"total": 3, "highRisk": 1, "mediumRisk": 1, "lowRisk": 1}
        assert [v["videoId"] for v in export["concerningVideos"]] == ["high0000000", "medium00000"]
        assert len(export["topChannels"]) == 10
        assert len(export["allResults"]) == 3

    def test_empty_corpus(self):
        from risk_aggregator import RiskSummary
        export = build_export([], RiskSummary(), [])
        assert export["concerningVideos"] == []
        assert export["summary"]["total"] == 0


class TestTextReport:
    def test_sections(self, make_video, make_profile, sample_rules):
        videos, batch = _batch(make_video, sample_rules)
        profile = make_profile(videos_watched=3, has_age_restriction=True,
                               channel_info=ChannelMetadata(subscriber_count=1500))
        report = render_text_report(batch.results, batch.summary, videos, [profile])

        assert "Total Videos: 3" in report
        assert "Found 2 videos requiring attention" in report
        assert report.index("gore compilation") < report.index("teen drama")
        assert "Duration: 10m 5s" in report
        assert "Rating: BBFC 18" in report
        assert "Subscribers: 1,500" in report
        assert "Gaming" in report
        assert "high-risk videos - Review immediately" in report

    def test_clean_corpus(self, make_video, empty_rules):
        videos = {"a" * 11: make_video("a" * 11)}
        batch = classify_all_videos(videos.values(), {}, empty_rules)
        report = render_text_report(batch.results, batch.summary, videos, [])
        assert "NO CONCERNING CONTENT FOUND" in report
        assert "No concerning content detected" in report


def test_category_breakdown(make_video):
    videos = [make_video(category_id="20"), make_video(category_id="20"), make_video(category_id=None)]
    assert category_breakdown(videos) == [("Gaming", 2, 2 / 3 * 100), ("Unknown", 1, 1 / 3 * 100)]
    assert category_breakdown([]) == []


class TestAIReport:
    def test_ranked_by_ai_risk(self, make_video):
        verdicts = {
            "low00000000": AIVerdict(video_id="low00000000", risk_level=RiskLevel.LOW, summary="Lego"),
            "high0000000": AIVerdict(video_id="high0000000", risk_level=RiskLevel.HIGH, summary="Scary",
                                     reasoning="Graphic violence", content_flags=["violence"]),
        }
        videos = {"high0000000": make_video("high0000000", title="Scary video")}
        report = render_ai_report(verdicts, videos, {}, {"high0000000": ["horror", "violence"]})

        assert report.index("Scary video") < report.index("low00000000")
        assert "horror, violence" in report
        assert "→ Graphic violence" in report
        assert "HIGH risk: 1" in report

    def test_no_verdicts(self):
        assert "No AI analysis found" in render_ai_report({}, {}, {}, {})
