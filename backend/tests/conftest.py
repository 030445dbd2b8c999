import pytest
import sys
from pathlib import Path

# Add backend directory to path so imports work
backend_path = Path(__file__).parent.parent
sys.path.append(str(backend_path))

from guardian_store import GuardianStore
from models import ChannelProfile, VideoRecord, WatchEvent
from rule_set import RuleSet


@pytest.fixture
def mock_video_id():
    return "dQw4w9WgXcQ"


@pytest.fixture
def make_video():
    """Factory for VideoRecords with neutral defaults."""
    def _make(video_id="dQw4w9WgXcQ", **overrides):
        fields = {
            "id": video_id,
            "title": "Test Video Title",
            "description": "Test Description",
            "channel_id": "UC_test_channel",
            "channel_title": "Test Channel",
            "category_id": "27",
            "tags": [],
            "content_rating": {},
        }
        fields.update(overrides)
        return VideoRecord(**fields)
    return _make


@pytest.fixture
def make_event():
    def _make(video_id="dQw4w9WgXcQ", watched_at="2025-01-01T10:00:00Z", **overrides):
        fields = {
            "title_url": f"https://www.youtube.com/watch?v={video_id}",
            "watched_at": watched_at,
            "title": "Test Video Title",
            "channel": "Test Channel",
        }
        fields.update(overrides)
        return WatchEvent(**fields)
    return _make


@pytest.fixture
def make_profile():
    def _make(channel_id="UC_test_channel", **overrides):
        fields = {"channel_id": channel_id, "channel_title": "Test Channel", "videos_watched": 1}
        fields.update(overrides)
        return ChannelProfile(**fields)
    return _make


@pytest.fixture
def empty_rules():
    return RuleSet()


@pytest.fixture
def sample_rules():
    return RuleSet.from_dict({
        "keywords": ["graphic", "gore"],
        "channels": ["UC_blocked"],
        "categories": ["39"],
    })


@pytest.fixture
def store(tmp_path):
    return GuardianStore(tmp_path / "data")
