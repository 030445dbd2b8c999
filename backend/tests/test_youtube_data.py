import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch, MagicMock
import httpx
from youtube_data import (
    YouTubeDataFetcher, VIDEO_BATCH_SIZE, fetch_transcript, parse_channel_item, parse_video_item,
)


def _video_item(video_id="dQw4w9WgXcQ", **status):
    return {
        "id": video_id,
        "snippet": {
            "title": "Test Video",
            "description": "A description",
            "channelId": "UC_test",
            "channelTitle": "TestChannel",
            "tags": ["tag1", "tag2"],
            "categoryId": "22",
            "publishedAt": "2024-05-01T00:00:00Z",
        },
        "contentDetails": {"duration": "PT4M13S", "caption": "true", "contentRating": {"mpaaRating": "mpaaPg13"}},
        "statistics": {"viewCount": "1500", "likeCount": "30"},
        "status": {"privacyStatus": "public", **status},
    }


def _ok(items):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {"items": items}
    return response


class TestYouTubeDataFetcherContextManager:
    @pytest.mark.asyncio
    async def test_async_context_manager(self):
        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            assert fetcher.api_key == "fake-key"
            assert fetcher.client is not None

    @pytest.mark.asyncio
    async def test_close(self):
        fetcher = YouTubeDataFetcher(api_key="fake-key")
        await fetcher.close()
        assert fetcher.client.is_closed


class TestParseItems:
    def test_video_item(self):
        record = parse_video_item(_video_item(madeForKids=False, selfDeclaredMadeForKids=True))
        assert record.title == "Test Video"
        assert record.channel_id == "UC_test"
        assert record.view_count == 1500
        assert record.comment_count == 0
        assert record.has_caption is True
        assert record.content_rating == {"mpaaRating": "mpaaPg13"}
        assert record.made_for_kids is False
        assert record.self_declared_made_for_kids is True
        assert record.fetched_at is not None

    def test_missing_optional_fields(self):
        record = parse_video_item({"id": "abc", "snippet": {"title": None}})
        assert record.title == ""
        assert record.tags == []
        assert record.content_rating == {}
        assert record.made_for_kids is None

    def test_channel_item(self):
        info = parse_channel_item({
            "snippet": {"description": "About", "publishedAt": "2010-01-01T00:00:00Z"},
            "statistics": {"subscriberCount": "1200", "videoCount": "40", "hiddenSubscriberCount": False},
        })
        assert info.subscriber_count == 1200
        assert info.video_count == 40
        assert info.view_count == 0


class TestFetchVideos:
    @pytest.mark.asyncio
    async def test_no_api_key_returns_empty(self):
        async with YouTubeDataFetcher(api_key=None) as fetcher:
            assert await fetcher.fetch_video_batch(["test123"]) == []

    @pytest.mark.asyncio
    async def test_batch_request(self):
        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            with patch.object(fetcher, "_make_request_with_retry", new_callable=AsyncMock,
                              return_value=_ok([_video_item()])) as mock_request:
                records = await fetcher.fetch_video_batch(["dQw4w9WgXcQ", "gone0000000"])

                assert [r.id for r in records] == ["dQw4w9WgXcQ"]
                params = mock_request.call_args.args[1]
                assert params["id"] == "dQw4w9WgXcQ,gone0000000"
                assert params["key"] == "fake-key"

    @pytest.mark.asyncio
    async def test_splits_into_batches_of_fifty(self):
        ids = [f"vid{i:08d}" for i in range(VIDEO_BATCH_SIZE + 20)]
        persisted = []

        async def fake_batch(batch):
            return [parse_video_item(_video_item(video_id)) for video_id in batch]

        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            with patch.object(fetcher, "fetch_video_batch", side_effect=fake_batch) as mock_batch:
                records = await fetcher.fetch_videos(ids + ids[:5], on_batch=persisted.append)

        assert [len(call.args[0]) for call in mock_batch.call_args_list] == [50, 20]
        assert len(records) == 70
        assert [len(b) for b in persisted] == [50, 20]

    @pytest.mark.asyncio
    async def test_api_error_returns_empty(self):
        mock_response = MagicMock()
        mock_response.status_code = 403

        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            with patch.object(fetcher, "_make_request_with_retry", new_callable=AsyncMock, return_value=mock_response):
                assert await fetcher.fetch_video_batch(["test123"]) == []

    @pytest.mark.asyncio
    async def test_malformed_item_skipped(self):
        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            with patch.object(fetcher, "_make_request_with_retry", new_callable=AsyncMock,
                              return_value=_ok([{"id": ""}, _video_item()])):
                records = await fetcher.fetch_video_batch(["dQw4w9WgXcQ"])
                assert len(records) == 1


class TestGetChannelMetadata:
    @pytest.mark.asyncio
    async def test_parses_channel(self):
        item = {"id": "UC_test", "snippet": {"description": "hi"}, "statistics": {"subscriberCount": "10"}}
        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            with patch.object(fetcher, "_make_request_with_retry", new_callable=AsyncMock, return_value=_ok([item])):
                info = await fetcher.get_channel_metadata("UC_test")
                assert info.subscriber_count == 10
                assert info.description == "hi"

    @pytest.mark.asyncio
    async def test_unknown_channel_returns_none(self):
        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            with patch.object(fetcher, "_make_request_with_retry", new_callable=AsyncMock, return_value=_ok([])):
                assert await fetcher.get_channel_metadata("UC_gone") is None

    @pytest.mark.asyncio
    async def test_network_error_returns_none(self):
        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            with patch.object(fetcher, "_make_request_with_retry", new_callable=AsyncMock,
                              side_effect=httpx.ConnectError("down")):
                assert await fetcher.get_channel_metadata("UC_test") is None


class TestRetry:
    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        bad = MagicMock(status_code=503)
        good = MagicMock(status_code=200)
        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            with patch.object(fetcher.client, "get", new_callable=AsyncMock, side_effect=[bad, good]), \
                 patch("youtube_data.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
                response = await fetcher._make_request_with_retry("http://x", {})
                assert response is good
                mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        not_found = MagicMock(status_code=404)
        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            with patch.object(fetcher.client, "get", new_callable=AsyncMock, return_value=not_found) as mock_get:
                assert await fetcher._make_request_with_retry("http://x", {}) is not_found
                assert mock_get.await_count == 1

    @pytest.mark.asyncio
    async def test_network_errors_raise_after_retries(self):
        async with YouTubeDataFetcher(api_key="fake-key") as fetcher:
            with patch.object(fetcher.client, "get", new_callable=AsyncMock,
                              side_effect=httpx.ConnectError("down")) as mock_get, \
                 patch("youtube_data.asyncio.sleep", new_callable=AsyncMock):
                with pytest.raises(httpx.ConnectError):
                    await fetcher._make_request_with_retry("http://x", {})
                assert mock_get.await_count == 3


class TestFetchTranscript:
    @pytest.mark.asyncio
    async def test_joins_segments(self):
        segments = [SimpleNamespace(text="hello"), SimpleNamespace(text="world")]
        with patch("youtube_data.YouTubeTranscriptApi") as mock_api:
            mock_api.return_value.fetch.return_value = segments
            assert await fetch_transcript("dQw4w9WgXcQ") == "hello world"

    @pytest.mark.asyncio
    async def test_unavailable_returns_none(self):
        with patch("youtube_data.YouTubeTranscriptApi") as mock_api:
            mock_api.return_value.fetch.side_effect = RuntimeError("Transcripts are disabled")
            assert await fetch_transcript("dQw4w9WgXcQ") is None
