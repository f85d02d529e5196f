"""
Unit tests for media URL filtering over a mocked HTTP transport.
"""

import httpx
import pytest

from config.settings import MediaSettings
from conftest import make_payload
from execution.media_validator import MediaValidator
from execution.request_validator import validate_request

GOOD = "https://storage.googleapis.com/bucket/good.png"
MISSING = "https://storage.googleapis.com/bucket/missing.png"
BROKEN = "https://firebasestorage.googleapis.com/v0/b/app/o/broken.png"
FOREIGN = "https://cdn.example.com/picture.png"


def _handler(request: httpx.Request) -> httpx.Response:
    url = str(request.url)
    if url == MISSING:
        return httpx.Response(404)
    if url == BROKEN:
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(200)


@pytest.fixture
def client():
    return httpx.AsyncClient(transport=httpx.MockTransport(_handler))


@pytest.fixture
def validator(client):
    return MediaValidator(MediaSettings(), client=client)


class TestHostAllowList:
    @pytest.mark.parametrize(
        "url, allowed",
        [
            (GOOD, True),
            ("https://firebasestorage.googleapis.com/v0/b/x", True),
            (FOREIGN, False),
            ("https://storage.googleapis.com.evil.test/x", False),
            ("not a url", False),
        ],
    )
    def test_is_allowed_host(self, validator, url, allowed):
        assert validator.is_allowed_host(url) is allowed


class TestFilterRequest:
    @pytest.mark.asyncio
    async def test_keeps_only_reachable_allowed_urls(self, validator):
        request = validate_request(
            make_payload(
                mediaUrls=[GOOD, MISSING, FOREIGN, BROKEN],
                mediaCaptions=["good", "missing", "foreign", "broken"],
                mediaAnalysis=["a-good"],
            )
        )

        filtered = await validator.filter_request(request)

        assert filtered.media_urls == [GOOD]
        assert filtered.media_captions == ["good"]
        assert filtered.media_analysis == ["a-good"]
        # The original request is untouched
        assert len(request.media_urls) == 4

    @pytest.mark.asyncio
    async def test_captions_stay_aligned(self, validator):
        request = validate_request(
            make_payload(mediaUrls=[MISSING, GOOD], mediaCaptions=["missing", "good"])
        )

        filtered = await validator.filter_request(request)

        assert filtered.media_urls == [GOOD]
        assert filtered.media_captions == ["good"]

    @pytest.mark.asyncio
    async def test_no_media_is_a_no_op(self, validator, generation_request):
        assert await validator.filter_request(generation_request) is generation_request

    @pytest.mark.asyncio
    async def test_validation_can_be_disabled(self, client):
        validator = MediaValidator(MediaSettings(validate_urls=False), client=client)
        request = validate_request(make_payload(mediaUrls=[FOREIGN]))

        assert (await validator.filter_request(request)).media_urls == [FOREIGN]
