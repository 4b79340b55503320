import asyncio

import httpx
import pytest

from catalog_sync.sync.images import (
    DEFAULT_PLACEHOLDER,
    HttpImageProbe,
    build_image_candidates,
    extract_drive_file_id,
    resolve_first_available,
)

DRIVE_URL = "https://drive.google.com/file/d/abc123XYZ/view?usp=sharing"


class FakeProbe:
    def __init__(self, working=(), slow=()):
        self.working = set(working)
        self.slow = set(slow)
        self.calls = []

    async def __call__(self, url):
        self.calls.append(url)
        if url in self.slow:
            await asyncio.sleep(5)
        return url in self.working


def test_extract_drive_file_id():
    assert extract_drive_file_id(DRIVE_URL) == "abc123XYZ"
    assert extract_drive_file_id("https://drive.google.com/open?id=F1") == "F1"
    assert extract_drive_file_id("https://example.com/a.jpg") is None


def test_direct_url_candidates():
    candidates = build_image_candidates("https://example.com/a.jpg")
    assert [c.kind for c in candidates] == ["direct", "placeholder"]


def test_drive_url_candidates_are_prioritized():
    candidates = build_image_candidates(DRIVE_URL)
    priorities = [c.priority for c in candidates]
    assert priorities == sorted(priorities, reverse=True)
    assert candidates[0].url == "https://drive.google.com/uc?export=download&id=abc123XYZ"
    assert candidates[-1].kind == "placeholder"


def test_empty_url_only_placeholder():
    assert [c.url for c in build_image_candidates(None)] == [DEFAULT_PLACEHOLDER]


@pytest.mark.asyncio
async def test_highest_priority_success_wins():
    candidates = build_image_candidates(DRIVE_URL)
    thumbnail = candidates[1].url
    lh3 = candidates[3].url
    probe = FakeProbe(working={thumbnail, lh3})

    assert await resolve_first_available(candidates, probe) == thumbnail
    assert len(probe.calls) == 4


@pytest.mark.asyncio
async def test_all_failures_fall_back_to_placeholder():
    candidates = build_image_candidates("https://example.com/missing.jpg", placeholder="/img/none.svg")
    assert await resolve_first_available(candidates, FakeProbe()) == "/img/none.svg"


@pytest.mark.asyncio
async def test_slow_candidate_times_out():
    url = "https://example.com/slow.jpg"
    candidates = build_image_candidates(url)
    probe = FakeProbe(working={url}, slow={url})
    assert await resolve_first_available(candidates, probe, timeout_seconds=0.05) == DEFAULT_PLACEHOLDER


@pytest.mark.asyncio
async def test_http_probe_checks_content_type():
    def handler(request):
        if request.url.path == "/photo.jpg":
            return httpx.Response(200, headers={"content-type": "image/jpeg"})
        if request.url.path == "/page":
            return httpx.Response(200, headers={"content-type": "text/html"})
        if request.url.path == "/nohead.png":
            if request.method == "HEAD":
                return httpx.Response(405)
            return httpx.Response(200, headers={"content-type": "image/png"})
        return httpx.Response(404)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        probe = HttpImageProbe(client=client)
        assert await probe("https://cdn.test/photo.jpg") is True
        assert await probe("https://cdn.test/page") is False
        assert await probe("https://cdn.test/nohead.png") is True
        assert await probe("https://cdn.test/missing") is False
