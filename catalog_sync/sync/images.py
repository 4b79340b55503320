"""
Best-effort product image resolution.

A stored image link may be a direct URL or a shared-drive link that only
renders under some URL shapes. We derive a prioritized candidate list from the
link and race the candidates concurrently; the highest-priority candidate that
answers successfully wins, otherwise the placeholder is used.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional
import httpx

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER = "/images/placeholder.svg"

_DRIVE_PATTERNS = (
    re.compile(r"/file/d/([a-zA-Z0-9_-]+)"),
    re.compile(r"open\?id=([a-zA-Z0-9_-]+)"),
    re.compile(r"thumbnail\?id=([a-zA-Z0-9_-]+)"),
    re.compile(r"uc\?.*id=([a-zA-Z0-9_-]+)"),
)

Probe = Callable[[str], Awaitable[bool]]


@dataclass(frozen=True)
class ImageCandidate:
    url: str
    kind: str            # direct | google-drive | placeholder
    priority: int


def extract_drive_file_id(url: str) -> Optional[str]:
    if not url or "drive.google.com" not in url:
        return None
    for pattern in _DRIVE_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def build_image_candidates(url: Optional[str], placeholder: str = DEFAULT_PLACEHOLDER) -> List[ImageCandidate]:
    """Candidate URLs for one stored image link, highest priority first."""
    candidates: List[ImageCandidate] = []
    url = (url or "").strip()

    if url.startswith("http") and "drive.google.com" not in url:
        candidates.append(ImageCandidate(url, "direct", 10))

    file_id = extract_drive_file_id(url)
    if file_id:
        candidates.extend([
            ImageCandidate(f"https://drive.google.com/uc?export=download&id={file_id}", "google-drive", 9),
            ImageCandidate(f"https://drive.google.com/thumbnail?id={file_id}&sz=w1000", "google-drive", 8),
            ImageCandidate(f"https://drive.google.com/uc?export=view&id={file_id}", "google-drive", 7),
            ImageCandidate(f"https://lh3.googleusercontent.com/d/{file_id}", "google-drive", 6),
        ])

    candidates.append(ImageCandidate(placeholder, "placeholder", 0))
    return sorted(candidates, key=lambda c: c.priority, reverse=True)


async def resolve_first_available(
    candidates: List[ImageCandidate],
    probe: Probe,
    timeout_seconds: float = 3.0,
) -> str:
    """Race every probeable candidate; return the best one that succeeded.

    Each candidate gets its own timeout. Relative URLs and the placeholder
    are not probed; the placeholder is the final fallback.
    """
    placeholder = next((c.url for c in candidates if c.kind == "placeholder"), DEFAULT_PLACEHOLDER)
    probeable = [c for c in candidates if c.kind != "placeholder" and c.url.startswith("http")]
    if not probeable:
        return placeholder

    async def _attempt(candidate: ImageCandidate) -> bool:
        try:
            return await asyncio.wait_for(probe(candidate.url), timeout=timeout_seconds)
        except Exception as e:
            logger.debug("Image candidate failed: %s (%s)", candidate.url, e)
            return False

    outcomes = await asyncio.gather(*(_attempt(c) for c in probeable))
    winners = [c for c, ok in zip(probeable, outcomes) if ok]
    if winners:
        best = max(winners, key=lambda c: c.priority)
        logger.debug("Working image URL found: %s", best.url)
        return best.url
    return placeholder


class HttpImageProbe:
    """Checks that a URL answers 2xx with an image content type."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout_seconds: float = 3.0) -> None:
        self._client = client
        self.timeout_seconds = timeout_seconds

    async def __call__(self, url: str) -> bool:
        if self._client is not None:
            return await self._check(self._client, url)
        async with httpx.AsyncClient(timeout=self.timeout_seconds, follow_redirects=True) as client:
            return await self._check(client, url)

    async def _check(self, client: httpx.AsyncClient, url: str) -> bool:
        response = await client.head(url)
        if response.status_code == 405:
            response = await client.get(url)
        if not response.is_success:
            return False
        content_type = response.headers.get("content-type", "")
        return content_type.startswith("image/") or not content_type
