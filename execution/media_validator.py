"""
Media URL Validator
===================
Filters uploaded media references before they reach the prompts.

- Host allow-list (cloud storage buckets by default)
- HEAD request per URL; only success statuses survive
- Captions and analyses stay index-aligned with the surviving URLs

Network failures drop the URL with a warning; they never fail the request.
"""

from typing import Optional
from urllib.parse import urlparse

import httpx
from loguru import logger

from config.settings import MediaSettings
from core.models import GenerationRequest


class MediaValidator:
    """Keeps only reachable media URLs on allowed hosts."""

    def __init__(self, settings: MediaSettings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._client = client

    def is_allowed_host(self, url: str) -> bool:
        host = (urlparse(url).hostname or "").lower()
        return any(
            host == allowed or host.endswith(f".{allowed}")
            for allowed in self.settings.allowed_hosts
        )

    async def _is_reachable(self, client: httpx.AsyncClient, url: str) -> bool:
        try:
            response = await client.head(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.warning(f"Media URL check failed | url={url[:50]} | error={e}")
            return False

        if response.is_success:
            return True
        logger.warning(f"Media URL not accessible | url={url[:50]} | status={response.status_code}")
        return False

    async def filter_request(self, request: GenerationRequest) -> GenerationRequest:
        """
        Return a request whose media lists hold only validated entries.

        Args:
            request: Validated request

        Returns:
            The same request when there is nothing to filter, else a copy
        """
        if not request.media_urls or not self.settings.validate_urls:
            return request

        if self._client is not None:
            keep = await self._validate(self._client, request.media_urls)
        else:
            async with httpx.AsyncClient(timeout=self.settings.head_timeout) as client:
                keep = await self._validate(client, request.media_urls)

        logger.info(f"Media URLs validated | total={len(request.media_urls)} | kept={len(keep)}")

        def aligned(values: list[str]) -> list[str]:
            return [values[i] for i in keep if i < len(values)]

        return request.model_copy(
            update={
                "media_urls": aligned(request.media_urls),
                "media_captions": aligned(request.media_captions),
                "media_analysis": aligned(request.media_analysis),
            }
        )

    async def _validate(self, client: httpx.AsyncClient, urls: list[str]) -> list[int]:
        keep: list[int] = []
        for index, url in enumerate(urls):
            if not self.is_allowed_host(url):
                logger.warning(f"Skipping media URL on disallowed host | url={url[:50]}")
                continue
            if await self._is_reachable(client, url):
                keep.append(index)
        return keep


__all__ = ["MediaValidator"]
