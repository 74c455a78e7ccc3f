"""HEAD-check delivery URLs after a migration."""

from __future__ import annotations

import asyncio
import logging

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class UrlCheck(BaseModel):
    url: str
    accessible: bool
    status: int | None = None
    error: str | None = None


class VerificationReport(BaseModel):
    results: list[UrlCheck] = Field(default_factory=list)

    @property
    def accessible(self) -> int:
        return sum(1 for r in self.results if r.accessible)

    @property
    def inaccessible(self) -> int:
        return len(self.results) - self.accessible

    @property
    def success_rate(self) -> float:
        if not self.results:
            return 0.0
        return self.accessible / len(self.results)


async def verify_urls(
    urls: list[str],
    timeout: float = 10.0,
    max_concurrency: int = 8,
    transport: httpx.AsyncBaseTransport | None = None,
) -> VerificationReport:
    """Issue a HEAD request per URL and report which ones answer 2xx/3xx."""
    semaphore = asyncio.Semaphore(max_concurrency)

    async with httpx.AsyncClient(
        timeout=timeout, follow_redirects=True, transport=transport
    ) as client:

        async def _check(url: str) -> UrlCheck:
            async with semaphore:
                try:
                    resp = await client.head(url)
                except httpx.HTTPError as e:
                    logger.debug("HEAD %s failed: %s", url, e)
                    return UrlCheck(url=url, accessible=False, error=str(e))
                return UrlCheck(url=url, accessible=resp.is_success, status=resp.status_code)

        results = await asyncio.gather(*(_check(u) for u in urls))

    return VerificationReport(results=list(results))
