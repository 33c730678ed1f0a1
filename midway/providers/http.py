"""
Outbound HTTP for map providers: a retrying transport and client builder.
"""
import asyncio
import logging
from typing import Dict, Optional

import httpx

from midway.config import Settings
from midway.errors import NetworkError, ProviderError, RateLimited

logger = logging.getLogger(__name__)


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class RetryTransport(httpx.AsyncBaseTransport):
    """
    Wraps another transport and retries transient failures.

    A request is retried when no response arrives, or the response is 5xx or
    429. Attempt ``n`` waits ``n * retry_delay`` seconds first. After
    ``max_retries`` the last response is returned or the last error re-raised.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        self.transport = transport
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        attempt = 0
        while True:
            try:
                response = await self.transport.handle_async_request(request)
            except httpx.TransportError as e:
                if attempt >= self.max_retries:
                    logger.error(f"{request.method} {request.url.path} failed after {attempt + 1} attempts: {e}")
                    raise
                attempt += 1
                logger.warning(f"Retrying {request.method} {request.url.path} ({attempt}/{self.max_retries}): {e}")
            else:
                if not is_retryable_status(response.status_code) or attempt >= self.max_retries:
                    return response
                await response.aclose()
                attempt += 1
                logger.warning(
                    f"Retrying {request.method} {request.url.path} "
                    f"({attempt}/{self.max_retries}): HTTP {response.status_code}"
                )
            await asyncio.sleep(self.retry_delay * attempt)

    async def aclose(self) -> None:
        await self.transport.aclose()


def build_client(
    settings: Settings,
    base_url: str = "",
    headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """AsyncClient with the configured timeout and retry policy."""
    return httpx.AsyncClient(
        base_url=base_url,
        headers=headers or {},
        timeout=settings.http_timeout_seconds,
        transport=RetryTransport(
            transport or httpx.AsyncHTTPTransport(),
            max_retries=settings.http_max_retries,
            retry_delay=settings.http_retry_delay_seconds,
        ),
    )


async def get_json(client: httpx.AsyncClient, url: str, **kwargs) -> dict:
    """GET ``url`` and decode JSON, mapping failures onto provider errors."""
    try:
        resp = await client.get(url, **kwargs)
    except httpx.TransportError as e:
        raise NetworkError(f"Request to {url} failed: {e}") from e

    if resp.status_code == 429:
        raise RateLimited("Provider rate limit exceeded", details={"url": url})
    if resp.status_code >= 400:
        raise ProviderError(
            f"Provider returned HTTP {resp.status_code}",
            details={"url": url, "status": resp.status_code, "body": resp.text[:500]},
        )
    try:
        return resp.json()
    except ValueError as e:
        raise ProviderError(f"Invalid JSON from {url}") from e
