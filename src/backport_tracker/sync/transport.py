"""Rate-limit aware HTTP transport for the Jira client.

This module provides an httpx transport decorator that retries requests
rejected with HTTP 429. The wait honours a server-supplied Retry-After
header and otherwise falls back to exponential backoff. Every attempt is
rebuilt from a buffered body so a retried request never reuses a stream
that an earlier attempt already consumed.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
TOO_MANY_REQUESTS = 429


def parse_retry_after(value: str | None) -> int | None:
    """Parse a Retry-After header given in whole seconds.

    Args:
        value: Raw header value, or None when the header is missing.

    Returns:
        Positive number of seconds, or None if the header is missing,
        non-numeric or not positive.
    """
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    return seconds if seconds > 0 else None


class RetryingTransport(httpx.AsyncBaseTransport):
    """Retry 429 responses from a wrapped transport.

    Transport errors (connection failures, timeouts) are raised straight
    away. Non-429 responses, including 4xx and 5xx, are handed back as
    they are. A 429 received on the last permitted attempt is also handed
    back rather than retried.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    ) -> None:
        """Initialize the transport.

        Args:
            transport: Transport that performs the actual I/O.
            max_retries: Retries allowed after the first attempt.
            initial_backoff: First backoff wait in seconds, doubled on each use.
        """
        self._transport = transport or httpx.AsyncHTTPTransport()
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        body = await request.aread()
        # Framing headers are recomputed from the buffered body
        headers = request.headers.copy()
        headers.pop("Content-Length", None)
        headers.pop("Transfer-Encoding", None)
        backoff = self.initial_backoff

        for retries in range(self.max_retries + 1):
            attempt = httpx.Request(
                method=request.method,
                url=request.url,
                headers=headers,
                content=body,
                extensions=request.extensions,
            )
            response = await self._transport.handle_async_request(attempt)

            if response.status_code != TOO_MANY_REQUESTS or retries == self.max_retries:
                return response

            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            await response.aclose()

            if retry_after is not None:
                wait_time = float(retry_after)
            else:
                wait_time = backoff
                backoff *= 2

            logger.warning(f"Rate limited by Jira API. Retrying in {wait_time:g}s. Attempt {retries + 1}/{self.max_retries}")
            await self._wait(wait_time)

        # Unreachable: the final iteration always returns
        raise RuntimeError("retry loop exited unexpectedly")

    async def _wait(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    async def aclose(self) -> None:
        await self._transport.aclose()
