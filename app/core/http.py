from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

_RETRY_STATUS = {429, 500, 502, 503, 504}


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRY_STATUS
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))


class ResilientHTTPClient:
    def __init__(self, timeout: float = 10.0, retries: int = 3, user_agent: str = "wordspotr-bot/1.0") -> None:
        self.retries = max(1, int(retries))
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            follow_redirects=True,
        )

    async def _get(self, url: str, params: dict | None = None, headers: dict | None = None) -> httpx.Response:
        response = await self.client.get(url, params=params, headers=headers)
        response.raise_for_status()
        return response

    async def get_json(self, url: str, params: dict | None = None, headers: dict | None = None) -> Any:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "http_retry",
                        extra={"event": "http_retry", "url": url, "attempt": attempt.retry_state.attempt_number},
                    )
                response = await self._get(url, params=params, headers=headers)
        return response.json()

    async def close(self) -> None:
        await self.client.aclose()
