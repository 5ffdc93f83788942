from __future__ import annotations

import httpx
import pytest

from app.core.http import ResilientHTTPClient


def _client(handler, retries: int = 3) -> ResilientHTTPClient:
    client = ResilientHTTPClient(timeout=1.0, retries=retries)
    client.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


@pytest.mark.asyncio
async def test_get_json_retries_server_errors() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"pairs": []})

    client = _client(handler)
    try:
        assert await client.get_json("https://api.example/search", params={"q": "moon"}) == {"pairs": []}
    finally:
        await client.close()
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_get_json_does_not_retry_client_errors() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(404)

    client = _client(handler)
    try:
        with pytest.raises(httpx.HTTPStatusError):
            await client.get_json("https://api.example/missing")
    finally:
        await client.close()
    assert calls["n"] == 1
