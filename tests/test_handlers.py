from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from app.bot import handlers
from app.core.filters import FilterKey, Range, Threshold
from app.services.state import StateStore


class _DummyCache:
    def __init__(self) -> None:
        self.data: dict[str, Any] = {}

    async def get_json(self, key: str) -> Any:
        return self.data.get(key)

    async def set_json(self, key: str, value: Any, ttl: int = 0) -> None:  # noqa: ARG002
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class _Message:
    def __init__(self, text: str, chat_id: int = 7) -> None:
        self.text = text
        self.chat = SimpleNamespace(id=chat_id)
        self.replies: list[str] = []

    async def answer(self, text: str, **kwargs: Any) -> None:  # noqa: ARG002
        self.replies.append(text)


@pytest.fixture
def hub(monkeypatch) -> SimpleNamespace:
    hub = SimpleNamespace(cache=_DummyCache(), store=StateStore())
    monkeypatch.setattr(handlers, "_hub", hub)
    return hub


@pytest.mark.asyncio
async def test_invalid_custom_range_keeps_existing_filter(hub) -> None:
    hub.store.set_filter(7, FilterKey.MARKET_CAP, Threshold(">", 100_000))
    await handlers._set_pending_range(7, FilterKey.MARKET_CAP)
    before = hub.store.get_filters(7)

    message = _Message("min 50000 max 10000")
    await handlers.custom_range_text(message)

    assert hub.store.get_filters(7) == before
    assert hub.store.get_filters(7).get(FilterKey.MARKET_CAP) == Threshold(">", 100_000)
    assert "pending_range:7" in hub.cache.data
    assert len(message.replies) == 1


@pytest.mark.asyncio
async def test_valid_custom_range_replaces_filter_and_clears_pending(hub) -> None:
    hub.store.set_filter(7, FilterKey.LIQUIDITY, Threshold("<", 5_000))
    await handlers._set_pending_range(7, FilterKey.LIQUIDITY)

    await handlers.custom_range_text(_Message("min 10k max 50k"))

    assert hub.store.get_filters(7).get(FilterKey.LIQUIDITY) == Range(10_000.0, 50_000.0)
    assert "pending_range:7" not in hub.cache.data


@pytest.mark.asyncio
async def test_text_without_pending_range_is_ignored(hub) -> None:
    message = _Message("min 1 max 2")
    await handlers.custom_range_text(message)

    assert not hub.store.get_filters(7)
    assert message.replies == []
