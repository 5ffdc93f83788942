from __future__ import annotations

import pytest

from app.core.filters import ChainMatch, FilterKey, Threshold
from app.core.tokens import TokenResult
from app.services.state import (
    FILTERS,
    NOTIFIED,
    STATS,
    WORDS,
    PaginationState,
    StateStore,
    notified_key,
    page_slice,
    total_pages,
)


class _MemoryBackend:
    def __init__(self, records: dict[str, dict] | None = None) -> None:
        self.records = records or {}
        self.fail_on: set[str] = set()
        self.fail_load = False

    async def load_all(self) -> dict[str, dict]:
        if self.fail_load:
            raise ConnectionError("db unavailable")
        return {name: dict(payload) for name, payload in self.records.items()}

    async def save(self, name: str, payload: dict) -> None:
        if name in self.fail_on:
            raise ConnectionError("db unavailable")
        self.records[name] = payload


@pytest.mark.parametrize("count,expected", [(0, 0), (1, 1), (5, 1), (6, 2), (12, 3)])
def test_total_pages(count, expected) -> None:
    assert total_pages(count) == expected


def test_page_slice_last_page_is_partial() -> None:
    assert page_slice(list(range(12)), 3) == [10, 11]  # type: ignore[arg-type]


def test_notified_key_falls_back_without_address() -> None:
    assert notified_key(1, TokenResult(name="X", symbol="x", address="abc")) == "1:abc"
    assert notified_key(1, TokenResult(name="Pepe", symbol="PEPE", address=None, chain_id="Solana")) == "1:solana/pepe/pepe"


def test_mutations_mark_records_dirty() -> None:
    store = StateStore(_MemoryBackend())
    store.set_filter(1, FilterKey.LIQUIDITY, Threshold(">", 5))
    store.set_words(1, ["moon"])
    store.mark_notified("1:abc")
    store.record_alert(1)
    assert store.dirty == {FILTERS, WORDS, NOTIFIED, STATS}


def test_pagination_is_not_persisted() -> None:
    store = StateStore(_MemoryBackend())
    store.set_pagination(1, PaginationState(query="moon", results=()))
    assert store.dirty == frozenset()


def test_mark_notified_is_idempotent() -> None:
    store = StateStore()
    assert store.mark_notified("1:abc")
    assert not store.mark_notified("1:abc")


def test_set_words_enforces_limit() -> None:
    store = StateStore()
    with pytest.raises(ValueError):
        store.set_words(1, ["a", "b", "c", "d", "e", "f"])
    assert store.get_words(1) == []


def test_get_stats_returns_a_copy() -> None:
    store = StateStore()
    store.record_search(1, "moon", 3)
    stats = store.get_stats(1)
    stats.tokens_found = 999
    assert store.get_stats(1).tokens_found == 3


@pytest.mark.asyncio
async def test_flush_writes_dirty_records() -> None:
    backend = _MemoryBackend()
    store = StateStore(backend)
    store.set_words(42, ["moon", "pepe"])
    store.set_filter(42, FilterKey.CHAIN, ChainMatch("SOL"))

    assert await store.flush() == 2
    assert store.dirty == frozenset()
    assert backend.records[WORDS] == {"42": ["moon", "pepe"]}
    assert backend.records[FILTERS] == {"42": {"chain": "SOL"}}
    assert await store.flush() == 0


@pytest.mark.asyncio
async def test_failed_flush_keeps_record_dirty() -> None:
    backend = _MemoryBackend()
    backend.fail_on = {WORDS}
    store = StateStore(backend)
    store.set_words(1, ["moon"])
    store.mark_notified("1:abc")

    assert await store.flush() == 1
    assert store.dirty == {WORDS}
    assert NOTIFIED in backend.records

    backend.fail_on = set()
    assert await store.flush() == 1
    assert backend.records[WORDS] == {"1": ["moon"]}


@pytest.mark.asyncio
async def test_load_restores_persisted_records() -> None:
    backend = _MemoryBackend(
        {
            FILTERS: {"7": {"fdv": {"op": ">", "value": 100}, "blockchain": "ETH"}},
            WORDS: {"7": ["Moon", "pepe"]},
            NOTIFIED: {"7:abc": True},
            STATS: {"7": {"tokens_found": 4, "alerts_received": 2, "last_search": "moon"}},
        }
    )
    store = StateStore(backend)
    await store.load()

    filters = store.get_filters(7)
    assert filters.get(FilterKey.MARKET_CAP) == Threshold(">", 100.0)
    assert filters.get(FilterKey.CHAIN) == ChainMatch("ETH")
    assert store.get_words(7) == ["moon", "pepe"]
    assert store.is_notified("7:abc")
    assert store.get_stats(7).alerts_received == 2
    assert store.dirty == frozenset()


@pytest.mark.asyncio
async def test_load_failure_starts_empty() -> None:
    backend = _MemoryBackend({WORDS: {"1": ["moon"]}})
    backend.fail_load = True
    store = StateStore(backend)
    await store.load()
    assert store.words_snapshot() == {}
