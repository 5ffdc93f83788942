from __future__ import annotations

import pytest

from app.core.filters import ChainMatch, FilterKey, FilterSet, Range, Threshold, apply_filters, matches
from app.core.tokens import TokenResult


def _tok(address: str = "A", **kwargs) -> TokenResult:
    return TokenResult(name=kwargs.pop("name", "Token"), symbol=kwargs.pop("symbol", "TKN"), address=address, **kwargs)


def test_empty_filter_set_passes_everything() -> None:
    token = _tok(fdv=None, liquidity_usd=None)
    assert matches(token, FilterSet())


def test_liquidity_threshold_excludes_missing_values() -> None:
    filters = FilterSet().with_constraint(FilterKey.LIQUIDITY, Threshold(">", 10000))
    tokens = [_tok("a", liquidity_usd=5000), _tok("b", liquidity_usd=15000), _tok("c", liquidity_usd=None)]
    kept = apply_filters(tokens, filters)
    assert [t.liquidity_usd for t in kept] == [15000]


def test_range_is_inclusive() -> None:
    rng = Range(100, 200)
    assert rng.test(100)
    assert rng.test(200)
    assert not rng.test(99.99)
    assert not rng.test(200.01)


def test_equality_uses_ten_percent_band() -> None:
    eq = Threshold("=", 100)
    assert eq.test(95)
    assert eq.test(109)
    assert not eq.test(90)
    assert not eq.test(111)


def test_chain_match_is_case_insensitive_substring() -> None:
    assert ChainMatch("bnb").test("BNB Chain")
    assert ChainMatch("SOL").test("solana")
    assert not ChainMatch("eth").test("bsc")
    assert not ChainMatch("ton").test(None)


def test_volume_filter_uses_buy_plus_sell() -> None:
    filters = FilterSet().with_constraint(FilterKey.VOLUME, Threshold(">", 100))
    assert matches(_tok(volume_buy=60, volume_sell=50), filters)
    assert not matches(_tok(volume_buy=60, volume_sell=None), filters)


def test_all_constraints_must_hold() -> None:
    filters = (
        FilterSet()
        .with_constraint(FilterKey.MARKET_CAP, Range(1000, 5000))
        .with_constraint(FilterKey.CHAIN, ChainMatch("sol"))
    )
    assert matches(_tok(fdv=2000, chain_id="solana"), filters)
    assert not matches(_tok(fdv=2000, chain_id="ethereum"), filters)
    assert not matches(_tok(fdv=9000, chain_id="solana"), filters)


def test_with_constraint_returns_new_set() -> None:
    base = FilterSet()
    updated = base.with_constraint(FilterKey.LIQUIDITY, Threshold(">", 1))
    assert not base
    assert len(updated) == 1


def test_with_constraint_rejects_mismatched_types() -> None:
    with pytest.raises(TypeError):
        FilterSet().with_constraint(FilterKey.CHAIN, Threshold(">", 1))
    with pytest.raises(TypeError):
        FilterSet().with_constraint(FilterKey.LIQUIDITY, ChainMatch("sol"))


def test_from_dict_accepts_legacy_names_and_skips_garbage() -> None:
    filters = FilterSet.from_dict(
        {
            "fdv": {"op": ">", "value": 5},
            "blockchain": "SOL",
            "liquidity": {"min": 1, "max": 2},
            "volumeBuy": {"op": "!", "value": 3},
            "bogus": {"op": ">", "value": 1},
        }
    )
    assert filters.get(FilterKey.MARKET_CAP) == Threshold(">", 5.0)
    assert filters.get(FilterKey.CHAIN) == ChainMatch("SOL")
    assert filters.get(FilterKey.LIQUIDITY) == Range(1.0, 2.0)
    assert len(filters) == 3


def test_to_dict_stores_chain_as_text() -> None:
    filters = FilterSet().with_constraint(FilterKey.CHAIN, ChainMatch("ETH"))
    assert filters.to_dict() == {"chain": "ETH"}
    assert FilterSet.from_dict(filters.to_dict()) == filters
