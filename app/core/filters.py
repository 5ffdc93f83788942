from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Union

from app.core.tokens import TokenResult


class FilterKey(str, Enum):
    MARKET_CAP = "marketCap"
    LIQUIDITY = "liquidity"
    VOLUME_BUY = "volumeBuy"
    VOLUME_SELL = "volumeSell"
    CHAIN = "chain"
    PRICE = "price"
    VOLUME = "volume"


# keys offered in the filter menu; price/volume only come from inline expressions
MENU_NUMERIC_KEYS = (FilterKey.MARKET_CAP, FilterKey.LIQUIDITY, FilterKey.VOLUME_BUY, FilterKey.VOLUME_SELL)
NUMERIC_KEYS = MENU_NUMERIC_KEYS + (FilterKey.PRICE, FilterKey.VOLUME)
OPERATORS = (">", "<", "=")
EQUALITY_BAND = 0.1

_LEGACY_KEYS = {"fdv": FilterKey.MARKET_CAP, "blockchain": FilterKey.CHAIN}


@dataclass(frozen=True)
class Threshold:
    op: str
    value: float

    def test(self, v: float) -> bool:
        if self.op == ">":
            return v > self.value
        if self.op == "<":
            return v < self.value
        if self.op == "=":
            return abs(v - self.value) < self.value * EQUALITY_BAND
        return False

    def to_dict(self) -> dict:
        return {"op": self.op, "value": self.value}


@dataclass(frozen=True)
class Range:
    min: float
    max: float

    def test(self, v: float) -> bool:
        return self.min <= v <= self.max

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class ChainMatch:
    chain: str

    def test(self, chain_id: str | None) -> bool:
        return self.chain.lower() in str(chain_id or "").lower()


Constraint = Union[Threshold, Range, ChainMatch]


def token_value(token: TokenResult, key: FilterKey) -> float | None:
    if key == FilterKey.MARKET_CAP:
        return token.fdv
    if key == FilterKey.LIQUIDITY:
        return token.liquidity_usd
    if key == FilterKey.VOLUME_BUY:
        return token.volume_buy
    if key == FilterKey.VOLUME_SELL:
        return token.volume_sell
    if key == FilterKey.PRICE:
        return token.price_usd
    if key == FilterKey.VOLUME:
        return token.volume_total
    raise KeyError(key)


def passes_numeric(value: float | None, constraint: Threshold | Range) -> bool:
    # no data for an active filter excludes the token
    if not value:
        return False
    return constraint.test(float(value))


@dataclass(frozen=True)
class FilterSet:
    constraints: dict[FilterKey, Constraint] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.constraints)

    def __bool__(self) -> bool:
        return bool(self.constraints)

    def get(self, key: FilterKey) -> Constraint | None:
        return self.constraints.get(key)

    def with_constraint(self, key: FilterKey, constraint: Constraint) -> FilterSet:
        if key == FilterKey.CHAIN and not isinstance(constraint, ChainMatch):
            raise TypeError("chain filter takes a ChainMatch")
        if key != FilterKey.CHAIN and isinstance(constraint, ChainMatch):
            raise TypeError(f"{key.value} filter takes a numeric constraint")
        updated = dict(self.constraints)
        updated[key] = constraint
        return FilterSet(updated)

    def matches(self, token: TokenResult) -> bool:
        for key, constraint in self.constraints.items():
            if isinstance(constraint, ChainMatch):
                if not constraint.test(token.chain_id):
                    return False
                continue
            if not passes_numeric(token_value(token, key), constraint):
                return False
        return True

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, constraint in self.constraints.items():
            out[key.value] = constraint.chain if isinstance(constraint, ChainMatch) else constraint.to_dict()
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> FilterSet:
        constraints: dict[FilterKey, Constraint] = {}
        for name, value in (raw or {}).items():
            key = _LEGACY_KEYS.get(name)
            if key is None:
                try:
                    key = FilterKey(name)
                except ValueError:
                    continue
            constraint = _parse_constraint(key, value)
            if constraint is not None:
                constraints[key] = constraint
        return cls(constraints)


def _parse_constraint(key: FilterKey, value: Any) -> Constraint | None:
    if key == FilterKey.CHAIN:
        text = str(value or "").strip()
        return ChainMatch(text) if text else None
    if not isinstance(value, dict):
        return None
    try:
        if "min" in value and "max" in value:
            return Range(float(value["min"]), float(value["max"]))
        if value.get("op") in OPERATORS and value.get("value") is not None:
            return Threshold(str(value["op"]), float(value["value"]))
    except (TypeError, ValueError):
        return None
    return None


def matches(token: TokenResult, filters: FilterSet) -> bool:
    return filters.matches(token)


def apply_filters(tokens: Iterable[TokenResult], filters: FilterSet) -> list[TokenResult]:
    return [t for t in tokens if filters.matches(t)]
