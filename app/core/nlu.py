from __future__ import annotations

import re
from dataclasses import dataclass

from nltk.stem import PorterStemmer
from nltk.tokenize import RegexpTokenizer

from app.core.filters import FilterKey, FilterSet, Range, Threshold

FILTER_CHARS = (">", "<", "=")
INLINE_FILTER_RE = re.compile(r"(fdv|liquidity|price|volume)([<>=])(\d+(?:\.\d+)?)", re.IGNORECASE)
CUSTOM_RANGE_RE = re.compile(
    r"min\s*[:=]?\s*\$?(\d+(?:\.\d+)?)([km])?\s*,?\s*max\s*[:=]?\s*\$?(\d+(?:\.\d+)?)([km])?",
    re.IGNORECASE,
)
_MULTIPLIERS = {"k": 1_000.0, "m": 1_000_000.0}

INLINE_FILTER_KEYS = {
    "fdv": FilterKey.MARKET_CAP,
    "liquidity": FilterKey.LIQUIDITY,
    "price": FilterKey.PRICE,
    "volume": FilterKey.VOLUME,
}

_tokenizer = RegexpTokenizer(r"\w+")
_stemmer = PorterStemmer()


@dataclass(frozen=True)
class SearchQuery:
    phrase: str
    terms: list[str]
    filters: FilterSet
    raw: str

    @property
    def has_inline_filters(self) -> bool:
        return bool(self.filters)


def is_filter_expression(token: str) -> bool:
    return any(ch in token for ch in FILTER_CHARS)


def stem_terms(phrase: str) -> list[str]:
    out: list[str] = []
    for word in _tokenizer.tokenize(phrase or ""):
        stem = _stemmer.stem(word.lower())
        if stem and stem not in out:
            out.append(stem)
    return out


def parse_inline_filters(expressions: list[str]) -> FilterSet:
    filters = FilterSet()
    for expr in expressions:
        m = INLINE_FILTER_RE.fullmatch(expr.strip())
        if not m:
            continue
        key = INLINE_FILTER_KEYS[m.group(1).lower()]
        filters = filters.with_constraint(key, Threshold(m.group(2), float(m.group(3))))
    return filters


def parse_search_query(text: str | None) -> SearchQuery | None:
    raw = (text or "").strip()
    if not raw:
        return None

    parts = raw.split()
    expressions = [p for p in parts if is_filter_expression(p)]
    phrase = " ".join(p for p in parts if not is_filter_expression(p))
    return SearchQuery(
        phrase=phrase,
        terms=stem_terms(phrase),
        filters=parse_inline_filters(expressions),
        raw=raw,
    )


def _scaled(number: str, suffix: str | None) -> float:
    return float(number) * _MULTIPLIERS.get((suffix or "").lower(), 1.0)


def parse_custom_range(text: str | None) -> Range | None:
    """Parse `min 10000 max 50000` (k/m suffixes allowed). Returns None when malformed or inverted."""
    m = CUSTOM_RANGE_RE.fullmatch((text or "").strip())
    if not m:
        return None
    low = _scaled(m.group(1), m.group(2))
    high = _scaled(m.group(3), m.group(4))
    if low > high:
        return None
    return Range(low, high)
