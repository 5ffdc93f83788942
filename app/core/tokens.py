from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable


@dataclass(frozen=True)
class TokenResult:
    name: str
    symbol: str
    address: str | None
    chain_id: str = ""
    dex_id: str = ""
    price_usd: float | None = None
    fdv: float | None = None
    liquidity_usd: float | None = None
    volume_buy: float | None = None
    volume_sell: float | None = None

    @property
    def volume_total(self) -> float | None:
        if self.volume_buy is None and self.volume_sell is None:
            return None
        return float(self.volume_buy or 0.0) + float(self.volume_sell or 0.0)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TokenResult:
        return cls(**{k: raw.get(k) for k in cls.__dataclass_fields__ if k in raw})


def dedupe_by_address(tokens: Iterable[TokenResult]) -> list[TokenResult]:
    """Keep the first token seen for each address; tokens without an address are skipped."""
    seen: set[str] = set()
    out: list[TokenResult] = []
    for token in tokens:
        if not token.address or token.address in seen:
            continue
        seen.add(token.address)
        out.append(token)
    return out
