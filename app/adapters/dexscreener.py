from __future__ import annotations

import logging
from typing import Any

from app.core.cache import RedisCache
from app.core.http import ResilientHTTPClient
from app.core.tokens import TokenResult

logger = logging.getLogger(__name__)


def _as_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_str(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def token_from_pair(pair: dict) -> TokenResult | None:
    base = pair.get("baseToken")
    if not isinstance(base, dict):
        return None
    liquidity = pair.get("liquidity") if isinstance(pair.get("liquidity"), dict) else {}
    volume = pair.get("volume") if isinstance(pair.get("volume"), dict) else {}
    return TokenResult(
        name=_as_str(base.get("name")),
        symbol=_as_str(base.get("symbol")),
        address=_as_str(base.get("address")) or None,
        chain_id=_as_str(pair.get("chainId") or pair.get("chain")),
        dex_id=_as_str(pair.get("dexId")),
        price_usd=_as_float(pair.get("priceUsd")),
        fdv=_as_float(pair.get("fdv")),
        liquidity_usd=_as_float(liquidity.get("usd")),
        volume_buy=_as_float(volume.get("buy")),
        volume_sell=_as_float(volume.get("sell")),
    )


def token_from_feed(record: dict) -> TokenResult | None:
    if not isinstance(record, dict):
        return None
    if isinstance(record.get("baseToken"), dict):
        return token_from_pair(record)
    return TokenResult(
        name=_as_str(record.get("name")),
        symbol=_as_str(record.get("symbol")),
        address=_as_str(record.get("address") or record.get("tokenAddress")) or None,
        chain_id=_as_str(record.get("chainId")),
        dex_id=_as_str(record.get("dexId")),
        price_usd=_as_float(record.get("priceUsd")),
    )


def _feed_records(payload: Any) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("tokens", "pairs", "data"):
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


class DexScreenerAdapter:
    def __init__(
        self,
        http: ResilientHTTPClient,
        cache: RedisCache | None,
        base_url: str,
        feed_url: str,
        search_cache_ttl: int = 60,
    ) -> None:
        self.http = http
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.feed_url = feed_url
        self.search_cache_ttl = search_cache_ttl

    async def search_pairs(self, term: str) -> list[TokenResult]:
        """Pairs for one query term. HTTP errors propagate to the caller."""
        cache_key = f"dexscreener:search:{term.lower()}"
        if self.cache and self.search_cache_ttl > 0:
            cached = await self.cache.get_json(cache_key)
            if cached is not None:
                return [TokenResult.from_dict(row) for row in cached]

        payload = await self.http.get_json(f"{self.base_url}/latest/dex/search", params={"q": term})
        pairs = payload.get("pairs") if isinstance(payload, dict) else None
        out: list[TokenResult] = []
        for pair in pairs or []:
            if not isinstance(pair, dict):
                continue
            token = token_from_pair(pair)
            if token:
                out.append(token)

        if self.cache and self.search_cache_ttl > 0:
            await self.cache.set_json(cache_key, [t.to_dict() for t in out], ttl=self.search_cache_ttl)
        return out

    async def fetch_feed(self) -> list[TokenResult]:
        """Current token feed; a failed fetch is an empty feed for this run."""
        try:
            payload = await self.http.get_json(self.feed_url)
        except Exception as exc:  # noqa: BLE001
            logger.warning("token_feed_failed", extra={"event": "token_feed_failed", "url": self.feed_url, "error": str(exc)})
            return []
        out: list[TokenResult] = []
        for record in _feed_records(payload):
            token = token_from_feed(record)
            if token:
                out.append(token)
        return out
