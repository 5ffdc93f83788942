from __future__ import annotations

from dataclasses import dataclass

from aiogram import Bot

from app.adapters.dexscreener import DexScreenerAdapter
from app.core.cache import RedisCache
from app.core.http import ResilientHTTPClient
from app.core.rate_limit import RateLimiter
from app.services.alerts import KeywordAlertScanner
from app.services.keywords import KeywordService
from app.services.search import SearchService
from app.services.state import StateStore


@dataclass
class ServiceHub:
    bot: Bot
    http: ResilientHTTPClient
    cache: RedisCache
    rate_limiter: RateLimiter
    store: StateStore
    dexscreener: DexScreenerAdapter
    search_service: SearchService
    keyword_service: KeywordService
    alert_scanner: KeywordAlertScanner
