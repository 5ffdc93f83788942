from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from app.adapters.dexscreener import DexScreenerAdapter
from app.core.tokens import TokenResult
from app.services.state import StateStore, notified_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeywordAlert:
    chat_id: int
    token: TokenResult
    matched_words: tuple[str, ...]


Notifier = Callable[[KeywordAlert], Awaitable[None]]


def matching_words(words: list[str], token: TokenResult) -> list[str]:
    name = (token.name or "").lower()
    symbol = (token.symbol or "").lower()
    return [w for w in words if w and (w.lower() in name or w.lower() in symbol)]


class KeywordAlertScanner:
    def __init__(self, dexscreener: DexScreenerAdapter, store: StateStore, dispatch_delay_sec: float = 1.0) -> None:
        self.dexscreener = dexscreener
        self.store = store
        self.dispatch_delay_sec = max(0.0, float(dispatch_delay_sec))

    async def run(self, notifier: Notifier) -> int:
        tokens = await self.dexscreener.fetch_feed()
        if not tokens:
            logger.info("token_feed_empty", extra={"event": "token_feed_empty"})
            return 0

        sent = 0
        for chat_id, words in self.store.words_snapshot().items():
            for token in tokens:
                matched = matching_words(words, token)
                if not matched:
                    continue
                if not self.store.mark_notified(notified_key(chat_id, token)):
                    continue

                alert = KeywordAlert(chat_id=chat_id, token=token, matched_words=tuple(matched))
                try:
                    await notifier(alert)
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "alert_dispatch_failed",
                        extra={"event": "alert_dispatch_failed", "chat_id": chat_id, "address": token.address, "error": str(exc)},
                    )
                    continue

                self.store.record_alert(chat_id)
                sent += 1
                if self.dispatch_delay_sec:
                    await asyncio.sleep(self.dispatch_delay_sec)

        if sent:
            logger.info("keyword_alerts_sent", extra={"event": "keyword_alerts_sent", "count": sent, "feed": len(tokens)})
        return sent
