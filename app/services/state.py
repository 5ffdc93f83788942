from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Protocol

from sqlalchemy import select

from app.core.filters import Constraint, FilterKey, FilterSet
from app.core.tokens import TokenResult
from app.db.models import StateRecord

logger = logging.getLogger(__name__)

PAGE_SIZE = 5
MAX_SAVED_WORDS = 5

FILTERS = "filters"
WORDS = "words"
NOTIFIED = "notified"
STATS = "stats"
RECORDS = (FILTERS, WORDS, NOTIFIED, STATS)


@dataclass
class ConversationStats:
    tokens_found: int = 0
    alerts_received: int = 0
    last_search: str | None = None


@dataclass
class PaginationState:
    query: str
    results: tuple[TokenResult, ...]
    page: int = 1
    page_size: int = PAGE_SIZE
    message_ids: list[int] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.results), self.page_size)

    def has_page(self, page: int) -> bool:
        return 1 <= page <= self.total_pages


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size) if count > 0 else 0


def page_slice(results: tuple[TokenResult, ...] | list[TokenResult], page: int, page_size: int = PAGE_SIZE) -> list[TokenResult]:
    start = (page - 1) * page_size
    end = min(page * page_size, len(results))
    return list(results[start:end])


def notified_key(chat_id: int, token: TokenResult) -> str:
    if token.address:
        return f"{chat_id}:{token.address}"
    # no contract address: fall back to the token's visible identity
    return f"{chat_id}:{token.chain_id.lower()}/{token.symbol.lower()}/{token.name.lower()}"


class StateBackend(Protocol):
    async def load_all(self) -> dict[str, dict]:
        ...

    async def save(self, name: str, payload: dict) -> None:
        ...


class SqlStateBackend:
    def __init__(self, db_factory) -> None:
        self.db_factory = db_factory

    async def load_all(self) -> dict[str, dict]:
        async with self.db_factory() as session:
            q = await session.execute(select(StateRecord))
            return {row.name: dict(row.payload_json or {}) for row in q.scalars().all()}

    async def save(self, name: str, payload: dict) -> None:
        async with self.db_factory() as session:
            row = await session.get(StateRecord, name)
            if row is None:
                session.add(StateRecord(name=name, payload_json=payload, updated_at=datetime.utcnow()))
            else:
                row.payload_json = payload
                row.updated_at = datetime.utcnow()
            await session.commit()


def _chat_key(raw: str) -> int | str:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return raw


class StateStore:
    """Per-conversation state held in memory; dirty records are written out by `flush()`."""

    def __init__(self, backend: StateBackend | None = None) -> None:
        self.backend = backend
        self._filters: dict[int, FilterSet] = {}
        self._words: dict[int, list[str]] = {}
        self._notified: set[str] = set()
        self._stats: dict[int, ConversationStats] = {}
        self._pagination: dict[int, PaginationState] = {}
        self._dirty: set[str] = set()

    # -- lifecycle ---------------------------------------------------------

    async def load(self) -> None:
        if self.backend is None:
            return
        try:
            records = await self.backend.load_all()
        except Exception as exc:  # noqa: BLE001
            logger.exception("state_load_failed", extra={"event": "state_load_failed", "error": str(exc)})
            return

        for chat, raw in (records.get(FILTERS) or {}).items():
            self._filters[_chat_key(chat)] = FilterSet.from_dict(raw)
        for chat, raw in (records.get(WORDS) or {}).items():
            words = [str(w).strip().lower() for w in (raw or []) if str(w).strip()]
            if words:
                self._words[_chat_key(chat)] = words[:MAX_SAVED_WORDS]
        self._notified = {key for key, flag in (records.get(NOTIFIED) or {}).items() if flag}
        for chat, raw in (records.get(STATS) or {}).items():
            if isinstance(raw, dict):
                self._stats[_chat_key(chat)] = ConversationStats(
                    tokens_found=int(raw.get("tokens_found") or 0),
                    alerts_received=int(raw.get("alerts_received") or 0),
                    last_search=raw.get("last_search"),
                )
        logger.info(
            "state_loaded",
            extra={
                "event": "state_loaded",
                "filters": len(self._filters),
                "words": len(self._words),
                "notified": len(self._notified),
            },
        )

    def _payload(self, name: str) -> dict:
        if name == FILTERS:
            return {str(chat): fs.to_dict() for chat, fs in self._filters.items() if fs}
        if name == WORDS:
            return {str(chat): list(words) for chat, words in self._words.items() if words}
        if name == NOTIFIED:
            return {key: True for key in self._notified}
        if name == STATS:
            return {str(chat): asdict(stats) for chat, stats in self._stats.items()}
        raise KeyError(name)

    @property
    def dirty(self) -> frozenset[str]:
        return frozenset(self._dirty)

    async def flush(self) -> int:
        """Write dirty records; failed records stay dirty for the next flush."""
        if self.backend is None or not self._dirty:
            return 0
        pending = sorted(self._dirty)
        self._dirty.clear()
        written = 0
        for name in pending:
            payload = self._payload(name)
            try:
                await self.backend.save(name, payload)
                written += 1
            except Exception as exc:  # noqa: BLE001
                self._dirty.add(name)
                logger.warning("state_flush_failed", extra={"event": "state_flush_failed", "record": name, "error": str(exc)})
        return written

    # -- filters -----------------------------------------------------------

    def get_filters(self, chat_id: int) -> FilterSet:
        return self._filters.get(chat_id) or FilterSet()

    def set_filters(self, chat_id: int, filters: FilterSet) -> None:
        self._filters[chat_id] = filters
        self._dirty.add(FILTERS)

    def set_filter(self, chat_id: int, key: FilterKey, constraint: Constraint) -> FilterSet:
        updated = self.get_filters(chat_id).with_constraint(key, constraint)
        self.set_filters(chat_id, updated)
        return updated

    def clear_filters(self, chat_id: int) -> None:
        self.set_filters(chat_id, FilterSet())

    # -- saved words -------------------------------------------------------

    def get_words(self, chat_id: int) -> list[str]:
        return list(self._words.get(chat_id) or [])

    def set_words(self, chat_id: int, words: list[str]) -> None:
        if len(words) > MAX_SAVED_WORDS:
            raise ValueError(f"at most {MAX_SAVED_WORDS} saved words")
        self._words[chat_id] = list(words)
        self._dirty.add(WORDS)

    def clear_words(self, chat_id: int) -> None:
        self.set_words(chat_id, [])

    def words_snapshot(self) -> dict[int, list[str]]:
        return {chat: list(words) for chat, words in self._words.items() if words}

    # -- pagination --------------------------------------------------------

    def get_pagination(self, chat_id: int) -> PaginationState | None:
        return self._pagination.get(chat_id)

    def set_pagination(self, chat_id: int, state: PaginationState) -> None:
        self._pagination[chat_id] = state

    # -- notified set ------------------------------------------------------

    def is_notified(self, key: str) -> bool:
        return key in self._notified

    def mark_notified(self, key: str) -> bool:
        if key in self._notified:
            return False
        self._notified.add(key)
        self._dirty.add(NOTIFIED)
        return True

    # -- stats -------------------------------------------------------------

    def get_stats(self, chat_id: int) -> ConversationStats:
        stats = self._stats.get(chat_id)
        return ConversationStats(**asdict(stats)) if stats else ConversationStats()

    def record_search(self, chat_id: int, query: str, found: int) -> None:
        stats = self._stats.setdefault(chat_id, ConversationStats())
        stats.last_search = query
        stats.tokens_found += max(0, int(found))
        self._dirty.add(STATS)

    def record_alert(self, chat_id: int) -> None:
        stats = self._stats.setdefault(chat_id, ConversationStats())
        stats.alerts_received += 1
        self._dirty.add(STATS)
