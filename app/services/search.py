from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from app.adapters.dexscreener import DexScreenerAdapter
from app.core.filters import FilterSet, apply_filters
from app.core.nlu import SearchQuery
from app.core.tokens import TokenResult, dedupe_by_address
from app.services.state import PAGE_SIZE, PaginationState, StateStore, page_slice

logger = logging.getLogger(__name__)


class SearchStatus(str, Enum):
    NO_RESULTS = "no_results"
    FILTERED_OUT = "filtered_out"
    OK = "ok"


@dataclass(frozen=True)
class SearchOutcome:
    status: SearchStatus
    query: str
    found: int
    results: tuple[TokenResult, ...] = ()
    filters: FilterSet = field(default_factory=FilterSet)


class SearchService:
    def __init__(self, dexscreener: DexScreenerAdapter, store: StateStore, page_size: int = PAGE_SIZE) -> None:
        self.dexscreener = dexscreener
        self.store = store
        self.page_size = page_size

    async def _search_term(self, term: str) -> list[TokenResult]:
        try:
            return await self.dexscreener.search_pairs(term)
        except Exception as exc:  # noqa: BLE001
            logger.warning("search_term_failed", extra={"event": "search_term_failed", "term": term, "error": str(exc)})
            return []

    async def aggregate(self, terms: list[str]) -> list[TokenResult]:
        """One request per term, merged in term order and deduplicated by address."""
        if not terms:
            return []
        batches = await asyncio.gather(*(self._search_term(term) for term in terms))
        merged: list[TokenResult] = []
        for batch in batches:
            merged.extend(batch)
        return dedupe_by_address(merged)

    def effective_filters(self, chat_id: int, query: SearchQuery) -> FilterSet:
        if query.has_inline_filters:
            return query.filters
        return self.store.get_filters(chat_id)

    async def search(self, chat_id: int, query: SearchQuery) -> SearchOutcome:
        filters = self.effective_filters(chat_id, query)
        unique = await self.aggregate(query.terms)
        if not unique:
            return SearchOutcome(SearchStatus.NO_RESULTS, query.raw, 0, filters=filters)

        filtered = apply_filters(unique, filters)
        if not filtered:
            return SearchOutcome(SearchStatus.FILTERED_OUT, query.raw, len(unique), filters=filters)

        results = tuple(filtered)
        self.store.set_pagination(chat_id, PaginationState(query=query.raw, results=results, page=1, page_size=self.page_size))
        self.store.record_search(chat_id, query.raw, len(results))
        logger.info(
            "search_completed",
            extra={"event": "search_completed", "chat_id": chat_id, "terms": len(query.terms), "found": len(unique), "kept": len(results)},
        )
        return SearchOutcome(SearchStatus.OK, query.raw, len(unique), results=results, filters=filters)

    def page(self, chat_id: int, page: int) -> tuple[PaginationState, list[TokenResult]] | None:
        """Move the cursor to `page` and return its slice; None when there is no such page."""
        state = self.store.get_pagination(chat_id)
        if state is None or not state.has_page(page):
            return None
        state.page = page
        return state, page_slice(state.results, page, state.page_size)

    def remember_page_messages(self, chat_id: int, message_ids: list[int]) -> None:
        state = self.store.get_pagination(chat_id)
        if state is not None:
            state.message_ids = list(message_ids)
