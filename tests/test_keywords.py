from __future__ import annotations

import pytest

from app.services.keywords import KeywordService, parse_words
from app.services.state import StateStore


def test_parse_words_lowercases_and_splits() -> None:
    assert parse_words("  Moon  ROCKET\tpepe ") == ["moon", "rocket", "pepe"]
    assert parse_words(None) == []


def test_six_words_are_rejected_and_old_list_kept() -> None:
    service = KeywordService(StateStore())
    service.save_words(1, "moon rocket")
    with pytest.raises(RuntimeError, match="up to 5 words. You provided 6"):
        service.save_words(1, "a b c d e f")
    assert service.list_words(1) == ["moon", "rocket"]


def test_five_words_replace_the_list() -> None:
    service = KeywordService(StateStore())
    service.save_words(1, "old words")
    saved = service.save_words(1, "a b c d e")
    assert saved == ["a", "b", "c", "d", "e"]
    assert service.list_words(1) == ["a", "b", "c", "d", "e"]


def test_empty_input_is_rejected() -> None:
    service = KeywordService(StateStore())
    with pytest.raises(RuntimeError, match="at least one word"):
        service.save_words(1, "   ")


def test_duplicates_are_collapsed() -> None:
    service = KeywordService(StateStore())
    assert service.save_words(1, "Moon moon MOON pepe") == ["moon", "pepe"]


def test_clear_words_returns_count() -> None:
    store = StateStore()
    service = KeywordService(store)
    service.save_words(5, "moon rocket")
    assert service.clear_words(5) == 2
    assert service.list_words(5) == []
    assert store.words_snapshot() == {}
    assert service.clear_words(5) == 0
