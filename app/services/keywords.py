from __future__ import annotations

from app.services.state import MAX_SAVED_WORDS, StateStore


def parse_words(text: str | None) -> list[str]:
    out: list[str] = []
    for raw in (text or "").split():
        word = raw.strip().lower()
        if word:
            out.append(word)
    return out


class KeywordService:
    def __init__(self, store: StateStore, max_words: int = MAX_SAVED_WORDS) -> None:
        self.store = store
        self.max_words = max_words

    def save_words(self, chat_id: int, text: str) -> list[str]:
        """Replace the conversation's alert words. Rejected input leaves the old list untouched."""
        words = parse_words(text)
        if not words:
            raise RuntimeError("Please provide at least one word to save.")
        if len(words) > self.max_words:
            raise RuntimeError(f"You can only save up to {self.max_words} words. You provided {len(words)}.")
        unique: list[str] = []
        for word in words:
            if word not in unique:
                unique.append(word)
        self.store.set_words(chat_id, unique)
        return unique

    def list_words(self, chat_id: int) -> list[str]:
        return self.store.get_words(chat_id)

    def clear_words(self, chat_id: int) -> int:
        count = len(self.store.get_words(chat_id))
        self.store.clear_words(chat_id)
        return count
