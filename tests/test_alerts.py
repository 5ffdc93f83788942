from __future__ import annotations

import pytest

from app.core.tokens import TokenResult
from app.services.alerts import KeywordAlert, KeywordAlertScanner, matching_words
from app.services.state import StateStore
from app.workers.scheduler import alert_notifier


class _FakeFeed:
    def __init__(self, tokens: list[TokenResult]) -> None:
        self.tokens = tokens

    async def fetch_feed(self) -> list[TokenResult]:
        return list(self.tokens)


class _Recorder:
    def __init__(self, fail_for: set[int] | None = None) -> None:
        self.sent: list[KeywordAlert] = []
        self.fail_for = fail_for or set()

    async def __call__(self, alert: KeywordAlert) -> None:
        if alert.chat_id in self.fail_for:
            raise RuntimeError("bot was blocked by the user")
        self.sent.append(alert)


def _scanner(tokens: list[TokenResult], store: StateStore) -> KeywordAlertScanner:
    return KeywordAlertScanner(_FakeFeed(tokens), store, dispatch_delay_sec=0)  # type: ignore[arg-type]


def test_matching_words_checks_name_and_symbol() -> None:
    token = TokenResult(name="Moon Dog", symbol="MDOG", address="x")
    assert matching_words(["moon", "dog", "cat"], token) == ["moon", "dog"]
    assert matching_words(["mdog"], token) == ["mdog"]
    assert matching_words(["pepe"], token) == []


@pytest.mark.asyncio
async def test_scanner_notifies_once_per_token() -> None:
    store = StateStore()
    store.set_words(1, ["moon"])
    feed = [TokenResult(name="MoonShot", symbol="MSHOT", address="addr1"), TokenResult(name="Other", symbol="OTH", address="addr2")]
    scanner = _scanner(feed, store)
    notifier = _Recorder()

    assert await scanner.run(notifier) == 1
    assert await scanner.run(notifier) == 0
    assert len(notifier.sent) == 1
    assert notifier.sent[0].matched_words == ("moon",)
    assert store.get_stats(1).alerts_received == 1
    assert store.is_notified("1:addr1")


@pytest.mark.asyncio
async def test_all_matched_words_arrive_in_one_alert() -> None:
    store = StateStore()
    store.set_words(1, ["moon", "dog"])
    scanner = _scanner([TokenResult(name="MoonDog", symbol="MD", address="addr")], store)
    notifier = _Recorder()
    assert await scanner.run(notifier) == 1
    assert notifier.sent[0].matched_words == ("moon", "dog")


@pytest.mark.asyncio
async def test_token_without_address_gets_degraded_alert_once() -> None:
    store = StateStore()
    store.set_words(1, ["pepe"])
    scanner = _scanner([TokenResult(name="Pepe", symbol="PEPE", address=None, chain_id="solana")], store)
    notifier = _Recorder()

    assert await scanner.run(notifier) == 1
    assert await scanner.run(notifier) == 0
    assert notifier.sent[0].token.address is None


@pytest.mark.asyncio
async def test_dispatch_failure_does_not_abort_run() -> None:
    store = StateStore()
    store.set_words(1, ["moon"])
    store.set_words(2, ["moon"])
    scanner = _scanner([TokenResult(name="Moon", symbol="MOON", address="addr")], store)
    notifier = _Recorder(fail_for={1})

    assert await scanner.run(notifier) == 1
    assert [a.chat_id for a in notifier.sent] == [2]
    assert store.get_stats(1).alerts_received == 0
    assert store.get_stats(2).alerts_received == 1
    # failed deliveries are not retried
    assert await scanner.run(notifier) == 0


@pytest.mark.asyncio
async def test_empty_feed_sends_nothing() -> None:
    store = StateStore()
    store.set_words(1, ["moon"])
    notifier = _Recorder()
    assert await _scanner([], store).run(notifier) == 0
    assert notifier.sent == []


class _FakeBot:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    async def send_message(self, **kwargs) -> None:
        self.calls.append(kwargs)


@pytest.mark.asyncio
async def test_alert_notifier_sends_trade_buttons() -> None:
    bot = _FakeBot()
    notify = alert_notifier(bot)  # type: ignore[arg-type]
    await notify(KeywordAlert(chat_id=5, token=TokenResult(name="Moon", symbol="MOON", address="So1abc"), matched_words=("moon",)))

    call = bot.calls[0]
    assert call["chat_id"] == 5
    assert "NEW TOKEN ALERT" in call["text"]
    urls = [b.url for row in call["reply_markup"].inline_keyboard for b in row]
    assert urls[-1] == "https://dexscreener.com/search?q=So1abc"
    assert all(url and url.endswith("So1abc") for url in urls)
