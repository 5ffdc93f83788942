from __future__ import annotations

from urllib.parse import quote

from aiogram.types import InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from app.bot.callbacks import (
    ChainCb,
    CustomRangeCb,
    FilterAction,
    FilterEditCb,
    FilterMenuCb,
    MenuAction,
    MenuCb,
    NumericPresetCb,
    PageCb,
    PresetOp,
    WordsAction,
    WordsCb,
)
from app.core.filters import ChainMatch, FilterKey, FilterSet, Range, Threshold
from app.core.fmt import fmt_compact
from app.core.tokens import TokenResult

FILTER_EMOJI = {
    FilterKey.MARKET_CAP: "💰",
    FilterKey.LIQUIDITY: "💧",
    FilterKey.VOLUME_BUY: "📈",
    FilterKey.VOLUME_SELL: "📉",
    FilterKey.CHAIN: "⛓️",
}
FILTER_LABELS = {
    FilterKey.MARKET_CAP: "Market Cap",
    FilterKey.LIQUIDITY: "Liquidity",
    FilterKey.VOLUME_BUY: "Volume Buy",
    FilterKey.VOLUME_SELL: "Volume Sell",
    FilterKey.CHAIN: "Blockchain",
    FilterKey.PRICE: "Price",
    FilterKey.VOLUME: "Volume",
}
CHAINS = (("☀️ Solana", "SOL"), ("⚡ BNB Chain", "BNB"), ("💎 Ethereum", "ETH"), ("🔷 TON", "TON"))
PRESETS = ((PresetOp.GT, 10_000), (PresetOp.GT, 50_000), (PresetOp.LT, 10_000), (PresetOp.LT, 50_000))


def constraint_label(constraint) -> str:
    if isinstance(constraint, Threshold):
        return f"{constraint.op}${fmt_compact(constraint.value)}"
    if isinstance(constraint, Range):
        return f"${fmt_compact(constraint.min)}-${fmt_compact(constraint.max)}"
    if isinstance(constraint, ChainMatch):
        return constraint.chain
    return ""


def main_menu(support_url: str) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.button(text="🔍 Search Tokens", callback_data=MenuCb(action=MenuAction.SEARCH))
    kb.button(text="⚙️ Set Filters", callback_data=MenuCb(action=MenuAction.FILTERS))
    kb.button(text="💾 Manage Words", callback_data=MenuCb(action=MenuAction.WORDS))
    kb.button(text="📊 My Stats", callback_data=MenuCb(action=MenuAction.STATS))
    kb.button(text="📚 Help Guide", callback_data=MenuCb(action=MenuAction.HELP))
    kb.button(text="💬 Support", url=support_url)
    kb.adjust(2, 2, 2)
    return kb.as_markup()


def nav_menu(options: list[tuple[str, MenuAction]]) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    for text, action in options:
        kb.button(text=text, callback_data=MenuCb(action=action))
    kb.adjust(len(options))
    return kb.as_markup()


def back_to_main() -> InlineKeyboardMarkup:
    return nav_menu([("◀️ Main Menu", MenuAction.MAIN)])


def filter_menu(filters: FilterSet) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    for key in (FilterKey.MARKET_CAP, FilterKey.LIQUIDITY, FilterKey.VOLUME_BUY, FilterKey.VOLUME_SELL):
        current = filters.get(key)
        suffix = f" ({constraint_label(current)})" if current else ""
        kb.button(text=f"{FILTER_EMOJI[key]} {FILTER_LABELS[key]}{suffix}", callback_data=FilterEditCb(key=key))
    chain = filters.get(FilterKey.CHAIN)
    kb.button(
        text=f"⛓️ Blockchain{f' ({constraint_label(chain)})' if chain else ''}",
        callback_data=FilterMenuCb(action=FilterAction.CHAIN),
    )
    if filters:
        kb.button(text="🗑️ Clear All", callback_data=FilterMenuCb(action=FilterAction.CLEAR))
    else:
        kb.button(text="❌ Cancel", callback_data=MenuCb(action=MenuAction.MAIN))
    kb.button(text="✅ Done", callback_data=FilterMenuCb(action=FilterAction.DONE))
    kb.adjust(1, 1, 2, 1, 2)
    return kb.as_markup()


def numeric_filter_menu(key: FilterKey) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    emoji = FILTER_EMOJI.get(key, "")
    for op, value in PRESETS:
        kb.button(
            text=f"{emoji} {op.symbol} ${fmt_compact(value)}",
            callback_data=NumericPresetCb(key=key, op=op, value=value),
        )
    kb.button(text="🎯 Custom Range", callback_data=CustomRangeCb(key=key))
    kb.button(text="◀️ Back", callback_data=FilterMenuCb(action=FilterAction.BACK))
    kb.adjust(2, 2, 1, 1)
    return kb.as_markup()


def chain_menu() -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    for text, chain in CHAINS:
        kb.button(text=text, callback_data=ChainCb(chain=chain))
    kb.button(text="◀️ Back", callback_data=FilterMenuCb(action=FilterAction.BACK))
    kb.adjust(2, 2, 1)
    return kb.as_markup()


def cancel_custom_range() -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.button(text="❌ Cancel", callback_data=FilterMenuCb(action=FilterAction.BACK))
    return kb.as_markup()


def filters_done_menu() -> InlineKeyboardMarkup:
    return nav_menu([("🔍 Search Tokens", MenuAction.SEARCH), ("◀️ Main Menu", MenuAction.MAIN)])


def trade_actions(token: TokenResult, trade_links: list[tuple[str, str]]) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    if not token.address:
        kb.button(text="🔍 Search Similar", callback_data=MenuCb(action=MenuAction.SEARCH))
        return kb.as_markup()
    address = quote(token.address, safe="")
    for label, url_prefix in trade_links:
        kb.button(text=f"Trade {token.symbol} on {label}", url=f"{url_prefix}{address}")
    kb.button(text="📊 View on DexScreener", url=f"https://dexscreener.com/search?q={address}")
    kb.adjust(1)
    return kb.as_markup()


def page_controls(page: int, total: int) -> InlineKeyboardMarkup | None:
    kb = InlineKeyboardBuilder()
    buttons = 0
    if page > 1:
        kb.button(text="◀️ Previous", callback_data=PageCb(page=page - 1))
        buttons += 1
    if page < total:
        kb.button(text="Next ▶️", callback_data=PageCb(page=page + 1))
        buttons += 1
    if not buttons:
        return None
    kb.button(text="◀️ Main Menu", callback_data=MenuCb(action=MenuAction.MAIN))
    kb.adjust(buttons + 1)
    return kb.as_markup()


def words_menu() -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.button(text="📝 View Saved Words", callback_data=WordsCb(action=WordsAction.VIEW))
    kb.button(text="➕ Add Words", callback_data=WordsCb(action=WordsAction.HOW_TO))
    kb.button(text="🗑️ Clear Words", callback_data=WordsCb(action=WordsAction.CLEAR))
    kb.button(text="◀️ Main Menu", callback_data=MenuCb(action=MenuAction.MAIN))
    kb.adjust(2, 2)
    return kb.as_markup()


def saved_words_actions(has_words: bool) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    if has_words:
        kb.button(text="➕ Add More", callback_data=WordsCb(action=WordsAction.HOW_TO))
        kb.button(text="🗑️ Clear All", callback_data=WordsCb(action=WordsAction.CLEAR))
        kb.button(text="◀️ Main Menu", callback_data=MenuCb(action=MenuAction.MAIN))
        kb.adjust(2, 1)
        return kb.as_markup()
    kb.button(text="💾 Save Words Now", callback_data=WordsCb(action=WordsAction.HOW_TO))
    kb.button(text="◀️ Main Menu", callback_data=MenuCb(action=MenuAction.MAIN))
    kb.adjust(2)
    return kb.as_markup()


def confirm_clear_words() -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.button(text="✅ Yes, Clear All", callback_data=WordsCb(action=WordsAction.CONFIRM_CLEAR))
    kb.button(text="❌ Cancel", callback_data=MenuCb(action=MenuAction.MAIN))
    kb.adjust(2)
    return kb.as_markup()


def words_saved_menu() -> InlineKeyboardMarkup:
    return nav_menu([("🔍 Search Now", MenuAction.SEARCH), ("◀️ Main Menu", MenuAction.MAIN)])


def save_words_prompt() -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.button(text="📝 View My Words", callback_data=WordsCb(action=WordsAction.VIEW))
    kb.button(text="◀️ Main Menu", callback_data=MenuCb(action=MenuAction.MAIN))
    kb.adjust(2)
    return kb.as_markup()
