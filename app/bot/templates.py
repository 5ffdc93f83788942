from __future__ import annotations

from app.core.filters import ChainMatch, FilterKey, FilterSet, Range, Threshold
from app.core.fmt import fmt_compact, fmt_price, fmt_usd, humanize_key, safe_html
from app.core.tokens import TokenResult
from app.services.state import MAX_SAVED_WORDS, ConversationStats

CHAIN_EMOJI = {
    "solana": "☀️",
    "ethereum": "💎",
    "bsc": "⚡",
    "ton": "🔷",
}

SEARCH_EXAMPLES = (
    "<code>/checktoken moon rocket</code>",
    "<code>/checktoken nothing will be forgiven</code>",
    "<code>/checktoken pepe doge meme</code>",
)


def welcome_text() -> str:
    return (
        "🎯 <b>Welcome to WordSpotr Bot!</b>\n\n"
        "<b>Your Token Discovery Assistant</b>\n\n"
        "✨ <b>What I can do for you:</b>\n"
        "• 🔍 Search tokens by phrase using /checktoken\n"
        "• ⚙️ Set trading filters with /checkfilter\n"
        f"• 💾 Save up to {MAX_SAVED_WORDS} words for launch alerts with /saveword\n"
        "• 🚨 Get notified when matching tokens launch\n"
        "• 📊 Filter by market cap, liquidity and more\n\n"
        "<b>Quick Start Commands:</b>\n"
        "/start - Show this welcome message\n"
        "/checktoken &lt;your phrase&gt; - Find tokens instantly\n"
        "/checkfilter - Configure your trading preferences\n"
        "/saveword &lt;words&gt; - Set up launch alerts\n"
        "/help - Get detailed help\n\n"
        "<i>Ready to discover your next gem?</i> 💎"
    )


def quick_tip_text() -> str:
    return (
        "💡 <b>Quick Tip:</b> Start with <code>/checktoken moon rocket</code> "
        "to see how the search works!"
    )


def help_text() -> str:
    return (
        "📚 <b>WordSpotr Bot Help Guide</b>\n\n"
        "<b>🔍 SEARCH TOKENS</b>\n"
        "<code>/checktoken nothing will be forgiven</code>\n"
        "• Searches for tokens matching every word of your phrase\n"
        "• Applies your saved filters automatically\n"
        "• Inline filters override them: <code>/checktoken moon fdv&gt;100000 liquidity&gt;5000</code>\n"
        "• Navigate results with Previous/Next\n\n"
        "<b>⚙️ CONFIGURE FILTERS</b>\n"
        "<code>/checkfilter</code>\n"
        "• Market cap and liquidity thresholds\n"
        "• Volume buy/sell limits\n"
        "• Blockchain (SOL, ETH, BNB, TON)\n\n"
        "<b>💾 WORD ALERTS</b>\n"
        "<code>/saveword moon pepe hope rocket doge</code>\n"
        f"• Save up to {MAX_SAVED_WORDS} trigger words\n"
        "• Matched against new token names and symbols\n\n"
        "<b>📊 MANAGE YOUR SETUP</b>\n"
        "/mysavedwords - View saved words\n"
        "/clearsavedwords - Reset word list\n"
        "/mystats - View your activity"
    )


def search_usage_text() -> str:
    return (
        "🔍 <b>Token Search</b>\n\n"
        "Please add your search phrase after the command.\n\n"
        "<b>Examples:</b>\n" + "\n".join(SEARCH_EXAMPLES)
    )


def search_menu_text() -> str:
    return (
        "🔍 <b>Token Search</b>\n\n"
        "Use the command: <code>/checktoken &lt;your phrase&gt;</code>\n\n"
        "<b>Examples:</b>\n" + "\n".join(f"• {line}" for line in SEARCH_EXAMPLES)
    )


def search_examples_text() -> str:
    return (
        "🔍 <b>Token Search Examples</b>\n\n"
        "Try these commands:\n"
        + "\n".join(f"• {line}" for line in SEARCH_EXAMPLES)
        + "\n\nUse Next/Previous buttons to navigate results."
    )


def searching_text(query: str) -> str:
    return (
        "🔍 <b>Searching for tokens...</b>\n\n"
        f"Analyzing: <code>{safe_html(query)}</code>\n\n"
        "⏳ Please wait... This may take a few seconds"
    )


def rate_limited_text(limit: int, window_sec: int) -> str:
    return f"⏳ <b>Slow down</b>\n\nYou can run {limit} searches every {window_sec}s. Try again shortly."


def search_failed_text() -> str:
    return "❌ <b>Search failed</b>\n\nSomething went wrong while searching. Please try again."


def no_results_text(query: str) -> str:
    return (
        "❌ <b>No Tokens Found</b>\n\n"
        f"No tokens match your search: <code>{safe_html(query)}</code>\n\n"
        "💡 <b>Try:</b>\n• Different keywords\n• Broader search terms\n• Check spelling"
    )


def filtered_out_text(found: int) -> str:
    return (
        "🔍 <b>Search Results</b>\n\n"
        f"Found {found} tokens, but none match your filters.\n\n"
        "💡 <b>Consider:</b>\n• Adjusting your filters\n• Using /checkfilter to modify settings"
    )


def page_header_text(query: str, total: int, page: int, total_pages: int, on_page: int) -> str:
    return (
        "✅ <b>Search Complete!</b>\n\n"
        f"Found <b>{total}</b> tokens matching: <code>{safe_html(query)}</code>\n\n"
        f"📊 Showing page <b>{page}/{total_pages}</b> ({on_page} tokens)"
    )


def page_footer_text(page: int, total_pages: int) -> str:
    return f"📄 <b>Page {page}/{total_pages}</b>"


def no_results_available_text() -> str:
    return "❌ No search results available. Please run a new search with /checktoken."


def token_text(token: TokenResult, index: int, total: int) -> str:
    chain = token.chain_id or "Unknown"
    emoji = CHAIN_EMOJI.get(chain.lower(), "⛓️")
    return (
        f"🎯 <b>Token {index}/{total}</b>\n\n"
        f"💎 <b>{safe_html(token.name)}</b> ({safe_html(token.symbol)})\n"
        f"{emoji} <b>Chain:</b> {safe_html(chain)}\n"
        f"🏪 <b>DEX:</b> {safe_html(token.dex_id or 'N/A')}\n"
        f"💰 <b>Price:</b> <code>{fmt_price(token.price_usd)}</code>\n"
        f"📊 <b>Market Cap:</b> <code>{fmt_usd(token.fdv)}</code>\n"
        f"💧 <b>Liquidity:</b> <code>{fmt_usd(token.liquidity_usd)}</code>\n"
        f"📋 <b>CA:</b> <code>{safe_html(token.address or 'N/A')}</code>"
    )


def keyword_alert_text(token: TokenResult, matched_words: tuple[str, ...] | list[str]) -> str:
    words = ", ".join(f"<code>{safe_html(w)}</code>" for w in matched_words)
    lines = [
        "🚨 <b>NEW TOKEN ALERT!</b>",
        "",
        f"💎 <b>{safe_html(token.name or 'Unknown')}</b> ({safe_html(token.symbol or 'N/A')})",
        "",
        f"🎯 <b>Matched words:</b> {words}",
        "",
        "📊 <b>Details:</b>",
        f"• Price: {fmt_price(token.price_usd)}",
        f"• DEX: {safe_html(token.dex_id or 'N/A')}",
        f"• Chain: {safe_html(token.chain_id or 'Unknown')}",
        f"• CA: <code>{safe_html(token.address or 'N/A')}</code>",
    ]
    if token.address:
        lines += ["", "⚡ <b>Quick Actions:</b>"]
    return "\n".join(lines)


def _constraint_text(constraint) -> str:
    if isinstance(constraint, Threshold):
        return f"{safe_html(constraint.op)}${fmt_compact(constraint.value)}"
    if isinstance(constraint, Range):
        return f"${fmt_compact(constraint.min)} - ${fmt_compact(constraint.max)}"
    if isinstance(constraint, ChainMatch):
        return safe_html(constraint.chain)
    return "?"


def filter_menu_text() -> str:
    return "⚙️ <b>Configure Trading Filters</b>\n\nSet your preferences to refine token searches:"


def filter_edit_text(key: FilterKey) -> str:
    return f"💰 <b>Set {humanize_key(key.value)} Filter</b>\n\nChoose a preset or set custom range:"


def filter_set_text(key: FilterKey, constraint) -> str:
    return (
        "✅ <b>Filter Set</b>\n\n"
        f"{humanize_key(key.value)}: {_constraint_text(constraint)}\n\n"
        "Configure more or tap Done:"
    )


def chain_menu_text() -> str:
    return "⛓️ <b>Select Blockchain</b>\n\nChoose the chain to filter by:"


def chain_set_text(chain: str) -> str:
    return f"✅ <b>Blockchain Set</b>\n\nSelected: {safe_html(chain)}\n\nConfigure more filters or tap Done:"


def filters_cleared_text() -> str:
    return "🗑️ <b>All Filters Cleared</b>\n\nYour filters have been reset. Configure new ones:"


def filter_summary_text(filters: FilterSet) -> str:
    if not filters:
        return "✅ <b>Filters Saved</b>\n\nNo filters active. Searches will return every match."
    lines = [f"• {humanize_key(key.value)}: {_constraint_text(c)}" for key, c in filters.constraints.items()]
    return "✅ <b>Filters Saved</b>\n\n<b>Active filters:</b>\n" + "\n".join(lines)


def custom_range_prompt_text(key: FilterKey) -> str:
    return (
        f"🎯 <b>Custom Range for {humanize_key(key.value)}</b>\n\n"
        "Send a message with format:\n"
        "<code>min 10000 max 50000</code>"
    )


def custom_range_invalid_text() -> str:
    return (
        "❌ <b>Invalid range</b>\n\n"
        "Use <code>min 10000 max 50000</code> (min must not exceed max). "
        "Suffixes like <code>10k</code> or <code>2.5m</code> work too."
    )


def custom_range_set_text(key: FilterKey, constraint: Range) -> str:
    return (
        "✅ <b>Custom Range Set</b>\n\n"
        f"{humanize_key(key.value)}: {_constraint_text(constraint)}"
    )


def words_menu_text() -> str:
    return "💾 <b>Manage Your Alert Words</b>\n\nChoose an action:"


def words_howto_text() -> str:
    return (
        "💾 <b>How to Save Alert Words</b>\n\n"
        "<b>Command:</b> <code>/saveword &lt;word1&gt; &lt;word2&gt; ...</code>\n\n"
        "<b>Examples:</b>\n"
        "• <code>/saveword moon rocket</code>\n"
        "• <code>/saveword pepe doge meme coin</code>\n\n"
        "<b>Rules:</b>\n"
        f"• Maximum {MAX_SAVED_WORDS} words\n"
        "• Words are case-insensitive\n"
        "• Saving replaces your previous list\n"
        "• Matches token names and symbols"
    )


def save_words_prompt_text(current: int) -> str:
    return (
        "💾 <b>Save Alert Words</b>\n\n"
        f"Add up to {MAX_SAVED_WORDS} words to get notified when matching tokens launch.\n\n"
        "<b>Example:</b>\n<code>/saveword moon rocket pepe doge hope</code>\n\n"
        f"<b>Current saved words:</b> {current}/{MAX_SAVED_WORDS}"
    )


def words_saved_text(words: list[str]) -> str:
    listed = "\n".join(f"• <code>{safe_html(w)}</code>" for w in words)
    return (
        "✅ <b>Words Saved Successfully!</b>\n\n"
        f"💾 <b>Your alert words:</b>\n{listed}\n\n"
        "🚨 You'll be notified when tokens matching these words launch!"
    )


def words_error_text(message: str) -> str:
    return f"❌ <b>Could not save words</b>\n\n{safe_html(message)}"


def saved_words_text(words: list[str]) -> str:
    if not words:
        return (
            "📝 <b>Your Saved Words</b>\n\n"
            "❌ No words saved yet. Use <code>/saveword &lt;word1&gt; &lt;word2&gt; ...</code> "
            f"to save up to {MAX_SAVED_WORDS} words for launch alerts."
        )
    listed = "\n".join(f"{i}. <code>{safe_html(w)}</code>" for i, w in enumerate(words, start=1))
    return (
        "📝 <b>Your Saved Words</b>\n\n"
        f"{listed}\n\n"
        "<b>Status:</b> 🟢 Active alerts\n"
        f"<b>Slots used:</b> {len(words)}/{MAX_SAVED_WORDS}"
    )


def confirm_clear_words_text(count: int) -> str:
    return f"🗑️ <b>Clear Saved Words?</b>\n\nThis removes all {count} saved words and stops launch alerts."


def words_cleared_text(count: int) -> str:
    if not count:
        return "ℹ️ You have no saved words to clear."
    return f"✅ <b>Saved Words Cleared</b>\n\nRemoved {count} words. Alerts are now inactive."


def stats_text(first_name: str | None, chat_id: int, filters: FilterSet, words: list[str], stats: ConversationStats) -> str:
    return (
        "📊 <b>Your WordSpotr Statistics</b>\n\n"
        f"👤 <b>User:</b> {safe_html(first_name or 'there')}\n"
        f"🆔 <b>Chat ID:</b> <code>{chat_id}</code>\n\n"
        f"⚙️ <b>Active Filters:</b> {len(filters)}\n"
        f"💾 <b>Saved Words:</b> {len(words)}/{MAX_SAVED_WORDS}\n"
        f"🚨 <b>Alert Status:</b> {'✅ Active' if words else '❌ Inactive'}\n\n"
        "<b>Recent Activity:</b>\n"
        f"• Last search: {safe_html(stats.last_search or 'Never')}\n"
        f"• Tokens found: {stats.tokens_found}\n"
        f"• Alerts received: {stats.alerts_received}\n\n"
        "<i>Keep searching to discover more gems!</i> 💎"
    )


def main_menu_text() -> str:
    return "🎯 <b>WordSpotr Main Menu</b>\n\nWhat would you like to do?"
