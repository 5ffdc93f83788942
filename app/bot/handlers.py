from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from aiogram import Bot, F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

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
    WordsAction,
    WordsCb,
)
from app.bot.keyboards import (
    CHAINS,
    back_to_main,
    cancel_custom_range,
    chain_menu,
    confirm_clear_words,
    filter_menu,
    filters_done_menu,
    main_menu,
    nav_menu,
    numeric_filter_menu,
    page_controls,
    save_words_prompt,
    saved_words_actions,
    trade_actions,
    words_menu,
    words_saved_menu,
)
from app.bot.templates import (
    chain_menu_text,
    chain_set_text,
    confirm_clear_words_text,
    custom_range_invalid_text,
    custom_range_prompt_text,
    custom_range_set_text,
    filter_edit_text,
    filter_menu_text,
    filter_set_text,
    filter_summary_text,
    filtered_out_text,
    filters_cleared_text,
    help_text,
    main_menu_text,
    no_results_available_text,
    no_results_text,
    page_footer_text,
    page_header_text,
    quick_tip_text,
    rate_limited_text,
    save_words_prompt_text,
    saved_words_text,
    search_examples_text,
    search_failed_text,
    search_menu_text,
    search_usage_text,
    searching_text,
    stats_text,
    token_text,
    welcome_text,
    words_cleared_text,
    words_error_text,
    words_howto_text,
    words_menu_text,
    words_saved_text,
)
from app.core.config import get_settings
from app.core.container import ServiceHub
from app.core.filters import MENU_NUMERIC_KEYS, ChainMatch, FilterKey, Threshold
from app.core.nlu import parse_custom_range, parse_search_query
from app.services.search import SearchStatus

router = Router()
_settings = get_settings()
_hub: ServiceHub | None = None
logger = logging.getLogger(__name__)

PENDING_RANGE_TTL = 60 * 10
_KNOWN_CHAINS = {chain for _, chain in CHAINS}


def init_handlers(hub: ServiceHub) -> None:
    global _hub
    _hub = hub


def _require_hub() -> ServiceHub:
    if _hub is None:
        raise RuntimeError("Handlers not initialized")
    return _hub


async def _acquire_callback_once(callback: CallbackQuery, ttl: int = 60 * 30) -> bool:
    hub = _require_hub()
    cb_id = (callback.id or "").strip()
    if not cb_id:
        return True
    try:
        return await hub.cache.set_if_absent(f"seen:callback:{cb_id}", ttl=ttl)
    except Exception:  # noqa: BLE001
        logger.exception("dedupe_cache_error", extra={"event": "dedupe_cache_error", "callback_id": cb_id})
        return True


async def _check_search_limit(chat_id: int) -> bool:
    hub = _require_hub()
    try:
        result = await hub.rate_limiter.check(
            key=f"rl:search:{chat_id}",
            limit=_settings.search_rate_limit,
            window_seconds=_settings.search_rate_window_sec,
        )
        return result.allowed
    except Exception:  # noqa: BLE001
        logger.exception("rate_limit_check_error", extra={"event": "rate_limit_check_error", "chat_id": chat_id})
        return True


async def _get_pending_range(chat_id: int) -> FilterKey | None:
    hub = _require_hub()
    payload = await hub.cache.get_json(f"pending_range:{chat_id}")
    if not payload:
        return None
    try:
        return FilterKey(payload.get("key"))
    except ValueError:
        return None


async def _set_pending_range(chat_id: int, key: FilterKey) -> None:
    hub = _require_hub()
    await hub.cache.set_json(f"pending_range:{chat_id}", {"key": key.value}, ttl=PENDING_RANGE_TTL)


async def _clear_pending_range(chat_id: int) -> None:
    hub = _require_hub()
    await hub.cache.delete(f"pending_range:{chat_id}")


async def _edit(callback: CallbackQuery, text: str, markup: InlineKeyboardMarkup | None = None) -> None:
    if callback.message is None:
        return
    try:
        await callback.message.edit_text(text, reply_markup=markup)
    except TelegramBadRequest as exc:
        if "message is not modified" in str(exc):
            return
        await callback.message.answer(text, reply_markup=markup)


async def _delete_messages(bot: Bot, chat_id: int, message_ids: list[int]) -> None:
    for message_id in message_ids:
        with suppress(TelegramBadRequest):
            await bot.delete_message(chat_id=chat_id, message_id=message_id)


async def _render_page(bot: Bot, chat_id: int, page: int) -> bool:
    hub = _require_hub()
    previous = hub.store.get_pagination(chat_id)
    stale_ids = list(previous.message_ids) if previous else []
    served = hub.search_service.page(chat_id, page)
    if served is None:
        return False
    state, tokens = served
    await _delete_messages(bot, chat_id, stale_ids)

    total = len(state.results)
    sent: list[int] = []
    header = await bot.send_message(
        chat_id=chat_id,
        text=page_header_text(state.query, total, page, state.total_pages, len(tokens)),
    )
    sent.append(header.message_id)

    links = _settings.trade_bot_links_list()
    offset = (page - 1) * state.page_size
    for index, token in enumerate(tokens, start=offset + 1):
        msg = await bot.send_message(
            chat_id=chat_id,
            text=token_text(token, index, total),
            reply_markup=trade_actions(token, links),
            disable_web_page_preview=True,
        )
        sent.append(msg.message_id)
        await asyncio.sleep(_settings.page_message_delay_sec)

    controls = page_controls(page, state.total_pages)
    if controls is not None:
        footer = await bot.send_message(chat_id=chat_id, text=page_footer_text(page, state.total_pages), reply_markup=controls)
        sent.append(footer.message_id)

    hub.search_service.remember_page_messages(chat_id, sent)
    return True


@router.message(Command("start"))
async def start_cmd(message: Message) -> None:
    await message.answer(welcome_text(), reply_markup=main_menu(_settings.support_url))
    await message.answer(quick_tip_text())


@router.message(Command("help"))
async def help_cmd(message: Message) -> None:
    await message.answer(help_text(), reply_markup=main_menu(_settings.support_url))


@router.message(Command("checktoken"))
async def checktoken_cmd(message: Message, command: CommandObject) -> None:
    hub = _require_hub()
    chat_id = message.chat.id
    query = parse_search_query(command.args)
    if query is None:
        await message.answer(search_usage_text(), reply_markup=nav_menu([("📝 Examples", MenuAction.EXAMPLES), ("◀️ Main Menu", MenuAction.MAIN)]))
        return
    if not await _check_search_limit(chat_id):
        await message.answer(rate_limited_text(_settings.search_rate_limit, _settings.search_rate_window_sec))
        return

    placeholder = await message.answer(searching_text(query.raw))
    try:
        outcome = await hub.search_service.search(chat_id, query)
    except Exception as exc:  # noqa: BLE001
        logger.exception("search_failed", extra={"event": "search_failed", "chat_id": chat_id, "error": str(exc)})
        await message.answer(search_failed_text())
        return
    finally:
        with suppress(TelegramBadRequest):
            await placeholder.delete()

    if outcome.status == SearchStatus.NO_RESULTS:
        await message.answer(
            no_results_text(outcome.query),
            reply_markup=nav_menu([("🔍 Try Again", MenuAction.SEARCH), ("⚙️ Adjust Filters", MenuAction.FILTERS)]),
        )
        return
    if outcome.status == SearchStatus.FILTERED_OUT:
        await message.answer(
            filtered_out_text(outcome.found),
            reply_markup=nav_menu([("⚙️ Adjust Filters", MenuAction.FILTERS), ("🔍 Search Again", MenuAction.SEARCH)]),
        )
        return
    await _render_page(message.bot, chat_id, 1)


@router.message(Command("checkfilter"))
async def checkfilter_cmd(message: Message) -> None:
    hub = _require_hub()
    await message.answer(filter_menu_text(), reply_markup=filter_menu(hub.store.get_filters(message.chat.id)))


@router.message(Command("saveword"))
async def saveword_cmd(message: Message, command: CommandObject) -> None:
    hub = _require_hub()
    chat_id = message.chat.id
    if not (command.args or "").strip():
        current = len(hub.keyword_service.list_words(chat_id))
        await message.answer(save_words_prompt_text(current), reply_markup=save_words_prompt())
        return
    try:
        words = hub.keyword_service.save_words(chat_id, command.args)
    except RuntimeError as exc:
        await message.answer(words_error_text(str(exc)))
        return
    logger.info("words_saved", extra={"event": "words_saved", "chat_id": chat_id, "count": len(words)})
    await message.answer(words_saved_text(words), reply_markup=words_saved_menu())


@router.message(Command("mysavedwords"))
async def mysavedwords_cmd(message: Message) -> None:
    hub = _require_hub()
    words = hub.keyword_service.list_words(message.chat.id)
    await message.answer(saved_words_text(words), reply_markup=saved_words_actions(bool(words)))


@router.message(Command("clearsavedwords"))
async def clearsavedwords_cmd(message: Message) -> None:
    hub = _require_hub()
    count = hub.keyword_service.clear_words(message.chat.id)
    await message.answer(words_cleared_text(count), reply_markup=back_to_main())


@router.message(Command("mystats"))
async def mystats_cmd(message: Message) -> None:
    hub = _require_hub()
    chat_id = message.chat.id
    name = message.from_user.first_name if message.from_user else None
    await message.answer(
        stats_text(name, chat_id, hub.store.get_filters(chat_id), hub.keyword_service.list_words(chat_id), hub.store.get_stats(chat_id)),
        reply_markup=main_menu(_settings.support_url),
    )


@router.callback_query(MenuCb.filter())
async def menu_cb(callback: CallbackQuery, callback_data: MenuCb) -> None:
    hub = _require_hub()
    await callback.answer()
    if not await _acquire_callback_once(callback):
        return
    chat_id = callback.message.chat.id if callback.message else callback.from_user.id
    action = callback_data.action

    if action == MenuAction.MAIN:
        await _edit(callback, main_menu_text(), main_menu(_settings.support_url))
    elif action == MenuAction.SEARCH:
        await _edit(callback, search_menu_text(), nav_menu([("📝 Examples", MenuAction.EXAMPLES), ("◀️ Main Menu", MenuAction.MAIN)]))
    elif action == MenuAction.EXAMPLES:
        await _edit(callback, search_examples_text(), back_to_main())
    elif action == MenuAction.FILTERS:
        await _edit(callback, filter_menu_text(), filter_menu(hub.store.get_filters(chat_id)))
    elif action == MenuAction.WORDS:
        await _edit(callback, words_menu_text(), words_menu())
    elif action == MenuAction.STATS:
        text = stats_text(
            callback.from_user.first_name,
            chat_id,
            hub.store.get_filters(chat_id),
            hub.keyword_service.list_words(chat_id),
            hub.store.get_stats(chat_id),
        )
        await _edit(callback, text, main_menu(_settings.support_url))
    elif action == MenuAction.HELP:
        await _edit(callback, help_text(), back_to_main())


@router.callback_query(FilterMenuCb.filter())
async def filter_menu_cb(callback: CallbackQuery, callback_data: FilterMenuCb) -> None:
    hub = _require_hub()
    await callback.answer()
    if not await _acquire_callback_once(callback):
        return
    chat_id = callback.message.chat.id if callback.message else callback.from_user.id
    action = callback_data.action

    if action == FilterAction.CHAIN:
        await _edit(callback, chain_menu_text(), chain_menu())
        return

    await _clear_pending_range(chat_id)
    if action == FilterAction.BACK:
        await _edit(callback, filter_menu_text(), filter_menu(hub.store.get_filters(chat_id)))
    elif action == FilterAction.CLEAR:
        hub.store.clear_filters(chat_id)
        logger.info("filters_cleared", extra={"event": "filters_cleared", "chat_id": chat_id})
        await _edit(callback, filters_cleared_text(), filter_menu(hub.store.get_filters(chat_id)))
    elif action == FilterAction.DONE:
        await _edit(callback, filter_summary_text(hub.store.get_filters(chat_id)), filters_done_menu())


@router.callback_query(FilterEditCb.filter())
async def filter_edit_cb(callback: CallbackQuery, callback_data: FilterEditCb) -> None:
    await callback.answer()
    if not await _acquire_callback_once(callback):
        return
    if callback_data.key not in MENU_NUMERIC_KEYS:
        return
    await _edit(callback, filter_edit_text(callback_data.key), numeric_filter_menu(callback_data.key))


@router.callback_query(NumericPresetCb.filter())
async def numeric_preset_cb(callback: CallbackQuery, callback_data: NumericPresetCb) -> None:
    hub = _require_hub()
    await callback.answer()
    if not await _acquire_callback_once(callback):
        return
    if callback_data.key not in MENU_NUMERIC_KEYS or callback_data.value <= 0:
        return
    chat_id = callback.message.chat.id if callback.message else callback.from_user.id
    constraint = Threshold(op=callback_data.op.symbol, value=float(callback_data.value))
    filters = hub.store.set_filter(chat_id, callback_data.key, constraint)
    logger.info("filter_set", extra={"event": "filter_set", "chat_id": chat_id, "key": callback_data.key.value})
    await _edit(callback, filter_set_text(callback_data.key, constraint), filter_menu(filters))


@router.callback_query(CustomRangeCb.filter())
async def custom_range_cb(callback: CallbackQuery, callback_data: CustomRangeCb) -> None:
    await callback.answer()
    if not await _acquire_callback_once(callback):
        return
    if callback_data.key not in MENU_NUMERIC_KEYS:
        return
    chat_id = callback.message.chat.id if callback.message else callback.from_user.id
    await _set_pending_range(chat_id, callback_data.key)
    await _edit(callback, custom_range_prompt_text(callback_data.key), cancel_custom_range())


@router.callback_query(ChainCb.filter())
async def chain_cb(callback: CallbackQuery, callback_data: ChainCb) -> None:
    hub = _require_hub()
    if callback_data.chain not in _KNOWN_CHAINS:
        await callback.answer("Unknown chain", show_alert=True)
        return
    await callback.answer()
    if not await _acquire_callback_once(callback):
        return
    chat_id = callback.message.chat.id if callback.message else callback.from_user.id
    filters = hub.store.set_filter(chat_id, FilterKey.CHAIN, ChainMatch(callback_data.chain))
    await _edit(callback, chain_set_text(callback_data.chain), filter_menu(filters))


@router.callback_query(PageCb.filter())
async def page_cb(callback: CallbackQuery, callback_data: PageCb) -> None:
    await callback.answer()
    if not await _acquire_callback_once(callback):
        return
    chat_id = callback.message.chat.id if callback.message else callback.from_user.id
    if not await _render_page(callback.bot, chat_id, callback_data.page):
        await _edit(callback, no_results_available_text(), back_to_main())


@router.callback_query(WordsCb.filter())
async def words_cb(callback: CallbackQuery, callback_data: WordsCb) -> None:
    hub = _require_hub()
    await callback.answer()
    if not await _acquire_callback_once(callback):
        return
    chat_id = callback.message.chat.id if callback.message else callback.from_user.id
    action = callback_data.action

    if action == WordsAction.VIEW:
        words = hub.keyword_service.list_words(chat_id)
        await _edit(callback, saved_words_text(words), saved_words_actions(bool(words)))
    elif action == WordsAction.HOW_TO:
        await _edit(callback, words_howto_text(), words_menu())
    elif action == WordsAction.CLEAR:
        count = len(hub.keyword_service.list_words(chat_id))
        if not count:
            await _edit(callback, words_cleared_text(0), words_menu())
            return
        await _edit(callback, confirm_clear_words_text(count), confirm_clear_words())
    elif action == WordsAction.CONFIRM_CLEAR:
        count = hub.keyword_service.clear_words(chat_id)
        await _edit(callback, words_cleared_text(count), back_to_main())


@router.message(F.text & ~F.text.startswith("/"))
async def custom_range_text(message: Message) -> None:
    hub = _require_hub()
    chat_id = message.chat.id
    key = await _get_pending_range(chat_id)
    if key is None:
        return
    rng = parse_custom_range(message.text)
    if rng is None:
        await message.answer(custom_range_invalid_text(), reply_markup=cancel_custom_range())
        return
    await _clear_pending_range(chat_id)
    filters = hub.store.set_filter(chat_id, key, rng)
    logger.info("filter_set", extra={"event": "filter_set", "chat_id": chat_id, "key": key.value, "custom": True})
    await message.answer(custom_range_set_text(key, rng), reply_markup=filter_menu(filters))
