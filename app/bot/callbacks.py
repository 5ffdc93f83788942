from __future__ import annotations

from enum import Enum

from aiogram.filters.callback_data import CallbackData

from app.core.filters import FilterKey


class MenuAction(str, Enum):
    MAIN = "main"
    SEARCH = "search"
    EXAMPLES = "examples"
    FILTERS = "filters"
    WORDS = "words"
    STATS = "stats"
    HELP = "help"


class FilterAction(str, Enum):
    CHAIN = "chain"
    BACK = "back"
    CLEAR = "clear"
    DONE = "done"


class PresetOp(str, Enum):
    GT = "gt"
    LT = "lt"

    @property
    def symbol(self) -> str:
        return ">" if self is PresetOp.GT else "<"


class WordsAction(str, Enum):
    VIEW = "view"
    HOW_TO = "howto"
    CLEAR = "clear"
    CONFIRM_CLEAR = "confirm"


class MenuCb(CallbackData, prefix="menu"):
    action: MenuAction


class FilterMenuCb(CallbackData, prefix="flt"):
    action: FilterAction


class FilterEditCb(CallbackData, prefix="fedit"):
    key: FilterKey


class NumericPresetCb(CallbackData, prefix="fnum"):
    key: FilterKey
    op: PresetOp
    value: int


class CustomRangeCb(CallbackData, prefix="frange"):
    key: FilterKey


class ChainCb(CallbackData, prefix="chain"):
    chain: str


class PageCb(CallbackData, prefix="page"):
    page: int


class WordsCb(CallbackData, prefix="words"):
    action: WordsAction
