from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from aiogram import Bot
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.bot.keyboards import trade_actions
from app.bot.templates import keyword_alert_text
from app.core.config import get_settings
from app.core.container import ServiceHub
from app.services.alerts import KeywordAlert, Notifier

logger = logging.getLogger(__name__)


def alert_notifier(bot: Bot) -> Notifier:
    """Deliver a keyword alert as one Telegram message with its action buttons."""
    links = get_settings().trade_bot_links_list()

    async def _notify(alert: KeywordAlert) -> None:
        await bot.send_message(
            chat_id=alert.chat_id,
            text=keyword_alert_text(alert.token, alert.matched_words),
            reply_markup=trade_actions(alert.token, links),
            disable_web_page_preview=True,
        )

    return _notify


class WorkerScheduler:
    def __init__(self, hub: ServiceHub) -> None:
        self.hub = hub
        self.settings = get_settings()
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self._notify = alert_notifier(hub.bot)

    async def _scan_keyword_alerts(self) -> None:
        count = await self.hub.alert_scanner.run(self._notify)
        logger.info("keyword_alerts_processed", extra={"event": "keyword_alerts_processed", "count": count})

    async def _flush_state(self) -> None:
        written = await self.hub.store.flush()
        if written:
            logger.info("state_flushed", extra={"event": "state_flushed", "records": written})

    def start(self) -> None:
        first_scan = datetime.now(timezone.utc) + timedelta(seconds=self.settings.alert_scan_initial_delay_sec)
        self.scheduler.add_job(
            self._scan_keyword_alerts,
            "interval",
            seconds=self.settings.alert_scan_interval_sec,
            next_run_time=first_scan,
            max_instances=1,
        )
        self.scheduler.add_job(self._flush_state, "interval", seconds=self.settings.state_flush_interval_sec, max_instances=1)
        self.scheduler.start()

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
