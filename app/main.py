from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.types import BotCommand, Update
from fastapi import FastAPI, HTTPException, Request
from sqlalchemy import text

from app.adapters.dexscreener import DexScreenerAdapter
from app.bot.handlers import init_handlers, router
from app.core.cache import RedisCache
from app.core.config import Settings, get_settings
from app.core.container import ServiceHub
from app.core.http import ResilientHTTPClient
from app.core.logging import setup_logging
from app.core.rate_limit import RateLimiter
from app.db.session import AsyncSessionLocal
from app.services.alerts import KeywordAlertScanner
from app.services.keywords import KeywordService
from app.services.search import SearchService
from app.services.state import SqlStateBackend, StateStore
from app.workers.scheduler import WorkerScheduler, alert_notifier

logger = logging.getLogger(__name__)


async def _sync_bot_commands(bot: Bot) -> None:
    command_specs = [
        ("start", "Show the welcome message and main menu"),
        ("help", "Detailed help guide"),
        ("checktoken", "Search tokens by phrase"),
        ("checkfilter", "Configure search filters"),
        ("saveword", "Save up to 5 alert words"),
        ("mysavedwords", "View your saved alert words"),
        ("clearsavedwords", "Clear your saved alert words"),
        ("mystats", "View your activity"),
    ]
    commands = [BotCommand(command=command, description=description) for command, description in command_specs]
    await bot.set_my_commands(commands)


def build_hub(settings: Settings, bot: Bot, cache: RedisCache, http: ResilientHTTPClient) -> ServiceHub:
    store = StateStore(SqlStateBackend(AsyncSessionLocal))
    dexscreener = DexScreenerAdapter(
        http=http,
        cache=cache,
        base_url=settings.dexscreener_base_url,
        feed_url=settings.token_feed_url,
        search_cache_ttl=settings.search_cache_ttl_sec,
    )
    return ServiceHub(
        bot=bot,
        http=http,
        cache=cache,
        rate_limiter=RateLimiter(cache),
        store=store,
        dexscreener=dexscreener,
        search_service=SearchService(dexscreener, store),
        keyword_service=KeywordService(store),
        alert_scanner=KeywordAlertScanner(dexscreener, store, dispatch_delay_sec=settings.alert_dispatch_delay_sec),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level)

    if not settings.telegram_bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required")

    cache = RedisCache(settings.redis_url)
    http = ResilientHTTPClient(timeout=settings.http_timeout_sec, retries=settings.http_retries)

    bot = Bot(token=settings.telegram_bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = Dispatcher()

    hub = build_hub(settings, bot, cache, http)
    await hub.store.load()

    try:
        await _sync_bot_commands(bot)
    except Exception as exc:  # noqa: BLE001
        logger.warning("set_bot_commands_failed", extra={"event": "set_bot_commands_failed", "error": str(exc)})
    init_handlers(hub)
    dp.include_router(router)

    scheduler = None
    if not settings.serverless_mode:
        scheduler = WorkerScheduler(hub)
        scheduler.start()

    polling_task = None
    if settings.serverless_mode and not settings.telegram_use_webhook:
        logger.warning("serverless_mode_enabled_without_webhook", extra={"event": "serverless_warning"})

    if settings.telegram_use_webhook and settings.telegram_auto_set_webhook:
        webhook_url = settings.telegram_webhook_url.rstrip("/") + settings.telegram_webhook_path
        try:
            await bot.set_webhook(webhook_url, secret_token=settings.telegram_webhook_secret or None)
            logger.info("webhook_configured", extra={"event": "webhook", "url": webhook_url})
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "webhook_configure_failed",
                extra={"event": "webhook_error", "url": webhook_url, "error": str(exc)},
            )
    elif not settings.telegram_use_webhook and not settings.serverless_mode:
        polling_task = asyncio.create_task(dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types()))

    app.state.settings = settings
    app.state.hub = hub
    app.state.dp = dp
    app.state.bot = bot
    app.state.http = http
    app.state.cache = cache
    app.state.scheduler = scheduler
    app.state.polling_task = polling_task

    try:
        yield
    finally:
        if scheduler:
            scheduler.stop()
        if polling_task:
            polling_task.cancel()
            with contextlib.suppress(Exception):
                await polling_task
        await hub.store.flush()
        await bot.session.close()
        await http.close()
        await cache.close()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="WordSpotr Bot", version="1.0.0", lifespan=lifespan)

    def _cron_authorized(req: Request) -> bool:
        # Native Vercel cron invocations include this header.
        if req.headers.get("x-vercel-cron"):
            return True
        if not settings.cron_secret:
            return True
        auth = req.headers.get("authorization", "")
        if auth == f"Bearer {settings.cron_secret}":
            return True
        if req.headers.get("x-cron-secret", "") == settings.cron_secret:
            return True
        return False

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/ready")
    async def ready() -> dict:
        try:
            async with AsyncSessionLocal() as session:
                await session.execute(text("SELECT 1"))
            pong = await app.state.cache.redis.ping()
            if not pong:
                raise RuntimeError("Redis ping failed")
            return {"status": "ready"}
        except Exception as exc:  # noqa: BLE001
            raise HTTPException(status_code=503, detail=str(exc)) from exc

    @app.post(settings.telegram_webhook_path)
    async def telegram_webhook(req: Request) -> dict:
        app_settings = app.state.settings
        if not app_settings.telegram_use_webhook:
            raise HTTPException(status_code=400, detail="Webhook mode disabled")

        if app_settings.telegram_webhook_secret:
            secret = req.headers.get("X-Telegram-Bot-Api-Secret-Token", "")
            if secret != app_settings.telegram_webhook_secret:
                raise HTTPException(status_code=403, detail="Invalid secret")

        payload = await req.json()
        update = Update.model_validate(payload)
        await app.state.dp.feed_update(app.state.bot, update)
        return {"ok": True}

    @app.api_route("/tasks/alerts/run", methods=["GET", "POST"])
    async def task_alerts(req: Request) -> dict:
        if not _cron_authorized(req):
            raise HTTPException(status_code=401, detail="Unauthorized")

        hub = app.state.hub
        try:
            count = await hub.alert_scanner.run(alert_notifier(app.state.bot))
            await hub.store.flush()
            return {"ok": True, "processed": count, "task": "alerts", "ts": datetime.now(timezone.utc).isoformat()}
        except Exception as exc:  # noqa: BLE001
            logger.exception("task_alerts_failed", extra={"event": "task_alerts_failed", "error": str(exc)})
            return {"ok": False, "processed": 0, "task": "alerts", "error": str(exc), "ts": datetime.now(timezone.utc).isoformat()}

    @app.api_route("/tasks/state/flush", methods=["GET", "POST"])
    async def task_state_flush(req: Request) -> dict:
        if not _cron_authorized(req):
            raise HTTPException(status_code=401, detail="Unauthorized")

        try:
            written = await app.state.hub.store.flush()
            return {"ok": True, "written": written, "task": "state_flush", "ts": datetime.now(timezone.utc).isoformat()}
        except Exception as exc:  # noqa: BLE001
            logger.exception("task_state_flush_failed", extra={"event": "task_state_flush_failed", "error": str(exc)})
            return {"ok": False, "written": 0, "task": "state_flush", "error": str(exc), "ts": datetime.now(timezone.utc).isoformat()}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, reload=False)
