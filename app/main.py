# app/main.py

import logging
import traceback
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Конфигурация и ядро
from app.core.config import settings as config
from app.core.limiter import limiter
from app.core.logging_config import setup_logging
from app.core.redis import redis_client

# Роутеры FastAPI
from app.routers import admin as admin_router, auth, match, payment, user
from app.routers.webhooks import telegram_router

# Бот и фоновые задачи
from app.bot.core import create_bot, create_dispatcher
from app.bot.services.notification import Notifier, build_error_report, fire_and_forget
from app.services.match_expiration import expire_stale_matches_task

# --- Инициализация ---
logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler(timezone=config.TIMEZONE)

# --- Обработчик критических ошибок ---
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Глобальный обработчик для всех необработанных исключений.
    Логирует ошибку и отправляет уведомление админам.
    """
    logger.critical(f"Unhandled exception for request: {request.method} {request.url}", exc_info=exc)

    error_message = build_error_report(
        f"{request.method} {request.url}", "".join(traceback.format_exception(exc))
    )

    notifier: Notifier | None = getattr(request.app.state, "notifier", None)
    if notifier is not None:
        fire_and_forget(notifier.send_error_to_admins(error_message))

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error. The administrator has been notified."},
    )

# --- Lifespan Manager (запуск и остановка приложения) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application lifespan startup...")

    # Блокировка через Redis для однократной инициализации
    is_main_worker = await redis_client.set("app_startup_lock", "1", ex=60, nx=True)

    if is_main_worker:
        logger.info("This is the main worker. Running initial setup...")

        webhook_url = f"{config.BASE_WEBHOOK_URL}{config.TELEGRAM_WEBHOOK_PATH}"
        await app.state.bot.set_webhook(url=webhook_url, secret_token=config.TELEGRAM_WEBHOOK_SECRET)
        logger.info("Telegram webhook set.")

        if not scheduler.running:
            scheduler.add_job(expire_stale_matches_task, 'interval', hours=1)
            scheduler.start()
            logger.info("Scheduler started with background jobs.")
    else:
        logger.info("This is a secondary worker. Skipping initial setup.")

    yield

    # Код при остановке
    if is_main_worker:
        logger.info("Main worker shutting down...")
        if scheduler.running:
            scheduler.shutdown()
            logger.info("Scheduler shut down.")

        await app.state.bot.delete_webhook()
        logger.info("Telegram webhook deleted.")

        await redis_client.delete("app_startup_lock")
    else:
        logger.info("Secondary worker shutting down.")

    await app.state.bot.session.close()

# --- Создание FastAPI приложения ---
app = FastAPI(
    title="StarMatch",
    description="Backend for the StarMatch dating Telegram Mini App",
    version="0.1.0",
    lifespan=lifespan
)

# Внешние коллабораторы создаются один раз и передаются через app.state
app.state.bot = create_bot()
app.state.notifier = Notifier(app.state.bot)
app.state.dp = create_dispatcher(app.state.notifier)
app.state.limiter = limiter

origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173", # для Vite
    "https://web.telegram.org",
    config.MINI_APP_URL,
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Регистрация обработчиков исключений ---
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Подключение роутеров FastAPI ---
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(user.router, tags=["Users"])
api_router.include_router(match.router, tags=["Matches"])
api_router.include_router(payment.router, tags=["Payments"])

# Админские эндпоинты
api_router.include_router(admin_router.router, prefix="/admin", tags=["Admin"])

app.include_router(api_router)

# Веб-хук Telegram (в корне)
app.include_router(telegram_router, tags=["Telegram Bot"])
