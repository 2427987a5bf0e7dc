# tests/conftest.py
import hashlib
import hmac
import json
import os
import time
from contextlib import contextmanager
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import urlencode

# Настройки читаются при импорте app.*, поэтому окружение задаем до импортов
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456789:TEST-token_for_starmatch")
os.environ.setdefault("TELEGRAM_BOT_USERNAME", "starmatch_test_bot")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_TELEGRAM_IDS", "999000")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.redis import get_redis_client
from app.db.session import Base
from app.dependencies import get_bot, get_db, get_notifier
from app.models import match, transaction, user # Импортируем все модели для создания таблиц
from app.models.user import User
from app.services.auth import create_access_token

ADMIN_TG_ID = 999000

# Используем in-memory SQLite для тестов - это быстро и изолированно
SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Фикстура для создания чистой базы данных для каждого теста.
    """
    Base.metadata.create_all(bind=engine) # Создаем все таблицы
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine) # Очищаем все после теста


@pytest.fixture
def db_context(db_session, monkeypatch):
    """Подменяет get_db_context в модулях бота и фоновых задач на тестовую сессию."""
    @contextmanager
    def _context():
        yield db_session

    for module in (
        "app.bot.services.notification",
        "app.bot.handlers.user",
        "app.bot.handlers.admin",
        "app.services.match_expiration",
    ):
        monkeypatch.setattr(f"{module}.get_db_context", _context)
    return _context


@pytest.fixture
def make_user(db_session):
    """Фабрика пользователей с анкетой."""
    counter = {"tg_id": 1000}

    def _make_user(**fields) -> User:
        counter["tg_id"] += 1
        data = {
            "telegram_id": counter["tg_id"],
            "username": f"user{counter['tg_id']}",
            "first_name": f"User{counter['tg_id']}",
            "referral_code": f"SM{counter['tg_id']}TEST00",
            "interests": [],
        }
        data.update(fields)
        db_user = User(**data)
        db_session.add(db_user)
        db_session.commit()
        db_session.refresh(db_user)
        return db_user

    return _make_user


@pytest.fixture
def test_user(make_user):
    return make_user(age=27, gender="female", location="Moscow", interests=["music", "travel"])


@pytest.fixture
def admin_user(make_user):
    return make_user(telegram_id=ADMIN_TG_ID, username="admin")


def auth_headers_for(db_user: User) -> dict:
    token = create_access_token(data={"sub": str(db_user.id), "tg_id": str(db_user.telegram_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user) -> dict:
    return auth_headers_for(test_user)


@pytest.fixture
def admin_auth_headers(admin_user) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def mock_notifier() -> MagicMock:
    notifier = MagicMock()
    notifier.notify_mutual_match = AsyncMock()
    notifier.send_referral_bonus = AsyncMock()
    notifier.send_payment_success = AsyncMock()
    notifier.send_error_to_admins = AsyncMock()
    return notifier


@pytest.fixture
def mock_bot() -> MagicMock:
    bot = MagicMock()
    bot.create_invoice_link = AsyncMock(return_value="https://t.me/$invoice-link")
    bot.send_message = AsyncMock()
    return bot


@pytest.fixture
def mock_redis() -> MagicMock:
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    return redis


@pytest_asyncio.fixture
async def client(db_session, mock_notifier, mock_bot, mock_redis):
    from app.main import app

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notifier] = lambda: mock_notifier
    app.dependency_overrides[get_bot] = lambda: mock_bot
    app.dependency_overrides[get_redis_client] = lambda: mock_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client

    app.dependency_overrides.clear()


def build_init_data(
    user_info: dict,
    start_param: str | None = None,
    bot_token: str | None = None,
    auth_date: int | None = None,
) -> str:
    """Собирает initData, подписанный так же, как это делает Telegram."""
    fields = {
        "auth_date": str(int(time.time()) if auth_date is None else auth_date),
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "user": json.dumps(user_info, separators=(",", ":")),
    }
    if start_param:
        fields["start_param"] = start_param
    data_check_string = "\n".join(f"{k}={v}" for k, v in sorted(fields.items()))
    secret_key = hmac.new(b"WebAppData", (bot_token or settings.TELEGRAM_BOT_TOKEN).encode(), hashlib.sha256).digest()
    fields["hash"] = hmac.new(secret_key, data_check_string.encode(), hashlib.sha256).hexdigest()
    return urlencode(fields)


@pytest.fixture
def headers_for():
    return auth_headers_for


@pytest.fixture
def init_data_factory():
    return build_init_data
