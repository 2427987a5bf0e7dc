# app/utils/telegram.py
import hashlib
import hmac
import logging
import time
from urllib.parse import parse_qsl

from app.core.config import settings

logger = logging.getLogger(__name__)

# Допуск на расхождение часов Telegram и сервера
CLOCK_SKEW_SECONDS = 60


def _webapp_secret(bot_token: str) -> bytes:
    return hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()


def _is_fresh(auth_date: str | None, now: float | None = None) -> bool:
    max_age = settings.INIT_DATA_MAX_AGE_SECONDS
    if max_age <= 0:
        return True
    try:
        issued_at = int(auth_date)
    except (TypeError, ValueError):
        return False
    age = (time.time() if now is None else now) - issued_at
    return -CLOCK_SKEW_SECONDS <= age <= max_age


def validate_init_data(init_data: str) -> tuple[bool, dict]:
    """
    Проверяет подпись initData от Telegram Mini App и его свежесть по auth_date.
    Возвращает кортеж: (валидность, поля initData без hash).
    Поле user внутри остается JSON-строкой.
    """
    if not init_data:
        return False, {}

    try:
        fields = dict(parse_qsl(init_data, keep_blank_values=True, strict_parsing=True))
    except ValueError:
        return False, {}

    received_hash = fields.pop("hash", None)
    if not received_hash:
        return False, {}

    # Поля сортируются по ключу и склеиваются через перевод строки
    data_check_string = "\n".join(f"{key}={fields[key]}" for key in sorted(fields))
    expected_hash = hmac.new(
        _webapp_secret(settings.TELEGRAM_BOT_TOKEN), data_check_string.encode(), hashlib.sha256
    ).hexdigest()

    if not hmac.compare_digest(expected_hash, received_hash):
        return False, {}
    if not _is_fresh(fields.get("auth_date")):
        logger.warning(f"Rejected stale initData, auth_date={fields.get('auth_date')}")
        return False, {}
    return True, fields
