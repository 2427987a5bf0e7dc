# app/services/profile.py

import logging
import secrets
import string
from datetime import date, datetime, timedelta
from typing import Any, Dict
from zoneinfo import ZoneInfo

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import user as crud_user, transaction as crud_transaction
from app.models.user import User
from app.schemas.referral import ReferralInfo
from app.schemas.user import UserUpdate
from app.services import ledger

logger = logging.getLogger(__name__)

REFERRAL_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_SUFFIX_LENGTH = 6


def local_today() -> date:
    """Сегодняшняя дата в часовом поясе сервиса (граница суток - локальная полночь)."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


def generate_referral_code(db: Session, telegram_id: int) -> str:
    """Код вида SM<telegram_id><6 случайных символов>, уникальный в БД."""
    while True:
        suffix = "".join(secrets.choice(REFERRAL_SUFFIX_ALPHABET) for _ in range(REFERRAL_SUFFIX_LENGTH))
        code = f"{settings.REFERRAL_CODE_PREFIX}{telegram_id}{suffix}"
        if not crud_user.get_user_by_referral_code(db, code=code):
            return code


def get_profile(db: Session, telegram_id: int) -> User:
    user = crud_user.get_user_by_telegram_id(db, telegram_id=telegram_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def get_or_create(
    db: Session,
    user_info: Dict[str, Any],
    referral_code: str | None = None
) -> tuple[User, bool]:
    """
    Находит пользователя по Telegram ID или создает нового.
    Реферальный код учитывается только при создании: пригласивший получает
    бонус на баланс и запись 'referral_bonus' в журнале.
    Возвращает (пользователь, создан_ли_сейчас).
    """
    telegram_id = user_info.get("id")
    if not telegram_id:
        raise ValueError("Telegram ID is missing in user_info")

    db_user = crud_user.get_user_by_telegram_id(db, telegram_id=telegram_id)
    if db_user:
        return db_user, False

    logger.info(f"User with telegram_id {telegram_id} not found in local DB. Creating new user.")
    try:
        referrer = None
        if referral_code:
            referrer = crud_user.get_user_by_referral_code(db, code=referral_code)
            if not referrer:
                logger.info(f"Unknown referral code '{referral_code}' for new user {telegram_id}. Ignoring.")

        db_user = crud_user.create_user(
            db,
            telegram_id=telegram_id,
            referral_code=generate_referral_code(db, telegram_id),
            username=user_info.get("username"),
            first_name=user_info.get("first_name"),
            last_name=user_info.get("last_name"),
            photo_url=user_info.get("photo_url"),
            referred_by_id=referrer.id if referrer else None,
        )

        if referrer:
            crud_user.increment_referral_count(db, referrer.id)
            crud_user.adjust_balance(db, referrer.id, settings.REFERRAL_BONUS)
            ledger.record(
                db, referrer,
                type="referral_bonus",
                amount=settings.REFERRAL_BONUS,
                description="Referral bonus",
                meta={"referral_code": referral_code},
            )
            logger.info(f"Referral: referrer_id={referrer.id} -> referred_id={db_user.id}, +{settings.REFERRAL_BONUS}")

        db.commit()
    except IntegrityError:
        # Параллельный первый вход того же пользователя уже создал запись
        db.rollback()
        db_user = crud_user.get_user_by_telegram_id(db, telegram_id=telegram_id)
        if not db_user:
            raise
        return db_user, False
    except Exception:
        db.rollback()
        raise

    db.refresh(db_user)
    return db_user, True


def sync_display_attributes(db: Session, user: User, user_info: Dict[str, Any]) -> User:
    """Обновляет username/имя/фото из данных Telegram, если они изменились."""
    updated = False
    for field in ("username", "first_name", "last_name", "photo_url"):
        value = user_info.get(field)
        if value is not None and getattr(user, field) != value:
            setattr(user, field, value)
            updated = True
    if updated:
        db.commit()
        db.refresh(user)
    return user


def update_profile(db: Session, telegram_id: int, update_data: UserUpdate) -> User:
    """Перезаписывает только переданные поля анкеты."""
    user = get_profile(db, telegram_id)
    changes = update_data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in ("gender", "interests", "bio"):
            # Эти поля не бывают пустыми в БД
            continue
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info(f"Profile of user {user.id} updated: {sorted(changes)}")
    return user


def next_streak(current_streak: int, last_login: date | None, today: date) -> int:
    """
    Новое значение серии входов.
    Вчера - серия растет, сегодня - не меняется, раньше или никогда - начинается заново.
    """
    if last_login is None:
        return 1
    if last_login >= today:
        return current_streak
    if last_login == today - timedelta(days=1):
        return current_streak + 1
    return 1


def record_login(db: Session, user: User, today: date | None = None) -> User:
    """
    Учитывает ежедневный вход. Каждый STREAK_BONUS_EVERY-й день подряд
    начисляет бесплатный подбор и пишет 'streak_bonus' в журнал.
    Серия пишется условным UPDATE по старой дате входа, поэтому два
    параллельных входа не начислят бонус дважды.
    """
    today = today or local_today()
    previous_date = user.last_login_date
    new_streak = next_streak(user.login_streak, previous_date, today)

    if previous_date is not None and previous_date >= today:
        return user

    try:
        query = db.query(User).filter(User.id == user.id)
        if previous_date is None:
            query = query.filter(User.last_login_date.is_(None))
        else:
            query = query.filter(User.last_login_date == previous_date)
        updated = query.update(
            {User.login_streak: new_streak, User.last_login_date: today},
            synchronize_session=False
        )
        if updated != 1:
            # Вход уже учтен параллельным запросом
            db.rollback()
            db.refresh(user)
            return user

        every = settings.STREAK_BONUS_EVERY
        if new_streak >= every and new_streak % every == 0:
            crud_user.grant_free_match(db, user.id)
            ledger.record(
                db, user,
                type="streak_bonus",
                amount=1,
                description=f"{new_streak}-day login streak bonus",
                meta={"streak_days": new_streak},
            )
            logger.info(f"User {user.id} reached a {new_streak}-day streak. Free match granted.")
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(user)
    return user


def get_referral_info(db: Session, user: User) -> ReferralInfo:
    """Реферальный код, deep link и статистика приглашений."""
    if not user.referral_code:
        user.referral_code = generate_referral_code(db, user.telegram_id)
        db.commit()
        db.refresh(user)
        logger.info(f"Assigned new referral code '{user.referral_code}' to user {user.id}")

    bot_username = settings.TELEGRAM_BOT_USERNAME.lstrip("@")
    total_earned = crud_transaction.get_user_total_by_type(db, user_id=user.id, type="referral_bonus")
    return ReferralInfo(
        referral_code=user.referral_code,
        referral_link=f"https://t.me/{bot_username}?start=ref_{user.referral_code}",
        referral_count=user.referral_count,
        total_earned=total_earned,
    )


def parse_referral_code(start_param: str | None) -> str | None:
    """Принимает 'ref_<код>' из deep link или сам код с префиксом SM."""
    if not start_param:
        return None
    start_param = start_param.strip()
    if start_param.startswith("ref_"):
        return start_param.split("ref_", 1)[1] or None
    if start_param.startswith(settings.REFERRAL_CODE_PREFIX):
        return start_param
    return None
