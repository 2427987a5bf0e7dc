# app/crud/user.py
from sqlalchemy.orm import Session
from app.models.user import User


def get_user_by_id(db: Session, user_id: int) -> User | None:
    """Получает пользователя по его первичному ключу (ID в нашей БД)."""
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_telegram_id(db: Session, telegram_id: int) -> User | None:
    """Получает пользователя по его Telegram ID."""
    return db.query(User).filter(User.telegram_id == telegram_id).first()

def get_user_by_referral_code(db: Session, code: str) -> User | None:
    return db.query(User).filter(User.referral_code == code).first()

def create_user(
    db: Session,
    telegram_id: int,
    referral_code: str,
    username: str | None,
    first_name: str | None,
    last_name: str | None,
    photo_url: str | None = None,
    referred_by_id: int | None = None,
) -> User:
    """
    Создает объект пользователя и добавляет его в сессию.
    Требует внешнего вызова db.commit().
    """
    db_user = User(
        telegram_id=telegram_id,
        username=username,
        first_name=first_name,
        last_name=last_name,
        photo_url=photo_url,
        referral_code=referral_code,
        referred_by_id=referred_by_id,
        interests=[],
    )
    db.add(db_user)
    db.flush()
    return db_user


def adjust_balance(db: Session, user_id: int, delta: int, require_funds: bool = False) -> bool:
    """
    Атомарно меняет баланс одним UPDATE.
    При require_funds=True списание проходит только если баланс >= |delta|.
    Возвращает False, если ни одна строка не обновилась.
    """
    query = db.query(User).filter(User.id == user_id)
    if delta < 0:
        # Баланс никогда не уходит в минус
        query = query.filter(User.balance >= -delta)
    elif require_funds:
        raise ValueError("require_funds имеет смысл только для списаний")
    updated = query.update({User.balance: User.balance + delta}, synchronize_session=False)
    return updated == 1

def consume_free_match(db: Session, user_id: int) -> bool:
    """Атомарно списывает один бесплатный подбор, если он есть."""
    updated = db.query(User).filter(
        User.id == user_id,
        User.free_matches > 0
    ).update({User.free_matches: User.free_matches - 1}, synchronize_session=False)
    return updated == 1

def grant_free_match(db: Session, user_id: int, count: int = 1) -> None:
    db.query(User).filter(User.id == user_id).update(
        {User.free_matches: User.free_matches + count}, synchronize_session=False
    )

def increment_referral_count(db: Session, user_id: int) -> None:
    db.query(User).filter(User.id == user_id).update(
        {User.referral_count: User.referral_count + 1}, synchronize_session=False
    )


def get_users(db: Session, limit: int = 50) -> list[User]:
    """Последние зарегистрированные пользователи (от новых к старым)."""
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).limit(limit).all()

def count_all_users(db: Session) -> int:
    return db.query(User).count()

def count_active_users(db: Session) -> int:
    return db.query(User).filter(User.is_active == True).count()
