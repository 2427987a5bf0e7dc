# app/crud/transaction.py

from typing import Any, Dict, List
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func

from app.models.transaction import Transaction


def create_transaction(
    db: Session,
    user_id: int,
    telegram_id: int,
    type: str,
    amount: int,
    description: str | None = None,
    status: str = "completed",
    payment_id: str | None = None,
    meta: Dict[str, Any] | None = None,
) -> Transaction:
    """
    Создает объект транзакции и добавляет его в сессию.
    Требует внешнего вызова db.commit().
    """
    transaction = Transaction(
        user_id=user_id,
        telegram_id=telegram_id,
        type=type,
        amount=amount,
        description=description,
        status=status,
        payment_id=payment_id,
        meta=meta,
    )
    db.add(transaction)
    return transaction

def get_user_transactions(db: Session, user_id: int, limit: int = 20) -> List[Transaction]:
    """Транзакции пользователя от новых к старым."""
    return db.query(Transaction).filter(
        Transaction.user_id == user_id
    ).order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit).all()

def get_transactions(db: Session, limit: int = 100) -> List[Transaction]:
    """Последние транзакции всех пользователей (для админки)."""
    return db.query(Transaction).options(joinedload(Transaction.user)).order_by(
        Transaction.created_at.desc(), Transaction.id.desc()
    ).limit(limit).all()

def get_transaction_by_payment_id(db: Session, payment_id: str) -> Transaction | None:
    return db.query(Transaction).filter(Transaction.payment_id == payment_id).first()

def get_user_total_by_type(db: Session, user_id: int, type: str) -> int:
    """Сумма операций пользователя заданного типа."""
    total = db.query(func.sum(Transaction.amount)).filter(
        Transaction.user_id == user_id,
        Transaction.type == type
    ).scalar()
    return total or 0

def count_completed_transactions(db: Session) -> int:
    return db.query(Transaction).filter(Transaction.status == "completed").count()

def get_total_revenue(db: Session) -> int:
    """Сумма всех успешных пополнений звездами."""
    total = db.query(func.sum(Transaction.amount)).filter(
        Transaction.status == "completed",
        Transaction.type == "payment",
        Transaction.amount > 0
    ).scalar()
    return total or 0
