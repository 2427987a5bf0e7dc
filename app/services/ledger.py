# app/services/ledger.py

import logging
from typing import Any, Dict
from sqlalchemy.orm import Session

from app.crud import transaction as crud_transaction
from app.models.transaction import Transaction, TRANSACTION_STATUSES, TRANSACTION_TYPES
from app.models.user import User

logger = logging.getLogger(__name__)


def record(
    db: Session,
    user: User,
    type: str,
    amount: int,
    description: str | None = None,
    status: str = "completed",
    payment_id: str | None = None,
    meta: Dict[str, Any] | None = None,
) -> Transaction:
    """
    Добавляет запись в журнал операций в рамках текущей транзакции БД.
    Записи не удаляются и не редактируются, кроме смены статуса.
    """
    if type not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown transaction type: {type}")
    if status not in TRANSACTION_STATUSES:
        raise ValueError(f"Unknown transaction status: {status}")

    transaction = crud_transaction.create_transaction(
        db,
        user_id=user.id,
        telegram_id=user.telegram_id,
        type=type,
        amount=amount,
        description=description,
        status=status,
        payment_id=payment_id,
        meta=meta,
    )
    logger.info(f"Ledger: user {user.id} {type} {amount:+d} ({status})")
    return transaction


def set_status(db: Session, transaction: Transaction, status: str) -> Transaction:
    """
    Единственная разрешенная мутация записи журнала.
    Сценарий возврата (refunded) пока нигде не используется.
    """
    if status not in TRANSACTION_STATUSES:
        raise ValueError(f"Unknown transaction status: {status}")
    logger.info(f"Ledger: transaction {transaction.id} status {transaction.status} -> {status}")
    transaction.status = status
    db.add(transaction)
    return transaction


def get_user_history(db: Session, user: User, limit: int = 50) -> list[Transaction]:
    return crud_transaction.get_user_transactions(db, user_id=user.id, limit=limit)
