# app/routers/admin.py
from typing import List

from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from app.core.redis import get_redis_client
from app.dependencies import get_admin_user, get_db
from app.schemas.admin import AdminStats, AdminTransactionListItem, AdminUserListItem
from app.services import admin as admin_service

# Все эндпоинты этого роутера доступны только админам
router = APIRouter(dependencies=[Depends(get_admin_user)])


@router.get("/users", response_model=List[AdminUserListItem])
def get_users_list(db: Session = Depends(get_db)):
    """[АДМИН] Последние зарегистрированные пользователи."""
    return admin_service.list_users(db)


@router.get("/transactions", response_model=List[AdminTransactionListItem])
def get_transactions_list(db: Session = Depends(get_db)):
    """[АДМИН] Последние операции всех пользователей."""
    return admin_service.list_transactions(db)


@router.get("/stats", response_model=AdminStats)
async def get_stats(
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis_client),
):
    """[АДМИН] Сводная статистика по пользователям, парам и оплатам."""
    return await admin_service.get_stats(db, redis)
