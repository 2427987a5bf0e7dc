# tests/test_streak.py

from datetime import date, timedelta

import pytest

from app.models.transaction import Transaction
from app.services import profile as profile_service

DAY_1 = date(2026, 3, 1)


@pytest.mark.parametrize("streak, last_login, today, expected", [
    (0, None, DAY_1, 1),
    (1, DAY_1, DAY_1, 1),                       # уже входил сегодня
    (1, DAY_1, DAY_1 + timedelta(days=1), 2),   # вчера
    (5, DAY_1, DAY_1 + timedelta(days=2), 1),   # пропуск дня
    (5, DAY_1, DAY_1 + timedelta(days=30), 1),
])
def test_next_streak(streak, last_login, today, expected):
    assert profile_service.next_streak(streak, last_login, today) == expected


def _streak_bonuses(db_session, user_id):
    return db_session.query(Transaction).filter(
        Transaction.user_id == user_id, Transaction.type == "streak_bonus"
    ).all()


def test_three_consecutive_days_grant_one_free_match(db_session, test_user):
    for offset in range(3):
        profile_service.record_login(db_session, test_user, today=DAY_1 + timedelta(days=offset))

    assert test_user.login_streak == 3
    assert test_user.free_matches == 1
    assert test_user.last_login_date == DAY_1 + timedelta(days=2)

    bonuses = _streak_bonuses(db_session, test_user.id)
    assert len(bonuses) == 1
    assert bonuses[0].amount == 1
    assert bonuses[0].meta == {"streak_days": 3}


def test_repeated_login_same_day_does_not_regrant_bonus(db_session, test_user):
    for offset in range(3):
        profile_service.record_login(db_session, test_user, today=DAY_1 + timedelta(days=offset))
    # Еще два входа в третий день
    profile_service.record_login(db_session, test_user, today=DAY_1 + timedelta(days=2))
    profile_service.record_login(db_session, test_user, today=DAY_1 + timedelta(days=2))

    assert test_user.login_streak == 3
    assert test_user.free_matches == 1
    assert len(_streak_bonuses(db_session, test_user.id)) == 1


def test_gap_resets_streak(db_session, test_user):
    profile_service.record_login(db_session, test_user, today=DAY_1)
    profile_service.record_login(db_session, test_user, today=DAY_1 + timedelta(days=1))
    profile_service.record_login(db_session, test_user, today=DAY_1 + timedelta(days=3))

    assert test_user.login_streak == 1
    assert test_user.free_matches == 0
    assert _streak_bonuses(db_session, test_user.id) == []


def test_every_third_day_is_a_milestone(db_session, test_user):
    for offset in range(6):
        profile_service.record_login(db_session, test_user, today=DAY_1 + timedelta(days=offset))

    assert test_user.login_streak == 6
    assert test_user.free_matches == 2
    assert [tx.meta["streak_days"] for tx in _streak_bonuses(db_session, test_user.id)] == [3, 6]
