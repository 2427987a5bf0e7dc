# tests/test_match_lifecycle.py

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from app.crud import match as crud_match
from app.models.match import Match
from app.services import match_lifecycle


def _aware(value: datetime) -> datetime:
    # SQLite возвращает наивные datetime
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@pytest.fixture
def pair(make_user):
    return make_user(gender="female"), make_user(gender="male")


@pytest.fixture
def pending_match(db_session, pair):
    match = match_lifecycle.create_match(db_session, pair[0], pair[1], "random")
    db_session.commit()
    db_session.refresh(match)
    return match


@pytest.mark.parametrize("user1_status, user2_status, expected", [
    ("pending", "pending", "pending"),
    ("interested", "pending", "pending"),
    ("pending", "interested", "pending"),
    ("interested", "interested", "accepted"),
    ("passed", "pending", "rejected"),
    ("pending", "passed", "rejected"),
    ("interested", "passed", "rejected"),
    ("passed", "interested", "rejected"),
    ("passed", "passed", "rejected"),
])
def test_resolve_status(user1_status, user2_status, expected):
    assert match_lifecycle.resolve_status(user1_status, user2_status) == expected


def test_create_match_sets_pending_and_ttl(db_session, pair):
    before = datetime.now(timezone.utc)
    match = match_lifecycle.create_match(db_session, pair[0], pair[1], "random")
    db_session.commit()

    assert match.status == "pending"
    assert match.user1_status == "pending"
    assert match.user2_status == "pending"
    assert match.filters is None
    expires_at = _aware(match.expires_at)
    assert before + timedelta(hours=24) <= expires_at <= datetime.now(timezone.utc) + timedelta(hours=24)


def test_create_match_keeps_filters_only_for_filtered(db_session, pair):
    filters = {"gender": "male", "interests": ["music"]}
    random_match = match_lifecycle.create_match(db_session, pair[0], pair[1], "random", filters=filters)
    filtered_match = match_lifecycle.create_match(db_session, pair[1], pair[0], "filtered", filters=filters)

    assert random_match.filters is None
    assert filtered_match.filters == filters


def test_create_match_rejects_same_user(db_session, pair):
    with pytest.raises(ValueError):
        match_lifecycle.create_match(db_session, pair[0], pair[0], "random")


def test_create_match_rejects_unknown_type(db_session, pair):
    with pytest.raises(ValueError):
        match_lifecycle.create_match(db_session, pair[0], pair[1], "premium")


@pytest.mark.asyncio
async def test_mutual_interest_accepts_and_notifies_once(db_session, pair, pending_match, mock_notifier):
    first = match_lifecycle.react(db_session, pending_match.id, pair[0], "interested", notifier=mock_notifier)
    assert first.status == "pending"
    assert first.user1_status == "interested"
    mock_notifier.notify_mutual_match.assert_not_called()

    second = match_lifecycle.react(db_session, pending_match.id, pair[1], "interested", notifier=mock_notifier)
    await asyncio.sleep(0)

    assert second.status == "accepted"
    mock_notifier.notify_mutual_match.assert_called_once()
    recipients = mock_notifier.notify_mutual_match.call_args.args
    assert {r.telegram_id for r in recipients} == {pair[0].telegram_id, pair[1].telegram_id}


@pytest.mark.asyncio
async def test_pass_after_interest_rejects(db_session, pair, pending_match, mock_notifier):
    match_lifecycle.react(db_session, pending_match.id, pair[0], "interested", notifier=mock_notifier)
    match = match_lifecycle.react(db_session, pending_match.id, pair[1], "passed", notifier=mock_notifier)

    assert match.status == "rejected"
    assert match.user1_status == "interested"
    assert match.user2_status == "passed"
    mock_notifier.notify_mutual_match.assert_not_called()


@pytest.mark.asyncio
async def test_single_pass_closes_match(db_session, pair, pending_match):
    match = match_lifecycle.react(db_session, pending_match.id, pair[1], "passed")

    assert match.status == "rejected"
    with pytest.raises(HTTPException) as exc_info:
        match_lifecycle.react(db_session, pending_match.id, pair[0], "interested")
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_second_reaction_of_same_side_is_rejected(db_session, pair, pending_match):
    match_lifecycle.react(db_session, pending_match.id, pair[0], "interested")

    with pytest.raises(HTTPException) as exc_info:
        match_lifecycle.react(db_session, pending_match.id, pair[0], "passed")
    assert exc_info.value.status_code == 409

    db_session.refresh(pending_match)
    assert pending_match.user1_status == "interested"
    assert pending_match.status == "pending"


@pytest.mark.asyncio
async def test_outsider_cannot_react(db_session, make_user, pending_match):
    outsider = make_user()

    with pytest.raises(HTTPException) as exc_info:
        match_lifecycle.react(db_session, pending_match.id, outsider, "interested")
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_react_to_missing_match(db_session, pair):
    with pytest.raises(HTTPException) as exc_info:
        match_lifecycle.react(db_session, 424242, pair[0], "interested")
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_react_retries_on_version_conflict(db_session, pair, pending_match, mocker):
    """Параллельная запись увеличила версию: первая попытка падает, вторая проходит."""
    real_read = crud_match.get_match_for_update
    calls = {"count": 0}

    def racing_read(db, match_id):
        match = real_read(db, match_id)
        calls["count"] += 1
        if calls["count"] == 1:
            # Кто-то другой успел обновить строку после нашего чтения
            db.query(Match).filter(Match.id == match_id).update(
                {Match.version: Match.version + 1}, synchronize_session=False
            )
        return match

    mocker.patch.object(crud_match, "get_match_for_update", side_effect=racing_read)

    match = match_lifecycle.react(db_session, pending_match.id, pair[0], "interested")

    assert calls["count"] == 2
    assert match.user1_status == "interested"
    assert match.status == "pending"


@pytest.mark.asyncio
async def test_react_gives_up_after_repeated_conflicts(db_session, pair, pending_match, mocker):
    real_read = crud_match.get_match_for_update

    def always_racing(db, match_id):
        match = real_read(db, match_id)
        db.query(Match).filter(Match.id == match_id).update(
            {Match.version: Match.version + 1}, synchronize_session=False
        )
        return match

    mocker.patch.object(crud_match, "get_match_for_update", side_effect=always_racing)

    with pytest.raises(HTTPException) as exc_info:
        match_lifecycle.react(db_session, pending_match.id, pair[0], "interested")
    assert exc_info.value.status_code == 409

    db_session.refresh(pending_match)
    assert pending_match.user1_status == "pending"


def test_expire_stale_matches(db_session, pair, make_user):
    third = make_user()
    now = datetime.now(timezone.utc)
    stale = match_lifecycle.create_match(db_session, pair[0], pair[1], "random")
    fresh = match_lifecycle.create_match(db_session, pair[0], third, "random")
    stale.expires_at = now - timedelta(minutes=1)
    db_session.commit()
    stale_id, fresh_id = stale.id, fresh.id
    old_version = stale.version

    expired = match_lifecycle.expire_stale_matches(db_session, now=now)

    assert expired == 1
    stale = db_session.get(Match, stale_id)
    fresh = db_session.get(Match, fresh_id)
    db_session.refresh(stale)
    db_session.refresh(fresh)
    assert stale.status == "expired"
    assert stale.version == old_version + 1
    assert fresh.status == "pending"


@pytest.mark.asyncio
async def test_expired_match_rejects_reactions(db_session, pair, pending_match):
    match_lifecycle.expire_stale_matches(db_session, now=datetime.now(timezone.utc) + timedelta(hours=25))

    with pytest.raises(HTTPException) as exc_info:
        match_lifecycle.react(db_session, pending_match.id, pair[0], "interested")
    assert exc_info.value.status_code == 409


def test_list_matches_newest_first(db_session, pair, make_user):
    third = make_user()
    older = match_lifecycle.create_match(db_session, pair[0], pair[1], "random")
    newer = match_lifecycle.create_match(db_session, third, pair[0], "random")
    db_session.commit()

    matches = match_lifecycle.list_matches(db_session, pair[0])

    assert [m.id for m in matches] == [newer.id, older.id]
    assert match_lifecycle.list_matches(db_session, third)[0].id == newer.id
