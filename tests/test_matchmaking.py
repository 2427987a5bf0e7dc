# tests/test_matchmaking.py

import random

import pytest
from fastapi import HTTPException

from app.core.config import settings
from app.models.match import Match
from app.models.transaction import Transaction
from app.schemas.match import MatchFilters
from app.services import match_lifecycle, matchmaking


def _filters(**kwargs) -> MatchFilters:
    return MatchFilters.model_validate(kwargs)


def test_random_never_returns_self_or_previous_partners(db_session, test_user, make_user):
    previous = [make_user() for _ in range(3)]
    fresh = [make_user() for _ in range(3)]
    for partner in previous:
        match_lifecycle.create_match(db_session, partner, test_user, "random")
    db_session.commit()

    excluded = {test_user.id} | {u.id for u in previous}
    for seed in range(30):
        picked = matchmaking.select_random(db_session, test_user, rng=random.Random(seed))
        assert picked is not None
        assert picked.id not in excluded
        assert picked.id in {u.id for u in fresh}


def test_inactive_users_are_not_candidates(db_session, test_user, make_user):
    make_user(is_active=False)

    assert matchmaking.select_random(db_session, test_user) is None


def test_candidate_pool_is_bounded(db_session, test_user, make_user):
    users = [make_user() for _ in range(settings.CANDIDATE_POOL_SIZE + 5)]
    pool_ids = {u.id for u in users[:settings.CANDIDATE_POOL_SIZE]}

    for seed in range(30):
        picked = matchmaking.select_random(db_session, test_user, rng=random.Random(seed))
        assert picked.id in pool_ids


def test_age_range_is_inclusive(db_session, test_user, make_user):
    young, low, high, old = make_user(age=24), make_user(age=25), make_user(age=35), make_user(age=36)
    make_user(age=None)
    filters = _filters(age_range={"min": 25, "max": 35})

    picked = {
        matchmaking.select_filtered(db_session, test_user, filters, rng=random.Random(seed)).id
        for seed in range(30)
    }

    assert picked == {low.id, high.id}


def test_gender_filter(db_session, test_user, make_user):
    make_user(gender="female")
    male = make_user(gender="male")

    picked = matchmaking.select_filtered(db_session, test_user, _filters(gender="male"))

    assert picked.id == male.id


def test_location_filter_is_case_insensitive_substring(db_session, test_user, make_user):
    make_user(location="Kazan")
    moscow = make_user(location="Moscow City")

    picked = matchmaking.select_filtered(db_session, test_user, _filters(location="moscow"))

    assert picked.id == moscow.id


def test_location_wildcards_are_literal(db_session, test_user, make_user):
    make_user(location="Moscow")

    assert matchmaking.select_filtered(db_session, test_user, _filters(location="%")) is None


def test_interests_match_any_tag(db_session, test_user, make_user):
    make_user(interests=["chess"])
    musician = make_user(interests=["music", "art"])
    traveler = make_user(interests=["travel"])
    filters = _filters(interests=["Music", "travel"])

    picked = {
        matchmaking.select_filtered(db_session, test_user, filters, rng=random.Random(seed)).id
        for seed in range(30)
    }

    assert picked == {musician.id, traveler.id}


def test_interest_tag_does_not_match_substring(db_session, test_user, make_user):
    make_user(interests=["musical"])

    assert matchmaking.select_filtered(db_session, test_user, _filters(interests=["music"])) is None


def test_random_match_is_free(db_session, test_user, make_user):
    make_user()

    result = matchmaking.request_random_match(db_session, test_user)

    assert result.success is True
    assert result.charge == "none"
    assert result.match.match_type == "random"
    assert result.match.user1.telegram_id == test_user.telegram_id
    assert db_session.query(Transaction).count() == 0


def test_random_match_without_candidates(db_session, test_user):
    result = matchmaking.request_random_match(db_session, test_user)

    assert result.success is False
    assert result.match is None
    assert result.message == matchmaking.NO_RANDOM_CANDIDATES_MESSAGE
    assert db_session.query(Match).count() == 0


def test_filtered_match_requires_payment(db_session, test_user, make_user):
    make_user(gender="male")
    test_user.balance = 10
    db_session.commit()

    with pytest.raises(HTTPException) as exc_info:
        matchmaking.request_filtered_match(db_session, test_user, _filters(gender="male"))

    assert exc_info.value.status_code == 402
    db_session.refresh(test_user)
    assert test_user.balance == 10
    assert db_session.query(Match).count() == 0
    assert db_session.query(Transaction).count() == 0


def test_filtered_match_charged_from_balance(db_session, test_user, make_user):
    partner = make_user(gender="male", age=30)
    test_user.balance = 20
    db_session.commit()

    result = matchmaking.request_filtered_match(
        db_session, test_user, _filters(gender="male", age_range={"min": 25, "max": 35})
    )

    assert result.success is True
    assert result.charge == "balance"
    assert result.match.match_type == "filtered"
    assert result.match.user2.telegram_id == partner.telegram_id
    assert result.match.filters.gender == "male"
    db_session.refresh(test_user)
    assert test_user.balance == 5

    payment = db_session.query(Transaction).one()
    assert payment.type == "payment"
    assert payment.amount == -settings.FILTERED_MATCH_PRICE
    assert payment.meta == {"match_type": "filtered"}


def test_filtered_match_charge_kept_when_nobody_found(db_session, test_user):
    test_user.balance = 20
    db_session.commit()

    result = matchmaking.request_filtered_match(db_session, test_user, _filters(gender="male"))

    assert result.success is False
    assert result.charge == "balance"
    assert result.message == matchmaking.NO_FILTERED_CANDIDATES_MESSAGE
    db_session.refresh(test_user)
    assert test_user.balance == 5
    payments = db_session.query(Transaction).filter(Transaction.type == "payment").all()
    assert len(payments) == 1
    assert payments[0].amount == -15


def test_free_credit_is_spent_before_balance(db_session, test_user, make_user):
    make_user(gender="male")
    test_user.balance = 20
    test_user.free_matches = 1
    db_session.commit()

    result = matchmaking.request_filtered_match(db_session, test_user, _filters(gender="male"))

    assert result.success is True
    assert result.charge == "free_credit"
    db_session.refresh(test_user)
    assert test_user.free_matches == 0
    assert test_user.balance == 20
    assert db_session.query(Transaction).count() == 0
