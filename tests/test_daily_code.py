import threading
from datetime import timedelta

import DailyCode_module.DailyCode_crud as daily_code_crud
from DailyCode_module.DailyCode_crud import (
    IncrementOutcome,
    RedemptionOutcome,
    generate_code_value,
    get_or_create_today_code,
    increment_usage,
    validate_for_redemption,
)
from DailyCode_module.DailyCode_model import DailyCode
from EntryExit_module.EntryExit_model import EntryExitType
from Login_module.Utils.datetime_utils import now_local, today_local


def _usage(db, code_value):
    return db.query(DailyCode.usage_count).filter(DailyCode.code_value == code_value).scalar()


def test_generate_code_value_is_random_and_url_safe():
    today = today_local()
    first = generate_code_value(1, today)
    second = generate_code_value(1, today)
    assert first != second
    assert len(first) == 43
    assert "=" not in first and "+" not in first and "/" not in first


def test_get_or_create_is_idempotent(db, make_user):
    user = make_user()
    first = get_or_create_today_code(db, user.id)
    second = get_or_create_today_code(db, user.id)

    assert first.code_value == second.code_value
    assert first.valid_date == today_local()
    assert first.usage_count == 0
    assert db.query(DailyCode).filter(DailyCode.user_id == user.id).count() == 1


def test_codes_are_per_person(db, make_user):
    alice = make_user("Alice")
    bob = make_user("Bob")
    assert get_or_create_today_code(db, alice.id).code_value != get_or_create_today_code(db, bob.id).code_value


def test_concurrent_creation_converges_on_one_code(db, make_user, monkeypatch):
    user = make_user()
    winner = get_or_create_today_code(db, user.id)

    real_find = daily_code_crud._find_for_day
    calls = {"count": 0}

    def find_missing_once(session, user_id, valid_date):
        # The first lookup runs before the other creator has committed
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return real_find(session, user_id, valid_date)

    monkeypatch.setattr(daily_code_crud, "_find_for_day", find_missing_once)

    loser = get_or_create_today_code(db, user.id)

    assert loser.code_value == winner.code_value
    assert calls["count"] == 2
    assert db.query(DailyCode).filter(DailyCode.user_id == user.id).count() == 1


def test_validate_for_redemption_outcomes(db, make_user):
    owner = make_user("Owner")
    other = make_user("Other")
    code = get_or_create_today_code(db, owner.id)

    assert validate_for_redemption(db, "missing", owner.id).outcome is RedemptionOutcome.NOT_FOUND
    assert validate_for_redemption(db, code.code_value, other.id).outcome is RedemptionOutcome.WRONG_OWNER

    check = validate_for_redemption(db, code.code_value, owner.id)
    assert check.ok
    assert check.next_kind is EntryExitType.ENTRY
    assert check.usage_count == 0


def test_validate_rejects_code_from_another_day(db, make_user):
    user = make_user()
    stale = DailyCode(
        user_id=user.id,
        code_value="yesterday-code",
        valid_date=today_local() - timedelta(days=1),
        usage_count=0,
        created_at=now_local() - timedelta(days=1),
    )
    db.add(stale)
    db.commit()

    assert validate_for_redemption(db, "yesterday-code", user.id).outcome is RedemptionOutcome.NOT_VALID_TODAY


def test_increment_walks_fresh_used_once_exhausted(db, make_user):
    user = make_user()
    code_value = get_or_create_today_code(db, user.id).code_value

    assert increment_usage(db, code_value) is IncrementOutcome.OK
    assert validate_for_redemption(db, code_value, user.id).next_kind is EntryExitType.EXIT
    assert increment_usage(db, code_value) is IncrementOutcome.OK
    assert increment_usage(db, code_value) is IncrementOutcome.EXHAUSTED

    assert _usage(db, code_value) == 2
    assert validate_for_redemption(db, code_value, user.id).outcome is RedemptionOutcome.EXHAUSTED


def test_increment_unknown_code(db):
    assert increment_usage(db, "missing") is IncrementOutcome.NOT_FOUND


def test_stale_compare_and_swap_reports_conflict(db, make_user):
    user = make_user()
    code_value = get_or_create_today_code(db, user.id).code_value
    assert increment_usage(db, code_value) is IncrementOutcome.OK

    # Caller-owned transaction: a stale expectation is surfaced, not retried
    assert increment_usage(db, code_value, expected_count=0, commit=False) is IncrementOutcome.CONFLICT
    db.rollback()
    assert _usage(db, code_value) == 1


def test_stale_compare_and_swap_is_retried_once(db, make_user):
    user = make_user()
    code_value = get_or_create_today_code(db, user.id).code_value
    assert increment_usage(db, code_value) is IncrementOutcome.OK

    assert increment_usage(db, code_value, expected_count=0) is IncrementOutcome.OK
    assert _usage(db, code_value) == 2


def test_concurrent_first_calls_share_one_code(session_factory, make_user):
    user = make_user()
    workers = 8
    barrier = threading.Barrier(workers)
    codes, errors = [], []

    def worker():
        session = session_factory()
        try:
            barrier.wait()
            codes.append(get_or_create_today_code(session, user.id).code_value)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    assert len(codes) == workers
    assert len(set(codes)) == 1

    check = session_factory()
    try:
        assert check.query(DailyCode).filter(DailyCode.user_id == user.id).count() == 1
    finally:
        check.close()
