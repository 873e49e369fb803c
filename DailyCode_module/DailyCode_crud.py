"""
DailyCode CRUD operations.

Expected business results (not found, exhausted, ...) are returned as outcome
enums. Only storage failures and a persistent concurrency conflict raise.
"""
import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from Login_module.Utils.datetime_utils import now_local, today_local
from EntryExit_module.EntryExit_model import EntryExitType
from .DailyCode_model import DailyCode, MAX_DAILY_USAGE

logger = logging.getLogger(__name__)

CODE_GENERATION_ATTEMPTS = 5


class RedemptionOutcome(str, Enum):
    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    WRONG_OWNER = "WRONG_OWNER"
    NOT_VALID_TODAY = "NOT_VALID_TODAY"
    EXHAUSTED = "EXHAUSTED"


class IncrementOutcome(str, Enum):
    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    EXHAUSTED = "EXHAUSTED"
    CONFLICT = "CONFLICT"


class DailyCodeConflictError(Exception):
    """A concurrent writer kept winning after the one allowed retry."""

    def __init__(self, message: str, code_value: Optional[str] = None, user_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code_value = code_value
        self.user_id = user_id


@dataclass(frozen=True)
class RedemptionCheck:
    outcome: RedemptionOutcome
    next_kind: Optional[EntryExitType] = None
    usage_count: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is RedemptionOutcome.OK


def generate_code_value(user_id: int, valid_date: date) -> str:
    """sha256(user id, date, 16 random bytes), url-safe base64 without padding."""
    salt = secrets.token_bytes(16)
    material = f"{user_id}-{valid_date.isoformat()}-{salt.hex()}".encode("utf-8")
    digest = hashlib.sha256(material).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def _find_for_day(db: Session, user_id: int, valid_date: date) -> Optional[DailyCode]:
    return (
        db.query(DailyCode)
        .filter(DailyCode.user_id == user_id, DailyCode.valid_date == valid_date)
        .populate_existing()
        .first()
    )


def get_code(db: Session, code_value: str) -> Optional[DailyCode]:
    return (
        db.query(DailyCode)
        .filter(DailyCode.code_value == code_value)
        .populate_existing()
        .first()
    )


def get_today_code(db: Session, user_id: int) -> Optional[DailyCode]:
    return _find_for_day(db, user_id, today_local())


def get_or_create_today_code(db: Session, user_id: int) -> DailyCode:
    """
    Return the person's code for today, creating it on first request.
    Concurrent first calls converge on one row via the (user_id, valid_date)
    unique constraint: the loser rolls back and re-reads the winner's code.
    """
    today = today_local()

    existing = _find_for_day(db, user_id, today)
    if existing:
        return existing

    for _ in range(CODE_GENERATION_ATTEMPTS):
        code = DailyCode(
            user_id=user_id,
            code_value=generate_code_value(user_id, today),
            valid_date=today,
            usage_count=0,
            created_at=now_local(),
        )
        db.add(code)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = _find_for_day(db, user_id, today)
            if existing:
                logger.info("Daily code for user %s on %s created concurrently, reusing it", user_id, today)
                return existing
            # code_value collision, regenerate
            logger.warning("Daily code value collision for user %s, regenerating", user_id)
            continue

        db.refresh(code)
        logger.info("Created daily code for user %s valid on %s", user_id, today)
        return code

    raise DailyCodeConflictError(
        "Failed to generate unique daily code", user_id=user_id
    )


def validate_for_redemption(db: Session, code_value: str, user_id: int) -> RedemptionCheck:
    """Read-only decision on whether code_value may be redeemed by user_id right now."""
    code = get_code(db, code_value)
    if code is None:
        return RedemptionCheck(RedemptionOutcome.NOT_FOUND)

    if code.user_id != user_id:
        logger.warning("User %s attempted to redeem daily code owned by user %s", user_id, code.user_id)
        return RedemptionCheck(RedemptionOutcome.WRONG_OWNER)

    if code.valid_date != today_local():
        return RedemptionCheck(RedemptionOutcome.NOT_VALID_TODAY, usage_count=code.usage_count)

    if code.usage_count >= MAX_DAILY_USAGE:
        return RedemptionCheck(RedemptionOutcome.EXHAUSTED, usage_count=code.usage_count)

    next_kind = EntryExitType.ENTRY if code.usage_count == 0 else EntryExitType.EXIT
    return RedemptionCheck(RedemptionOutcome.OK, next_kind=next_kind, usage_count=code.usage_count)


def _current_usage(db: Session, code_value: str) -> Optional[int]:
    row = db.query(DailyCode.usage_count).filter(DailyCode.code_value == code_value).first()
    return None if row is None else row.usage_count


def _compare_and_increment(db: Session, code_value: str, expected_count: int) -> IncrementOutcome:
    if expected_count >= MAX_DAILY_USAGE:
        return IncrementOutcome.EXHAUSTED

    result = db.execute(
        update(DailyCode)
        .where(
            DailyCode.code_value == code_value,
            DailyCode.usage_count == expected_count,
            DailyCode.usage_count < MAX_DAILY_USAGE,
        )
        .values(usage_count=DailyCode.usage_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return IncrementOutcome.OK

    current = _current_usage(db, code_value)
    if current is None:
        return IncrementOutcome.NOT_FOUND
    if current >= MAX_DAILY_USAGE:
        return IncrementOutcome.EXHAUSTED
    return IncrementOutcome.CONFLICT


def increment_usage(
    db: Session,
    code_value: str,
    expected_count: Optional[int] = None,
    commit: bool = True,
) -> IncrementOutcome:
    """
    Conditional increment: succeeds only if the stored counter still equals
    expected_count and is below the limit.

    With commit=False the caller owns the transaction and a CONFLICT is returned
    as-is so the caller can roll back and re-read. With commit=True and no
    expected_count the counter is read here. With commit=True a CONFLICT is
    retried once against a fresh read.
    """
    if not commit:
        if expected_count is None:
            expected_count = _current_usage(db, code_value)
            if expected_count is None:
                return IncrementOutcome.NOT_FOUND
        return _compare_and_increment(db, code_value, expected_count)

    outcome = IncrementOutcome.CONFLICT
    for attempt in range(2):
        if expected_count is None or attempt > 0:
            expected_count = _current_usage(db, code_value)
            if expected_count is None:
                db.rollback()
                return IncrementOutcome.NOT_FOUND

        outcome = _compare_and_increment(db, code_value, expected_count)
        if outcome is IncrementOutcome.OK:
            db.commit()
            return outcome

        db.rollback()
        if outcome is not IncrementOutcome.CONFLICT:
            return outcome
        logger.info("Usage increment for daily code lost a race, re-reading (attempt %s)", attempt + 1)

    return outcome
