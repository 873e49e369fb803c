"""
EntryExit CRUD operations - the redemption recorder.

record() validates GPS, checks the daily code, then writes the attendance row
and the conditional usage increment in a single transaction. A lost
compare-and-swap rolls both back and is retried once from a fresh read.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import IpTrackingSettings, get_ip_tracking_settings
from DailyCode_module.DailyCode_crud import (
    DailyCodeConflictError,
    IncrementOutcome,
    get_today_code,
    increment_usage,
    validate_for_redemption,
)
from IpTracking_module.IpAudit_crud import log_ip_access
from IpTracking_module.IpAudit_model import IpAddressAction
from IpTracking_module.ip_compliance import ComplianceStatus, classify
from IpTracking_module.ip_security import sanitize_or_unknown
from IpTracking_module.ip_validator import UNKNOWN_IP
from Login_module.User.user_model import User
from Login_module.Utils.datetime_utils import now_local, today_local, to_local
from .EntryExit_model import EntryExitRecord, EntryExitType

logger = logging.getLogger(__name__)


class RecordFailure(str, Enum):
    INVALID_GPS = "INVALID_GPS"
    NOT_FOUND = "NOT_FOUND"
    WRONG_OWNER = "WRONG_OWNER"
    NOT_VALID_TODAY = "NOT_VALID_TODAY"
    EXHAUSTED = "EXHAUSTED"


@dataclass
class RecordResult:
    record: Optional[EntryExitRecord] = None
    failure: Optional[RecordFailure] = None
    compliance: Optional[ComplianceStatus] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def validate_gps(latitude: Optional[float], longitude: Optional[float]) -> bool:
    """Both coordinates are required and must be in range."""
    if latitude is None or longitude is None:
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def _assigned_addresses(db: Session, user_id: int) -> Optional[str]:
    row = db.query(User.assigned_ip_addresses).filter(User.id == user_id).first()
    return None if row is None else row.assigned_ip_addresses


def _check_compliance(
    db: Session,
    entry: EntryExitRecord,
    settings: IpTrackingSettings,
) -> ComplianceStatus:
    status = classify(entry.ip_address, _assigned_addresses(db, entry.user_id))
    if status is ComplianceStatus.MISMATCH:
        logger.warning(
            "IP mismatch on %s for user %s (record %s)", entry.kind, entry.user_id, entry.id
        )
        log_ip_access(
            db,
            entry.ip_address,
            entry.user_id,
            None,
            IpAddressAction.ACCESS,
            extra={"compliance": status.value, "recordId": entry.id, "kind": entry.kind},
            settings=settings,
        )
    return status


def record(
    db: Session,
    user_id: int,
    code_value: str,
    event_timestamp: Optional[datetime],
    latitude: Optional[float],
    longitude: Optional[float],
    observed_address: Optional[str],
    settings: Optional[IpTrackingSettings] = None,
) -> RecordResult:
    """
    Redeem code_value for user_id.
    Business failures come back in RecordResult.failure. Storage errors propagate,
    and DailyCodeConflictError is raised when the retry also loses the race.
    """
    settings = settings or get_ip_tracking_settings()

    if not validate_gps(latitude, longitude):
        logger.info("Rejected redemption for user %s: invalid GPS (%s, %s)", user_id, latitude, longitude)
        return RecordResult(failure=RecordFailure.INVALID_GPS)

    stored_address = sanitize_or_unknown(observed_address) if settings.enabled else UNKNOWN_IP
    event_at = to_local(event_timestamp) if event_timestamp else now_local()

    entry = None
    for attempt in range(2):
        check = validate_for_redemption(db, code_value, user_id)
        if not check.ok:
            logger.info("Rejected redemption for user %s: %s", user_id, check.outcome.value)
            return RecordResult(failure=RecordFailure(check.outcome.value))

        entry = EntryExitRecord(
            user_id=user_id,
            kind=check.next_kind.value,
            event_timestamp=event_at,
            latitude=latitude,
            longitude=longitude,
            daily_code_value=code_value,
            ip_address=stored_address,
            created_at=now_local(),
        )
        try:
            db.add(entry)
            outcome = increment_usage(db, code_value, expected_count=check.usage_count, commit=False)
            if outcome is IncrementOutcome.OK:
                db.commit()
                break
            db.rollback()
        except SQLAlchemyError:
            db.rollback()
            logger.error("Failed to persist %s for user %s", check.next_kind.value, user_id, exc_info=True)
            raise

        if outcome is IncrementOutcome.EXHAUSTED:
            return RecordResult(failure=RecordFailure.EXHAUSTED)
        if outcome is IncrementOutcome.NOT_FOUND:
            return RecordResult(failure=RecordFailure.NOT_FOUND)
        logger.info("Redemption for user %s lost a concurrent update, re-reading (attempt %s)", user_id, attempt + 1)
    else:
        raise DailyCodeConflictError(
            "Daily code is being redeemed concurrently, please retry",
            code_value=code_value,
            user_id=user_id,
        )

    db.refresh(entry)
    logger.info("Recorded %s for user %s at %s", entry.kind, user_id, event_at.isoformat())

    compliance = _check_compliance(db, entry, settings)
    return RecordResult(record=entry, compliance=compliance)


def get_latest_record(db: Session, user_id: int) -> Optional[EntryExitRecord]:
    return (
        db.query(EntryExitRecord)
        .filter(EntryExitRecord.user_id == user_id)
        .order_by(EntryExitRecord.event_timestamp.desc(), EntryExitRecord.id.desc())
        .first()
    )


def get_current_status(db: Session, user_id: int) -> dict:
    """
    INSIDE after today's ENTRY, OUTSIDE otherwise.
    Based on today's code counter so it agrees with what the next redemption will be.
    """
    code = get_today_code(db, user_id)
    usage_count = code.usage_count if code else 0
    latest = get_latest_record(db, user_id)

    if latest is not None and to_local(latest.event_timestamp).date() != today_local():
        latest = None

    return {
        "status": "INSIDE" if usage_count == 1 else "OUTSIDE",
        "usageCount": usage_count,
        "nextKind": (
            None if usage_count >= 2
            else (EntryExitType.ENTRY.value if usage_count == 0 else EntryExitType.EXIT.value)
        ),
        "lastKind": latest.kind if latest else None,
        "lastTimestamp": to_local(latest.event_timestamp) if latest else None,
    }
