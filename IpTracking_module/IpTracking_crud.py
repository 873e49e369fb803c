"""
IP tracking administration: assigned-address management and compliance reporting.
Every read or change of address data leaves an ip_address_logs entry once the
operation itself has been committed.
"""
import logging
from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import IpTrackingSettings, get_ip_tracking_settings
from EntryExit_module.EntryExit_model import EntryExitRecord
from Login_module.User.user_model import User
from Login_module.Utils.datetime_utils import local_zone
from .IpAudit_crud import log_ip_access, log_ip_modification
from .IpAudit_model import IpAddressAction
from .ip_compliance import ComplianceStatus, classify, parse_assigned, remove_from_assignment, validate_assignment
from .ip_privacy import display, display_for_report
from .ip_security import sanitize

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def _store_assignment(
    db: Session,
    user: User,
    new_value: Optional[str],
    admin_user_id: Optional[int],
    action: IpAddressAction,
    settings: IpTrackingSettings,
) -> User:
    old_value = user.assigned_ip_addresses
    user.assigned_ip_addresses = new_value
    try:
        db.commit()
        db.refresh(user)
    except SQLAlchemyError:
        db.rollback()
        logger.error("Failed to store assigned IP addresses for user %s", user.id, exc_info=True)
        raise

    logger.info("Assigned IP addresses %s for user %s by admin %s", action.value.lower(), user.id, admin_user_id)
    log_ip_modification(db, old_value, new_value, user.id, admin_user_id, action, settings=settings)
    return user


def update_assigned_ips(
    db: Session,
    user: User,
    raw: Optional[str],
    admin_user_id: Optional[int],
    settings: Optional[IpTrackingSettings] = None,
) -> User:
    """
    Replace the person's assignment.
    Raises IpAssignmentError / IpValidationError for a list that cannot be stored.
    An empty list clears the assignment (no constraint).
    """
    settings = settings or get_ip_tracking_settings()

    addresses = validate_assignment(raw, user.id)
    new_value = ",".join(sanitize(ip) for ip in addresses) or None

    old_value = user.assigned_ip_addresses
    if (old_value or None) == new_value:
        return user

    if not old_value:
        action = IpAddressAction.ASSIGN
    elif new_value is None:
        action = IpAddressAction.REMOVE
    else:
        action = IpAddressAction.UPDATE

    return _store_assignment(db, user, new_value, admin_user_id, action, settings)


def remove_assigned_ip(
    db: Session,
    user: User,
    ip_address: str,
    admin_user_id: Optional[int],
    settings: Optional[IpTrackingSettings] = None,
) -> User:
    """Drop one address; removing the last one clears the assignment."""
    settings = settings or get_ip_tracking_settings()
    target = sanitize(ip_address)
    new_value = remove_from_assignment(user.assigned_ip_addresses, target, user.id)
    return _store_assignment(db, user, new_value, admin_user_id, IpAddressAction.REMOVE, settings)


def view_assigned_ips(
    db: Session,
    user: User,
    admin_user_id: Optional[int],
    settings: Optional[IpTrackingSettings] = None,
) -> List[str]:
    """Displayed (privacy respecting) addresses; audited as VIEW after the read."""
    settings = settings or get_ip_tracking_settings()
    displayed = [display(ip, True, settings=settings) for ip in parse_assigned(user.assigned_ip_addresses)]
    log_ip_access(
        db,
        user.assigned_ip_addresses,
        user.id,
        admin_user_id,
        IpAddressAction.VIEW,
        extra={"count": len(displayed)},
        settings=settings,
    )
    return displayed


def _day_bounds(start_date: date, end_date: date):
    zone = local_zone()
    start = datetime.combine(start_date, time.min, tzinfo=zone)
    end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=zone)
    return start, end


def compliance_percentage(matches: int, mismatches: int) -> float:
    compared = matches + mismatches
    if compared == 0:
        return 100.0
    return round(matches / compared * 100.0, 2)


def build_compliance_report(
    db: Session,
    start_date: date,
    end_date: date,
    admin_user_id: Optional[int],
    settings: Optional[IpTrackingSettings] = None,
) -> Dict[str, Any]:
    """
    Classify every attendance record in [start_date, end_date] (local days)
    against its owner's current assignment.
    """
    settings = settings or get_ip_tracking_settings()
    start, end = _day_bounds(start_date, end_date)

    rows = (
        db.query(EntryExitRecord, User)
        .join(User, User.id == EntryExitRecord.user_id)
        .filter(EntryExitRecord.event_timestamp >= start, EntryExitRecord.event_timestamp < end)
        .order_by(EntryExitRecord.event_timestamp.asc(), EntryExitRecord.id.asc())
        .all()
    )

    counts = Counter({status.value: 0 for status in ComplianceStatus})
    mismatches = defaultdict(lambda: {"count": 0, "addresses": []})
    names = {}

    for entry, user in rows:
        status = classify(entry.ip_address, user.assigned_ip_addresses)
        counts[status.value] += 1
        if status is ComplianceStatus.MISMATCH:
            bucket = mismatches[user.id]
            bucket["count"] += 1
            shown = display_for_report(entry.ip_address, settings)
            if shown not in bucket["addresses"]:
                bucket["addresses"].append(shown)
            names[user.id] = user.name

    report = {
        "startDate": start_date.isoformat(),
        "endDate": end_date.isoformat(),
        "totalRecords": len(rows),
        "counts": dict(counts),
        "compliancePercentage": compliance_percentage(
            counts[ComplianceStatus.MATCH.value], counts[ComplianceStatus.MISMATCH.value]
        ),
        "mismatches": [
            {
                "userId": user_id,
                "userName": names.get(user_id),
                "mismatchCount": bucket["count"],
                "observedAddresses": bucket["addresses"],
            }
            for user_id, bucket in sorted(mismatches.items(), key=lambda item: -item[1]["count"])
        ],
        "anonymized": settings.anonymize_reports,
    }

    log_ip_access(
        db,
        None,
        None,
        admin_user_id,
        IpAddressAction.EXPORT,
        extra={
            "report": "compliance",
            "startDate": report["startDate"],
            "endDate": report["endDate"],
            "totalRecords": report["totalRecords"],
        },
        settings=settings,
    )
    return report
