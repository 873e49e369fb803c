"""
IP audit log CRUD operations.

Writers in this module never raise: an audit failure is logged and swallowed
so it cannot block the business operation it describes. Call them only after
that operation has been committed, since a failed write rolls the session back.
"""
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from config import IpTrackingSettings, get_ip_tracking_settings
from Login_module.Utils.datetime_utils import now_local
from .IpAudit_model import IpAddressAction, IpAddressLog
from .ip_privacy import display

logger = logging.getLogger(__name__)

# More than this many entries about one person inside the window is suspicious
SUSPICIOUS_ACCESS_COUNT = 50
# So is access by more than this many distinct admins
SUSPICIOUS_ADMIN_COUNT = 5
SUSPICIOUS_ACCESS_ALERT = "suspicious_access_pattern"


def _coerce_action(action: Union[IpAddressAction, str, None]) -> Optional[IpAddressAction]:
    if isinstance(action, IpAddressAction):
        return action
    if action is None or not str(action).strip():
        logger.warning("Audit log action is null or empty, skipping audit log")
        return None
    try:
        return IpAddressAction(str(action).strip().upper())
    except ValueError:
        logger.warning("Invalid audit log action: %s, skipping audit log", action)
        return None


def _rollback_quietly(db: Session) -> None:
    try:
        db.rollback()
    except Exception as e:
        logger.error("Rollback after failed audit write also failed: %s", e, exc_info=True)


def _write(
    db: Session,
    *,
    user_id: Optional[int],
    ip_address: Optional[str],
    action: IpAddressAction,
    admin_user_id: Optional[int],
    details: Dict[str, Any],
) -> IpAddressLog:
    entry = IpAddressLog(
        user_id=user_id,
        ip_address=ip_address,
        action=action.value,
        admin_user_id=admin_user_id,
        timestamp=now_local(),
        details=json.dumps(details, sort_keys=True),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def _alert_on_suspicious_access(
    db: Session,
    user_id: Optional[int],
    admin_user_id: Optional[int],
) -> Optional[IpAddressLog]:
    """Append an ACCESS alert when the person's recent audit trail looks abnormal. Never raises."""
    if user_id is None:
        return None

    try:
        if not detect_suspicious_access(db, user_id):
            return None
        logger.warning(
            "Suspicious IP data access pattern detected for user: %s, admin: %s",
            user_id, admin_user_id
        )
        return _write(
            db,
            user_id=user_id,
            ip_address=None,
            action=IpAddressAction.ACCESS,
            admin_user_id=admin_user_id,
            details={"alertType": SUSPICIOUS_ACCESS_ALERT, "severity": "medium"},
        )
    except Exception as e:
        _rollback_quietly(db)
        logger.error("Failed to record suspicious access alert for user %s: %s", user_id, e, exc_info=True)
        return None


def log_ip_access(
    db: Session,
    ip_address: Optional[str],
    user_id: Optional[int],
    admin_user_id: Optional[int],
    action: Union[IpAddressAction, str],
    extra: Optional[Dict[str, Any]] = None,
    settings: Optional[IpTrackingSettings] = None,
) -> Optional[IpAddressLog]:
    """
    Append one audit entry for a read of IP data.
    The stored detail carries the privacy-respecting rendering, never the raw value
    when privacy mode is on.
    """
    settings = settings or get_ip_tracking_settings()
    if not settings.audit_logging_enabled:
        return None

    action_enum = _coerce_action(action)
    if action_enum is None:
        return None

    try:
        details = {
            "accessType": action_enum.value.lower(),
            "ipAddress": display(ip_address, True, settings=settings) if ip_address else None,
        }
        if extra:
            details.update(extra)
        entry = _write(
            db,
            user_id=user_id,
            ip_address=ip_address,
            action=action_enum,
            admin_user_id=admin_user_id,
            details=details,
        )
        logger.debug(
            "Logged IP address access: action=%s, userId=%s, adminUserId=%s",
            action_enum.value, user_id, admin_user_id
        )
        _alert_on_suspicious_access(db, user_id, admin_user_id)
        return entry
    except Exception as e:
        _rollback_quietly(db)
        logger.error(
            "Failed to log IP address access: action=%s, userId=%s, adminUserId=%s: %s",
            action_enum.value, user_id, admin_user_id, e, exc_info=True
        )
        return None


def log_ip_modification(
    db: Session,
    old_ip_address: Optional[str],
    new_ip_address: Optional[str],
    user_id: Optional[int],
    admin_user_id: Optional[int],
    action: Union[IpAddressAction, str],
    settings: Optional[IpTrackingSettings] = None,
) -> Optional[IpAddressLog]:
    """Append one audit entry for an assignment change (ASSIGN / UPDATE / REMOVE)."""
    settings = settings or get_ip_tracking_settings()
    if not settings.audit_logging_enabled:
        return None

    action_enum = _coerce_action(action)
    if action_enum is None:
        return None

    try:
        details = {
            "modificationType": action_enum.value.lower(),
            "oldIp": display(old_ip_address, True, settings=settings) if old_ip_address else None,
            "newIp": display(new_ip_address, True, settings=settings) if new_ip_address else None,
        }
        return _write(
            db,
            user_id=user_id,
            ip_address=new_ip_address if new_ip_address is not None else old_ip_address,
            action=action_enum,
            admin_user_id=admin_user_id,
            details=details,
        )
    except Exception as e:
        _rollback_quietly(db)
        logger.error(
            "Failed to log IP address modification: action=%s, userId=%s, adminUserId=%s: %s",
            action_enum.value, user_id, admin_user_id, e, exc_info=True
        )
        return None


def get_audit_logs(
    db: Session,
    user_id: Optional[int] = None,
    action: Optional[IpAddressAction] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 100,
) -> List[IpAddressLog]:
    query = db.query(IpAddressLog)

    if user_id is not None:
        query = query.filter(IpAddressLog.user_id == user_id)
    if action is not None:
        query = query.filter(IpAddressLog.action == action.value)
    if start_date:
        query = query.filter(IpAddressLog.timestamp >= start_date)
    if end_date:
        query = query.filter(IpAddressLog.timestamp <= end_date)

    return query.order_by(IpAddressLog.timestamp.desc(), IpAddressLog.id.desc()).limit(limit).all()


def recent_access_summary(db: Session, user_id: int, window_hours: int = 1) -> Dict[str, Any]:
    """
    Audit activity about one person inside the trailing window.
    Suspicious when the entry count exceeds SUSPICIOUS_ACCESS_COUNT or the
    number of distinct admins exceeds SUSPICIOUS_ADMIN_COUNT.
    """
    since = now_local() - timedelta(hours=window_hours)
    recent = db.query(IpAddressLog).filter(
        IpAddressLog.user_id == user_id,
        IpAddressLog.timestamp > since,
    )
    access_count = recent.count()
    distinct_admins = (
        recent.filter(IpAddressLog.admin_user_id.isnot(None))
        .with_entities(func.count(distinct(IpAddressLog.admin_user_id)))
        .scalar()
    ) or 0

    suspicious = False
    if access_count > SUSPICIOUS_ACCESS_COUNT:
        logger.warning(
            "High frequency IP access detected for user %s: %s accesses in %s hours",
            user_id, access_count, window_hours
        )
        suspicious = True
    elif distinct_admins > SUSPICIOUS_ADMIN_COUNT:
        logger.warning(
            "Multiple admin access detected for user %s: %s different admins in %s hours",
            user_id, distinct_admins, window_hours
        )
        suspicious = True

    return {
        "accessCount": access_count,
        "distinctAdmins": distinct_admins,
        "suspicious": suspicious,
    }


def detect_suspicious_access(db: Session, user_id: int, window_hours: int = 1) -> bool:
    return recent_access_summary(db, user_id, window_hours)["suspicious"]


def delete_audit_logs_before(db: Session, cutoff: datetime) -> int:
    """Bulk delete; the caller commits."""
    return (
        db.query(IpAddressLog)
        .filter(IpAddressLog.timestamp < cutoff)
        .delete(synchronize_session=False)
    )
