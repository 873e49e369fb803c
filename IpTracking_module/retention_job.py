"""
IP audit retention.
Deletes ip_address_logs rows older than IP_TRACKING_RETENTION_DAYS; 0 or less keeps everything.
"""
import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from config import IpTrackingSettings, get_ip_tracking_settings
from database import SessionLocal
from Login_module.Utils.datetime_utils import days_ago, now_local
from .IpAudit_crud import delete_audit_logs_before
from .IpAudit_model import IpAddressAction, IpAddressLog

logger = logging.getLogger(__name__)


def enforce_retention_policy(db: Session, settings: Optional[IpTrackingSettings] = None) -> int:
    """
    Delete expired audit entries and record the enforcement itself.
    Returns the number of deleted rows. Storage errors propagate to the caller.
    """
    settings = settings or get_ip_tracking_settings()
    retention_days = settings.retention_days
    if retention_days <= 0:
        logger.debug("IP data retention policy disabled (retentionDays=%s)", retention_days)
        return 0

    cutoff = days_ago(retention_days)
    try:
        deleted = delete_audit_logs_before(db, cutoff)
        if deleted:
            db.add(IpAddressLog(
                user_id=None,
                ip_address=None,
                action=IpAddressAction.ACCESS.value,
                admin_user_id=None,
                timestamp=now_local(),
                details=json.dumps({
                    "operation": "retention_enforcement",
                    "deletedRecords": deleted,
                    "retentionDays": retention_days,
                }, sort_keys=True),
            ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    if deleted:
        logger.info(
            "Enforced IP data retention policy: deleted %s records older than %s days",
            deleted, retention_days
        )
    return deleted


def retention_policy_status(settings: Optional[IpTrackingSettings] = None) -> Dict[str, Any]:
    settings = settings or get_ip_tracking_settings()
    return {
        "auditLoggingEnabled": settings.audit_logging_enabled,
        "retentionDays": settings.retention_days,
        "policyActive": settings.retention_days > 0,
    }


def retention_job():
    """
    Scheduled entry point. Owns its session and never raises into the scheduler.
    """
    settings = get_ip_tracking_settings()
    if settings.retention_days <= 0:
        logger.debug("Retention job skipped: retention disabled")
        return

    db: Session = SessionLocal()
    try:
        deleted = enforce_retention_policy(db, settings)
        logger.info("IP retention job completed at %s. Deleted %s audit records.", now_local(), deleted)
    except Exception as e:
        logger.error("Error during IP retention job: %s", e, exc_info=True)
    finally:
        db.close()
