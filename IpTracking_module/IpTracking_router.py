"""
IP tracking admin router - assignments, compliance report, audit trail, retention
"""
import json
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from config import get_ip_tracking_settings
from deps import get_db
from Login_module.User.user_model import User
from Login_module.Utils.auth_user import get_current_admin
from Login_module.Utils.datetime_utils import now_local, to_local, today_local
from .IpAudit_crud import get_audit_logs, log_ip_access, recent_access_summary
from .IpAudit_model import IpAddressAction
from .IpTracking_crud import (
    build_compliance_report,
    get_user,
    remove_assigned_ip,
    update_assigned_ips,
    view_assigned_ips,
)
from .IpTracking_schema import (
    AssignedIpResponse,
    AssignedIpUpdateRequest,
    AuditLogEntryResponse,
    ComplianceReportResponse,
    IpTrackingConfigResponse,
    IpValidationRequest,
    IpValidationResponse,
    RetentionEnforceResponse,
    RetentionStatusResponse,
    SuspiciousAccessResponse,
)
from .ip_exceptions import IpAssignmentError, IpValidationError
from .ip_privacy import display
from .ip_security import is_secure_input, sanitize
from .retention_job import enforce_retention_policy, retention_policy_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/ip-tracking", tags=["IP Tracking Admin"])

DEFAULT_REPORT_DAYS = 30
DEFAULT_SUSPICIOUS_WINDOW_HOURS = 24


def _load_user_or_404(db: Session, user_id: int) -> User:
    user = get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _assignment_response(db: Session, user: User, admin: User) -> AssignedIpResponse:
    displayed = view_assigned_ips(db, user, admin.id)
    return AssignedIpResponse(user_id=user.id, assigned_ip_addresses=displayed, count=len(displayed))


@router.get("/config", response_model=IpTrackingConfigResponse, response_model_by_alias=True)
def get_config(admin: User = Depends(get_current_admin)):
    return IpTrackingConfigResponse(**get_ip_tracking_settings().model_dump())


@router.get("/users/{user_id}/assigned-ips", response_model=AssignedIpResponse, response_model_by_alias=True)
def get_assigned_ips(
    user_id: int,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    user = _load_user_or_404(db, user_id)
    return _assignment_response(db, user, admin)


@router.put("/users/{user_id}/assigned-ips", response_model=AssignedIpResponse, response_model_by_alias=True)
def put_assigned_ips(
    user_id: int,
    payload: AssignedIpUpdateRequest,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Replace a person's assigned addresses.
    - Every element must be a valid IPv4/IPv6 literal, no duplicates, at most 10
    - An empty value clears the assignment (no constraint)
    """
    user = _load_user_or_404(db, user_id)
    try:
        user = update_assigned_ips(db, user, payload.ip_addresses, admin.id)
    except (IpAssignmentError, IpValidationError) as e:
        logger.info("Rejected IP assignment for user %s: %s", user_id, e.message)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)
    return _assignment_response(db, user, admin)


@router.delete(
    "/users/{user_id}/assigned-ips/{ip_address}",
    response_model=AssignedIpResponse,
    response_model_by_alias=True
)
def delete_assigned_ip(
    user_id: int,
    ip_address: str,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    user = _load_user_or_404(db, user_id)
    try:
        user = remove_assigned_ip(db, user, ip_address, admin.id)
    except (IpAssignmentError, IpValidationError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)
    return _assignment_response(db, user, admin)


@router.get("/compliance-report", response_model=ComplianceReportResponse, response_model_by_alias=True)
def get_compliance_report(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    end_date = end_date or today_local()
    start_date = start_date or (end_date - timedelta(days=DEFAULT_REPORT_DAYS))
    if start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="startDate must not be after endDate"
        )

    report = build_compliance_report(db, start_date, end_date, admin.id)
    return ComplianceReportResponse.model_validate(report)


@router.get("/audit-logs", response_model=List[AuditLogEntryResponse], response_model_by_alias=True)
def list_audit_logs(
    user_id: Optional[int] = Query(None, alias="userId"),
    action: Optional[IpAddressAction] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    limit: int = Query(100, ge=1, le=1000),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    settings = get_ip_tracking_settings()
    entries = get_audit_logs(
        db,
        user_id=user_id,
        action=action,
        start_date=to_local(start_date),
        end_date=to_local(end_date),
        limit=limit,
    )

    response = [
        AuditLogEntryResponse(
            id=entry.id,
            user_id=entry.user_id,
            ip_address=display(entry.ip_address, True, settings=settings) if entry.ip_address else None,
            action=entry.action,
            admin_user_id=entry.admin_user_id,
            timestamp=to_local(entry.timestamp),
            details=json.loads(entry.details) if entry.details else None,
        )
        for entry in entries
    ]

    log_ip_access(
        db,
        None,
        user_id,
        admin.id,
        IpAddressAction.ACCESS,
        extra={"operation": "audit_log_query", "returned": len(response)},
        settings=settings,
    )
    return response


@router.get(
    "/users/{user_id}/suspicious-access",
    response_model=SuspiciousAccessResponse,
    response_model_by_alias=True
)
def check_suspicious_access(
    user_id: int,
    time_window_hours: int = Query(DEFAULT_SUSPICIOUS_WINDOW_HOURS, alias="timeWindowHours", ge=1, le=720),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Flags abnormal audit activity about one person inside the trailing window."""
    user = _load_user_or_404(db, user_id)
    summary = recent_access_summary(db, user.id, time_window_hours)
    logger.info(
        "Suspicious access check by admin %s for user %s over %sh: %s",
        admin.id, user.id, time_window_hours, summary["suspicious"]
    )
    return SuspiciousAccessResponse(
        user_id=user.id,
        time_window_hours=time_window_hours,
        access_count=summary["accessCount"],
        distinct_admins=summary["distinctAdmins"],
        suspicious_activity=summary["suspicious"],
        checked_at=now_local(),
    )


@router.post("/validate", response_model=IpValidationResponse, response_model_by_alias=True)
def validate_ip(payload: IpValidationRequest, admin: User = Depends(get_current_admin)):
    """Dry-run of the storage sanitizer."""
    secure = is_secure_input(payload.ip_address)
    try:
        sanitized = sanitize(payload.ip_address)
    except IpValidationError as e:
        return IpValidationResponse(
            ip_address=payload.ip_address,
            secure=secure,
            valid=False,
            error=e.message,
            reason=e.reason,
        )
    return IpValidationResponse(
        ip_address=payload.ip_address,
        secure=secure,
        valid=True,
        sanitized=sanitized,
    )


@router.get("/retention/status", response_model=RetentionStatusResponse, response_model_by_alias=True)
def get_retention_status(admin: User = Depends(get_current_admin)):
    return RetentionStatusResponse.model_validate(retention_policy_status())


@router.post("/retention/enforce", response_model=RetentionEnforceResponse, response_model_by_alias=True)
def enforce_retention(
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    settings = get_ip_tracking_settings()
    deleted = enforce_retention_policy(db, settings)
    logger.info("Retention enforced manually by admin %s: %s records deleted", admin.id, deleted)
    return RetentionEnforceResponse(deleted_records=deleted, retention_days=settings.retention_days)
