"""
EntryExit Router - redeem today's code as ENTRY or EXIT
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from deps import get_db
from DailyCode_module.DailyCode_crud import DailyCodeConflictError
from IpTracking_module.ip_capture import get_client_ip
from Login_module.User.user_model import User
from Login_module.Utils.auth_user import get_current_user
from Login_module.Utils.datetime_utils import to_local
from .EntryExit_crud import RecordFailure, get_current_status, record
from .EntryExit_schema import EntryExitRequest, EntryExitResponse, EntryExitStatusResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/entry-exit", tags=["Entry / Exit"])

FAILURE_MESSAGES = {
    RecordFailure.INVALID_GPS: "Valid GPS coordinates are required",
    RecordFailure.NOT_FOUND: "Daily code not found",
    RecordFailure.WRONG_OWNER: "This daily code does not belong to you",
    RecordFailure.NOT_VALID_TODAY: "This daily code is not valid today",
    RecordFailure.EXHAUSTED: "This daily code has already been used twice today",
}


@router.post("", response_model=EntryExitResponse, response_model_by_alias=True)
def create_entry_exit(
    payload: EntryExitRequest,
    http_request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Redeem the caller's daily code.
    - First redemption of the day records ENTRY, the second EXIT
    - A third attempt is rejected with reason EXHAUSTED
    """
    client_ip = get_client_ip(http_request)

    try:
        result = record(
            db,
            user_id=current_user.id,
            code_value=payload.code_value,
            event_timestamp=payload.timestamp,
            latitude=payload.latitude,
            longitude=payload.longitude,
            observed_address=client_ip,
        )
    except DailyCodeConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"reason": result.failure.value, "message": FAILURE_MESSAGES[result.failure]}
        )

    entry = result.record
    return EntryExitResponse(
        kind=entry.kind,
        timestamp=to_local(entry.event_timestamp),
        latitude=entry.latitude,
        longitude=entry.longitude,
    )


@router.get("/status", response_model=EntryExitStatusResponse, response_model_by_alias=True)
def entry_exit_status(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    current = get_current_status(db, current_user.id)
    return EntryExitStatusResponse(
        status=current["status"],
        usage_count=current["usageCount"],
        next_kind=current["nextKind"],
        last_kind=current["lastKind"],
        last_timestamp=current["lastTimestamp"],
    )
