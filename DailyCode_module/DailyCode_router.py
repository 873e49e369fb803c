"""
DailyCode Router - today's code for the authenticated person
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from deps import get_db
from Login_module.User.user_model import User
from Login_module.Utils.auth_user import get_current_user
from .DailyCode_crud import DailyCodeConflictError, get_or_create_today_code
from .DailyCode_model import MAX_DAILY_USAGE
from .DailyCode_schema import DailyCodeResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Daily Code"])


@router.get("/daily-code", response_model=DailyCodeResponse, response_model_by_alias=True)
def get_daily_code(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Return today's code, creating it on the first call of the day.
    Repeated calls on the same day return the same value.
    """
    try:
        code = get_or_create_today_code(db, current_user.id)
    except DailyCodeConflictError as e:
        logger.error("Daily code generation failed for user %s: %s", current_user.id, e.message)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return DailyCodeResponse(
        code_value=code.code_value,
        valid_date=code.valid_date,
        usage_count=code.usage_count,
        max_usage=MAX_DAILY_USAGE,
    )
