"""
DailyCode Model - one redeemable code per person per local calendar day
"""
from sqlalchemy import (
    Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, func
)
from database import Base

MAX_DAILY_USAGE = 2


class DailyCode(Base):
    """
    usage_count only ever moves 0 -> 1 -> 2, through a conditional UPDATE.
    Rows are never deleted.
    """
    __tablename__ = "daily_codes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code_value = Column(String(64), nullable=False, unique=True, index=True)
    valid_date = Column(Date, nullable=False)
    usage_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "valid_date", name="uq_daily_codes_user_date"),
        CheckConstraint(
            f"usage_count >= 0 AND usage_count <= {MAX_DAILY_USAGE}",
            name="ck_daily_codes_usage_bounds"
        ),
    )
