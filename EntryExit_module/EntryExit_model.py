"""
EntryExit Model - append-only attendance records
"""
import enum

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Index, func
from database import Base


class EntryExitType(str, enum.Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"


class EntryExitRecord(Base):
    """
    One redemption of a daily code. Never updated or deleted here.
    kind follows the code's usage counter at redemption time (0 -> ENTRY, 1 -> EXIT).
    """
    __tablename__ = "entry_exit_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String(10), nullable=False)
    event_timestamp = Column(DateTime(timezone=True), nullable=False)

    # GPS (validated to [-90, 90] / [-180, 180] before insert)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    daily_code_value = Column(String(64), nullable=False, index=True)

    # Sanitized observed address, or the "Unknown" sentinel
    ip_address = Column(String(45), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_entry_exit_user_event", "user_id", "event_timestamp"),
    )
