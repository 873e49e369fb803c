import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, func, Index
from database import Base


class IpAddressAction(str, enum.Enum):
    VIEW = "VIEW"
    EXPORT = "EXPORT"
    ASSIGN = "ASSIGN"
    REMOVE = "REMOVE"
    UPDATE = "UPDATE"
    ACCESS = "ACCESS"


class IpAddressLog(Base):
    """
    Append-only audit of every read or change of IP data.
    Rows are only ever removed in bulk by the retention job.
    """
    __tablename__ = "ip_address_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)  # NULL for system events
    ip_address = Column(String(45), nullable=True)
    action = Column(String(20), nullable=False, index=True)
    admin_user_id = Column(Integer, nullable=True, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    details = Column(Text, nullable=True)  # JSON document
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_ip_address_logs_timestamp", "timestamp"),
    )
