from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, func
from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=True)
    mobile = Column(String(20), unique=True, nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    # Comma separated addresses; NULL/empty means no constraint
    assigned_ip_addresses = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
