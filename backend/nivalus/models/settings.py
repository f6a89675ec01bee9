from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func
from nivalus.core.database import Base

SETTINGS_ROW_ID = 1


class SystemSettings(Base):
    """Process-wide configuration editable by admins. Exactly one row (id=1)."""
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, default=SETTINGS_ROW_ID)
    system_name = Column(String, nullable=False, default="Nivalus Bank")
    maintenance = Column(Boolean, nullable=False, default=False)
    # Signup is rejected while this is False
    allow_new_users = Column(Boolean, nullable=False, default=True)
    contact_email = Column(String, nullable=False, default="support@nivalus.io")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
