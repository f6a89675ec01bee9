from typing import Literal

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from nivalus.core.database import Base

UserStatus = Literal["Active", "Inactive"]


class User(Base):
    """
    Bank customer or administrator.

    Passwords and PINs are stored as bcrypt hashes. The avatar column holds
    the public path of the uploaded image, not the file itself.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Username and email are unique; login looks users up by username
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    pin_hash = Column(String, nullable=True)
    avatar = Column(String, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    # Inactive users cannot log in
    status = Column(String, default="Active", nullable=False)
    balance = Column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)

    transactions = relationship(
        "Transaction",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        return self.status == "Active"
