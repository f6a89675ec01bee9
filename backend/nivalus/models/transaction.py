from typing import Literal

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from nivalus.core.database import Base

TransactionType = Literal["Deposit", "Withdrawal", "Transfer", "Bill Pay"]


class Transaction(Base):
    """
    A money movement recorded against exactly one user.

    Records are immutable once created; only an admin can delete one.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    date_time = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    status = Column(String, nullable=False, default="Completed")
    # Free-form counterparty and note, printed on receipts
    recipient = Column(String, nullable=True)
    memo = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="transactions")
