from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from nivalus.models.transaction import Transaction


class TransactionService:
    """Data access for transaction records"""

    @staticmethod
    def create_transaction(
        db: Session,
        *,
        user_id: int,
        type: str,
        amount: float,
        date_time: Optional[datetime] = None,
        recipient: Optional[str] = None,
        memo: Optional[str] = None,
    ) -> Transaction:
        """Record a transaction. The owner's balance is not touched."""
        transaction = Transaction(
            user_id=user_id,
            type=type,
            amount=amount,
            date_time=date_time or datetime.now(timezone.utc),
            status="Completed",
            recipient=recipient,
            memo=memo,
        )
        db.add(transaction)
        db.commit()
        db.refresh(transaction)
        return transaction

    @staticmethod
    def get_transaction(db: Session, transaction_id: int) -> Optional[Transaction]:
        return db.query(Transaction).filter(Transaction.id == transaction_id).first()

    @staticmethod
    def list_transactions(db: Session) -> List[Transaction]:
        return db.query(Transaction).order_by(Transaction.date_time.desc(), Transaction.id.desc()).all()

    @staticmethod
    def list_user_transactions(db: Session, user_id: int) -> List[Transaction]:
        return (
            db.query(Transaction)
            .filter(Transaction.user_id == user_id)
            .order_by(Transaction.date_time.desc(), Transaction.id.desc())
            .all()
        )

    @staticmethod
    def delete_transaction(db: Session, transaction: Transaction) -> None:
        db.delete(transaction)
        db.commit()


transaction_service = TransactionService()
