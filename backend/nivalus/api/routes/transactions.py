import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from nivalus.api.dependencies import Identity, get_current_identity
from nivalus.api.policy import ADMIN_ONLY, ADMIN_REQUIRED, SELF_OR_ADMIN, authorize, requires
from nivalus.api.schemas import TransactionResponse, envelope
from nivalus.core.database import get_db
from nivalus.models.transaction import TransactionType
from nivalus.receipts.renderer import THEMES, ReceiptData, render_receipt
from nivalus.services.transaction_service import transaction_service
from nivalus.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transactions"])

TRANSACTION_NOT_FOUND_MESSAGE = "Transaction not found"


class TransactionCreate(BaseModel):
    user_id: int
    type: TransactionType
    amount: float = Field(ge=0.01, allow_inf_nan=False)
    date_time: Optional[datetime] = None
    recipient: Optional[str] = None
    memo: Optional[str] = Field(default=None, max_length=500)


def get_transaction_or_404(db: Session, transaction_id: int):
    transaction = transaction_service.get_transaction(db, transaction_id)
    if transaction is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TRANSACTION_NOT_FOUND_MESSAGE)
    return transaction


@router.post("/transactions", status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Record a transaction. Non-admins may only record against their own account."""
    authorize(SELF_OR_ADMIN, identity, payload.user_id, "You can only create transactions for your own account")

    if user_service.get_user(db, payload.user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    transaction = transaction_service.create_transaction(db, **payload.model_dump())
    logger.info(f"Recorded {transaction.type} {transaction.id} for user {transaction.user_id}")
    return envelope(TransactionResponse.model_validate(transaction))


@router.get("/transactions")
async def list_transactions(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Admins see every transaction, everyone else only their own"""
    if identity.is_admin:
        transactions = transaction_service.list_transactions(db)
    else:
        transactions = transaction_service.list_user_transactions(db, identity.id)
    return envelope([TransactionResponse.model_validate(t) for t in transactions])


@router.get("/transactions/{transaction_id}/receipt")
async def download_receipt(
    transaction_id: int,
    theme: str = Query("classic", description="Receipt styling: " + ", ".join(THEMES)),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Render a PDF receipt for one transaction"""
    if theme not in THEMES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown receipt theme: {theme}")

    transaction = get_transaction_or_404(db, transaction_id)
    authorize(SELF_OR_ADMIN, identity, transaction.user_id, "You can only access your own receipts")

    receipt = ReceiptData.from_transaction(transaction, transaction.user)
    pdf_bytes = render_receipt(receipt, theme=theme)

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=receipt-{transaction.id}.pdf"},
    )


@router.delete("/transactions/{transaction_id}")
async def delete_transaction(
    transaction_id: int,
    identity: Identity = Depends(requires(ADMIN_ONLY, ADMIN_REQUIRED)),
    db: Session = Depends(get_db),
):
    transaction = get_transaction_or_404(db, transaction_id)
    transaction_service.delete_transaction(db, transaction)
    logger.info(f"Admin {identity.id} deleted transaction {transaction_id}")
    return envelope({"message": "Transaction deleted successfully", "id": transaction_id})


@router.get("/users/{user_id}/transactions")
async def list_user_transactions(
    user_id: int,
    identity: Identity = Depends(
        requires(SELF_OR_ADMIN, "You can only access your own transactions", owner_param="user_id")
    ),
    db: Session = Depends(get_db),
):
    transactions = transaction_service.list_user_transactions(db, user_id)
    return envelope([TransactionResponse.model_validate(t) for t in transactions])
