import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from pydantic import BaseModel, EmailStr, Field, StrictStr, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nivalus.api.dependencies import Identity, get_current_identity
from nivalus.api.policy import ADMIN_ONLY, ADMIN_REQUIRED, SELF_OR_ADMIN, authorize, requires
from nivalus.api.routes.auth import DUPLICATE_USER_MESSAGE, PIN_PATTERN, UserCreate, create_user_or_400
from nivalus.api.schemas import UserResponse, envelope
from nivalus.core.config import settings
from nivalus.core.database import get_db
from nivalus.core.security import verify_secret
from nivalus.models.user import UserStatus
from nivalus.services.rate_limit import AttemptLimiter, get_pin_limiter
from nivalus.services.user_service import user_service
from nivalus.storage.local_storage import AvatarStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

USER_NOT_FOUND_MESSAGE = "User not found"
ALLOWED_AVATAR_TYPES = {"image/jpeg", "image/jpg", "image/png"}
ALLOWED_AVATAR_EXTENSIONS = {".jpg", ".jpeg", ".png"}


class AdminUserCreate(UserCreate):
    is_admin: bool = False


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)
    current_password: Optional[str] = None
    pin: Optional[str] = Field(default=None, pattern=PIN_PATTERN)

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, value: Optional[str]):
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Full name cannot be empty")
        return value


class StatusUpdate(BaseModel):
    status: UserStatus


class BalanceUpdate(BaseModel):
    balance: float = Field(ge=0, allow_inf_nan=False)


class PinVerification(BaseModel):
    pin: StrictStr = Field(min_length=1)


def get_user_or_404(db: Session, user_id: int):
    user = user_service.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=USER_NOT_FOUND_MESSAGE)
    return user


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: AdminUserCreate,
    identity: Identity = Depends(requires(ADMIN_ONLY, ADMIN_REQUIRED)),
    db: Session = Depends(get_db),
):
    """Admin creates a user, optionally another admin"""
    user = create_user_or_400(db, payload, is_admin=payload.is_admin)
    logger.info(f"Admin {identity.id} created user {user.id}")
    return envelope(UserResponse.from_user(user))


@router.get("")
async def list_users(
    identity: Identity = Depends(requires(ADMIN_ONLY, ADMIN_REQUIRED)),
    db: Session = Depends(get_db),
):
    users = user_service.list_users(db)
    return envelope([UserResponse.from_user(user) for user in users])


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    identity: Identity = Depends(
        requires(SELF_OR_ADMIN, "You can only access your own user details", owner_param="user_id")
    ),
    db: Session = Depends(get_db),
):
    return envelope(UserResponse.from_user(get_user_or_404(db, user_id)))


@router.patch("/{user_id}")
async def update_user(
    user_id: int,
    payload: UserUpdate,
    identity: Identity = Depends(
        requires(SELF_OR_ADMIN, "You can only update your own profile", owner_param="user_id")
    ),
    db: Session = Depends(get_db),
):
    """
    Update profile fields.

    Non-admins changing their own password must confirm the current one.
    """
    user = get_user_or_404(db, user_id)

    if payload.password and not identity.is_admin:
        if not payload.current_password or not verify_secret(payload.current_password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    changes = payload.model_dump(exclude_unset=True, exclude={"current_password"})
    if "email" in changes and changes["email"] is not None:
        changes["email"] = str(changes["email"])

    try:
        user = user_service.update_profile(db, user, **changes)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_USER_MESSAGE)

    return envelope(UserResponse.from_user(user))


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    identity: Identity = Depends(requires(ADMIN_ONLY, ADMIN_REQUIRED)),
    db: Session = Depends(get_db),
    storage: AvatarStorage = Depends(get_storage),
):
    """Delete a user, their transactions and their avatar file"""
    user = get_user_or_404(db, user_id)
    avatar = user.avatar
    user_service.delete_user(db, user)
    storage.delete_avatar(avatar)
    logger.info(f"Admin {identity.id} deleted user {user_id}")
    return envelope({"message": "User deleted successfully"})


@router.patch("/{user_id}/status")
async def update_user_status(
    user_id: int,
    payload: StatusUpdate,
    identity: Identity = Depends(requires(ADMIN_ONLY, ADMIN_REQUIRED)),
    db: Session = Depends(get_db),
):
    user = user_service.update_status(db, get_user_or_404(db, user_id), payload.status)
    return envelope(UserResponse.from_user(user))


@router.patch("/{user_id}/balance")
async def update_user_balance(
    user_id: int,
    payload: BalanceUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    # Authorized inside the handler so a negative balance is a 400 for every caller
    authorize(ADMIN_ONLY, identity, user_id, ADMIN_REQUIRED)
    user = user_service.update_balance(db, get_user_or_404(db, user_id), payload.balance)
    return envelope(UserResponse.from_user(user))


@router.patch("/{user_id}/avatar")
async def update_avatar(
    user_id: int,
    avatar: Optional[UploadFile] = File(None),
    identity: Identity = Depends(
        requires(SELF_OR_ADMIN, "You can only update your own avatar", owner_param="user_id")
    ),
    db: Session = Depends(get_db),
    storage: AvatarStorage = Depends(get_storage),
):
    """Upload a JPEG or PNG avatar of at most AVATAR_MAX_SIZE bytes"""
    user = get_user_or_404(db, user_id)

    if avatar is None or not avatar.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Avatar file is required")

    extension = Path(avatar.filename).suffix.lower()
    if avatar.content_type not in ALLOWED_AVATAR_TYPES or extension not in ALLOWED_AVATAR_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only .jpeg, .jpg, and .png files are allowed",
        )

    # Read one byte past the ceiling so oversized files are detected without loading them whole
    content = await avatar.read(settings.AVATAR_MAX_SIZE + 1)
    if len(content) > settings.AVATAR_MAX_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Avatar must be {settings.AVATAR_MAX_SIZE // (1024 * 1024)}MB or smaller",
        )

    avatar_path = storage.save_avatar(user.id, extension, content)
    user = user_service.set_avatar(db, user, avatar_path)
    logger.info(f"Avatar updated for user {user.id}")
    return envelope(UserResponse.from_user(user))


@router.delete("/{user_id}/avatar")
async def delete_avatar(
    user_id: int,
    identity: Identity = Depends(
        requires(SELF_OR_ADMIN, "You can only delete your own avatar", owner_param="user_id")
    ),
    db: Session = Depends(get_db),
    storage: AvatarStorage = Depends(get_storage),
):
    user = get_user_or_404(db, user_id)
    storage.delete_avatar(user.avatar)
    user_service.clear_avatar(db, user)
    return envelope({"message": "Avatar deleted successfully"})


@router.post("/{user_id}/verify-pin")
async def verify_pin(
    user_id: int,
    payload: PinVerification,
    identity: Identity = Depends(
        requires(SELF_OR_ADMIN, "You can only verify your own PIN", owner_param="user_id")
    ),
    limiter: AttemptLimiter = Depends(get_pin_limiter),
    db: Session = Depends(get_db),
):
    """Check a candidate PIN. Failed checks count towards a per-user lockout."""
    if not limiter.check(user_id):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many PIN attempts. Please try again later.",
        )

    user = user_service.get_user(db, user_id)
    if user is None or not user.pin_hash:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User or PIN not found.")

    valid = verify_secret(payload.pin, user.pin_hash)
    if valid:
        limiter.record_success(user_id)
    else:
        limiter.record_failure(user_id)
        logger.info(f"Incorrect PIN for user {user_id}")
    return envelope({"valid": valid})
