import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from nivalus.api.dependencies import Identity, client_address, get_current_identity
from nivalus.api.schemas import UserResponse, envelope
from nivalus.core.config import settings
from nivalus.core.database import get_db
from nivalus.core.security import create_session_token, verify_secret
from nivalus.services.rate_limit import AttemptLimiter, get_login_limiter
from nivalus.services.settings_service import settings_service
from nivalus.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

DUPLICATE_USER_MESSAGE = "Username or email already exists"
PIN_PATTERN = r"^\d{4,6}$"


class UserCreate(BaseModel):
    full_name: str
    username: str
    email: EmailStr
    password: str = Field(min_length=6)
    phone: Optional[str] = None
    pin: Optional[str] = Field(default=None, pattern=PIN_PATTERN)

    @field_validator("full_name", "username")
    @classmethod
    def strip_required(cls, value: str, info):
        value = value.strip()
        if not value:
            raise ValueError(f"{info.field_name.replace('_', ' ').capitalize()} is required")
        return value


class LoginRequest(BaseModel):
    username: str
    password: str = Field(min_length=1)

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str):
        value = value.strip()
        if not value:
            raise ValueError("Username is required")
        return value


def create_user_or_400(db: Session, payload: UserCreate, is_admin: bool = False):
    """Insert a user, mapping uniqueness violations to a generic 400"""
    try:
        return user_service.create_user(
            db,
            username=payload.username,
            email=str(payload.email),
            password=payload.password,
            full_name=payload.full_name,
            phone=payload.phone,
            pin=payload.pin,
            is_admin=is_admin,
        )
    except IntegrityError:
        # Do not reveal which of username/email collided
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_USER_MESSAGE)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Database error creating user: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error creating user",
        )


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(request: Request, db: Session = Depends(get_db)):
    """
    Self-service registration.

    The registration switch is checked before the payload is validated, so a
    closed system answers 403 to every signup.
    """
    system_settings = settings_service.get_settings(db)
    if not system_settings.allow_new_users:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Registrations are disabled.")

    try:
        payload = UserCreate.model_validate(await _json_body(request))
    except ValidationError as exc:
        raise RequestValidationError(
            [{**error, "loc": ("body", *error["loc"])} for error in exc.errors()]
        )

    user = create_user_or_400(db, payload)
    return envelope(UserResponse.from_user(user))


def enforce_login_limit(
    request: Request,
    limiter: AttemptLimiter = Depends(get_login_limiter),
) -> str:
    """Reject with 429 before the body is parsed or the store is touched"""
    address = client_address(request)
    if not limiter.check(address):
        logger.warning(f"Too many login attempts from {address}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again later.",
        )
    return address


@router.post("/login")
async def login(
    credentials: LoginRequest,
    response: Response,
    address: str = Depends(enforce_login_limit),
    limiter: AttemptLimiter = Depends(get_login_limiter),
    db: Session = Depends(get_db),
):
    """Verify credentials, set the session cookie and return the user"""
    logger.info(f"Login attempt for {credentials.username}")
    user = user_service.get_user_by_username(db, credentials.username)

    # Same message for unknown user and wrong password - no username probing
    if not user or not verify_secret(credentials.password, user.password_hash):
        attempts = limiter.record_failure(address)
        logger.info(f"Failed login for {credentials.username} from {address} ({attempts} attempts)")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is inactive. Please contact support.",
        )

    limiter.record_success(address)
    user = user_service.touch_last_login(db, user)
    token = create_session_token(user)

    response.set_cookie(
        key=settings.TOKEN_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )

    logger.info(f"Login success for user {user.id}")
    return {
        "data": {
            "user": UserResponse.from_user(user).model_dump(mode="json"),
            "access_token": token,
            "token_type": "bearer",
        }
    }


@router.post("/logout")
async def logout(response: Response, identity: Identity = Depends(get_current_identity)):
    """Clear the session cookie. The token itself stays valid until it expires."""
    response.delete_cookie(
        key=settings.TOKEN_COOKIE_NAME,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    logger.info(f"User {identity.id} logged out")
    return envelope({"message": "Logged out successfully"})


@router.get("/me")
async def get_current_user_info(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Get the user behind the session token"""
    user = user_service.get_user(db, identity.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return envelope(UserResponse.from_user(user))


@router.get("/session")
async def session_status(identity: Identity = Depends(get_current_identity)):
    return envelope({"is_logged_in": True})
