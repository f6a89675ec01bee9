from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from nivalus.core.config import settings

# CryptContext handles password and PIN hashing using bcrypt
# bcrypt is slow by design to prevent brute-force attacks
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenError(Exception):
    """Base class for session token verification failures"""


class TokenExpiredError(TokenError):
    """Token signature is valid but its exp claim has passed"""


class InvalidTokenError(TokenError):
    """Token is malformed, tampered with, or signed with another key"""


def verify_secret(plain: str, hashed: str) -> bool:
    """Verify a password or PIN against a bcrypt hash"""
    return pwd_context.verify(plain, hashed)


def hash_secret(plain: str) -> str:
    """Hash a password or PIN using bcrypt (salt is generated per call)"""
    return pwd_context.hash(plain)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token with expiration"""
    to_encode = data.copy()

    if expires_delta is not None:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(
            timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    # Algorithm must match in decode - changing this breaks all existing tokens
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT token.

    Raises TokenExpiredError when only the expiry check fails and
    InvalidTokenError for everything else, so callers can tell the user
    which of the two happened.
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError(str(exc)) from exc
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc


def create_session_token(user) -> str:
    """Mint the session token carried in the login cookie"""
    return create_access_token(
        data={
            "sub": str(user.id),
            "id": user.id,
            "username": user.username,
            "is_admin": bool(user.is_admin),
        }
    )
