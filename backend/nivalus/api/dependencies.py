import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from nivalus.core.config import settings
from nivalus.core.security import TokenExpiredError, TokenError, decode_access_token

logger = logging.getLogger(__name__)

# Bearer header is the fallback; the login cookie takes precedence
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Who is calling, as asserted by the verified session token"""
    id: int
    username: str
    is_admin: bool


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Cookie first, then the Authorization header"""
    cookie_token = request.cookies.get(settings.TOKEN_COOKIE_NAME)
    if cookie_token:
        return cookie_token
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return None


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """
    Resolve the caller from the session token.

    Identity comes from the token claims alone; the database is not consulted,
    so a token stays valid until it expires.
    """
    token = extract_token(request, credentials)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except TokenExpiredError:
        logger.info("Rejected expired token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token expired. Please log in again.",
        )
    except TokenError as exc:
        logger.info(f"Rejected invalid token: {exc}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token.")

    try:
        user_id = int(payload.get("sub", payload.get("id")))
        username = payload["username"]
    except (KeyError, TypeError, ValueError):
        # Signed by us but missing claims - treat like tampering
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token.")

    return Identity(id=user_id, username=username, is_admin=bool(payload.get("is_admin", False)))


def client_address(request: Request) -> str:
    """Key used for login attempt counting"""
    return request.client.host if request.client else "unknown"
