"""
Normalization of API response envelopes.

Responses have been seen as ``{"data": {...}}``, ``{"data": {"user": {...}}}``,
``{"user": {...}}`` and bare objects, with snake_case or camelCase fields.
Everything here reduces those to one shape for callers.
"""

from typing import Any, List, Optional

from pydantic import BaseModel


class ApiError(Exception):
    """An API call failed; ``status_code`` is None for malformed responses"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationRequired(ApiError):
    """The server answered 401 - the session is gone and the user must log in"""


class User(BaseModel):
    id: str
    username: str
    email: str
    full_name: str = ""
    phone: Optional[str] = None
    balance: Optional[float] = None
    status: Optional[str] = None
    is_admin: bool = False
    avatar: Optional[str] = None
    created_at: Optional[str] = None
    last_login: Optional[str] = None


class Transaction(BaseModel):
    id: Optional[str] = None
    user_id: str
    type: str
    amount: float
    date_time: Optional[str] = None
    status: Optional[str] = None
    recipient: Optional[str] = None
    memo: Optional[str] = None


class SystemSettings(BaseModel):
    system_name: str
    maintenance: bool = False
    allow_new_users: bool = True
    contact_email: str = ""


# Keys under which list payloads have been wrapped
LIST_KEYS = ("users", "transactions", "user", "items")


def unwrap(payload: Any, key: Optional[str] = None) -> Any:
    """Strip the ``data`` envelope and, when present, one ``key`` wrapper"""
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if key and isinstance(payload, dict) and key in payload:
        payload = payload[key]
    return payload


def _pick(raw: dict, *names: str, default: Any = None) -> Any:
    for name in names:
        if name in raw and raw[name] is not None:
            return raw[name]
    return default


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def normalize_user(payload: Any) -> User:
    raw = unwrap(payload, "user")
    if not isinstance(raw, dict) or not raw:
        raise ApiError("User data missing in response")
    return User(
        id=str(raw["id"]),
        username=raw.get("username", ""),
        email=raw.get("email", ""),
        full_name=_pick(raw, "full_name", "fullName", default=""),
        phone=raw.get("phone"),
        balance=_optional_float(raw.get("balance")),
        status=raw.get("status"),
        is_admin=bool(_pick(raw, "is_admin", "isAdmin", default=False)),
        avatar=raw.get("avatar"),
        created_at=_optional_str(_pick(raw, "created_at", "createdAt")),
        last_login=_optional_str(_pick(raw, "last_login", "lastLogin")),
    )


def normalize_transaction(payload: Any) -> Transaction:
    raw = unwrap(payload, "transaction")
    if not isinstance(raw, dict) or not raw:
        raise ApiError("Transaction data missing in response")
    user_id = _pick(raw, "user_id", "userId")
    if user_id is None or raw.get("type") is None or raw.get("amount") is None:
        raise ApiError("Transaction data missing in response")
    try:
        amount = float(raw["amount"])
    except (TypeError, ValueError):
        raise ApiError(f"Invalid transaction amount: {raw['amount']!r}")
    return Transaction(
        id=_optional_str(raw.get("id")),
        user_id=str(user_id),
        type=raw["type"],
        amount=amount,
        date_time=_optional_str(_pick(raw, "date_time", "dateTime", "created_at")),
        status=raw.get("status"),
        recipient=raw.get("recipient"),
        memo=raw.get("memo"),
    )


def normalize_settings(payload: Any) -> SystemSettings:
    raw = unwrap(payload, "settings")
    if not isinstance(raw, dict) or not raw:
        raise ApiError("Settings data missing in response")
    return SystemSettings(
        system_name=_pick(raw, "system_name", "systemName", default=""),
        maintenance=bool(_pick(raw, "maintenance", default=False)),
        allow_new_users=bool(_pick(raw, "allow_new_users", "allowNewUsers", default=True)),
        contact_email=_pick(raw, "contact_email", "contactEmail", default=""),
    )


def _unwrap_list(payload: Any) -> list:
    payload = unwrap(payload)
    if isinstance(payload, dict):
        for key in LIST_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
    if isinstance(payload, list):
        return payload
    raise ApiError("No data received from server")


def normalize_users(payload: Any) -> List[User]:
    return [normalize_user(item) for item in _unwrap_list(payload)]


def normalize_transactions(payload: Any) -> List[Transaction]:
    return [normalize_transaction(item) for item in _unwrap_list(payload)]


def error_message(payload: Any, default: str) -> str:
    """Pull the human-readable message out of an error body"""
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            if isinstance(payload.get(key), str):
                return payload[key]
    return default
