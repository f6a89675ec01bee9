"""Response models shared by the route modules."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_serializer


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    full_name: str
    phone: Optional[str] = None
    status: str
    balance: float
    is_admin: bool
    avatar: Optional[str] = None
    has_pin: bool = False
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "last_login")
    def serialize_timestamps(self, value: Optional[datetime], _info):
        return value.isoformat() if value else None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        response = cls.model_validate(user)
        response.has_pin = bool(user.pin_hash)
        return response


class TransactionResponse(BaseModel):
    id: int
    user_id: int
    type: str
    amount: float
    date_time: datetime
    status: str
    recipient: Optional[str] = None
    memo: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("date_time")
    def serialize_date_time(self, value: datetime, _info):
        return value.isoformat() if value else None


class SettingsResponse(BaseModel):
    system_name: str
    maintenance: bool
    allow_new_users: bool
    contact_email: str
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("updated_at")
    def serialize_updated_at(self, value: Optional[datetime], _info):
        return value.isoformat() if value else None


def envelope(payload) -> dict:
    """Wrap a payload in the canonical success envelope"""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    elif isinstance(payload, list):
        payload = [
            item.model_dump(mode="json") if isinstance(item, BaseModel) else item
            for item in payload
        ]
    return {"data": payload}
