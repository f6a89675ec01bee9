from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.orm import Session

from nivalus.api.dependencies import Identity
from nivalus.api.policy import ADMIN_ONLY, ADMIN_REQUIRED, requires
from nivalus.api.schemas import SettingsResponse, envelope
from nivalus.core.database import get_db
from nivalus.services.settings_service import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingsUpdate(BaseModel):
    system_name: Optional[str] = None
    maintenance: Optional[bool] = None
    allow_new_users: Optional[bool] = None
    contact_email: Optional[EmailStr] = None

    @field_validator("system_name")
    @classmethod
    def strip_system_name(cls, value: Optional[str]):
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("System name is required")
        return value


@router.get("")
async def get_settings(
    identity: Identity = Depends(requires(ADMIN_ONLY, ADMIN_REQUIRED)),
    db: Session = Depends(get_db),
):
    return envelope(SettingsResponse.model_validate(settings_service.get_settings(db)))


@router.patch("")
async def update_settings(
    payload: SettingsUpdate,
    identity: Identity = Depends(requires(ADMIN_ONLY, ADMIN_REQUIRED)),
    db: Session = Depends(get_db),
):
    """Partial update; omitted fields keep their value"""
    row = settings_service.update_settings(db, **payload.model_dump(exclude_unset=True))
    return envelope(SettingsResponse.model_validate(row))
