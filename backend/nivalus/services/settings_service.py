from sqlalchemy.orm import Session

from nivalus.models.settings import SETTINGS_ROW_ID, SystemSettings


class SettingsService:
    """Reads and updates the single system settings row"""

    @staticmethod
    def get_settings(db: Session) -> SystemSettings:
        """Return the settings row, creating it with defaults on first access"""
        row = db.query(SystemSettings).filter(SystemSettings.id == SETTINGS_ROW_ID).first()
        if row is None:
            row = SystemSettings(id=SETTINGS_ROW_ID)
            db.add(row)
            db.commit()
            db.refresh(row)
        return row

    @staticmethod
    def update_settings(db: Session, **changes) -> SystemSettings:
        """Partial update; keys with a None value are left unchanged"""
        row = SettingsService.get_settings(db)
        for field in ("system_name", "maintenance", "allow_new_users", "contact_email"):
            if changes.get(field) is not None:
                setattr(row, field, changes[field])
        db.commit()
        db.refresh(row)
        return row


settings_service = SettingsService()
