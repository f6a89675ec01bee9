import logging

from sqlalchemy.orm import Session

from nivalus.core.config import Settings
from nivalus.services.settings_service import settings_service
from nivalus.services.user_service import user_service

logger = logging.getLogger(__name__)


def ensure_admin_user(db: Session, config: Settings) -> None:
    """
    Create the bootstrap admin account if it does not exist.

    ADMIN_PASSWORD is only required on the first start; without it the
    process exits because nobody could administer the system.
    """
    if user_service.get_user_by_username(db, config.ADMIN_USERNAME) is not None:
        return

    if not config.ADMIN_PASSWORD:
        logger.critical("ADMIN_PASSWORD is required to create the initial admin user")
        raise SystemExit(1)

    logger.info("Creating default admin user...")
    user_service.create_user(
        db,
        username=config.ADMIN_USERNAME,
        email=config.ADMIN_EMAIL,
        password=config.ADMIN_PASSWORD,
        full_name="System Administrator",
        is_admin=True,
    )


def ensure_system_settings(db: Session) -> None:
    settings_service.get_settings(db)
