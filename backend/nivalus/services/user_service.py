import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from nivalus.core.security import hash_secret
from nivalus.models.user import User

logger = logging.getLogger(__name__)


class UserService:
    """Data access for user records. Callers own commit/rollback on errors."""

    @staticmethod
    def create_user(
        db: Session,
        *,
        username: str,
        email: str,
        password: str,
        full_name: str,
        phone: Optional[str] = None,
        pin: Optional[str] = None,
        is_admin: bool = False,
    ) -> User:
        """
        Insert a new user with hashed password (and PIN when given).

        Raises sqlalchemy.exc.IntegrityError when the username or email is
        already taken; the session is left for the caller to roll back.
        """
        user = User(
            username=username,
            email=email,
            full_name=full_name,
            phone=phone,
            password_hash=hash_secret(password),
            pin_hash=hash_secret(pin) if pin else None,
            is_admin=is_admin,
            status="Active",
            balance=0,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Created user {user.id} ({user.username}), admin={user.is_admin}")
        return user

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_username(db: Session, username: str) -> Optional[User]:
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def list_users(db: Session) -> List[User]:
        return db.query(User).order_by(User.id).all()

    @staticmethod
    def delete_user(db: Session, user: User) -> None:
        db.delete(user)
        db.commit()

    @staticmethod
    def update_status(db: Session, user: User, status: str) -> User:
        user.status = status
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_balance(db: Session, user: User, balance: float) -> User:
        user.balance = balance
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_profile(db: Session, user: User, **changes) -> User:
        """
        Apply profile changes. Accepts full_name, email, phone, password and pin;
        secrets are hashed before they are stored.
        """
        for field in ("full_name", "email", "phone"):
            if field in changes and changes[field] is not None:
                setattr(user, field, changes[field])
        if changes.get("password"):
            user.password_hash = hash_secret(changes["password"])
        if changes.get("pin"):
            user.pin_hash = hash_secret(changes["pin"])
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def set_avatar(db: Session, user: User, avatar_path: str) -> User:
        user.avatar = avatar_path
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def clear_avatar(db: Session, user: User) -> User:
        user.avatar = None
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def touch_last_login(db: Session, user: User) -> User:
        user.last_login = datetime.now(timezone.utc)
        db.commit()
        db.refresh(user)
        return user


user_service = UserService()
