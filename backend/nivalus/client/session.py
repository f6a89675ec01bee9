import logging
from typing import Any, Dict, Optional

from nivalus.client.api import BankApiClient
from nivalus.client.normalize import ApiError, User

logger = logging.getLogger(__name__)


class AuthSession:
    """
    In-memory holder of the logged-in user for one client session.

    Nothing is persisted; the server cookie is the only durable state and
    ``bootstrap`` re-reads the user from it.
    """

    def __init__(self, client: BankApiClient):
        self.client = client
        self.current_user: Optional[User] = None
        self.loading = True
        self.landing_path: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return bool(self.current_user and self.current_user.is_admin)

    def bootstrap(self) -> Optional[User]:
        """Load the current user from an existing cookie, if any"""
        try:
            self.current_user = self.client.auth.get_current_user()
        except ApiError as exc:
            logger.info(f"No active session: {exc.message}")
            self.current_user = None
        finally:
            self.loading = False
        return self.current_user

    def login(self, username: str, password: str) -> User:
        self.loading = True
        try:
            user = self.client.auth.login(username, password)
            self.current_user = user
            self.landing_path = "/admin" if user.is_admin else "/dashboard"
            logger.info(f"Welcome back, {user.full_name or user.username}!")
            return user
        finally:
            self.loading = False

    def logout(self) -> None:
        self.client.auth.logout()
        self.current_user = None
        self.landing_path = "/login"

    def refresh_user(self) -> User:
        user = self.client.auth.get_current_user()
        self.current_user = user
        return user

    def update_current_user(self, updates: Dict[str, Any]) -> Optional[User]:
        """Apply profile updates to the logged-in user; no-op when logged out"""
        if self.current_user is None:
            return None
        if "status" in updates and updates["status"] not in ("Active", "Inactive"):
            updates = {key: value for key, value in updates.items() if key != "status"}
        self.current_user = self.client.auth.update_user(self.current_user.id, updates)
        return self.current_user
