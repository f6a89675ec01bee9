import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from nivalus.client.normalize import (
    ApiError,
    AuthenticationRequired,
    SystemSettings,
    Transaction,
    User,
    error_message,
    normalize_settings,
    normalize_transaction,
    normalize_transactions,
    normalize_user,
    normalize_users,
    unwrap,
)

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


class BankApiClient:
    """
    HTTP client for the Nivalus API.

    Keeps the session cookie between calls. Any 401 outside the login call
    triggers ``on_unauthenticated`` from a response hook, before the calling
    method raises, so the caller's own error handling does not have to route
    the user back to the login view.
    """

    def __init__(
        self,
        http: httpx.Client,
        api_prefix: str = "/api",
        on_unauthenticated: Optional[Callable[[], None]] = None,
    ):
        self.http = http
        self.api_prefix = api_prefix.rstrip("/")
        self.redirect_to: Optional[str] = None
        self.on_unauthenticated = on_unauthenticated or self._redirect_to_login
        hooks = dict(self.http.event_hooks)
        hooks["response"] = [*hooks.get("response", []), self._check_session]
        self.http.event_hooks = hooks

        self.auth = AuthApi(self)
        self.users = UsersApi(self)
        self.transactions = TransactionsApi(self)
        self.settings = SettingsApi(self)

    @classmethod
    def connect(cls, base_url: str, timeout: float = 30.0, **kwargs) -> "BankApiClient":
        http = httpx.Client(base_url=base_url, timeout=timeout)
        return cls(http, **kwargs)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "BankApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _redirect_to_login(self) -> None:
        logger.warning("Session is no longer valid; redirecting to login")
        self.redirect_to = LOGIN_PATH

    def _check_session(self, response: httpx.Response) -> None:
        if response.status_code == 401 and not response.request.url.path.endswith(LOGIN_PATH):
            self.on_unauthenticated()

    def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = self.http.request(method, f"{self.api_prefix}{path}", **kwargs)
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = error_message(body, f"Request failed with status {response.status_code}")
            if 400 <= response.status_code < 500:
                logger.warning(f"Client error: {message}")
            else:
                logger.error(f"Server error: {message}")
            error_class = AuthenticationRequired if response.status_code == 401 else ApiError
            raise error_class(message, response.status_code)
        return response

    def json(self, method: str, path: str, **kwargs) -> Any:
        response = self.request(method, path, **kwargs)
        if not response.content:
            raise ApiError("No data received from server", response.status_code)
        return response.json()


class _Namespace:
    def __init__(self, client: BankApiClient):
        self.client = client


class AuthApi(_Namespace):
    def login(self, username: str, password: str) -> User:
        try:
            payload = self.client.json("POST", "/login", json={"username": username, "password": password})
        except ApiError as exc:
            raise ApiError(exc.message or "Login failed. Please try again.", exc.status_code) from exc
        return normalize_user(payload)

    def logout(self) -> None:
        self.client.request("POST", "/logout")

    def get_current_user(self) -> User:
        return normalize_user(self.client.json("GET", "/me"))

    def is_logged_in(self) -> bool:
        try:
            payload = unwrap(self.client.json("GET", "/session"))
        except ApiError as exc:
            logger.info(f"Session check failed: {exc.message}")
            return False
        if not isinstance(payload, dict):
            return False
        return bool(payload.get("is_logged_in", payload.get("isLoggedIn", False)))

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> User:
        return normalize_user(self.client.json("PATCH", f"/users/{user_id}", json=updates))


class UsersApi(_Namespace):
    def create(self, user_data: Dict[str, Any], signup: bool = False) -> User:
        """Self-service signup when ``signup`` is set, otherwise admin creation"""
        path = "/signup" if signup else "/users"
        return normalize_user(self.client.json("POST", path, json=user_data))

    def list(self) -> List[User]:
        return normalize_users(self.client.json("GET", "/users"))

    def get(self, user_id: str) -> User:
        return normalize_user(self.client.json("GET", f"/users/{user_id}"))

    def delete(self, user_id: str) -> None:
        self.client.request("DELETE", f"/users/{user_id}")

    def update_status(self, user_id: str, status: str) -> User:
        return normalize_user(self.client.json("PATCH", f"/users/{user_id}/status", json={"status": status}))

    def update_balance(self, user_id: str, balance: float) -> User:
        return normalize_user(self.client.json("PATCH", f"/users/{user_id}/balance", json={"balance": balance}))

    def update_avatar(self, user_id: str, filename: str, content: bytes, content_type: str) -> User:
        files = {"avatar": (filename, content, content_type)}
        payload = self.client.json("PATCH", f"/users/{user_id}/avatar", files=files)
        return normalize_user(payload)

    def delete_avatar(self, user_id: str) -> None:
        self.client.request("DELETE", f"/users/{user_id}/avatar")

    def verify_pin(self, user_id: str, pin: str) -> bool:
        payload = unwrap(self.client.json("POST", f"/users/{user_id}/verify-pin", json={"pin": pin}))
        if not isinstance(payload, dict) or "valid" not in payload:
            raise ApiError("No data received from server")
        return bool(payload["valid"])


class TransactionsApi(_Namespace):
    def list(self) -> List[Transaction]:
        return normalize_transactions(self.client.json("GET", "/transactions"))

    def create(self, transaction: Dict[str, Any]) -> Transaction:
        return normalize_transaction(self.client.json("POST", "/transactions", json=transaction))

    def delete(self, transaction_id: str) -> None:
        self.client.request("DELETE", f"/transactions/{transaction_id}")

    def list_for_user(self, user_id: str) -> List[Transaction]:
        return normalize_transactions(self.client.json("GET", f"/users/{user_id}/transactions"))

    def download_receipt(self, transaction_id: str, theme: str = "classic") -> bytes:
        response = self.client.request("GET", f"/transactions/{transaction_id}/receipt", params={"theme": theme})
        return response.content


class SettingsApi(_Namespace):
    def get(self) -> SystemSettings:
        return normalize_settings(self.client.json("GET", "/settings"))

    def update(self, changes: Dict[str, Any]) -> SystemSettings:
        return normalize_settings(self.client.json("PATCH", "/settings", json=changes))
