from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from nivalus.api.errors import register_exception_handlers
from nivalus.core.bootstrap import ensure_admin_user
from nivalus.core.config import Settings, settings, validate_settings
from nivalus.core.database import get_db
from nivalus.core.security import verify_secret
from nivalus.main import app
from nivalus.services.user_service import user_service


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "OK"
    assert data["uptime"] >= 0


def test_database_health(client):
    response = client.get("/api/health/db")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "Database connected"


def test_database_health_failure_hides_details(client):
    class BrokenSession:
        def execute(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("connection refused on 10.0.0.5"))

    app.dependency_overrides[get_db] = lambda: BrokenSession()

    response = client.get("/api/health/db")

    assert response.status_code == 500
    assert response.json() == {"message": "Database connection failed"}


@pytest.mark.parametrize("method", ["get", "post", "put", "patch", "delete"])
def test_unknown_api_path_is_json_404(client, method):
    response = getattr(client, method)("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"message": "Not found"}


def test_known_routes_still_win_over_api_catch_all(client):
    response = client.post("/api/login", json={"username": "ghost", "password": "secret123"})

    assert response.status_code == 401


def test_spa_fallback_serves_index_and_assets(client):
    static_dir = Path(settings.STATIC_DIR)
    (static_dir / "index.html").write_text("<html>app</html>")
    (static_dir / "app.js").write_text("console.log('app')")

    deep_link = client.get("/dashboard/transactions")
    asset = client.get("/app.js")

    assert deep_link.status_code == 200
    assert deep_link.text == "<html>app</html>"
    assert "default-src 'self'" in deep_link.headers["content-security-policy"]
    assert asset.text == "console.log('app')"


def test_api_responses_have_no_csp(client):
    response = client.get("/api/health")

    assert "content-security-policy" not in response.headers


def test_unhandled_errors_become_generic_500():
    probe = FastAPI()
    register_exception_handlers(probe)

    @probe.get("/explode")
    async def explode():
        raise RuntimeError("password=hunter2")

    response = TestClient(probe, raise_server_exceptions=False).get("/explode")

    assert response.status_code == 500
    assert response.json() == {"message": "An unexpected error occurred"}
    assert "hunter2" not in response.text


def test_missing_secret_key_exits():
    with pytest.raises(SystemExit):
        validate_settings(Settings(SECRET_KEY=""))


def test_cors_origins_parse_comma_separated_string():
    config = Settings(CORS_ORIGINS="http://a.test, http://b.test,")

    assert config.get_cors_origins() == ["http://a.test", "http://b.test"]


def test_admin_bootstrap_requires_password_when_no_admin(db):
    with pytest.raises(SystemExit):
        ensure_admin_user(db, Settings(ADMIN_PASSWORD=""))


def test_admin_bootstrap_creates_admin_once(db):
    config = Settings(ADMIN_PASSWORD="bootstrap-pass")

    ensure_admin_user(db, config)
    ensure_admin_user(db, config)

    admins = [user for user in user_service.list_users(db) if user.is_admin]
    assert len(admins) == 1
    assert admins[0].username == "admin"
    assert verify_secret("bootstrap-pass", admins[0].password_hash)
