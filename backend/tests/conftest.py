import os
import tempfile

# Configuration is read at import time, so the environment must be set first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_PASSWORD"] = "admin-password"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="nivalus-uploads-")
os.environ["STATIC_DIR"] = tempfile.mkdtemp(prefix="nivalus-static-")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from nivalus.core.database import Base, get_db
from nivalus.core.security import create_session_token, pwd_context
from nivalus.main import app
from nivalus.services.rate_limit import login_limiter, pin_limiter
from nivalus.services.user_service import user_service

# Minimum bcrypt cost keeps the suite fast
pwd_context.update(bcrypt__rounds=4)

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def engine():
    # One shared in-memory connection for every thread the TestClient uses
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    login_limiter.reset()
    pin_limiter.reset()
    with_client = TestClient(app)
    yield with_client
    app.dependency_overrides.clear()
    login_limiter.reset()
    pin_limiter.reset()


@pytest.fixture
def make_user(db):
    def _make_user(username: str, password: str = DEFAULT_PASSWORD, is_admin: bool = False,
                   pin: str | None = None, email: str | None = None):
        return user_service.create_user(
            db,
            username=username,
            email=email or f"{username}@nivalus.io",
            password=password,
            full_name=username.capitalize(),
            pin=pin,
            is_admin=is_admin,
        )
    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user("admin", is_admin=True)


@pytest.fixture
def alice(make_user):
    return make_user("alice", pin="1234")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def auth_headers():
    def _auth_headers(user) -> dict:
        return {"Authorization": f"Bearer {create_session_token(user)}"}
    return _auth_headers
