import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from nivalus.api.errors import register_exception_handlers
from nivalus.api.middleware import ContentSecurityPolicyMiddleware
from nivalus.api.routes import auth, health, settings as settings_routes, transactions, users
from nivalus.core.bootstrap import ensure_admin_user, ensure_system_settings
from nivalus.core.config import settings, validate_settings
from nivalus.core.database import Base, SessionLocal, engine
from nivalus.core.logging_config import RequestLoggingMiddleware, configure_logging
from nivalus.core.scheduler import start_scheduler, stop_scheduler
from nivalus.models import settings as settings_model, transaction, user  # noqa: F401 - register tables
from nivalus.storage.local_storage import AVATAR_URL_PREFIX, storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: validate config, create tables, bootstrap admin, start scheduler
    Shutdown: stop scheduler
    """
    configure_logging(settings.LOG_LEVEL)
    validate_settings(settings)

    # In production, use migrations instead of create_all
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ensure_admin_user(db, settings)
        ensure_system_settings(db)
    finally:
        db.close()
    logger.info("Database initialized")

    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Nivalus Bank API",
    description="Accounts, transactions and receipts for the Nivalus banking demo",
    version="1.0.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# Last added runs first: request logging wraps CORS which wraps the CSP header
app.add_middleware(ContentSecurityPolicyMiddleware, allowed_origins=settings.get_cors_origins())
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,  # Session cookie travels cross-origin
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Signup"],
)
app.add_middleware(RequestLoggingMiddleware)

# All routes are prefixed with /api
app.include_router(health.router, prefix="/api")
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(transactions.router, prefix="/api")
app.include_router(settings_routes.router, prefix="/api")


@app.api_route(
    "/api/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def api_not_found(path: str):
    """Unknown API paths answer 404 JSON for every method, registered after the routers"""
    raise HTTPException(status_code=404, detail="Not found")


app.mount(AVATAR_URL_PREFIX, StaticFiles(directory=storage.avatar_dir, check_dir=False), name="avatars")


@app.get("/{full_path:path}", include_in_schema=False)
async def spa_fallback(full_path: str):
    """
    Serve built frontend assets; any other path gets index.html so the
    client-side router can handle it.
    """
    if full_path == "api" or full_path.startswith("api/"):
        raise HTTPException(status_code=404, detail="Not found")

    static_dir = Path(settings.STATIC_DIR).resolve()
    if full_path:
        candidate = (static_dir / full_path).resolve()
        if candidate.is_file() and static_dir in candidate.parents:
            return FileResponse(candidate)

    index = static_dir / "index.html"
    if index.is_file():
        return FileResponse(index)
    return PlainTextResponse("Cannot GET / - Frontend assets not found", status_code=404)


def run():
    import uvicorn

    uvicorn.run("nivalus.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
