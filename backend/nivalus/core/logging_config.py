import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("nivalus.requests")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at startup"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request on arrival and its status and duration on completion"""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        logger.info(f"Incoming request: {request.method} {request.url.path}")
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Response: {request.method} {request.url.path} "
            f"{response.status_code} {duration_ms:.0f}ms"
        )
        return response
