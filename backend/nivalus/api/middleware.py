"""Response header middleware."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp


class ContentSecurityPolicyMiddleware(BaseHTTPMiddleware):
    """Attach a Content-Security-Policy to every non-API response (the SPA and its assets)"""

    def __init__(self, app: ASGIApp, allowed_origins: list[str]):
        super().__init__(app)
        self.policy = "; ".join([
            "default-src 'self'",
            f"connect-src 'self' {' '.join(allowed_origins)}".strip(),
            "style-src 'self' 'unsafe-inline'",
            "script-src 'self' 'unsafe-inline'",
            "img-src 'self' data:",
            "font-src 'self'",
            "frame-src 'self'",
        ])

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if not request.url.path.startswith("/api"):
            response.headers["Content-Security-Policy"] = self.policy
        return response
