import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp

from lightfriend.api.rate_limit import increment_rate_limit_exceeded, limiter
from lightfriend.api.routes_admin import router as admin_router
from lightfriend.api.routes_billing import router as billing_router
from lightfriend.api.routes_health import router as health_router
from lightfriend.api.routes_metrics import router as metrics_router
from lightfriend.api.routes_profile import router as profile_router
from lightfriend.api.routes_stripe import router as stripe_router
from lightfriend.api.routes_tools import router as tools_router
from lightfriend.api.routes_vapi import router as vapi_router
from lightfriend.core.config import settings
from lightfriend.core.errors import register_error_handlers
from lightfriend.core.logger import init_logging
from lightfriend.core.monitoring import init_monitoring


async def _rate_limit_handler(request, exc: RateLimitExceeded):
    increment_rate_limit_exceeded()
    return JSONResponse(status_code=429, content={"error": "Too many requests"})


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):  # type: ignore[override]
        response = await call_next(request)
        response.headers.setdefault("Referrer-Policy", "same-origin")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_body: int = 2 * 1024 * 1024) -> None:
        super().__init__(app)
        self.max_body = max_body
        self.logger = logging.getLogger("lightfriend.request_size")

    async def dispatch(self, request, call_next):  # type: ignore[override]
        length_header = request.headers.get("content-length")
        if length_header:
            try:
                if int(length_header) > self.max_body:
                    self.logger.warning("Rejected %s %s: body of %s bytes", request.method, request.url.path, length_header)
                    return JSONResponse(status_code=413, content={"error": "Request body too large"})
            except ValueError:
                pass
        return await call_next(request)


def create_app() -> FastAPI:
    init_logging()
    init_monitoring()

    is_production = settings.ENV.lower() == "prod"
    app = FastAPI(
        title=settings.APP_NAME,
        debug=False,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware)
    register_error_handlers(app)
    app.include_router(vapi_router, prefix="/api/vapi", tags=["vapi"])
    app.include_router(tools_router, prefix="/api/call", tags=["tools"])
    app.include_router(profile_router, prefix="/api", tags=["profile"])
    app.include_router(billing_router, prefix="/api", tags=["billing"])
    app.include_router(stripe_router, prefix="/api/stripe", tags=["stripe"])
    app.include_router(admin_router, prefix="/api/admin", tags=["admin"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(health_router)
    return app


app = create_app()
