from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from photocap.api.error_handling import register_exception_handlers
from photocap.api.routes import router
from photocap.config import Settings, get_settings
from photocap.logging import get_logger, set_correlation_id
from photocap.service.runtime import Runtime, Store

logger = get_logger(__name__)

__version__ = "0.1.0"


def create_app(
    settings: Optional[Settings] = None, store: Optional[Store] = None
) -> FastAPI:
    """Build the API application.

    The runtime is constructed eagerly so a missing ``JWT_SECRET`` or an
    unreachable database stops the process before it accepts traffic.
    """
    settings = settings or get_settings()
    runtime = Runtime(settings, store=store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("app_started", version=__version__, app_env=settings.app_env.value)
        yield
        try:
            runtime.close()
        except Exception as exc:
            logger.error("shutdown_failed", error=str(exc))

    app = FastAPI(title="Photocap API", version=__version__, lifespan=lifespan)
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=3600,
    )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):
        correlation_id = set_correlation_id(request.headers.get("X-Request-ID"))
        response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        return response

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if request.url.path.startswith("/api/"):
            # Responses carry profiles and tokens
            response.headers.setdefault("Cache-Control", "no-store")
        return response

    register_exception_handlers(app)
    app.include_router(router)

    @app.get("/healthz", tags=["health"])
    async def healthz():
        healthy = runtime.store.verify_connection()
        return {"status": "ok" if healthy else "degraded", "version": __version__}

    return app
