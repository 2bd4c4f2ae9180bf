# kuurier/main.py

import time

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kuurier.api import auth, invites, users
from kuurier.core.circuit_breaker import SubjectRateLimiter, limiter
from kuurier.core.config import get_settings
from kuurier.core.errors import KuurierError
from kuurier.infra.postgres import get_db
from kuurier.utils.logger import setup_logger

API_PREFIX = "/api/v1"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logger()

    app = FastAPI(
        title="Kuurier Identity",
        version="1.0.0",
        description="Invite-gated anonymous identity, trust and invite service"
    )

    app.state.limiter = limiter
    app.state.subject_limiter = SubjectRateLimiter(settings.rate_limit_per_minute, settings.rate_limit_storage_uri)

    # CORS: empty list in development means allow all
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins or ["*"],
        allow_credentials=bool(settings.allowed_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_and_secure(request: Request, call_next):
        # Method, path, status and latency only; no client addresses
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{request.method} {request.url.path} {response.status_code} {latency_ms:.1f}ms")
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        return response

    register_exception_handlers(app)

    # Register routers
    api = APIRouter(prefix=API_PREFIX)
    api.include_router(auth.router, tags=["Auth"])
    api.include_router(invites.public_router, tags=["Invites"])
    api.include_router(users.router, tags=["Users"])
    api.include_router(invites.router, tags=["Invites"])
    app.include_router(api)

    @app.get("/health")
    def health_check(db: Session = Depends(get_db)):
        db.execute(text("SELECT 1"))
        return {"status": "ok"}

    return app


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(KuurierError)
    async def kuurier_error_handler(request: Request, exc: KuurierError):
        if exc.status_code >= 500:
            logger.opt(exception=exc).error(f"{request.method} {request.url.path} failed: {exc.error}")
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "invalid request body"})

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.opt(exception=exc).error(f"Database error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "internal server error"})


app = create_app()
