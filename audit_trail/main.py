"""FastAPI entrypoint for the audit trail service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from audit_trail.api.v1.api import api_router
from audit_trail.core.config import settings
from audit_trail.core.errors import AppError, StoreUnavailableError
from audit_trail.db import session as db_session
from audit_trail.db.base import Base
from audit_trail.db.seed import ensure_seed_data

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS: str = "1"

app = FastAPI(title=settings.app_name)
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup() -> None:
    if settings.jwt_secret_key.startswith("dev-only"):
        logger.warning("JWT_SECRET_KEY not set; using development fallback secret.")
    Base.metadata.create_all(bind=db_session.engine)
    with db_session.SessionLocal() as session:
        try:
            ensure_seed_data(session)
        except Exception:
            logger.exception("[BOOTSTRAP] Seed failed; continuing startup.")


@app.exception_handler(AppError)
def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"Retry-After": RETRY_AFTER_SECONDS} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


@app.exception_handler(OperationalError)
@app.exception_handler(PoolTimeoutError)
def handle_store_timeout(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[STORE] %s %s could not reach the store in time", request.method, request.url.path)
    return handle_app_error(request, StoreUnavailableError("Audit store is temporarily unavailable; retry later"))


@app.get("/health")
def health() -> dict[str, str]:
    with db_session.SessionLocal() as session:
        session.execute(text("SELECT 1"))
    return {"status": "ok"}


@app.get("/api")
def api_root() -> dict[str, str]:
    return {"name": settings.app_name, "docs": "/docs"}
