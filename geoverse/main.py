from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from geoverse.api.deps import caller_key, get_token_codec
from geoverse.api.errors import register_exception_handlers
from geoverse.api.routers.account import router as account_router
from geoverse.api.routers.auth import router as auth_router
from geoverse.api.routers.health import router as health_router
from geoverse.api.routers.records import router as records_router
from geoverse.infrastructure.db.engine import get_engine
from geoverse.infrastructure.db.maintenance import create_schema
from geoverse.infrastructure.db.repositories.credential_store import SqlCredentialStore
from geoverse.shared.config import get_settings
from geoverse.shared.logging import configure_logging


settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_token_codec()

    if settings.database_url:
        engine = get_engine(settings.database_url)
        if settings.auto_create_schema:
            create_schema(engine)
        SqlCredentialStore(engine).ping()
        logger.info("main: store_ready")
    else:
        logger.warning("main: DATABASE_URL is not set, store-backed routes will fail")

    yield

    if settings.database_url:
        get_engine(settings.database_url).dispose()


app = FastAPI(title="GeoVerse Access API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-API-Key"],
)
register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "request: method=%s path=%s status=%s ip=%s duration_ms=%.1f",
        request.method,
        request.url.path,
        response.status_code,
        caller_key(request),
        (time.perf_counter() - started) * 1000,
    )
    return response


app.include_router(health_router)
app.include_router(auth_router)
app.include_router(account_router)
app.include_router(records_router)
