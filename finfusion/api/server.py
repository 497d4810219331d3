"""FastAPI application exposing the FinFusion personal finance API."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from finfusion import __version__
from finfusion.config import get_settings
from finfusion.engine.logging import ROOT_LOGGER, setup_logger

from . import database, scheduler
from .errors import DOMAIN_ERRORS
from .responses import failure
from .routers import api_router

LOG = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(_: FastAPI):
    settings = get_settings()
    setup_logger(ROOT_LOGGER, json_format=settings.json_logs, level=settings.log_level)
    database.init_db()
    jobs = scheduler.start_scheduler(settings) if settings.scheduler_enabled else None
    LOG.info("FinFusion API started")
    try:
        yield
    finally:
        if jobs is not None:
            scheduler.stop_scheduler(jobs)
        LOG.info("FinFusion API stopped")


app = FastAPI(title="FinFusion API", version=__version__, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - started) * 1000.0, 2)
    LOG.info(
        "%s %s %d",
        request.method,
        request.url.path,
        response.status_code,
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


def _field_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    details = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(location), "message": error.get("msg", "Invalid value")})
    return details


async def domain_error_handler(_: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=getattr(exc, "status_code", 400), content=failure(str(exc)))


async def validation_error_handler(_: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, (RequestValidationError, ValidationError)) else []
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(failure("Validation failed", _field_errors(errors))),
    )


async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=failure(str(exc.detail)), headers=exc.headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    LOG.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=failure("Internal server error"))


for error_class in DOMAIN_ERRORS:
    app.add_exception_handler(error_class, domain_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(ValidationError, validation_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

app.include_router(api_router)


@app.get("/health", tags=["system"])
def healthcheck() -> dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime_seconds": round(time.monotonic() - STARTED_AT, 3),
    }
