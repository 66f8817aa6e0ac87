from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from castmatch.api.v1.router import api_router
from castmatch.core.exceptions import AppError, EntityNotFoundError
from castmatch.core.logging import configure_logging
from castmatch.core.metrics import get_metrics_payload
from castmatch.core.request_context import reset_request_id, set_request_id
from castmatch.core.settings import settings
from castmatch.core.telemetry import setup_telemetry
from castmatch.db import models  # noqa: F401
from castmatch.db.base import Base
from castmatch.db.session import dispose_engine, get_engine, init_engine


logger = logging.getLogger("castmatch")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, settings.log_file)

    init_engine(settings.database_url)

    if settings.db_auto_create and settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=get_engine())

    yield

    dispose_engine()


app = FastAPI(title="CastMatch", lifespan=lifespan)
setup_telemetry(app, service_name="castmatch")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount(
    settings.media_url_prefix,
    StaticFiles(directory=settings.media_root, check_dir=False),
    name="media",
)


_QUIET_PATHS = {"/health", "/metrics"}


def _request_fields(request: Request, started: float) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
    }


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = set_request_id(request_id)
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("request_failed", extra=_request_fields(request, started))
        reset_request_id(token)
        raise

    fields = _request_fields(request, started)
    log = logger.debug if request.url.path in _QUIET_PATHS else logger.info
    log("request_complete", extra={**fields, "status": response.status_code})
    reset_request_id(token)

    response.headers["x-request-id"] = request_id
    response.headers["x-response-time-ms"] = str(fields["duration_ms"])
    return response


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "request_id": request_id},
    )


@app.exception_handler(EntityNotFoundError)
async def not_found_handler(request: Request, exc: EntityNotFoundError):
    return _error_response(request, 404, exc.detail)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.error("app_error", extra={"error_type": type(exc).__name__, "error": str(exc)})
    return _error_response(request, 500, exc.detail)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return _error_response(request, 400, str(exc))


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/metrics")
def metrics_endpoint():
    return PlainTextResponse(get_metrics_payload(), media_type="text/plain; version=0.0.4; charset=utf-8")


app.include_router(api_router)
