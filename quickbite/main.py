from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import anyio
import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quickbite.api import menu_items
from quickbite.api.menu_items import get_store
from quickbite.api.responses import error_response
from quickbite.core.config import settings
from quickbite.core.errors import StoreError
from quickbite.core.logging import configure_logging, request_id_ctx
from quickbite.core.sentry import init_sentry
from quickbite.db.pool import close_pool
from quickbite.menu import MenuItemStore, build_store

configure_logging(settings.log_level)
logger = structlog.get_logger(__name__)

ROUTE_NOT_FOUND_MESSAGE = "The requested resource was not found"
READY_TIMEOUT_SECONDS = 1.5


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_sentry()
    app.state.store = build_store(settings)
    logger.info("service_started", store_backend=settings.store_backend)
    try:
        yield
    finally:
        app.state.store.close()
        close_pool()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.include_router(menu_items.router, prefix=settings.api_prefix)


def _internal_message(exc: Exception) -> str:
    return str(exc) if settings.is_development else "Internal server error"


@app.middleware("http")
async def add_request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    token = request_id_ctx.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_ctx.reset(token)
    response.headers["x-request-id"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning("request_validation_failed", path=request.url.path, error=str(exc))
    if any(error.get("type") == "json_invalid" for error in exc.errors()):
        return error_response(400, "Malformed JSON in request body")
    return error_response(400, "Invalid request parameters")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, ROUTE_NOT_FOUND_MESSAGE)
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("menu_store_unavailable", path=request.url.path, action=exc.action)
    return error_response(500, _internal_message(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_exception", path=request.url.path)
    return error_response(500, _internal_message(exc))


@app.get("/health")
async def health() -> dict[str, str]:
    return {
        "status": "OK",
        "message": settings.health_message,
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


@app.get("/ready")
async def ready(store: MenuItemStore = Depends(get_store)) -> JSONResponse:
    try:
        with anyio.fail_after(READY_TIMEOUT_SECONDS):
            await anyio.to_thread.run_sync(store.ping, abandon_on_cancel=True)
    except Exception as exc:  # noqa: BLE001 - any failure means not ready
        error = str(exc) or type(exc).__name__
        logger.warning("readiness_check_failed", error=error)
        return JSONResponse(
            status_code=503,
            content={"status": "error", "checks": {"store": {"status": "error", "error": error}}},
        )
    return JSONResponse(status_code=200, content={"status": "ok", "checks": {"store": {"status": "ok"}}})
