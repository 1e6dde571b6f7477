"""FastAPI application entrypoint. No business logic; only wiring, middleware and error mapping."""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import router as v1_router
from app.core.config import settings
from app.core.errors import AppError, RequestTimeoutError
from app.schemas.auth import RestError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal Server Error"

app = FastAPI(
    title="User Service API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[settings.CSRF_HEADER],
)


def error_response(status_code: int, message: str) -> JSONResponse:
    """Every error body is {"error": ..., "status": ...}."""
    body = RestError(error=message, status=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.middleware("http")
async def enforce_request_deadline(request: Request, call_next):
    """Bound the whole request by REQUEST_TIMEOUT_SEC; services check the same deadline."""
    try:
        return await asyncio.wait_for(call_next(request), timeout=settings.REQUEST_TIMEOUT_SEC)
    except TimeoutError:
        logger.error(
            "Request timed out: method=%s path=%s timeout=%s",
            request.method,
            request.url.path,
            settings.REQUEST_TIMEOUT_SEC,
        )
        return error_response(500, "Request Timeout")


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed: method=%s path=%s status=%s error=%s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
            exc_info=exc.cause or exc,
        )
        message = "Request Timeout" if isinstance(exc, RequestTimeoutError) else INTERNAL_ERROR
        return error_response(exc.status_code, message)
    logger.warning(
        "Request rejected: method=%s path=%s status=%s error=%s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.message,
    )
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = "; ".join(parts) or "Invalid request"
    logger.warning(
        "Request rejected: method=%s path=%s status=400 error=%s",
        request.method,
        request.url.path,
        message,
    )
    return error_response(400, message)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: method=%s path=%s", request.method, request.url.path)
    return error_response(500, INTERNAL_ERROR)


app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "User Service API"}
