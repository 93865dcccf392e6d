"""FastAPI application entrypoint."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from secure import Secure
from asgi_correlation_id import CorrelationIdMiddleware

from app.api import api_router
from app.core.config import get_settings
from app.core.errors import BookingError
from app.security.logging_filters import SensitiveFilter

logger = logging.getLogger(__name__)

settings = get_settings()

logging.basicConfig(level=settings.log_level.upper())

_ALLOWED_ORIGINS = [origin for origin in settings.cors_allowlist if origin]
if not _ALLOWED_ORIGINS:
    _ALLOWED_ORIGINS = [origin for origin in settings.cors_allow_origins if origin]
if not _ALLOWED_ORIGINS:
    _ALLOWED_ORIGINS = ["http://localhost:5173"]

_ERROR_STATUS = {
    "validation": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "policy": status.HTTP_400_BAD_REQUEST,
    "state": status.HTTP_409_CONFLICT,
    "storage": status.HTTP_503_SERVICE_UNAVAILABLE,
}


app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_ALLOWED_ORIGINS,
    allow_origin_regex=settings.cors_allow_origin_regex,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "X-Request-ID",
        "X-Actor-Type",
        "X-Actor-Id",
    ],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")

_secure_headers = Secure.with_default_headers()


@app.middleware("http")
async def _apply_security_headers(request, call_next):
    response = await call_next(request)
    _secure_headers.set_headers(response)
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        response.headers.setdefault("X-Request-ID", str(correlation_id))
    return response


@app.exception_handler(BookingError)
async def _booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    status_code = _ERROR_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error("Booking storage failure on %s: %s", request.url.path, exc.reason)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.reason, "kind": exc.kind, "errors": exc.errors},
    )


for _logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error", ""):
    _logger = logging.getLogger(_logger_name)
    if not any(isinstance(flt, SensitiveFilter) for flt in _logger.filters):
        _logger.addFilter(SensitiveFilter())

app.include_router(api_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Return a simple welcome message."""
    return {"message": settings.app_name}
