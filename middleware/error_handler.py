"""
middleware/error_handler.py — Errores de dominio y su traducción a HTTP.

Taxonomía:
  ValidationError          400  entrada ausente o mal formada
  NotFoundError            404  ruta o recurso inexistente
  UpstreamGenerationError  503  fallo del backend de generación; el orquestador
                                 lo convierte en respuesta de disculpa, nunca
                                 llega al cliente desde POST /message
  StoreError               500  fallo de persistencia; se propaga

Uso:
    from middleware.error_handler import register_error_handlers
    register_error_handlers(app)
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from models.responses import ErrorResponse

logger = logging.getLogger(__name__)


# ── Excepciones ───────────────────────────────────────────────────────────────


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    recoverable: bool = False

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    recoverable = True


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"


class UpstreamGenerationError(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "GENERATION_UNAVAILABLE"
    recoverable = True


class StoreError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "STORE_ERROR"


# ── Construcción de respuestas ────────────────────────────────────────────────


def _error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: str | None = None,
    recoverable: bool = False,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        details=details,
        recoverable=recoverable,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _public_details(exc: AppError) -> str | None:
    """Los detalles de errores 5xx (SQL, parámetros) solo salen en development."""
    if exc.status_code >= 500 and settings.ENVIRONMENT != "development":
        return None
    return exc.details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s → %s: %s",
            request.method,
            request.url.path,
            exc.error_code,
            exc.message,
            exc_info=exc,
        )
    else:
        logger.warning(
            "%s %s → %s: %s",
            request.method,
            request.url.path,
            exc.error_code,
            exc.message,
        )
    return _error_response(
        exc.status_code,
        exc.error_code,
        exc.message,
        details=_public_details(exc),
        recoverable=exc.recoverable,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Los errores de validación de pydantic se devuelven como 400, no 422."""
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", ""))
    detail = "; ".join(messages)
    logger.warning(
        "%s %s → VALIDATION_ERROR: %s", request.method, request.url.path, detail
    )
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        ValidationError.error_code,
        "Validation Error",
        details=detail,
        recoverable=True,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return _error_response(
            exc.status_code,
            NotFoundError.error_code,
            f"Route not found: {request.url.path}",
        )
    return _error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
