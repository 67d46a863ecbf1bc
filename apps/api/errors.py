import logging
from typing import Any, Dict, Optional

import psycopg
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SupplierError(Exception):
    """Base class for failures surfaced to API callers as `{"error": ...}`."""

    status_code = 500
    default_error = "Internal server error"

    def __init__(self, error: Optional[str] = None, **context: Any):
        self.error = error or self.default_error
        self.context: Dict[str, Any] = context
        super().__init__(self.error)


class InvalidInput(SupplierError):
    status_code = 400
    default_error = "Invalid input"


class NotFound(SupplierError):
    status_code = 404
    default_error = "Supplier not found"


class StoreUnavailable(SupplierError):
    default_error = "Supplier store not configured"


class SearchFailed(SupplierError):
    default_error = "Failed to search for existing supplier"


class CreateFailed(SupplierError):
    default_error = "Failed to create supplier"


class UpdateFailed(SupplierError):
    default_error = "Failed to update supplier"


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid request body" + (f" ({'; '.join(parts)})" if parts else "")


def register_error_handlers(app: FastAPI) -> None:
    """Translate domain and store failures into JSON error payloads."""

    @app.exception_handler(SupplierError)
    async def _supplier_error(request: Request, exc: SupplierError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.error})

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(psycopg.Error)
    async def _store_error(request: Request, exc: psycopg.Error):
        logger.error("Unhandled store error on %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
