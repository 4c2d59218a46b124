"""FastAPI glue shared by every context's routers."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError

from shared.errors import CheckoutError

logger = structlog.get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Render ``CheckoutError`` as ``{"error": code, "detail": message, ...}``.

    A domain model ``ValidationError`` that reaches the surface is rendered the
    same way, with the offending fields under ``fields``.
    """

    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
        logger.info(
            "Request rejected",
            path=request.url.path,
            error=exc.code,
            status_code=exc.status_code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("Request rejected", path=request.url.path, error="validation_error", status_code=400)
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "detail": "Invalid data", "fields": exc.messages},
        )
