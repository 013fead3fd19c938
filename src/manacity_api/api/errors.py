"""Application-wide exception handlers."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from manacity_api.schemas.common import ErrorResponse
from manacity_api.services.address_book_service import AddressValidationError


async def address_validation_error_handler(request: Request, exc: AddressValidationError) -> JSONResponse:
    """Render an address payload error as 400 with its code and per-field errors."""
    logger.info(f"Rejected address payload on {request.url.path}: {exc.code} {exc.field_errors}")
    body = ErrorResponse(
        detail=exc.message,
        code=exc.code,
        errors=[{"field": name, "message": message} for name, message in exc.field_errors.items()] or None,
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


async def value_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers; the more specific address error is matched before ValueError."""
    app.add_exception_handler(AddressValidationError, address_validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ValueError, value_error_handler)
