from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from tigertix.services.errors import (
    InsufficientInventoryError,
    InvalidInputError,
    InventoryError,
    NotFoundError,
)

# Anything not listed here is an opaque 500
STATUS_CODES = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InsufficientInventoryError: status.HTTP_400_BAD_REQUEST,
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
}


async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    status_code = STATUS_CODES.get(type(exc))
    if status_code is None:
        # already logged with its traceback by the store
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "code": exc.code.value},
        )

    logger.info("{} {} rejected: {}", request.method, request.url.path, exc)
    content = {"detail": exc.message, "code": exc.code.value}
    if isinstance(exc, InsufficientInventoryError):
        content["remaining"] = exc.remaining
    return JSONResponse(status_code=status_code, content=content)


async def general_500_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


EXCEPTION_HANDLERS = {
    InventoryError: inventory_error_handler,
    Exception: general_500_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
