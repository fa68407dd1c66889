# dhakacart/api/errors.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dhakacart.domain.exceptions import DomainError, TransactionFailure
from dhakacart.utils.settings import ENV
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)

GENERIC_MESSAGE = "Internal server error"


def _public_message(message: str) -> str:
    # w produkcji nie pokazujemy klientowi szczegolow bledow wewnetrznych
    return GENERIC_MESSAGE if ENV == "production" else message


async def domain_error_handler(request: Request, exc: DomainError):
    message = exc.message
    if isinstance(exc, TransactionFailure):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.__cause__!r})")
        message = _public_message(message)

    return JSONResponse(status_code=exc.status_code, content={"error": message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.append(f"{location}: {msg}" if location else msg)

    return JSONResponse(status_code=400, content={"errors": errors})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": _public_message(str(exc) or GENERIC_MESSAGE)})


def register_error_handlers(app: FastAPI) -> FastAPI:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    return app
