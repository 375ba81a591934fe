# sms_api/core/error_handlers.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

logger = logging.getLogger(__name__)


def _error_body(status_code: int, message) -> dict:
    return {
        "status": "fail" if 400 <= status_code < 500 else "error",
        "message": message,
    }


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors in the API envelope"""
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Can't find {request.url.path} on this server!"
    else:
        message = exc.detail
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {message} - Path: {request.url.path}")
    else:
        logger.warning(f"HTTP {exc.status_code}: {message} - Path: {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Collapse pydantic errors into one readable message"""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    message = f"Invalid input data. {'. '.join(messages)}"
    logger.warning(f"Validation error: {message} - Path: {request.url.path}")
    return JSONResponse(status_code=400, content=_error_body(400, message))


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.exception(f"Unexpected error: {str(exc)} - Path: {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=_error_body(500, "Something went very wrong!")
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
