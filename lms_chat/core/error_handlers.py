from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from .exceptions import ChatError, InternalError

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Internal Server Error"


async def chat_exception_handler(request: Request, exc: ChatError):
    """Handle domain exceptions raised by the chat services"""
    if isinstance(exc, InternalError) or exc.status_code >= 500:
        logger.error(f"Internal error: {exc.message} - Path: {request.url.path}")
        return JSONResponse(status_code=500, content={"message": GENERIC_ERROR})

    logger.info(f"{exc.__class__.__name__}: {exc.message} - Path: {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Routing errors (unknown path, wrong method) in the message envelope"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Collapse pydantic request errors into the message envelope"""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=422, content={"message": message})


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error - Path: {request.url.path}")
    return JSONResponse(status_code=500, content={"message": GENERIC_ERROR})


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.exception(f"Unexpected error: {exc} - Path: {request.url.path}")
    return JSONResponse(status_code=500, content={"message": GENERIC_ERROR})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(ChatError, chat_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
