#!/usr/bin/env python3
"""
Error handlers for the web application.

Every failure surfaces to the caller as {"error": ...} with status 500 so the
upstream trigger retries; redelivered events are dropped by the dedup guard.
"""

import logging
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from notification.events import DispatchError

logger = logging.getLogger(__name__)


async def dispatch_exception_handler(
    request: Request,
    exc: DispatchError
) -> JSONResponse:
    """
    Handle dispatch errors (malformed events and the like).

    Args:
        request: The FastAPI request.
        exc: The dispatch error.

    Returns:
        JSONResponse with the error message.
    """
    logger.error(f"Dispatch error in {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": str(exc)})


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """Handle FastAPI HTTP exceptions with the same error shape."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Unparseable request bodies are reported like malformed events."""
    logger.error(f"Invalid request body in {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=500, content={"error": "Invalid request body"})


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Args:
        request: The FastAPI request.
        exc: The exception.

    Returns:
        JSONResponse with error details.
    """
    logger.exception(f"Unexpected error in {request.url.path}")
    return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__})
