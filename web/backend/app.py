#!/usr/bin/env python3
"""
Practice Notification Dispatch - FastAPI Application

Receives change events from the practice database and turns them into
per-user notifications.

Usage:
    python -m web.backend.app

Then open:
    - http://localhost:8080/docs - API Documentation (Swagger UI)
"""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from core.config_loader import get_config
from notification.events import DispatchError
from .exceptions import (
    dispatch_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    general_exception_handler
)
from .models.responses import HealthResponse
from .routers import events_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Practice Notification Dispatch",
    description="Turns practice database change events into user notifications",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Register exception handlers
app.add_exception_handler(DispatchError, dispatch_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(events_router)


@app.get("/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "notification-dispatch"}


def main():
    """Run the web server."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    config = get_config()
    logger.info(f"Starting notification dispatch server on {config.web.host}:{config.web.port}")

    uvicorn.run(
        "web.backend.app:app",
        host=config.web.host,
        port=config.web.port,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
