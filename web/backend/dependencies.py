#!/usr/bin/env python3
"""
FastAPI dependencies for dependency injection.
"""

from functools import lru_cache

from core.config_loader import AppConfig, get_config
from database.database import get_session_factory
from notification.service import NotificationDispatchService


def get_app_config() -> AppConfig:
    return get_config()


@lru_cache()
def get_dispatch_service() -> NotificationDispatchService:
    """
    FastAPI dependency returning the process-wide dispatch service.

    The service is stateless, so one instance serves every request.

    Usage:
        @router.post("/events")
        def receive(service: NotificationDispatchService = Depends(get_dispatch_service)):
            ...
    """
    return NotificationDispatchService.from_config(get_config(), get_session_factory())
