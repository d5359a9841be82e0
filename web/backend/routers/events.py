#!/usr/bin/env python3
"""
Change event endpoint - entry point for the database trigger.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from core.config_loader import AppConfig
from notification.events import ChangeEvent
from notification.service import NotificationDispatchService, enqueue_change_event
from ..dependencies import get_app_config, get_dispatch_service
from ..models.requests import ChangeEventRequest
from ..models.responses import DispatchResponse

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.post(
    "/events",
    response_model=DispatchResponse,
    response_model_exclude_none=True,
    openapi_extra={"requestBody": {"content": {"application/json": {
        "schema": ChangeEventRequest.model_json_schema()
    }}}},
)
def receive_change_event(
    body: Any = Body(None),
    config: AppConfig = Depends(get_app_config),
    service: NotificationDispatchService = Depends(get_dispatch_service)
) -> Dict[str, Any]:
    """
    Handle one change event from the practice database.

    Dispatches inline, or enqueues the raw event when async dispatch is enabled.
    Any failure answers 500 with {"error": ...}.
    """
    if config.notifications.use_async_queue:
        ChangeEvent.from_payload(body)  # reject malformed events before queueing
        job_id = enqueue_change_event(body, config.notifications)
        return {"status": "ok", "reason": "queued", "jobId": job_id}

    return service.handle(body).to_dict()
