#!/usr/bin/env python3
"""
Request models for API endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any


class ChangeEventRequest(BaseModel):
    """
    Change event as sent by the database trigger.

    Only used for API documentation; the handler validates the raw body
    itself so that the trigger's alternative field spellings are accepted.
    """
    model_config = ConfigDict(
        extra='allow',
        json_schema_extra={
            "example": {
                "table": "tasks",
                "eventType": "INSERT",
                "record": {"id": "t1", "title": "File reply", "assigned_to": "U1"},
                "oldRecord": None
            }
        }
    )

    table: str = Field(..., description="Entity type (source table name)")
    eventType: str = Field(..., description="INSERT, UPDATE or DELETE")
    record: Dict[str, Any] = Field(default_factory=dict, description="Row after the change")
    oldRecord: Optional[Dict[str, Any]] = Field(None, description="Row before the change")
