#!/usr/bin/env python3
"""
Response models for API endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class DispatchResponse(BaseModel):
    """Outcome of handling one change event."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "ok",
                "recipientCount": 2,
                "method": "direct"
            }
        }
    )

    status: str = Field(..., description="ok or skipped")
    reason: Optional[str] = Field(None, description="duplicate, suppressed, no_recipients or queued")
    recipientCount: Optional[int] = None
    method: Optional[str] = Field(None, description="provider or direct")
    jobId: Optional[str] = Field(None, description="Queue job id when dispatch is asynchronous")


class HealthResponse(BaseModel):
    status: str
    service: str
