"""
Common Pydantic schemas
"""

from typing import Any, Dict
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness response"""
    status: str
    service: str
    version: str
    environment: str


class ReadyResponse(BaseModel):
    """Readiness check response"""
    status: str
    database: str
    redis: str


class ErrorBody(BaseModel):
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable message, safe to show to customers")
    details: Dict[str, Any] | None = Field(None, description="Additional context")
    trace_id: str | None = Field(None, description="Trace ID for debugging")


class ErrorResponse(BaseModel):
    """Standard error envelope"""
    error: ErrorBody

    class Config:
        json_schema_extra = {
            "example": {
                "error": {
                    "code": "INSUFFICIENT_FUNDS",
                    "message": "Insufficient wallet balance",
                    "details": {},
                    "trace_id": "123e4567-e89b-12d3-a456-426614174000",
                }
            }
        }
