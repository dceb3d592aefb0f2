"""Common response schemas."""

from typing import Dict, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    message: str
    timestamp: str
    path: Optional[str] = None


class HealthStatus(BaseModel):
    status: str
    timestamp: str
    service: str


class ReadinessStatus(BaseModel):
    status: str
    dependencies: Dict[str, bool]
