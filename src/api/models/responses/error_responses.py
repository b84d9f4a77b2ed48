"""
Error response models.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error response model."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "LockedPeriodError",
                "message": "Tax period 7f0c... is locked; calculate rejected",
                "details": {"code": "BIZ_2011", "operation": "calculate"},
                "timestamp": "2025-02-15T10:30:00",
            }
        }
    )

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None, description="Additional error details"
    )
    timestamp: datetime = Field(default_factory=datetime.now)
