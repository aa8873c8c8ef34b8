"""
Error envelope and health payloads shared by every router.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class FieldError(BaseModel):
    """One request-validation failure, flattened from pydantic's `loc`."""
    field: str = Field(examples=["target_value"])
    message: str
    type: str


class ErrorResponse(BaseModel):
    """`{code, message, details}` returned for all 4xx/5xx responses."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "QUEST_INTEGRITY_ERROR",
                "message": "Quest 12 cannot be evaluated: target must be positive.",
                "details": {"quest_id": "12", "reason": "target must be positive"},
            }
        }
    )

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str
    db: str
    env: Optional[str] = None
