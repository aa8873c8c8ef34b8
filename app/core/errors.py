"""
Custom exception hierarchy for the Hunter engine.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Three families:
  configuration  — the engine's own tables/curves are broken (fatal)
  data integrity — a stored record cannot be scored as-is
  input          — the caller sent something unusable; rejected before mutation
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from app.schemas.common import FieldError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class HunterException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# --- configuration ---------------------------------------------------------

class LevelCurveError(HunterException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "LEVEL_CURVE_INVALID"

    def __init__(self, level: int, threshold: int, reason: str):
        super().__init__(
            message=f"Level curve is invalid at level {level}: {reason}.",
            details={"level": level, "threshold": threshold},
        )


class BenchmarkConfigError(HunterException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "BENCHMARK_CONFIG_INVALID"

    def __init__(self, category_id: str, reason: str):
        super().__init__(
            message=f"Benchmark table for '{category_id}' is invalid: {reason}.",
            details={"category_id": category_id},
        )


class UnknownCategoryError(HunterException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "UNKNOWN_CATEGORY"

    def __init__(self, category_id: str):
        super().__init__(
            message=f"Unknown goal category: {category_id}.",
            details={"category_id": category_id},
        )


# --- data integrity --------------------------------------------------------

class QuestIntegrityError(HunterException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "QUEST_INTEGRITY_ERROR"

    def __init__(self, quest_id: Any, reason: str):
        super().__init__(
            message=f"Quest {quest_id} cannot be evaluated: {reason}.",
            details={"quest_id": str(quest_id), "reason": reason},
        )


# --- input validation ------------------------------------------------------

class InvalidDayError(HunterException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_DAY"

    def __init__(self, raw: str):
        super().__init__(
            message=f"Invalid day '{raw}'. Use YYYY-MM-DD.",
            details={"day": raw},
        )


class InvalidXpGainError(HunterException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_XP_GAIN"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, details=details)


class InvalidMetricValueError(HunterException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_METRIC_VALUE"

    def __init__(self, metric_id: str, value: Any):
        super().__init__(
            message=f"Metric '{metric_id}' must be a finite, non-negative number.",
            details={"metric_id": metric_id, "value": str(value)},
        )


class MissingCriticalMetricError(HunterException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "MISSING_CRITICAL_METRIC"

    def __init__(self, category_id: str, missing: list[str]):
        super().__init__(
            message=f"Critical metrics missing for '{category_id}': {', '.join(missing)}.",
            details={"category_id": category_id, "missing": missing},
        )


class MissingUserError(HunterException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "MISSING_USER"

    def __init__(self):
        super().__init__(message="X-User-Id header is required.")


# --- lookup / state --------------------------------------------------------

class QuestNotFoundError(HunterException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "QUEST_NOT_FOUND"

    def __init__(self, quest_id: int):
        super().__init__(
            message=f"Quest {quest_id} not found.",
            details={"quest_id": quest_id},
        )


class SessionNotFoundError(HunterException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Assessment session {session_id} not found.",
            details={"session_id": session_id},
        )


class SessionExpiredError(HunterException):
    http_status = status.HTTP_410_GONE
    code = "SESSION_EXPIRED"

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Assessment session {session_id} has expired.",
            details={"session_id": session_id},
        )


class AssessmentNotFoundError(HunterException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "ASSESSMENT_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(
            message="No assessment recorded yet.",
            details={"user_id": user_id},
        )


class ConcurrentEvaluationError(HunterException):
    http_status = status.HTTP_409_CONFLICT
    code = "CONCURRENT_EVALUATION"

    def __init__(self, user_id: str, day: date):
        super().__init__(
            message=f"Progress for user {user_id} changed while evaluating {day}. Retry.",
            details={"user_id": user_id, "day": str(day)},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def hunter_exception_handler(request: Request, exc: HunterException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append(FieldError(
            field=".".join(str(loc) for loc in error["loc"] if loc != "body"),
            message=error["msg"],
            type=error["type"],
        ).model_dump())
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
