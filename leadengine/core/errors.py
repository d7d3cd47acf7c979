"""
Typed errors raised by the entitlement engine.

Every error carries a machine-readable code and a structured payload so the
HTTP layer can render it without inspecting messages.
"""
from datetime import datetime
from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base exception for engine errors."""

    code = "engine_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        for key, value in self.details.items():
            if isinstance(value, datetime):
                value = value.isoformat()
            payload[key] = value
        return payload


class ValidationError(EngineError):
    """Malformed input. No state was changed."""

    code = "validation_error"


class NotFoundError(EngineError):
    """Missing plan, job, user or membership period."""

    code = "not_found"


class ForbiddenError(EngineError):
    """The caller does not own the resource it is acting on."""

    code = "forbidden"


class PlanMismatchError(EngineError):
    """Cross-category change or downgrade attempted on upgrade."""

    code = "plan_mismatch"


class LimitExceededError(EngineError):
    """
    Expected business denial: lead limit reached, or job not yet visible
    (access delay, radius, off-market).
    """

    code = "limit_exceeded"

    def __init__(
        self,
        message: str,
        reason: str,
        reset_date: Optional[datetime] = None,
        access_time: Optional[datetime] = None,
        **details: Any,
    ):
        super().__init__(
            message,
            reason=reason,
            reset_date=reset_date,
            access_time=access_time,
            **details,
        )
        self.reason = reason
        self.reset_date = reset_date
        self.access_time = access_time

    @property
    def is_lead_limit(self) -> bool:
        return self.reason == "lead_limit_reached"


class SagaCompensationError(EngineError):
    """A fan-out write failed and the saga was rolled back. Safe to retry."""

    code = "saga_compensated"

    def __init__(self, message: str = "Failed to place bid, please try again"):
        super().__init__(message)
