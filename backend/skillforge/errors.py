"""Error taxonomy raised by the progression engine.

Every error carries a human-readable message and the HTTP status the API
boundary answers with; ``to_dict`` is the structured body sent to callers.
"""

from typing import Any, Dict, List, Optional


class ProgressionError(Exception):
    """Base class for errors surfaced to callers."""

    status_code: int = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, **self.details}


class NotFoundError(ProgressionError):
    status_code = 404

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found", resource=kind, id=identifier)


class UnauthorizedError(ProgressionError):
    status_code = 401


class ForbiddenError(ProgressionError):
    status_code = 403


class ValidationFailedError(ProgressionError):
    status_code = 400


class PrerequisiteCycleError(ValidationFailedError):
    def __init__(self, cycle: List[str]):
        super().__init__(
            "Prerequisites would form a cycle: " + " -> ".join(cycle),
            cycle=cycle,
        )


class LimitExceededError(ProgressionError):
    status_code = 400


class ExternalServiceError(ProgressionError):
    status_code = 502

    def __init__(
        self,
        message: str,
        raw: Optional[str] = None,
        questions: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message, raw=raw, questions=questions or [])


class ConcurrentUpdateError(Exception):
    """A compare-and-set write lost a race against another request."""
