"""
Tagged results for the candidate pipeline.

Service operations return a Result instead of raising, so every caller has to
look at the error kind before using the value:

    result = review.approve(candidate_id, actor="admin-1")
    if result.is_ok:
        campsite_id = result.value.campsite_id
    elif result.error.kind is ErrorKind.CONFLICT:
        ...
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.UPSTREAM_FAILURE, ErrorKind.PERSISTENCE_ERROR)


# HTTP status per kind, used by the review blueprint
HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UPSTREAM_FAILURE: 502,
    ErrorKind.PERSISTENCE_ERROR: 503,
}


@dataclass(frozen=True)
class ServiceError:
    kind: ErrorKind
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.context:
            data["context"] = dict(self.context)
        return data


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value (ok) or a ServiceError (err), never both."""
    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @classmethod
    def ok(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def err(cls, kind: ErrorKind, message: str, **context) -> "Result[T]":
        return cls(error=ServiceError(kind=kind, message=message, context=context))

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def is_err(self) -> bool:
        return self.error is not None

    def unwrap(self) -> T:
        """Return the value, or raise if this is an error result."""
        if self.error is not None:
            raise ResultError(self.error)
        return self.value


class ResultError(RuntimeError):
    """Raised by Result.unwrap() on an error result (CLI and tests only)."""

    def __init__(self, error: ServiceError):
        super().__init__(f"{error.kind.value}: {error.message}")
        self.error = error
