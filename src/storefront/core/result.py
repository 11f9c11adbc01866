"""
Service results.

Every orchestration service returns either a Success carrying its payload or a
Failure carrying a message, a failure kind and any field-level problems.
Business-rule violations are values, not exceptions; routes turn the kind into
an HTTP status.
"""

import functools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from storefront.core.exceptions import (
    BaseAPIException,
    BusinessLogicError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from storefront.schemas.common_schemas import ErrorDetail

T = TypeVar("T")

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def error_code(self) -> str:
        return self.name


_STATUS_CODES = {
    FailureKind.NOT_FOUND: 404,
    FailureKind.VALIDATION: 400,
    FailureKind.BUSINESS_RULE: 422,
    FailureKind.CONFLICT: 409,
    FailureKind.UNAUTHORIZED: 401,
}

# Exceptions a service converts into a Failure. Anything else (DatabaseError
# included) propagates to the Flask error handlers.
DOMAIN_ERRORS = (ValidationError, NotFoundError, BusinessLogicError, ConflictError, UnauthorizedError)


@dataclass
class Success(Generic[T]):
    data: T
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return True


@dataclass
class Failure:
    message: str
    kind: FailureKind = FailureKind.BUSINESS_RULE
    errors: List[ErrorDetail] = field(default_factory=list)
    data: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def not_found(cls, resource: str, resource_id: Any = None) -> "Failure":
        return cls.from_exception(NotFoundError(resource, None if resource_id is None else str(resource_id)))

    @classmethod
    def business_rule(
        cls, message: str, errors: Optional[List[ErrorDetail]] = None, **data: Any
    ) -> "Failure":
        return cls(message, FailureKind.BUSINESS_RULE, errors or [], data or None)

    @classmethod
    def from_exception(cls, exc: BaseAPIException) -> "Failure":
        if isinstance(exc, NotFoundError):
            return cls(exc.message, FailureKind.NOT_FOUND)
        if isinstance(exc, ValidationError):
            errors = [ErrorDetail(**fe) for fe in exc.field_errors]
            return cls(exc.message, FailureKind.VALIDATION, errors)
        if isinstance(exc, ConflictError):
            errors = []
            if exc.conflict_field:
                errors.append(ErrorDetail(field=exc.conflict_field, message=exc.message, code="CONFLICT"))
            return cls(exc.message, FailureKind.CONFLICT, errors)
        if isinstance(exc, UnauthorizedError):
            return cls(exc.message, FailureKind.UNAUTHORIZED)
        if isinstance(exc, BusinessLogicError):
            errors = [ErrorDetail(message=exc.message, code=exc.rule.upper())] if exc.rule else []
            return cls(exc.message, FailureKind.BUSINESS_RULE, errors)
        return cls(exc.message, FailureKind.BUSINESS_RULE)

    def to_error(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {
            "code": self.kind.error_code,
            "message": self.message,
            "details": [e.model_dump() for e in self.errors],
        }
        if self.data:
            error["data"] = self.data
        return error


Result = Union[Success[T], Failure]


def returns_result(func):
    """
    Convert domain exceptions raised inside a service method into a Failure.

    The session is rolled back first so a half-applied change never leaks
    into a later commit.
    """
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except DOMAIN_ERRORS as e:
            session = getattr(self, "session", None)
            if session is not None:
                session.rollback()
            logger.warning(f"{type(self).__name__}.{func.__name__} failed: {e.message}")
            return Failure.from_exception(e)
    return wrapper
