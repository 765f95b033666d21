"""Standardized errors for batch dispatch.

Provides error codes and structured error payloads for loader faults.
Uses Pydantic for validation and serialization of the error payload.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class ErrorCode(StrEnum):
    """Standard error codes for loader failures.

    Used to tell a data-level failure apart from a contract violation
    by the batch function.
    """
    BATCH_FAILED = "BATCH_FAILED"
    SHAPE_MISMATCH = "SHAPE_MISMATCH"
    INVALID_RESULT = "INVALID_RESULT"
    KEY_FAILED = "KEY_FAILED"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"


# Codes that signal the batch function broke its contract
_CONTRACT_CODES: frozenset[ErrorCode] = frozenset({
    ErrorCode.SHAPE_MISMATCH,
    ErrorCode.INVALID_RESULT,
})


class DispatchError(BaseModel):
    """Structured error payload for a failed dispatch.

    Attributes:
        loader: Name of the loader that dispatched the batch
        message: Human-readable error message
        code: Machine-readable error code
        expected: Number of keys in the batch (shape faults only)
        received: Number of results returned (shape faults only)
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
        json_schema_extra={
            "title": "Dispatch Error",
            "description": "Structured error from batch dispatch",
            "examples": [{
                "loader": "users",
                "message": "Batch function returned 1 results for 2 keys",
                "code": "SHAPE_MISMATCH",
                "expected": 2,
                "received": 1,
            }],
        },
    )

    loader: Annotated[str, Field(min_length=1, description="Loader that produced the error")]
    message: Annotated[str, Field(min_length=1, description="Human-readable error message")]
    code: ErrorCode = Field(default=ErrorCode.UNKNOWN, description="Machine-readable error classification")
    expected: Annotated[int | None, Field(ge=0)] = None
    received: Annotated[int | None, Field(ge=0)] = None

    @field_validator("message", mode="before")
    @classmethod
    def _ensure_message(cls, v: str | Exception) -> str:
        """Accept Exception objects and extract message."""
        return str(v) if isinstance(v, Exception) else v

    @computed_field
    @property
    def is_contract_violation(self) -> bool:
        """Whether the batch function broke the loader contract."""
        return self.code in _CONTRACT_CODES

    @classmethod
    def create(
        cls,
        loader: str,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        *,
        expected: int | None = None,
        received: int | None = None,
    ) -> Self:
        """Factory method for construction."""
        return cls(loader=loader, message=message, code=code, expected=expected, received=received)

    def render(self) -> str:
        """Format error for logs and exception messages."""
        shape = f" (expected {self.expected}, received {self.received})" if self.expected is not None else ""
        return f"[{self.code}] {self.loader}: {self.message}{shape}"

    __str__ = render


class LoaderException(Exception):
    """Exception wrapping a DispatchError for raising."""

    __slots__ = ("error",)

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, error: DispatchError) -> None:
        self.error = error
        super().__init__(error.render())

    @classmethod
    def create(cls, loader: str, message: str, **kw: int | None) -> Self:
        """Create exception with this class's error code."""
        return cls(DispatchError.create(loader, message, cls.code, **kw))


class BatchContractError(LoaderException):
    """The batch function returned something other than an awaitable sequence."""

    code = ErrorCode.INVALID_RESULT


class BatchShapeError(BatchContractError):
    """The batch function returned a different number of results than keys."""

    code = ErrorCode.SHAPE_MISMATCH

    @classmethod
    def mismatch(cls, loader: str, expected: int, received: int) -> Self:
        return cls.create(
            loader,
            f"Batch function must return one result per key; got {received} results for {expected} keys",
            expected=expected,
            received=received,
        )


class KeyLoadError(LoaderException):
    """Per-key failure whose error payload was not itself an exception."""

    __slots__ = ("payload",)

    code = ErrorCode.KEY_FAILED

    def __init__(self, error: DispatchError, payload: object = None) -> None:
        super().__init__(error)
        self.payload = payload

    @classmethod
    def wrap(cls, loader: str, payload: object) -> Self:
        return cls(DispatchError.create(loader, str(payload) or repr(payload), cls.code), payload)
