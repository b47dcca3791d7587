"""
Error taxonomy and the result value returned by every endpoint.

Internal helpers raise ``SmartHandlesError`` subclasses; endpoints catch once at
their boundary and hand the outcome back to callers as a ``Result``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Kinds of failure an endpoint can report."""
    NOT_FOUND = "not_found"
    MISSING_DATUM = "missing_datum"
    INVALID_DATUM = "invalid_datum"
    KIND_MISMATCH = "kind_mismatch"
    UNAUTHORIZED = "unauthorized"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    CONFIG_MISMATCH = "config_mismatch"
    AGGREGATE = "aggregate"
    BUILD_FAILURE = "build_failure"


class SmartHandlesError(Exception):
    """Base class for all protocol-level failures."""

    kind: ErrorKind = ErrorKind.BUILD_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SmartHandlesError):
    """A referenced UTxO could not be fetched."""
    kind = ErrorKind.NOT_FOUND


class MissingDatumError(SmartHandlesError):
    """The UTxO carries no datum."""
    kind = ErrorKind.MISSING_DATUM


class InvalidDatumError(SmartHandlesError):
    """The datum is present but cannot be decoded."""
    kind = ErrorKind.INVALID_DATUM


class KindMismatchError(SmartHandlesError):
    """The datum decoded to a different variant than expected."""
    kind = ErrorKind.KIND_MISMATCH


class UnauthorizedError(SmartHandlesError):
    """The signer is not allowed to perform the action."""
    kind = ErrorKind.UNAUTHORIZED


class InsufficientFundsError(SmartHandlesError):
    """Not enough value to cover fees, margins or a selection."""
    kind = ErrorKind.INSUFFICIENT_FUNDS


class ConfigMismatchError(SmartHandlesError):
    """A per-UTxO config does not target the UTxO being processed."""
    kind = ErrorKind.CONFIG_MISMATCH


class AggregateError(SmartHandlesError):
    """
    Collection of per-item failures from a batch operation.

    Attributes:
        label: Short description of the failed stage
        messages: Individual failure messages, in item order
    """
    kind = ErrorKind.AGGREGATE

    def __init__(self, label: str, messages: List[str]):
        super().__init__(f"{label}: {', '.join(messages)}")
        self.label = label
        self.messages = list(messages)


class BuildFailure(SmartHandlesError):
    """Opaque failure surfaced by the ledger client while building."""
    kind = ErrorKind.BUILD_FAILURE


@dataclass
class Result(Generic[T]):
    """
    Outcome of a fallible operation.

    Exactly one of ``value`` and ``error`` is meaningful: ``error`` is ``None``
    on success.
    """
    value: Optional[T] = None
    error: Optional[SmartHandlesError] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: SmartHandlesError) -> "Result[T]":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        """Kind of the error, or ``None`` on success."""
        return self.error.kind if self.error else None

    def unwrap(self) -> T:
        """Return the value, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value


def error_to_string(error: BaseException) -> str:
    """Render any exception as a single human-readable message."""
    if isinstance(error, SmartHandlesError):
        return error.message
    text = str(error)
    return text if text else error.__class__.__name__


def failure_result(error: Exception, event: str, **context) -> Result:
    """
    Convert an exception caught at an endpoint boundary into a failed result.

    Protocol errors are passed through unchanged; anything else came from a
    collaborator and is wrapped in ``BuildFailure``.
    """
    if isinstance(error, SmartHandlesError):
        logger.warning(event, kind=error.kind.value, error=error.message, **context)
        return Result.fail(error)

    logger.error(event, kind=ErrorKind.BUILD_FAILURE.value, error=str(error), **context)
    return Result.fail(BuildFailure(error_to_string(error)))
