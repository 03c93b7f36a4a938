"""Errors raised by the Circulation context and their caller-visible outcomes.

Input problems are protean ``ValidationError`` and unknown identifiers are
protean ``ObjectNotFoundError``, as everywhere else in the domain layer.
``ConflictError`` covers the remaining business-rule failures: a book that is
not ready, no copies left, a returned transaction being reopened, or a write
that lost a race. Anything else is an unexpected failure and is propagated
unchanged.
"""

from enum import Enum

from protean.exceptions import (
    ExpectedVersionError,
    ObjectNotFoundError,
    ProteanExceptionWithMessage,
    ValidationError,
)


class ConflictError(ProteanExceptionWithMessage):
    """The request is valid but conflicts with current state.

    The caller may retry with fresh state; nothing in this context retries.
    """

    def __reduce__(self):
        return (ConflictError, (self.messages,))


class Outcome(Enum):
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    UNEXPECTED = "unexpected"


def outcome_for(exc: BaseException) -> Outcome:
    """Classify an exception into a caller-visible outcome."""
    if isinstance(exc, ObjectNotFoundError):
        return Outcome.NOT_FOUND
    if isinstance(exc, ValidationError):
        return Outcome.VALIDATION
    if isinstance(exc, (ConflictError, ExpectedVersionError)):
        return Outcome.CONFLICT
    return Outcome.UNEXPECTED


def messages_of(exc: BaseException) -> dict:
    """Field-keyed messages for any classified error, for logs and callers."""
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        return messages
    if messages:
        return {"_entity": list(messages) if isinstance(messages, list) else [str(messages)]}
    return {"_entity": [str(exc)]}
