"""Transaction aggregate (CQRS) — one borrow of one book by one user.

A transaction is opened in the BORROW state and later closed by moving it to
RETURN, which requires a return date. All legality checks for status changes
live in ``transition``; the aggregate and the handlers only act on its result.

    (none) --Borrow--> BORROW --ReturnOf--> RETURN --ReturnOf--> RETURN (no-op)

RETURN never goes back to BORROW: a returned copy is borrowed again through a
new transaction.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String

from circulation.domain import circulation
from circulation.exceptions import ConflictError


class TransactionStatus(Enum):
    BORROW = "BORROW"
    RETURN = "RETURN"


class CopyEffect(Enum):
    """How a status change moves the book's available quantity."""

    TAKE = -1
    RESTORE = 1
    NONE = 0


# ---------------------------------------------------------------------------
# Named transitions
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Borrow:
    book_id: str
    user_id: str | None = None


@dataclass(frozen=True)
class ReturnOf:
    borrow_id: str
    return_date: datetime


def _status(value):
    try:
        return TransactionStatus(value.value if isinstance(value, TransactionStatus) else value)
    except ValueError as exc:
        raise ValidationError({"status": [f"Unknown status {value!r}"]}) from exc


def check_return_date(target, return_date) -> None:
    """A return date is required for RETURN and forbidden for BORROW."""
    target = _status(target)
    if target == TransactionStatus.BORROW and return_date is not None:
        raise ValidationError({"return_date": ["When status is BORROW, return_date must not be provided."]})
    if target == TransactionStatus.RETURN and return_date is None:
        raise ValidationError({"return_date": ["When status is RETURN, return_date is required."]})


def transition(current, target, return_date=None) -> CopyEffect:
    """Decide whether ``current -> target`` is legal and what it does to stock.

    ``current`` is ``None`` when the transaction is being created. Raises
    ``ValidationError`` for inconsistent input and ``ConflictError`` when the
    move is illegal from the current state.
    """
    target = _status(target)

    if current is None:
        if target != TransactionStatus.BORROW:
            raise ValidationError({"status": ["New transactions must have the status 'BORROW'."]})
        check_return_date(target, return_date)
        return CopyEffect.TAKE

    current = _status(current)
    if current == TransactionStatus.RETURN and target == TransactionStatus.BORROW:
        raise ConflictError({"status": ["A returned transaction cannot be reopened"]})

    check_return_date(target, return_date)

    if current == TransactionStatus.BORROW and target == TransactionStatus.RETURN:
        return CopyEffect.RESTORE
    return CopyEffect.NONE


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@circulation.aggregate
class Transaction:
    """A ledger record of one borrow, open until the copy comes back."""

    user_id = Identifier(required=True)
    book_id = Identifier(required=True)
    status = String(choices=TransactionStatus, default=TransactionStatus.BORROW.value)
    timestamp = DateTime()
    return_date = DateTime()

    @invariant.post
    def return_date_only_when_returned(self):
        if self.status == TransactionStatus.RETURN.value and self.return_date is None:
            raise ValidationError({"return_date": ["A returned transaction needs a return date"]})
        if self.status == TransactionStatus.BORROW.value and self.return_date is not None:
            raise ValidationError({"return_date": ["An open borrow cannot have a return date"]})

    @classmethod
    def open(cls, book_id, user_id):
        """Create a BORROW transaction stamped with the current time."""
        if not user_id:
            raise ValidationError({"user_id": ["User is required"]})
        return cls(
            user_id=str(user_id),
            book_id=str(book_id),
            status=TransactionStatus.BORROW.value,
            timestamp=datetime.now(UTC),
        )

    @property
    def is_open(self) -> bool:
        return self.status == TransactionStatus.BORROW.value

    def apply(self, patch):
        """Apply already-validated field changes as one change."""
        with atomic_change(self):
            for field, value in patch.items():
                if isinstance(value, Enum):
                    value = value.value
                setattr(self, field, value)
