"""Book aggregate (CQRS) — a catalog entry and its count of available copies.

Copy Model:
    total_copies: Copies the library owns
    quantity:     Copies on the shelf, available for borrowing
    on_loan:      total_copies - quantity (one per open BORROW transaction)

``quantity`` is a counter maintained alongside the transaction ledger. Every
save carries the version that was read, so two borrowers racing for the last
copy cannot both succeed: the stale writer is rejected at commit.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String

from circulation.domain import circulation
from circulation.exceptions import ConflictError


class BookStatus(Enum):
    READY = "READY"
    UNAVAILABLE = "UNAVAILABLE"


def _value(status):
    return status.value if isinstance(status, BookStatus) else status


@circulation.aggregate
class Book:
    """A title in the collection and how many of its copies are on the shelf."""

    title = String(required=True, max_length=255)
    quantity = Integer(min_value=0, default=0)
    total_copies = Integer(min_value=0, default=0)
    status = String(choices=BookStatus, default=BookStatus.READY.value)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, title, copies=0, status=BookStatus.READY.value):
        """Register a new title with ``copies`` copies, all on the shelf."""
        if copies is None or copies < 0:
            raise ValidationError({"copies": ["Copies cannot be negative"]})

        now = datetime.now(UTC)
        return cls(
            title=title,
            quantity=copies,
            total_copies=copies,
            status=_value(status),
            created_at=now,
            updated_at=now,
        )

    @property
    def on_loan(self) -> int:
        return self.total_copies - self.quantity

    # -------------------------------------------------------------------
    # Circulation
    # -------------------------------------------------------------------
    def check_out(self):
        """Take one copy off the shelf for a new borrow."""
        if self.status != BookStatus.READY.value:
            raise ConflictError({"status": [f"Book with ID {self.id} is not ready for borrowing"]})
        if self.quantity <= 0:
            raise ConflictError({"quantity": ["Book is not available for borrowing"]})

        self.quantity -= 1
        self.updated_at = datetime.now(UTC)

    def check_in(self):
        """Put one returned copy back on the shelf."""
        self.quantity += 1
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Curation
    # -------------------------------------------------------------------
    def change_status(self, status):
        self.status = _value(status)
        self.updated_at = datetime.now(UTC)

    def adjust_copies(self, change):
        """Add (positive) or withdraw (negative) owned copies."""
        if change == 0:
            raise ValidationError({"change": ["Change must not be zero"]})

        new_quantity = self.quantity + change
        if new_quantity < 0:
            raise ValidationError(
                {"change": [f"Cannot withdraw {-change} copies: only {self.quantity} on the shelf"]}
            )

        self.quantity = new_quantity
        self.total_copies += change
        self.updated_at = datetime.now(UTC)
