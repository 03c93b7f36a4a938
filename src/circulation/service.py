"""Circulation service — the entry point for the borrow/return workflow.

Callers pass the identity of the acting user (``actor``) with every mutation;
authentication happens before this layer. Each mutation is processed as one
command in its own unit of work and either completes fully or leaves no trace.
Domain errors are logged and re-raised; anything else propagates untouched.
"""

from dataclasses import dataclass
from enum import Enum

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain
from protean.utils.reflection import declared_fields

from circulation.book.book import Book, BookStatus
from circulation.book.curation import AdjustCopies, ChangeBookStatus, RegisterBook
from circulation.domain import circulation as default_domain
from circulation.exceptions import ConflictError, messages_of, outcome_for
from circulation.transaction.borrowing import CreateTransaction
from circulation.transaction.removal import RemoveTransaction
from circulation.transaction.returning import UpdateTransaction
from circulation.transaction.transaction import Borrow, ReturnOf, Transaction, TransactionStatus
from circulation.utils.logging import bind_actor, clear_actor

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class InventoryAudit:
    """Book quantity checked against the ledger's open transactions."""

    book_id: str
    quantity: int
    total_copies: int
    on_loan: int
    open_borrows: int

    @property
    def consistent(self) -> bool:
        return self.quantity >= 0 and self.on_loan == self.open_borrows


class CirculationService:
    def __init__(self, domain=None):
        self.domain = domain or default_domain

    # -------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------
    def create(self, book_id, user_id=None, status=TransactionStatus.BORROW, actor=None):
        return self._dispatch(
            "create",
            actor,
            CreateTransaction,
            book_id=book_id,
            user_id=user_id,
            status=status,
        )

    def update(self, transaction_id, status=None, return_date=None, user_id=None, actor=None):
        return self._dispatch(
            "update",
            actor,
            UpdateTransaction,
            transaction_id=transaction_id,
            status=status,
            return_date=return_date,
            user_id=user_id,
        )

    def remove(self, transaction_id, actor=None):
        return self._dispatch("remove", actor, RemoveTransaction, transaction_id=transaction_id)

    def borrow(self, request: Borrow, actor=None):
        return self.create(request.book_id, user_id=request.user_id, actor=actor)

    def return_book(self, request: ReturnOf, actor=None):
        return self.update(
            request.borrow_id,
            status=TransactionStatus.RETURN,
            return_date=request.return_date,
            actor=actor,
        )

    # -------------------------------------------------------------------
    # Books
    # -------------------------------------------------------------------
    def register_book(self, title, copies=0, status=BookStatus.READY, actor=None):
        return self._dispatch("register_book", actor, RegisterBook, title=title, copies=copies, status=status)

    def change_book_status(self, book_id, status, actor=None):
        return self._dispatch("change_book_status", actor, ChangeBookStatus, book_id=book_id, status=status)

    def adjust_copies(self, book_id, change, reason, actor=None):
        return self._dispatch(
            "adjust_copies",
            actor,
            AdjustCopies,
            book_id=book_id,
            change=change,
            reason=reason,
        )

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get(self, transaction_id):
        with self.domain.domain_context():
            return current_domain.repository_for(Transaction).get(transaction_id)

    def get_book(self, book_id):
        with self.domain.domain_context():
            return current_domain.repository_for(Book).get(book_id)

    def list(self, user_id=None, book_id=None, status=None):
        with self.domain.domain_context():
            return current_domain.repository_for(Transaction).list(user_id=user_id, book_id=book_id, status=status)

    def list_books(self, status=None):
        with self.domain.domain_context():
            return current_domain.repository_for(Book).list(status=status)

    def audit(self, book_id) -> InventoryAudit:
        with self.domain.domain_context():
            book = current_domain.repository_for(Book).get(book_id)
            return InventoryAudit(
                book_id=book.id,
                quantity=book.quantity,
                total_copies=book.total_copies,
                on_loan=book.on_loan,
                open_borrows=current_domain.repository_for(Transaction).count_open(book.id),
            )

    def _dispatch(self, operation, actor, command_cls, **fields):
        fields = {name: value.value if isinstance(value, Enum) else value for name, value in fields.items()}
        if "actor" in declared_fields(command_cls):
            fields["actor"] = actor

        bind_actor(actor)
        try:
            with self.domain.domain_context():
                command = command_cls(**{name: value for name, value in fields.items() if value is not None})
                return current_domain.process(command, asynchronous=False)
        except ExpectedVersionError as exc:
            conflict = ConflictError({"_entity": ["Concurrent modification detected, retry with fresh state"]})
            self._rejected(operation, conflict, actor)
            raise conflict from exc
        except (ValidationError, ObjectNotFoundError, ConflictError) as exc:
            self._rejected(operation, exc, actor)
            raise
        finally:
            clear_actor()

    def _rejected(self, operation, exc, actor):
        logger.warning(
            "Circulation request rejected",
            operation=operation,
            outcome=outcome_for(exc).value,
            errors=messages_of(exc),
            actor=actor,
        )
