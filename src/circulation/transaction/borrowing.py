"""Borrowing — opening a transaction takes one copy off the shelf."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from circulation.book.book import Book
from circulation.domain import circulation
from circulation.transaction.transaction import CopyEffect, Transaction, TransactionStatus, transition

logger = structlog.get_logger(__name__)


@circulation.command(part_of="Transaction")
class CreateTransaction:
    """Open a transaction for one copy of a book.

    ``user_id`` defaults to the acting user when omitted.
    """

    book_id = Identifier(required=True)
    user_id = Identifier()
    status = String(choices=TransactionStatus, default=TransactionStatus.BORROW.value)
    actor = Identifier()


@circulation.command_handler(part_of=Transaction)
class BorrowingHandler:
    @handle(CreateTransaction)
    def create_transaction(self, command):
        effect = transition(None, command.status)

        user_id = command.user_id or command.actor
        if not user_id:
            raise ValidationError({"user_id": ["User is required"]})

        inventory = current_domain.repository_for(Book)
        ledger = current_domain.repository_for(Transaction)

        book = inventory.get(command.book_id)
        if effect == CopyEffect.TAKE:
            book.check_out()
            inventory.save(book)

        transaction = ledger.create(Transaction.open(book_id=book.id, user_id=user_id))

        logger.info(
            "Book borrowed",
            transaction_id=transaction.id,
            book_id=book.id,
            user_id=transaction.user_id,
            actor=command.actor,
            remaining=book.quantity,
        )
        return transaction
