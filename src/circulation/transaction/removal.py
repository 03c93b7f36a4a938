"""Removal — administrative deletion of a transaction.

Deleting an open BORROW transaction also puts its copy back on the shelf, so
the book's quantity keeps matching the open transactions in the ledger.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from circulation.book.book import Book
from circulation.domain import circulation
from circulation.transaction.transaction import Transaction

logger = structlog.get_logger(__name__)


@circulation.command(part_of="Transaction")
class RemoveTransaction:
    transaction_id = Identifier(required=True)
    actor = Identifier()


@circulation.command_handler(part_of=Transaction)
class RemovalHandler:
    @handle(RemoveTransaction)
    def remove_transaction(self, command):
        inventory = current_domain.repository_for(Book)
        ledger = current_domain.repository_for(Transaction)

        transaction = ledger.get(command.transaction_id)

        restored = transaction.is_open
        if restored:
            book = inventory.get(transaction.book_id)
            book.check_in()
            inventory.save(book)

        ledger.delete(transaction)

        logger.info(
            "Transaction removed",
            transaction_id=transaction.id,
            book_id=transaction.book_id,
            copy_restored=restored,
            actor=command.actor,
        )
        return transaction
