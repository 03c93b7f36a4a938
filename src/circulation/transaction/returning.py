"""Returning — closing a transaction puts its copy back on the shelf.

Also handles plain field edits on a transaction. Only the first move from
BORROW to RETURN restores a copy; repeating the return is a no-op for stock.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from circulation.book.book import Book
from circulation.domain import circulation
from circulation.transaction.transaction import (
    CopyEffect,
    Transaction,
    TransactionStatus,
    check_return_date,
    transition,
)

logger = structlog.get_logger(__name__)


@circulation.command(part_of="Transaction")
class UpdateTransaction:
    """Change a transaction's status, return date or user.

    Fields left empty are not changed.
    """

    transaction_id = Identifier(required=True)
    status = String(choices=TransactionStatus)
    return_date = DateTime()
    user_id = Identifier()
    actor = Identifier()


@circulation.command_handler(part_of=Transaction)
class ReturningHandler:
    @handle(UpdateTransaction)
    def update_transaction(self, command):
        if command.status is not None:
            check_return_date(command.status, command.return_date)
        if command.user_id is not None and not command.user_id:
            raise ValidationError({"user_id": ["User is required"]})

        inventory = current_domain.repository_for(Book)
        ledger = current_domain.repository_for(Transaction)

        transaction = ledger.get(command.transaction_id)
        current = transaction.status

        target = command.status or current
        return_date = command.return_date if command.return_date is not None else transaction.return_date
        effect = transition(current, target, return_date)

        book = None
        if effect == CopyEffect.RESTORE:
            book = inventory.get(transaction.book_id)
            book.check_in()
            inventory.save(book)

        patch = {
            field: value
            for field, value in (
                ("status", command.status),
                ("return_date", command.return_date),
                ("user_id", command.user_id),
            )
            if value is not None
        }
        transaction = ledger.update(transaction, patch, expected_status=current)

        if book is not None:
            logger.info(
                "Book returned",
                transaction_id=transaction.id,
                book_id=book.id,
                user_id=transaction.user_id,
                actor=command.actor,
                remaining=book.quantity,
            )
        else:
            logger.info(
                "Transaction updated",
                transaction_id=transaction.id,
                fields=sorted(patch),
                actor=command.actor,
            )
        return transaction
