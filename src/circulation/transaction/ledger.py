"""Transaction ledger — repository for Transaction aggregates."""

from protean.exceptions import ExpectedVersionError

from circulation.domain import circulation
from circulation.exceptions import ConflictError
from circulation.transaction.transaction import Transaction, TransactionStatus


def _value(status):
    return status.value if isinstance(status, TransactionStatus) else status


@circulation.repository(part_of=Transaction)
class TransactionLedger:
    """Borrow/return transactions by id, plus the queries the workflow needs.

    ``get`` raises ``ObjectNotFoundError`` for an unknown id. Writes carry the
    version that was read; a stale one is reported as a conflict.
    """

    def create(self, transaction):
        return self.add(transaction)

    def exists_by_id(self, transaction_id):
        return self.get_or_none(transaction_id) is not None

    def update(self, transaction, patch, expected_status=None):
        """Apply ``patch`` to a transaction still in ``expected_status``."""
        if expected_status is not None and transaction.status != _value(expected_status):
            raise ConflictError(
                {"status": [f"Transaction with ID {transaction.id} is no longer {_value(expected_status)}"]}
            )

        transaction.apply(patch)
        try:
            return self.add(transaction)
        except ExpectedVersionError as exc:
            raise ConflictError(
                {"transaction_id": [f"Transaction with ID {transaction.id} was modified concurrently"]}
            ) from exc

    def delete(self, transaction):
        self._dao.delete(transaction)
        return transaction

    def count_open(self, book_id):
        return self._dao.query.filter(book_id=str(book_id), status=TransactionStatus.BORROW.value).count()

    def list(self, user_id=None, book_id=None, status=None):
        """Transactions in the order they were opened; empty when nothing matches."""
        query = self._dao.query
        if user_id is not None:
            query = query.filter(user_id=str(user_id))
        if book_id is not None:
            query = query.filter(book_id=str(book_id))
        if status is not None:
            query = query.filter(status=_value(status))
        return query.order_by(["timestamp", "id"]).limit(None).all().items
