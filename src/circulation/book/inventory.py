"""Inventory store — repository for Book aggregates."""

from protean.exceptions import ExpectedVersionError

from circulation.book.book import Book, BookStatus
from circulation.domain import circulation
from circulation.exceptions import ConflictError


@circulation.repository(part_of=Book)
class InventoryStore:
    """Books by id, with version-checked saves.

    ``get`` and ``add`` come from the base repository. ``save`` is ``add``
    with a stale version reported as a conflict: the book was changed by
    someone else since it was read.
    """

    def save(self, book):
        try:
            return self.add(book)
        except ExpectedVersionError as exc:
            raise ConflictError(
                {"book_id": [f"Book {book.id} was modified concurrently, retry with fresh state"]}
            ) from exc

    def list(self, status=None):
        """All books ordered by title, optionally only those in ``status``."""
        query = self._dao.query
        if status is not None:
            status = status.value if isinstance(status, BookStatus) else status
            query = query.filter(status=status)
        return query.order_by("title").limit(None).all().items
