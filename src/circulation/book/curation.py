"""Book curation — commands and handler for registering and maintaining books.

Curation is the only way a book's status changes. The borrowing workflow
reads the status but never writes it.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from circulation.book.book import Book, BookStatus
from circulation.domain import circulation

logger = structlog.get_logger(__name__)


@circulation.command(part_of="Book")
class RegisterBook:
    """Add a new title to the catalog with its initial number of copies."""

    title = String(required=True, max_length=255)
    copies = Integer(min_value=0, default=0)
    status = String(choices=BookStatus, default=BookStatus.READY.value)


@circulation.command(part_of="Book")
class ChangeBookStatus:
    """Make a book available for borrowing or withdraw it."""

    book_id = Identifier(required=True)
    status = String(choices=BookStatus, required=True)


@circulation.command(part_of="Book")
class AdjustCopies:
    """Add newly acquired copies (positive) or withdraw shelf copies (negative)."""

    book_id = Identifier(required=True)
    change = Integer(required=True)
    reason = String(required=True)


@circulation.command_handler(part_of=Book)
class CurationHandler:
    @handle(RegisterBook)
    def register_book(self, command):
        book = Book.create(title=command.title, copies=command.copies, status=command.status)
        current_domain.repository_for(Book).add(book)

        logger.info("Book registered", book_id=book.id, title=book.title, copies=book.total_copies)
        return book

    @handle(ChangeBookStatus)
    def change_status(self, command):
        inventory = current_domain.repository_for(Book)
        book = inventory.get(command.book_id)
        previous = book.status
        book.change_status(command.status)
        inventory.save(book)

        logger.info("Book status changed", book_id=book.id, previous=previous, status=book.status)
        return book

    @handle(AdjustCopies)
    def adjust_copies(self, command):
        inventory = current_domain.repository_for(Book)
        book = inventory.get(command.book_id)
        book.adjust_copies(command.change)
        inventory.save(book)

        logger.info(
            "Book copies adjusted",
            book_id=book.id,
            change=command.change,
            reason=command.reason,
            quantity=book.quantity,
            total_copies=book.total_copies,
        )
        return book
