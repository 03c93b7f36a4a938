"""Circulation bounded context — Book Inventory and Borrow/Return Ledger.

Keeps each book's count of copies on the shelf in step with the open borrow
transactions recorded against it. Books and transactions are plain (CQRS)
aggregates; every command runs in one unit of work so the inventory change and
the ledger write commit or roll back together.
"""

from protean.domain import Domain

from circulation.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

circulation = Domain(name="circulation")
