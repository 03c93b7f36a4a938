"""Shared BDD fixtures and step definitions for the Circulation domain."""

from datetime import UTC, datetime

import pytest
from circulation.book.book import BookStatus
from circulation.exceptions import Outcome, outcome_for
from circulation.transaction.transaction import Transaction, TransactionStatus
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then

_OUTCOMES = {
    "a conflict": Outcome.CONFLICT,
    "invalid": Outcome.VALIDATION,
    "not found": Outcome.NOT_FOUND,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the rejected request's exception."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a book with {copies:d} copies on the shelf"), target_fixture="book")
def book_on_shelf(register_book, copies):
    return register_book(title="The Dispossessed", copies=copies)


@given("the book is unavailable")
def book_is_unavailable(service, book):
    service.change_book_status(book.id, BookStatus.UNAVAILABLE)


@given(parsers.cfparse('the book is borrowed by "{user_id}"'), target_fixture="transaction")
def book_is_borrowed(service, book, user_id):
    return service.create(book.id, user_id=user_id, actor=user_id)


@given("the transaction was returned")
def transaction_was_returned(service, transaction):
    service.update(transaction.id, status=TransactionStatus.RETURN, return_date=datetime.now(UTC))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the book has {copies:d} copies on the shelf"))
def copies_on_shelf(service, book, copies):
    assert service.get_book(book.id).quantity == copies


@then(parsers.cfparse("the open borrow count for the book is {count:d}"))
def open_borrow_count(service, book, count):
    audit = service.audit(book.id)
    assert audit.open_borrows == count
    assert audit.consistent


@then(parsers.cfparse('the transaction status is "{status}"'))
def transaction_status(service, transaction, status):
    assert service.get(transaction.id).status == status


@then("the transaction no longer exists")
def transaction_is_gone(service, transaction):
    assert not current_domain.repository_for(Transaction).exists_by_id(transaction.id)
    with pytest.raises(ObjectNotFoundError):
        service.get(transaction.id)


@then("the request succeeds")
def request_succeeds(error):
    assert error["exc"] is None


@then(parsers.cfparse("the request is rejected as {outcome}"))
def request_rejected(error, outcome):
    assert error["exc"] is not None
    assert outcome_for(error["exc"]) == _OUTCOMES[outcome]
