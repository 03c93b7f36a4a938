"""Tests for inventory invariants across mixed borrow/return/remove sequences."""

from datetime import UTC, datetime

import pytest
from circulation.exceptions import ConflictError
from circulation.transaction.transaction import TransactionStatus


def _return(service, transaction_id):
    return service.update(transaction_id, status=TransactionStatus.RETURN, return_date=datetime.now(UTC))


class TestInventoryInvariants:
    def test_quantity_matches_open_borrows_after_mixed_operations(self, service, register_book):
        book = register_book(copies=4)

        first = service.create(book.id, actor="user-001")
        second = service.create(book.id, actor="user-002")
        third = service.create(book.id, actor="user-003")
        _return(service, first.id)
        _return(service, first.id)
        service.remove(second.id, actor="admin-01")
        service.create(book.id, actor="user-004")
        service.remove(first.id, actor="admin-01")

        audit = service.audit(book.id)
        open_ids = {t.id for t in service.list(book_id=book.id, status=TransactionStatus.BORROW)}
        assert third.id in open_ids
        assert audit.open_borrows == len(open_ids) == 2
        assert audit.on_loan == 2
        assert audit.quantity == 2
        assert audit.consistent

    def test_quantity_never_goes_negative(self, service, register_book):
        book = register_book(copies=2)
        for i in range(2):
            service.create(book.id, actor=f"user-00{i}")

        for i in range(3):
            with pytest.raises(ConflictError):
                service.create(book.id, actor=f"user-10{i}")

        audit = service.audit(book.id)
        assert audit.quantity == 0
        assert audit.consistent

    def test_full_cycle_restores_initial_quantity(self, service, register_book):
        book = register_book(copies=3)
        transactions = [service.create(book.id, actor=f"user-00{i}") for i in range(3)]
        for transaction in transactions:
            _return(service, transaction.id)

        audit = service.audit(book.id)
        assert audit.quantity == 3
        assert audit.on_loan == 0
        assert audit.open_borrows == 0
