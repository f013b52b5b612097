"""
Unit tests for invoice reconciliation.

Lo stato viene sempre derivato dalla somma completa dei pagamenti
abbinati, mai incrementato.
"""

import uuid

import pytest
from sqlalchemy.dialects import postgresql

from billing.services.reconciliation import derive_payment_status, reconcile_invoice

from conftest import MockInvoice, make_result


# ============================================================
# Tests for derive_payment_status
# ============================================================


class TestDerivePaymentStatus:
    """Stato in funzione del pagato."""

    @pytest.mark.parametrize("current,paid,total,expected", [
        ("OPEN", 10000, 10000, "PAID"),
        ("OPEN", 12000, 10000, "PAID"),
        ("OPEN", 4000, 10000, "PARTIAL_PAID"),
        ("OPEN", 0, 10000, "OPEN"),
        ("PARTIAL_PAID", 10000, 10000, "PAID"),
        ("PAID", 4000, 10000, "PARTIAL_PAID"),
        ("PAID", 0, 10000, "OPEN"),
        ("OVERDUE", 1, 10000, "PARTIAL_PAID"),
        ("OVERDUE", 0, 10000, "OPEN"),
    ])
    def test_status_from_paid_amount(self, current, paid, total, expected):
        assert derive_payment_status(current, paid, total) == expected

    @pytest.mark.parametrize("current", ["DRAFT", "CANCELLED"])
    def test_frozen_statuses(self, current):
        assert derive_payment_status(current, 10000, 10000) == current
        assert derive_payment_status(current, 0, 10000) == current

    def test_zero_total_is_paid(self):
        assert derive_payment_status("OPEN", 0, 0) == "PAID"


# ============================================================
# Tests for reconcile_invoice
# ============================================================


class TestReconcileInvoice:
    """Ricalcolo di paid_amount e stato con fattura bloccata."""

    @pytest.mark.asyncio
    async def test_full_payment(self, mock_db):
        invoice = MockInvoice(total=10000, paid_amount=0, status="OPEN")
        mock_db.execute.side_effect = [
            make_result(scalar=invoice),
            make_result(scalar=10000),
        ]

        result = await reconcile_invoice(mock_db, invoice.id)

        assert result is invoice
        assert invoice.paid_amount == 10000
        assert invoice.status == "PAID"
        mock_db.flush.assert_awaited_once()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_payment(self, mock_db):
        invoice = MockInvoice(total=10000, paid_amount=0, status="OPEN")
        mock_db.execute.side_effect = [
            make_result(scalar=invoice),
            make_result(scalar=4000),
        ]

        await reconcile_invoice(mock_db, invoice.id)

        assert invoice.paid_amount == 4000
        assert invoice.status == "PARTIAL_PAID"

    @pytest.mark.asyncio
    async def test_all_payments_unmatched(self, mock_db):
        invoice = MockInvoice(total=10000, paid_amount=10000, status="PAID")
        mock_db.execute.side_effect = [
            make_result(scalar=invoice),
            make_result(scalar=0),
        ]

        await reconcile_invoice(mock_db, invoice.id)

        assert invoice.paid_amount == 0
        assert invoice.status == "OPEN"

    @pytest.mark.asyncio
    async def test_idempotent(self, mock_db):
        invoice = MockInvoice(total=10000, paid_amount=0, status="OPEN")
        mock_db.execute.side_effect = [
            make_result(scalar=invoice),
            make_result(scalar=6000),
            make_result(scalar=invoice),
            make_result(scalar=6000),
        ]

        await reconcile_invoice(mock_db, invoice.id)
        await reconcile_invoice(mock_db, invoice.id)

        assert invoice.paid_amount == 6000
        assert invoice.status == "PARTIAL_PAID"

    @pytest.mark.asyncio
    async def test_draft_keeps_status(self, mock_db):
        invoice = MockInvoice(total=10000, paid_amount=0, status="DRAFT")
        mock_db.execute.side_effect = [
            make_result(scalar=invoice),
            make_result(scalar=10000),
        ]

        await reconcile_invoice(mock_db, invoice.id)

        assert invoice.status == "DRAFT"
        assert invoice.paid_amount == 10000

    @pytest.mark.asyncio
    async def test_no_invoice_id(self, mock_db):
        result = await reconcile_invoice(mock_db, None)

        assert result is None
        mock_db.execute.assert_not_awaited()
        mock_db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invoice_not_found(self, mock_db):
        mock_db.execute.return_value = make_result(scalar=None)

        result = await reconcile_invoice(mock_db, uuid.uuid4())

        assert result is None
        assert mock_db.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_locked_row_reloaded_from_database(self, mock_db):
        invoice = MockInvoice(total=10000, paid_amount=0, status="OPEN")
        mock_db.execute.side_effect = [
            make_result(scalar=invoice),
            make_result(scalar=1000),
        ]

        await reconcile_invoice(mock_db, invoice.id)

        stmt = mock_db.execute.await_args_list[0].args[0]
        assert stmt.get_execution_options().get("populate_existing") is True
        assert "FOR UPDATE" in str(stmt.compile(dialect=postgresql.dialect()))

    @pytest.mark.asyncio
    async def test_cancelled_by_other_transaction_stays_cancelled(self, mock_db):
        # La sessione aveva caricato la fattura OPEN; la riga bloccata è CANCELLED
        loaded = MockInvoice(total=1000, paid_amount=0, status="OPEN")
        locked = MockInvoice(id=loaded.id, total=1000, paid_amount=0, status="CANCELLED")
        mock_db.execute.side_effect = [
            make_result(scalar=locked),
            make_result(scalar=1000),
        ]

        result = await reconcile_invoice(mock_db, loaded.id)

        assert result.status == "CANCELLED"
        assert result.paid_amount == 1000
