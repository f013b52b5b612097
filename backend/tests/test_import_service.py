"""
Unit tests for the batch payment import.

Ogni record viene elaborato nella propria transazione: un errore
su un record viene riportato senza interrompere il lotto.
"""

import uuid
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from billing.core.exceptions import StorageError
from billing.schemas.payment import PaymentRecord
from billing.services.import_service import ImportService, default_batch_tag
from billing.services.payment_service import PaymentService, validate_payment_record

from conftest import MockInvoice, MockPayment, make_result


def make_records(amounts):
    return [
        PaymentRecord(amount=amount, value_date=date(2025, 3, 30), reference=f"REF{index:03d}")
        for index, amount in enumerate(amounts)
    ]


def fake_payment_service(company_id, matched_amounts=(), storage_failures=()):
    """
    PaymentService con apply_record simulato.

    La validazione è quella reale; i record con importo in
    matched_amounts risultano abbinati, quelli in storage_failures
    sollevano un errore SQLAlchemy.
    """
    async def apply_record(db, company, record, import_batch=None):
        validate_payment_record(record)
        if record.amount in storage_failures:
            raise SQLAlchemyError("could not serialize access")
        matched = record.amount in matched_amounts
        return MockPayment(
            company_id=company_id,
            amount=record.amount,
            reference=record.reference,
            import_batch=import_batch,
            is_matched=matched,
            confidence="HIGH" if matched else "MANUAL",
        )

    service = MagicMock(spec=PaymentService)
    service.apply_record = AsyncMock(side_effect=apply_record)
    return service


# ============================================================
# Tests for import_payments
# ============================================================


class TestImportPayments:
    """Importazione a lotti con fallimenti per record."""

    @pytest.mark.asyncio
    async def test_invalid_records_reported(self, mock_db, company_id):
        amounts = [1000, 2000, 3000, -400, 5000, 6000, 7000, -800, 9000, 10000]
        service = ImportService(fake_payment_service(company_id, matched_amounts={1000, 5000, 9000}))

        result = await service.import_payments(mock_db, company_id, make_records(amounts), batch_tag="camt-2025-03")

        assert result.total == 10
        assert result.imported == 8
        assert result.failed == 2
        assert [f.index for f in result.failures] == [3, 7]
        assert [f.reference for f in result.failures] == ["REF003", "REF007"]
        assert all("maggiore di zero" in f.reason for f in result.failures)
        assert result.auto_matched == 3
        assert result.needs_review == 5
        assert result.batch_tag == "camt-2025-03"
        assert len(result.payments) == 8
        assert {p.import_batch for p in result.payments} == {"camt-2025-03"}

    @pytest.mark.asyncio
    async def test_one_transaction_per_record(self, mock_db, company_id):
        amounts = [1000, -1, 3000]
        service = ImportService(fake_payment_service(company_id))

        await service.import_payments(mock_db, company_id, make_records(amounts))

        assert mock_db.commit.await_count == 2
        assert mock_db.rollback.await_count == 1
        assert mock_db.refresh.await_count == 2

    @pytest.mark.asyncio
    async def test_storage_error_does_not_stop_batch(self, mock_db, company_id):
        amounts = [1000, 2000, 3000]
        service = ImportService(fake_payment_service(company_id, storage_failures={2000}))

        result = await service.import_payments(mock_db, company_id, make_records(amounts))

        assert result.imported == 2
        assert result.failed == 1
        assert result.failures[0].index == 1
        assert result.failures[0].reason == StorageError.default_detail
        assert "serialize" not in result.failures[0].reason

    @pytest.mark.asyncio
    async def test_default_batch_tag(self, mock_db, company_id):
        service = ImportService(fake_payment_service(company_id))

        result = await service.import_payments(mock_db, company_id, make_records([1000]))

        assert result.batch_tag.isdigit()
        assert result.payments[0].import_batch == result.batch_tag

    @pytest.mark.asyncio
    async def test_all_records_invalid(self, mock_db, company_id):
        service = ImportService(fake_payment_service(company_id))

        result = await service.import_payments(mock_db, company_id, make_records([0, -5]))

        assert result.total == 2
        assert result.imported == 0
        assert result.failed == 2
        assert result.payments == []
        mock_db.commit.assert_not_awaited()


# ============================================================
# Tests with the real PaymentService
# ============================================================


class TestImportWithMatching:
    """Lotto elaborato con abbinamento e riconciliazione reali."""

    @pytest.mark.asyncio
    async def test_batch_matches_and_reconciles(self, mock_db, company_id):
        reference = "210000000003139471430009017"
        invoice = MockInvoice(company_id=company_id, total=16215, qr_reference=reference, status="OPEN")
        mock_db.execute.side_effect = [
            make_result(scalars=[invoice]),
            make_result(scalar=invoice),
            make_result(scalar=16215),
            make_result(scalars=[]),
        ]

        def saved(payment):
            payment.id = uuid.uuid4()
            payment.created_at = datetime(2025, 3, 30, 8, 0, tzinfo=timezone.utc)

        mock_db.refresh.side_effect = saved
        records = [
            PaymentRecord(amount=16215, value_date=date(2025, 3, 30), reference="21 00000 00003 13947 14300 09017"),
            PaymentRecord(amount=-5, value_date=date(2025, 3, 30)),
            PaymentRecord(amount=4999, value_date=date(2025, 3, 30)),
        ]

        result = await ImportService(PaymentService()).import_payments(
            mock_db, company_id, records, batch_tag="camt-2025-03"
        )

        assert result.total == 3
        assert result.imported == 2
        assert result.auto_matched == 1
        assert result.needs_review == 1
        assert [f.index for f in result.failures] == [1]

        matched, unmatched = result.payments
        assert matched.invoice_id == invoice.id
        assert matched.confidence == "HIGH"
        assert matched.reference == reference
        assert unmatched.invoice_id is None
        assert unmatched.confidence == "MANUAL"
        assert {p.import_batch for p in result.payments} == {"camt-2025-03"}

        assert invoice.paid_amount == 16215
        assert invoice.status == "PAID"
        assert mock_db.commit.await_count == 2
        assert mock_db.rollback.await_count == 1
        assert mock_db.add.call_count == 2


def test_default_batch_tag_is_millisecond_timestamp():
    tag = default_batch_tag()
    assert tag.isdigit()
    assert len(tag) >= 13
