"""
Unit tests for PaymentService.

Matcher e riconciliazione sono sostituiti con AsyncMock per
verificare l'orchestrazione: ogni cambio di abbinamento deve
riconciliare le fatture coinvolte.
"""

import uuid
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from billing.core.exceptions import BusinessValidationError, NotFoundError, StorageError
from billing.models import Payment
from billing.schemas.payment import MatchConfidence, MatchResult, PaymentRecord
from billing.services.payment_service import PaymentService, validate_payment_record

from conftest import MockPayment, make_result

QR_REFERENCE = "210000000003139471430009017"


@pytest.fixture
def service():
    return PaymentService()


@pytest.fixture
def reconcile():
    with patch("billing.services.payment_service.reconcile_invoice", new_callable=AsyncMock) as mock:
        yield mock


def make_record(**kwargs) -> PaymentRecord:
    data = {"amount": 16215, "value_date": date(2025, 3, 30)}
    data.update(kwargs)
    return PaymentRecord(**data)


# ============================================================
# Tests for validate_payment_record
# ============================================================


class TestValidatePaymentRecord:
    """Controlli sul record prima del salvataggio."""

    @pytest.mark.parametrize("amount", [0, -1, -16215])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(BusinessValidationError):
            validate_payment_record(make_record(amount=amount))

    def test_reference_too_long(self):
        with pytest.raises(BusinessValidationError):
            validate_payment_record(make_record(reference="1" * 36))

    def test_reference_length_after_whitespace_removal(self):
        validate_payment_record(make_record(reference="21 00000 00003 13947 14300 09017"))

    def test_record_normalizes_reference(self):
        assert make_record(reference=" 21 0000 ").reference == "210000"
        assert make_record(reference="   ").reference is None


# ============================================================
# Tests for apply_record / record
# ============================================================


class TestRecordPayment:
    """Registrazione con abbinamento automatico."""

    @pytest.mark.asyncio
    async def test_matched_payment_reconciles(self, service, mock_db, company_id, reconcile):
        invoice_id = uuid.uuid4()
        match = MatchResult(invoice_id=invoice_id, confidence=MatchConfidence.HIGH)

        with patch("billing.services.payment_service.match_payment", new=AsyncMock(return_value=match)):
            payment = await service.apply_record(mock_db, company_id, make_record(reference=QR_REFERENCE))

        assert isinstance(payment, Payment)
        assert payment.invoice_id == invoice_id
        assert payment.is_matched is True
        assert payment.confidence == "HIGH"
        assert payment.reference == QR_REFERENCE
        mock_db.add.assert_called_once_with(payment)
        mock_db.flush.assert_awaited_once()
        reconcile.assert_awaited_once_with(mock_db, invoice_id)
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unmatched_payment(self, service, mock_db, company_id, reconcile):
        match = MatchResult(invoice_id=None, confidence=MatchConfidence.MANUAL)

        with patch("billing.services.payment_service.match_payment", new=AsyncMock(return_value=match)):
            payment = await service.apply_record(mock_db, company_id, make_record())

        assert payment.invoice_id is None
        assert payment.is_matched is False
        assert payment.confidence == "MANUAL"
        reconcile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_record_not_saved(self, service, mock_db, company_id, reconcile):
        with pytest.raises(BusinessValidationError):
            await service.apply_record(mock_db, company_id, make_record(amount=-500))

        mock_db.add.assert_not_called()
        mock_db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_commits(self, service, mock_db, company_id, reconcile):
        match = MatchResult(invoice_id=None, confidence=MatchConfidence.MANUAL)

        with patch("billing.services.payment_service.match_payment", new=AsyncMock(return_value=match)):
            payment = await service.record(mock_db, company_id, make_record())

        mock_db.commit.assert_awaited_once()
        mock_db.refresh.assert_awaited_once_with(payment)

    @pytest.mark.asyncio
    async def test_record_storage_error(self, service, mock_db, company_id, reconcile):
        match = MatchResult(invoice_id=None, confidence=MatchConfidence.MANUAL)
        mock_db.commit.side_effect = SQLAlchemyError("disk full")

        with patch("billing.services.payment_service.match_payment", new=AsyncMock(return_value=match)):
            with pytest.raises(StorageError):
                await service.record(mock_db, company_id, make_record())

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_record_flush_error(self, service, mock_db, company_id, reconcile):
        mock_db.flush.side_effect = SQLAlchemyError("connection reset")

        with pytest.raises(StorageError):
            await service.record(mock_db, company_id, make_record())

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()
        reconcile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_match_query_error(self, service, mock_db, company_id, reconcile):
        mock_db.execute.side_effect = SQLAlchemyError("lock timeout")

        with pytest.raises(StorageError):
            await service.record(mock_db, company_id, make_record(reference=QR_REFERENCE))

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_invalid_not_storage_error(self, service, mock_db, company_id, reconcile):
        with pytest.raises(BusinessValidationError):
            await service.record(mock_db, company_id, make_record(amount=0))

        mock_db.commit.assert_not_awaited()


# ============================================================
# Tests for manual matching
# ============================================================


class TestManualMatching:
    """Abbinamento manuale e rimozione dell'abbinamento."""

    @pytest.mark.asyncio
    async def test_match_manually_reconciles_both_invoices(self, service, mock_db, company_id, reconcile):
        previous_invoice = uuid.uuid4()
        new_invoice = uuid.uuid4()
        payment = MockPayment(company_id=company_id, invoice_id=previous_invoice, is_matched=True, confidence="LOW")
        mock_db.execute.side_effect = [
            make_result(scalar=payment),
            make_result(scalar=new_invoice),
        ]

        result = await service.match_manually(mock_db, company_id, payment.id, new_invoice)

        assert result.invoice_id == new_invoice
        assert result.confidence == "MANUAL"
        assert result.is_matched is True
        assert [c.args[1] for c in reconcile.await_args_list] == [new_invoice, previous_invoice]
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_match_manually_unknown_invoice(self, service, mock_db, company_id, reconcile):
        payment = MockPayment(company_id=company_id)
        mock_db.execute.side_effect = [
            make_result(scalar=payment),
            make_result(scalar=None),
        ]

        with pytest.raises(NotFoundError):
            await service.match_manually(mock_db, company_id, payment.id, uuid.uuid4())

        assert payment.is_matched is False
        reconcile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unmatch(self, service, mock_db, company_id, reconcile):
        invoice_id = uuid.uuid4()
        payment = MockPayment(company_id=company_id, invoice_id=invoice_id, is_matched=True, confidence="HIGH")
        mock_db.execute.return_value = make_result(scalar=payment)

        result = await service.unmatch(mock_db, company_id, payment.id)

        assert result.invoice_id is None
        assert result.is_matched is False
        reconcile.assert_awaited_once_with(mock_db, invoice_id)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_payment(self, service, mock_db, company_id, reconcile):
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(NotFoundError):
            await service.unmatch(mock_db, company_id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_delete_reconciles_invoice(self, service, mock_db, company_id, reconcile):
        invoice_id = uuid.uuid4()
        payment = MockPayment(company_id=company_id, invoice_id=invoice_id, is_matched=True)
        mock_db.execute.return_value = make_result(scalar=payment)

        await service.delete(mock_db, company_id, payment.id)

        mock_db.delete.assert_awaited_once_with(payment)
        reconcile.assert_awaited_once_with(mock_db, invoice_id)
        mock_db.commit.assert_awaited_once()


# ============================================================
# Tests for run_auto_match
# ============================================================


class TestAutoMatch:
    """Ri-esecuzione dell'abbinamento sui pagamenti aperti."""

    @pytest.mark.asyncio
    async def test_matches_open_payments(self, service, mock_db, company_id, reconcile):
        invoice_id = uuid.uuid4()
        matched = MockPayment(company_id=company_id, amount=5000)
        unmatched = MockPayment(company_id=company_id, amount=7000)
        mock_db.execute.return_value = make_result(scalars=[matched, unmatched])
        results = [
            MatchResult(invoice_id=invoice_id, confidence=MatchConfidence.LOW),
            MatchResult(invoice_id=None, confidence=MatchConfidence.MANUAL),
        ]

        with patch("billing.services.payment_service.match_payment", new=AsyncMock(side_effect=results)):
            result = await service.run_auto_match(mock_db, company_id)

        assert result.processed == 2
        assert result.matched == 1
        assert result.payments[0].id == matched.id
        assert matched.invoice_id == invoice_id
        assert matched.confidence == "LOW"
        assert unmatched.is_matched is False
        reconcile.assert_awaited_once_with(mock_db, invoice_id)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_storage_error_rolls_back(self, service, mock_db, company_id, reconcile):
        mock_db.execute.return_value = make_result(scalars=[MockPayment(company_id=company_id)])
        reconcile.side_effect = SQLAlchemyError("deadlock")
        match = MatchResult(invoice_id=uuid.uuid4(), confidence=MatchConfidence.MEDIUM)

        with patch("billing.services.payment_service.match_payment", new=AsyncMock(return_value=match)):
            with pytest.raises(StorageError):
                await service.run_auto_match(mock_db, company_id)

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()


# ============================================================
# Tests for stats
# ============================================================


class TestPaymentStats:
    """Statistiche dei pagamenti."""

    @pytest.mark.asyncio
    async def test_stats(self, service, mock_db, company_id):
        mock_db.execute.return_value = make_result(rows=[
            ("HIGH", True, 2, 20000),
            ("LOW", True, 1, 5000),
            ("MANUAL", False, 1, 10000),
        ])

        stats = await service.get_stats(mock_db, company_id)

        assert stats.total_payments == 4
        assert stats.total_amount == 35000
        assert stats.matched_payments == 3
        assert stats.unmatched_payments == 1
        assert stats.matching_rate == 75
        assert stats.confidence_counts == {"HIGH": 2, "LOW": 1, "MANUAL": 1}
        assert stats.average_payment_amount == 8750

    @pytest.mark.asyncio
    async def test_empty(self, service, mock_db, company_id):
        mock_db.execute.return_value = make_result(rows=[])

        stats = await service.get_stats(mock_db, company_id)

        assert stats.total_payments == 0
        assert stats.matching_rate == 0
