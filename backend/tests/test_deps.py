"""
Unit tests for the company-scope dependency and the exception mapping.
"""

import uuid

import pytest
from fastapi import HTTPException

from billing.core.deps import get_company_id, get_import_service, get_invoice_service
from billing.core.exceptions import (
    AlreadyAcceptedError,
    BusinessValidationError,
    ConflictError,
    EmptyDocumentError,
    InvalidLineItemError,
    NotEditableError,
    NotFoundError,
    QuoteExpiredError,
    StateConflictError,
    StorageError,
)
from billing.services.payment_service import PaymentService

from conftest import FakeReferenceGenerator


# ============================================================
# Tests for get_company_id
# ============================================================


class TestCompanyScope:
    """Header X-Company-Id."""

    @pytest.mark.asyncio
    async def test_valid_header(self):
        company_id = uuid.uuid4()
        assert await get_company_id(str(company_id)) == company_id

    @pytest.mark.asyncio
    async def test_missing_header(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_company_id(None)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_uuid(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_company_id("azienda-1")
        assert exc_info.value.status_code == 400


# ============================================================
# Tests for service factories
# ============================================================


class TestServiceFactories:
    """Costruzione esplicita dei service con i collaboratori."""

    def test_invoice_service_uses_given_generator(self):
        generator = FakeReferenceGenerator()
        assert get_invoice_service(generator).reference_generator is generator

    def test_import_service_uses_given_payment_service(self):
        payment_service = PaymentService()
        assert get_import_service(payment_service).payment_service is payment_service


# ============================================================
# Tests for exception taxonomy
# ============================================================


class TestExceptionTaxonomy:
    """Status HTTP e codici errore delle eccezioni applicative."""

    @pytest.mark.parametrize("exc_class,status_code,error_code", [
        (NotFoundError, 404, "RESOURCE_NOT_FOUND"),
        (BusinessValidationError, 422, "BUSINESS_VALIDATION_ERROR"),
        (InvalidLineItemError, 422, "INVALID_LINE_ITEM"),
        (EmptyDocumentError, 422, "EMPTY_DOCUMENT"),
        (ConflictError, 409, "CONFLICT_STATE"),
        (StateConflictError, 400, "STATE_CONFLICT"),
        (NotEditableError, 400, "NOT_EDITABLE"),
        (AlreadyAcceptedError, 400, "ALREADY_ACCEPTED"),
        (QuoteExpiredError, 400, "QUOTE_EXPIRED"),
        (StorageError, 500, "STORAGE_ERROR"),
    ])
    def test_status_and_code(self, exc_class, status_code, error_code):
        exc = exc_class()
        assert exc.status_code == status_code
        assert exc.error_code == error_code
        assert exc.detail == exc_class.default_detail

    def test_custom_detail(self):
        exc = NotFoundError("Fattura non trovata", extra={"id": "x"})
        assert str(exc) == "Fattura non trovata"
        assert exc.extra == {"id": "x"}

    def test_validation_error_is_value_error(self):
        assert isinstance(InvalidLineItemError(), ValueError)
