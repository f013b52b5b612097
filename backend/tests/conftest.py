"""
Pytest configuration and fixtures for the billing services tests.

I service ricevono una AsyncSession mockata: i risultati di
db.execute vengono preparati nei singoli test con make_result.
"""

import uuid
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    return db


def make_result(scalar=None, scalars=None, rows=None):
    """
    Crea il risultato di db.execute.

    Args:
        scalar: Valore per scalar_one_or_none / scalar_one / scalar
        scalars: Lista per scalars().all()
        rows: Lista di tuple per all()
    """
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = scalar
    result.scalar.return_value = scalar
    result.scalars.return_value.all.return_value = scalars or []
    result.all.return_value = rows or []
    return result


@pytest.fixture
def company_id():
    return uuid.uuid4()


# ============================================================
# Mock di Azienda e Cliente
# ============================================================


class MockCompany:
    """Mock del modello Company."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.name = kwargs.get('name', 'Muster AG')
        self.iban = kwargs.get('iban', 'CH9300762011623852957')
        self.qr_iban = kwargs.get('qr_iban', 'CH4431999123000889012')
        self.default_payment_terms = kwargs.get('default_payment_terms', None)


class MockCustomer:
    """Mock del modello Customer."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.company_id = kwargs.get('company_id', uuid.uuid4())
        self.customer_number = kwargs.get('customer_number', 'K-0001')
        self.name = kwargs.get('name', 'Beispiel GmbH')
        self.email = kwargs.get('email', 'buchhaltung@beispiel.ch')
        self.payment_terms = kwargs.get('payment_terms', 30)
        self.language = kwargs.get('language', 'de')
        self.company = kwargs.get('company', MockCompany())


@pytest.fixture
def mock_customer(company_id):
    """Cliente con termini di pagamento a 30 giorni."""
    return MockCustomer(company_id=company_id)


# ============================================================
# Mock di Righe, Fatture e Offerte
# ============================================================


class MockLineItem:
    """Mock di InvoiceItem / QuoteItem."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.description = kwargs.get('description', 'Beratung')
        self.quantity = kwargs.get('quantity', 1000)
        self.unit = kwargs.get('unit', 'Std')
        self.unit_price = kwargs.get('unit_price', 15000)
        self.discount = kwargs.get('discount', 0)
        self.vat_rate = kwargs.get('vat_rate', 810)
        self.line_total = kwargs.get('line_total', 16215)
        self.vat_amount = kwargs.get('vat_amount', 1215)
        self.sort_order = kwargs.get('sort_order', 1)


class MockInvoice:
    """Mock del modello Invoice."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.company_id = kwargs.get('company_id', uuid.uuid4())
        self.customer_id = kwargs.get('customer_id', uuid.uuid4())
        self.number = kwargs.get('number', '2025/0001')
        self.date = kwargs.get('date', date(2025, 3, 1))
        self.due_date = kwargs.get('due_date', date(2025, 3, 31))
        self.status = kwargs.get('status', 'OPEN')
        self.subtotal = kwargs.get('subtotal', 15000)
        self.vat_amount = kwargs.get('vat_amount', 1215)
        self.discount_code = kwargs.get('discount_code', None)
        self.discount_amount = kwargs.get('discount_amount', 0)
        self.total = kwargs.get('total', 16215)
        self.paid_amount = kwargs.get('paid_amount', 0)
        self.qr_reference = kwargs.get('qr_reference', None)
        self.reminder_level = kwargs.get('reminder_level', 0)
        self.sent_at = kwargs.get('sent_at', None)
        self.notes = kwargs.get('notes', None)
        self.items = kwargs.get('items', [MockLineItem()])


class MockQuote:
    """Mock del modello Quote."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.company_id = kwargs.get('company_id', uuid.uuid4())
        self.customer_id = kwargs.get('customer_id', uuid.uuid4())
        self.number = kwargs.get('number', 'AN-2025-0001')
        self.date = kwargs.get('date', date(2025, 3, 1))
        self.expiry_date = kwargs.get('expiry_date', date(2025, 3, 31))
        self.status = kwargs.get('status', 'SENT')
        self.subtotal = kwargs.get('subtotal', 25000)
        self.vat_amount = kwargs.get('vat_amount', 2025)
        self.discount_code = kwargs.get('discount_code', None)
        self.discount_amount = kwargs.get('discount_amount', 0)
        self.total = kwargs.get('total', 27025)
        self.notes = kwargs.get('notes', 'Gültig 30 Tage')
        self.internal_notes = kwargs.get('internal_notes', None)
        self.acceptance_token = kwargs.get('acceptance_token', 'dG9rZW4xMjM')
        self.acceptance_link = kwargs.get('acceptance_link', None)
        self.sent_at = kwargs.get('sent_at', None)
        self.accepted_at = kwargs.get('accepted_at', None)
        self.accepted_by_email = kwargs.get('accepted_by_email', None)
        self.converted_to_invoice_id = kwargs.get('converted_to_invoice_id', None)
        self.converted_at = kwargs.get('converted_at', None)
        self.items = kwargs.get('items', [
            MockLineItem(
                description='Beratung',
                quantity=1000,
                unit_price=15000,
                line_total=16215,
                vat_amount=1215,
                sort_order=1,
            ),
            MockLineItem(
                description='Installation',
                quantity=2000,
                unit_price=5000,
                line_total=10810,
                vat_amount=810,
                sort_order=2,
            ),
        ])


@pytest.fixture
def mock_quote(company_id):
    """Offerta inviata, in scadenza il 31.03.2025."""
    return MockQuote(company_id=company_id)


# ============================================================
# Mock di Pagamento
# ============================================================


class MockPayment:
    """Mock del modello Payment."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.company_id = kwargs.get('company_id', uuid.uuid4())
        self.invoice_id = kwargs.get('invoice_id', None)
        self.amount = kwargs.get('amount', 16215)
        self.value_date = kwargs.get('value_date', date(2025, 3, 30))
        self.reference = kwargs.get('reference', None)
        self.description = kwargs.get('description', None)
        self.confidence = kwargs.get('confidence', 'MANUAL')
        self.is_matched = kwargs.get('is_matched', False)
        self.import_batch = kwargs.get('import_batch', None)
        self.raw_data = kwargs.get('raw_data', None)
        self.notes = kwargs.get('notes', None)
        self.created_at = kwargs.get('created_at', datetime(2025, 3, 30, 8, 0, tzinfo=timezone.utc))
        self.updated_at = kwargs.get('updated_at', self.created_at)


# ============================================================
# Collaboratori
# ============================================================


class FakeReferenceGenerator:
    """Generatore di riferimenti deterministico (nessuna funzione di database)."""
    def __init__(self, reference='210000000003139471430009017'):
        self.reference = reference
        self.calls = []

    async def generate(self, db, invoice_number, company_id):
        self.calls.append((invoice_number, company_id))
        return self.reference


@pytest.fixture
def reference_generator():
    return FakeReferenceGenerator()


@pytest.fixture
def today():
    return date(2025, 3, 15)
