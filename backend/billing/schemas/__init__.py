"""
Schemas Pydantic per il progetto Gestionale Fatture

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from billing.schemas import InvoiceRead, PaymentRead, etc.

from billing.schemas.document import (
    DocumentTotals,
    DocumentTotalsRequest,
    LineItemInput,
    LineItemRead,
    LineItemResult,
)
from billing.schemas.invoice import (
    InvoiceCreate,
    InvoiceList,
    InvoiceRead,
    InvoiceStats,
    InvoiceStatus,
    InvoiceStatusUpdate,
    InvoiceUpdate,
)
from billing.schemas.quote import (
    QuoteAcceptanceResult,
    QuoteAcceptRequest,
    QuoteCreate,
    QuoteRead,
    QuoteStatus,
    QuoteStatusUpdate,
    QuoteUpdate,
)
from billing.schemas.payment import (
    AutoMatchResult,
    ImportFailure,
    ImportResult,
    MatchConfidence,
    MatchResult,
    PaymentCreate,
    PaymentImportRequest,
    PaymentList,
    PaymentMatchRequest,
    PaymentRead,
    PaymentRecord,
    PaymentStats,
)

__all__ = [
    # Document schemas
    "DocumentTotals",
    "DocumentTotalsRequest",
    "LineItemInput",
    "LineItemRead",
    "LineItemResult",
    # Invoice schemas
    "InvoiceCreate",
    "InvoiceList",
    "InvoiceRead",
    "InvoiceStats",
    "InvoiceStatus",
    "InvoiceStatusUpdate",
    "InvoiceUpdate",
    # Quote schemas
    "QuoteAcceptanceResult",
    "QuoteAcceptRequest",
    "QuoteCreate",
    "QuoteRead",
    "QuoteStatus",
    "QuoteStatusUpdate",
    "QuoteUpdate",
    # Payment schemas
    "AutoMatchResult",
    "ImportFailure",
    "ImportResult",
    "MatchConfidence",
    "MatchResult",
    "PaymentCreate",
    "PaymentImportRequest",
    "PaymentList",
    "PaymentMatchRequest",
    "PaymentRead",
    "PaymentRecord",
    "PaymentStats",
]
