"""
Modelli Database SQLAlchemy
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Import centralizzato di tutti i modelli per create_all e usage generico.

Modelli:
- Company: Azienda emittente
- Customer: Anagrafica clienti dell'azienda
- Invoice / InvoiceItem: Fatture e relative righe
- Quote / QuoteItem: Offerte e relative righe
- Payment: Pagamenti bancari in entrata
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from billing.models.company import Company, Customer
from billing.models.invoice import Invoice, InvoiceItem
from billing.models.quote import Quote, QuoteItem
from billing.models.payment import Payment

__all__ = [
    "Base",
    "Company",
    "Customer",
    "Invoice",
    "InvoiceItem",
    "Quote",
    "QuoteItem",
    "Payment",
]
