"""
Dependency Injection per i router
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Funzioni di dependency injection per l'ambito azienda e per la
costruzione esplicita dei service con i loro collaboratori.

L'autenticazione è esterna: il livello che la gestisce inoltra
l'azienda dell'utente nell'header X-Company-Id.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from billing.services.import_service import ImportService
from billing.services.invoice_service import InvoiceService
from billing.services.payment_service import PaymentService
from billing.services.quote_service import QuoteService
from billing.services.references import ReferenceGenerator


async def get_company_id(
    x_company_id: Annotated[Optional[str], Header(description="UUID dell'azienda")] = None,
) -> UUID:
    """
    Dependency per ottenere l'azienda della richiesta.

    Returns:
        UUID dell'azienda

    Raises:
        HTTPException 401: Header mancante
        HTTPException 400: Header non è un UUID valido
    """
    if not x_company_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Azienda non specificata (header X-Company-Id)",
        )
    try:
        return UUID(x_company_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Company-Id non è un UUID valido",
        )


def get_reference_generator() -> ReferenceGenerator:
    """Generatore dei riferimenti di pagamento (funzione di database)."""
    return ReferenceGenerator()


def get_invoice_service(
    reference_generator: Annotated[ReferenceGenerator, Depends(get_reference_generator)],
) -> InvoiceService:
    return InvoiceService(reference_generator)


def get_quote_service(
    reference_generator: Annotated[ReferenceGenerator, Depends(get_reference_generator)],
) -> QuoteService:
    return QuoteService(reference_generator)


def get_payment_service() -> PaymentService:
    return PaymentService()


def get_import_service(
    payment_service: Annotated[PaymentService, Depends(get_payment_service)],
) -> ImportService:
    return ImportService(payment_service)


# Type aliases per uso comune
CompanyId = Annotated[UUID, Depends(get_company_id)]
InvoiceServiceDep = Annotated[InvoiceService, Depends(get_invoice_service)]
QuoteServiceDep = Annotated[QuoteService, Depends(get_quote_service)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
ImportServiceDep = Annotated[ImportService, Depends(get_import_service)]


# Export
__all__ = [
    "get_company_id",
    "get_reference_generator",
    "get_invoice_service",
    "get_quote_service",
    "get_payment_service",
    "get_import_service",
    "CompanyId",
    "InvoiceServiceDep",
    "QuoteServiceDep",
    "PaymentServiceDep",
    "ImportServiceDep",
]
