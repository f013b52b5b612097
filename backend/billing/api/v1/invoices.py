"""
Router FastAPI per la Fatturazione
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Definisce gli endpoint API per la gestione delle fatture:
creazione, modifica in bozza, cambi di stato, lista e statistiche.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from billing.core.database import get_db
from billing.core.deps import CompanyId, InvoiceServiceDep
from billing.schemas.invoice import (
    InvoiceCreate,
    InvoiceList,
    InvoiceRead,
    InvoiceStats,
    InvoiceStatus,
    InvoiceStatusUpdate,
    InvoiceUpdate,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/invoices",
    tags=["Fatturazione"],
)


# -------------------------------------------------------------------
# Endpoints per Fatture
# -------------------------------------------------------------------

@router.get(
    "/",
    name="fatture_lista",
    summary="Lista fatture",
    description="Recupera la lista paginata delle fatture con eventuali filtri.",
    response_model=InvoiceList,
    status_code=status.HTTP_200_OK,
)
async def get_invoices(
    company_id: CompanyId,
    service: InvoiceServiceDep,
    status_filter: Optional[InvoiceStatus] = Query(
        None,
        alias="status",
        description="Filtro per stato",
    ),
    customer_id: Optional[uuid.UUID] = Query(
        None,
        description="Filtro per UUID cliente",
    ),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(10, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceList:
    return await service.get_all(
        db=db,
        company_id=company_id,
        status_filter=status_filter,
        customer_id=customer_id,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/stats",
    name="fatture_statistiche",
    summary="Statistiche fatture",
    response_model=InvoiceStats,
    status_code=status.HTTP_200_OK,
)
async def get_invoice_stats(
    company_id: CompanyId,
    service: InvoiceServiceDep,
    db: AsyncSession = Depends(get_db),
) -> InvoiceStats:
    """Conteggi per stato, fatturato, incassato e residuo (unità minori)."""
    return await service.get_stats(db=db, company_id=company_id)


@router.get(
    "/{invoice_id}",
    name="fattura_dettaglio",
    summary="Dettaglio fattura",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_invoice(
    company_id: CompanyId,
    service: InvoiceServiceDep,
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    return await service.get_by_id(db=db, company_id=company_id, invoice_id=invoice_id)


@router.post(
    "/",
    name="fattura_crea",
    summary="Crea fattura",
    description="Crea una fattura in bozza calcolando righe e totali.",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    data: InvoiceCreate,
    company_id: CompanyId,
    service: InvoiceServiceDep,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    """
    Numero (YYYY/NNNN) e riferimento di pagamento sono generati.
    Se manca due_date vale data + termini di pagamento del cliente.
    """
    return await service.create(db=db, company_id=company_id, data=data)


@router.put(
    "/{invoice_id}",
    name="fattura_aggiorna",
    summary="Aggiorna fattura",
    description="Modifica una fattura in bozza. Le righe passate sostituiscono quelle esistenti.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def update_invoice(
    data: InvoiceUpdate,
    company_id: CompanyId,
    service: InvoiceServiceDep,
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    return await service.update(db=db, company_id=company_id, invoice_id=invoice_id, data=data)


@router.patch(
    "/{invoice_id}/status",
    name="fattura_stato",
    summary="Cambia stato fattura",
    description="Emissione (OPEN), scadenza (OVERDUE) o annullamento (CANCELLED).",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def change_invoice_status(
    data: InvoiceStatusUpdate,
    company_id: CompanyId,
    service: InvoiceServiceDep,
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    """PARTIAL_PAID e PAID sono impostati solo dalla riconciliazione dei pagamenti."""
    return await service.change_status(
        db=db,
        company_id=company_id,
        invoice_id=invoice_id,
        new_status=data.status,
    )
