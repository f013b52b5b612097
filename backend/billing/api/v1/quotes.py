"""
Router FastAPI per le Offerte
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Definisce gli endpoint API per la gestione delle offerte e gli
endpoint pubblici di accettazione tramite token.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from billing.core.database import get_db
from billing.core.deps import CompanyId, QuoteServiceDep
from billing.schemas.quote import (
    QuoteAcceptanceResult,
    QuoteAcceptRequest,
    QuoteCreate,
    QuoteRead,
    QuoteStatus,
    QuoteStatusUpdate,
    QuoteUpdate,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/quotes",
    tags=["Offerte"],
)


# -------------------------------------------------------------------
# Endpoints pubblici (accettazione tramite token)
# -------------------------------------------------------------------

@router.get(
    "/accept/{token}",
    name="offerta_da_token",
    summary="Offerta da accettare",
    description="Recupera l'offerta associata a un link di accettazione.",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def get_quote_by_token(
    service: QuoteServiceDep,
    token: str = Path(..., description="Token di accettazione"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    return await service.get_by_token(db=db, token=token)


@router.post(
    "/accept/{token}",
    name="offerta_accetta",
    summary="Accetta offerta",
    description="Accetta l'offerta e la converte in fattura.",
    response_model=QuoteAcceptanceResult,
    status_code=status.HTTP_200_OK,
)
async def accept_quote(
    service: QuoteServiceDep,
    token: str = Path(..., description="Token di accettazione"),
    data: Optional[QuoteAcceptRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
) -> QuoteAcceptanceResult:
    """
    Errori:
    - 404 RESOURCE_NOT_FOUND: token sconosciuto
    - 400 ALREADY_ACCEPTED: offerta già accettata o convertita
    - 400 QUOTE_EXPIRED: offerta scaduta (lo stato diventa EXPIRED)
    - 500 STORAGE_ERROR: conversione non riuscita
    """
    customer_email = data.customer_email if data else None
    quote, invoice = await service.accept(db=db, token=token, customer_email=customer_email)
    return QuoteAcceptanceResult(
        quote=QuoteRead.model_validate(quote),
        invoice=invoice,
    )


# -------------------------------------------------------------------
# Endpoints per Offerte
# -------------------------------------------------------------------

@router.get(
    "/",
    name="offerte_lista",
    summary="Lista offerte",
    response_model=list[QuoteRead],
    status_code=status.HTTP_200_OK,
)
async def get_quotes(
    company_id: CompanyId,
    service: QuoteServiceDep,
    status_filter: Optional[QuoteStatus] = Query(
        None,
        alias="status",
        description="Filtro per stato",
    ),
    customer_id: Optional[uuid.UUID] = Query(None, description="Filtro per UUID cliente"),
    db: AsyncSession = Depends(get_db),
) -> list[QuoteRead]:
    return await service.get_all(
        db=db,
        company_id=company_id,
        status_filter=status_filter,
        customer_id=customer_id,
    )


@router.get(
    "/{quote_id}",
    name="offerta_dettaglio",
    summary="Dettaglio offerta",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def get_quote(
    company_id: CompanyId,
    service: QuoteServiceDep,
    quote_id: uuid.UUID = Path(..., description="UUID dell'offerta"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    return await service.get_by_id(db=db, company_id=company_id, quote_id=quote_id)


@router.post(
    "/",
    name="offerta_crea",
    summary="Crea offerta",
    description="Crea un'offerta in bozza con righe, totali e link di accettazione.",
    response_model=QuoteRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_quote(
    data: QuoteCreate,
    company_id: CompanyId,
    service: QuoteServiceDep,
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    return await service.create(db=db, company_id=company_id, data=data)


@router.put(
    "/{quote_id}",
    name="offerta_aggiorna",
    summary="Aggiorna offerta",
    description="Modifica un'offerta in bozza.",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def update_quote(
    data: QuoteUpdate,
    company_id: CompanyId,
    service: QuoteServiceDep,
    quote_id: uuid.UUID = Path(..., description="UUID dell'offerta"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    return await service.update(db=db, company_id=company_id, quote_id=quote_id, data=data)


@router.patch(
    "/{quote_id}/status",
    name="offerta_stato",
    summary="Cambia stato offerta",
    description="Invio (SENT), rifiuto (DECLINED) o annullamento (CANCELLED).",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def change_quote_status(
    data: QuoteStatusUpdate,
    company_id: CompanyId,
    service: QuoteServiceDep,
    quote_id: uuid.UUID = Path(..., description="UUID dell'offerta"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    return await service.change_status(
        db=db,
        company_id=company_id,
        quote_id=quote_id,
        new_status=data.status,
    )


@router.post(
    "/{quote_id}/regenerate-link",
    name="offerta_rigenera_link",
    summary="Rigenera link di accettazione",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def regenerate_acceptance_link(
    company_id: CompanyId,
    service: QuoteServiceDep,
    quote_id: uuid.UUID = Path(..., description="UUID dell'offerta"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    """Il token esistente viene mantenuto, cambia solo l'indirizzo del frontend."""
    return await service.regenerate_acceptance_link(db=db, company_id=company_id, quote_id=quote_id)


@router.delete(
    "/{quote_id}",
    name="offerta_elimina",
    summary="Elimina offerta",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_quote(
    company_id: CompanyId,
    service: QuoteServiceDep,
    quote_id: uuid.UUID = Path(..., description="UUID dell'offerta"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await service.delete(db=db, company_id=company_id, quote_id=quote_id)
