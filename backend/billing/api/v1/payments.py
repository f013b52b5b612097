"""
Router FastAPI per i Pagamenti
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Definisce gli endpoint API per registrazione, importazione a lotti,
abbinamento (automatico e manuale) e statistiche dei pagamenti.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from billing.core.database import get_db
from billing.core.deps import CompanyId, ImportServiceDep, PaymentServiceDep
from billing.schemas.payment import (
    AutoMatchResult,
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
from billing.services.matching import match_payment

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/payments",
    tags=["Pagamenti"],
)


# -------------------------------------------------------------------
# Registrazione e importazione
# -------------------------------------------------------------------

@router.post(
    "/match-preview",
    name="pagamento_anteprima_abbinamento",
    summary="Anteprima abbinamento",
    description="Propone la fattura da abbinare a un pagamento senza salvarlo.",
    response_model=MatchResult,
    status_code=status.HTTP_200_OK,
)
async def preview_match(
    data: PaymentRecord,
    company_id: CompanyId,
    db: AsyncSession = Depends(get_db),
) -> MatchResult:
    return await match_payment(
        db,
        company_id,
        amount=data.amount,
        value_date=data.value_date,
        reference=data.reference,
    )


@router.post(
    "/",
    name="pagamento_registra",
    summary="Registra pagamento",
    description="Salva un pagamento, lo abbina automaticamente e riconcilia la fattura.",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    data: PaymentCreate,
    company_id: CompanyId,
    service: PaymentServiceDep,
    db: AsyncSession = Depends(get_db),
) -> PaymentRead:
    return await service.record(db=db, company_id=company_id, record=data)


@router.post(
    "/import",
    name="pagamenti_importa",
    summary="Importa pagamenti",
    description="Importa un lotto di pagamenti normalizzati. I record non validi vengono riportati senza bloccare il lotto.",
    response_model=ImportResult,
    status_code=status.HTTP_200_OK,
)
async def import_payments(
    data: PaymentImportRequest,
    company_id: CompanyId,
    service: ImportServiceDep,
    db: AsyncSession = Depends(get_db),
) -> ImportResult:
    return await service.import_payments(
        db=db,
        company_id=company_id,
        records=data.payments,
        batch_tag=data.batch_tag,
    )


@router.post(
    "/auto-match",
    name="pagamenti_abbinamento_automatico",
    summary="Riesegui abbinamento automatico",
    description="Riesegue l'abbinamento su tutti i pagamenti non ancora abbinati.",
    response_model=AutoMatchResult,
    status_code=status.HTTP_200_OK,
)
async def run_auto_match(
    company_id: CompanyId,
    service: PaymentServiceDep,
    db: AsyncSession = Depends(get_db),
) -> AutoMatchResult:
    return await service.run_auto_match(db=db, company_id=company_id)


# -------------------------------------------------------------------
# Lettura
# -------------------------------------------------------------------

@router.get(
    "/",
    name="pagamenti_lista",
    summary="Lista pagamenti",
    response_model=PaymentList,
    status_code=status.HTTP_200_OK,
)
async def get_payments(
    company_id: CompanyId,
    service: PaymentServiceDep,
    is_matched: Optional[bool] = Query(None, description="Filtro abbinati / da verificare"),
    confidence: Optional[MatchConfidence] = Query(None, description="Filtro per confidenza"),
    import_batch: Optional[str] = Query(None, description="Filtro per lotto di importazione"),
    db: AsyncSession = Depends(get_db),
) -> PaymentList:
    return await service.get_all(
        db=db,
        company_id=company_id,
        is_matched=is_matched,
        confidence=confidence,
        import_batch=import_batch,
    )


@router.get(
    "/stats",
    name="pagamenti_statistiche",
    summary="Statistiche pagamenti",
    response_model=PaymentStats,
    status_code=status.HTTP_200_OK,
)
async def get_payment_stats(
    company_id: CompanyId,
    service: PaymentServiceDep,
    db: AsyncSession = Depends(get_db),
) -> PaymentStats:
    return await service.get_stats(db=db, company_id=company_id)


@router.get(
    "/{payment_id}",
    name="pagamento_dettaglio",
    summary="Dettaglio pagamento",
    response_model=PaymentRead,
    status_code=status.HTTP_200_OK,
)
async def get_payment(
    company_id: CompanyId,
    service: PaymentServiceDep,
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    db: AsyncSession = Depends(get_db),
) -> PaymentRead:
    return await service.get_by_id(db=db, company_id=company_id, payment_id=payment_id)


# -------------------------------------------------------------------
# Abbinamento manuale
# -------------------------------------------------------------------

@router.post(
    "/{payment_id}/match",
    name="pagamento_abbina",
    summary="Abbina pagamento",
    description="Abbina manualmente un pagamento a una fattura (confidenza MANUAL).",
    response_model=PaymentRead,
    status_code=status.HTTP_200_OK,
)
async def match_payment_manually(
    data: PaymentMatchRequest,
    company_id: CompanyId,
    service: PaymentServiceDep,
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    db: AsyncSession = Depends(get_db),
) -> PaymentRead:
    return await service.match_manually(
        db=db,
        company_id=company_id,
        payment_id=payment_id,
        invoice_id=data.invoice_id,
    )


@router.post(
    "/{payment_id}/unmatch",
    name="pagamento_rimuovi_abbinamento",
    summary="Rimuovi abbinamento",
    response_model=PaymentRead,
    status_code=status.HTTP_200_OK,
)
async def unmatch_payment(
    company_id: CompanyId,
    service: PaymentServiceDep,
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    db: AsyncSession = Depends(get_db),
) -> PaymentRead:
    return await service.unmatch(db=db, company_id=company_id, payment_id=payment_id)


@router.delete(
    "/{payment_id}",
    name="pagamento_elimina",
    summary="Elimina pagamento",
    description="Elimina un pagamento e riconcilia la fattura a cui era abbinato.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_payment(
    company_id: CompanyId,
    service: PaymentServiceDep,
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await service.delete(db=db, company_id=company_id, payment_id=payment_id)
