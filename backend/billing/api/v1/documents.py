"""
Router FastAPI per il calcolo documenti
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Calcolo di righe e totali senza salvataggio, usato dal frontend
per l'anteprima di offerte e fatture.
"""

from fastapi import APIRouter, status

from billing.schemas.document import DocumentTotals, DocumentTotalsRequest
from billing.services.calculator import compute_document_totals

router = APIRouter(
    prefix="/documents",
    tags=["Documenti"],
)


@router.post(
    "/totals",
    name="documento_totali",
    summary="Calcola totali documento",
    description="Calcola righe, subtotale, IVA e totale di un documento senza salvarlo.",
    response_model=DocumentTotals,
    status_code=status.HTTP_200_OK,
)
async def compute_totals(data: DocumentTotalsRequest) -> DocumentTotals:
    """
    Errori:
    - 422 INVALID_LINE_ITEM: quantità, prezzo o aliquota fuori range
    - 422 EMPTY_DOCUMENT: nessuna riga
    """
    return compute_document_totals(data.items, data.discount_amount)
