"""
Calcolo righe e totali documento
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Funzioni pure, condivise da offerte e fatture:
- compute_line_item: sconto, IVA e totale di una riga
- compute_document_totals: subtotale, IVA e totale di un documento
- apply_totals: scrive totali e righe calcolate su un documento ORM

Ogni riga viene arrotondata per conto proprio; i totali sono
semplici somme di interi, senza arrotondamento globale.
"""

import logging
from typing import Any, Optional, Sequence

from billing.core.exceptions import (
    BusinessValidationError,
    EmptyDocumentError,
    InvalidLineItemError,
)
from billing.core.money import MAX_RATE, line_amount, vat_on_amount
from billing.schemas.document import DocumentTotals, LineItemInput, LineItemResult

# Logger per questo modulo
logger = logging.getLogger(__name__)


def _validate_line_item(item: LineItemInput) -> None:
    """
    Verifica i range di una riga.

    Raises:
        InvalidLineItemError: quantità non positiva, prezzo negativo
            o aliquota fuori da [0, 100%]
    """
    if item.quantity <= 0:
        raise InvalidLineItemError(
            f"La quantità deve essere maggiore di zero (riga '{item.description}')"
        )
    if item.unit_price < 0:
        raise InvalidLineItemError(
            f"Il prezzo unitario non può essere negativo (riga '{item.description}')"
        )
    if not 0 <= item.discount <= MAX_RATE:
        raise InvalidLineItemError(
            f"Lo sconto deve essere compreso tra 0 e 100% (riga '{item.description}')"
        )
    if not 0 <= item.vat_rate <= MAX_RATE:
        raise InvalidLineItemError(
            f"L'aliquota IVA deve essere compresa tra 0 e 100% (riga '{item.description}')"
        )


def compute_line_item(item: LineItemInput, sort_order: Optional[int] = None) -> LineItemResult:
    """
    Calcola gli importi di una riga documento.

    Args:
        item: Riga in ingresso
        sort_order: Posizione da assegnare se la riga non ne ha una

    Returns:
        LineItemResult: discounted_amount, vat_amount e line_total

    Raises:
        InvalidLineItemError: Riga fuori range
    """
    _validate_line_item(item)

    discounted = line_amount(item.quantity, item.unit_price, item.discount)
    vat = vat_on_amount(discounted, item.vat_rate)

    position = item.sort_order if item.sort_order is not None else sort_order
    if position is None:
        raise InvalidLineItemError("Posizione della riga mancante")

    return LineItemResult(
        description=item.description,
        quantity=item.quantity,
        unit=item.unit,
        unit_price=item.unit_price,
        discount=item.discount,
        vat_rate=item.vat_rate,
        sort_order=position,
        discounted_amount=discounted,
        vat_amount=vat,
        line_total=discounted + vat,
    )


def compute_document_totals(
    items: Sequence[LineItemInput],
    discount_amount: int = 0,
) -> DocumentTotals:
    """
    Calcola i totali di un documento a partire dalle righe.

    Le righe senza sort_order ricevono la propria posizione in lista
    (1-based). L'ordine delle righe non viene mai modificato.

    Args:
        items: Righe del documento (almeno una)
        discount_amount: Sconto forfettario applicato dopo l'IVA

    Returns:
        DocumentTotals: Totali e righe calcolate

    Raises:
        EmptyDocumentError: Nessuna riga
        InvalidLineItemError: Riga fuori range o posizioni non contigue
        BusinessValidationError: Sconto negativo o superiore al totale
    """
    if not items:
        raise EmptyDocumentError()

    if discount_amount < 0:
        raise BusinessValidationError("Lo sconto non può essere negativo")

    computed = [
        compute_line_item(item, sort_order=index)
        for index, item in enumerate(items, start=1)
    ]

    positions = sorted(line.sort_order for line in computed)
    if positions != list(range(1, len(computed) + 1)):
        raise InvalidLineItemError(
            "Le posizioni delle righe devono essere contigue a partire da 1"
        )

    subtotal = sum(line.discounted_amount for line in computed)
    vat_amount = sum(line.vat_amount for line in computed)
    total = subtotal + vat_amount - discount_amount

    if total < 0:
        raise BusinessValidationError("Lo sconto supera il totale del documento")

    return DocumentTotals(
        subtotal=subtotal,
        vat_amount=vat_amount,
        discount_amount=discount_amount,
        total=total,
        items=computed,
    )


def apply_totals(document: Any, totals: DocumentTotals, item_model: type) -> None:
    """
    Scrive totali e righe calcolate su un documento (Invoice o Quote).

    Le righe esistenti vengono sostituite: l'orphan cascade del
    modello le elimina al flush, nella stessa transazione dei totali.

    Args:
        document: Documento ORM con relazione items
        totals: Risultato di compute_document_totals
        item_model: Classe ORM delle righe (InvoiceItem o QuoteItem)
    """
    document.subtotal = totals.subtotal
    document.vat_amount = totals.vat_amount
    document.discount_amount = totals.discount_amount
    document.total = totals.total
    document.items = [
        item_model(
            description=line.description,
            quantity=line.quantity,
            unit=line.unit,
            unit_price=line.unit_price,
            discount=line.discount,
            vat_rate=line.vat_rate,
            line_total=line.line_total,
            vat_amount=line.vat_amount,
            sort_order=line.sort_order,
        )
        for line in totals.items
    ]
    logger.debug(
        "Totali documento aggiornati: subtotal=%s vat=%s total=%s (%s righe)",
        totals.subtotal,
        totals.vat_amount,
        totals.total,
        len(totals.items),
    )
