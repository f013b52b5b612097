"""
Macchine a stati di fatture e offerte
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Regole di transizione per le azioni esplicite del chiamante.
Le matrici VALID_TRANSITIONS sono definite negli schemas e
importate qui; PARTIAL_PAID e PAID restano riservati alla
riconciliazione, EXPIRED e CONVERTED all'accettazione via token.
"""

import datetime
import logging
from typing import Any

from billing.core.exceptions import (
    AlreadyAcceptedError,
    BusinessValidationError,
    InvalidTransitionError,
    NotEditableError,
)
from billing.schemas.invoice import VALID_TRANSITIONS as INVOICE_TRANSITIONS
from billing.schemas.invoice import InvoiceStatus
from billing.schemas.quote import VALID_TRANSITIONS as QUOTE_TRANSITIONS
from billing.schemas.quote import ACCEPTED_STATUSES, QuoteStatus

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Raggiungibili solo tramite riconciliazione
RECONCILIATION_ONLY: frozenset[InvoiceStatus] = frozenset({
    InvoiceStatus.PARTIAL_PAID,
    InvoiceStatus.PAID,
})


def _invoice_status(value: Any) -> InvoiceStatus:
    try:
        return InvoiceStatus(value)
    except ValueError:
        logger.error("Stato fattura invalido nel database: %s", value)
        raise BusinessValidationError(f"Stato invalido: {value}")


def _quote_status(value: Any) -> QuoteStatus:
    try:
        return QuoteStatus(value)
    except ValueError:
        logger.error("Stato offerta invalido nel database: %s", value)
        raise BusinessValidationError(f"Stato invalido: {value}")


# -------------------------------------------------------------------
# Fatture
# -------------------------------------------------------------------

def ensure_invoice_editable(invoice: Any) -> None:
    """
    Verifica che la fattura sia modificabile.

    Raises:
        NotEditableError: La fattura non è in DRAFT
    """
    if _invoice_status(invoice.status) != InvoiceStatus.DRAFT:
        raise NotEditableError(
            f"Solo le fatture in bozza possono essere modificate. "
            f"Stato attuale: {invoice.status}"
        )


def check_invoice_transition(current: Any, target: Any) -> InvoiceStatus:
    """
    Valida un cambio di stato richiesto dal chiamante.

    Args:
        current: Stato attuale
        target: Stato richiesto

    Returns:
        InvoiceStatus: Lo stato di destinazione validato

    Raises:
        InvalidTransitionError: Transizione non prevista o riservata
            alla riconciliazione
    """
    current_status = _invoice_status(current)
    target_status = _invoice_status(target)

    if target_status in RECONCILIATION_ONLY:
        raise InvalidTransitionError(
            f"Lo stato {target_status.value} viene impostato solo dalla riconciliazione dei pagamenti"
        )

    allowed = INVOICE_TRANSITIONS.get(current_status, [])
    if target_status not in allowed:
        allowed_str = ", ".join(s.value for s in allowed) or "nessuna (stato finale)"
        raise InvalidTransitionError(
            f"Transizione non valida da {current_status.value} a {target_status.value}. "
            f"Transizioni permesse: {allowed_str}"
        )
    return target_status


# -------------------------------------------------------------------
# Offerte
# -------------------------------------------------------------------

def ensure_quote_editable(quote: Any) -> None:
    """
    Verifica che l'offerta sia modificabile.

    Raises:
        NotEditableError: L'offerta non è in DRAFT
    """
    if _quote_status(quote.status) != QuoteStatus.DRAFT:
        raise NotEditableError(
            f"Solo le offerte in bozza possono essere modificate. "
            f"Stato attuale: {quote.status}"
        )


def check_quote_transition(current: Any, target: Any) -> QuoteStatus:
    """Valida un cambio di stato dell'offerta richiesto dal chiamante."""
    current_status = _quote_status(current)
    target_status = _quote_status(target)

    allowed = QUOTE_TRANSITIONS.get(current_status, [])
    if target_status not in allowed:
        allowed_str = ", ".join(s.value for s in allowed) or "nessuna (stato finale)"
        raise InvalidTransitionError(
            f"Transizione non valida da {current_status.value} a {target_status.value}. "
            f"Transizioni permesse: {allowed_str}"
        )
    return target_status


def ensure_not_accepted(quote: Any) -> None:
    """
    Raises:
        AlreadyAcceptedError: L'offerta è già ACCEPTED o CONVERTED
    """
    if _quote_status(quote.status) in ACCEPTED_STATUSES:
        raise AlreadyAcceptedError()


def is_quote_expired(quote: Any, today: datetime.date) -> bool:
    """
    L'offerta è scaduta dal giorno successivo alla data di scadenza.

    Il giorno di scadenza è ancora valido per l'accettazione. Il sistema
    precedente considerava scaduta l'offerta già dalla mezzanotte UTC
    del giorno di scadenza.
    """
    return today > quote.expiry_date
