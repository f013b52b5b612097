"""
Abbinamento automatico pagamento -> fattura
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Politica "candidato unico o niente", valutata in ordine stretto:
1. HIGH   - riferimento identico a quello della fattura (se più fatture
            condividono il riferimento si passa al livello successivo)
2. MEDIUM - fattura aperta con totale == importo e scadenza entro
            valuta +/- N giorni (N = settings.match_date_window_days)
3. LOW    - fattura aperta con totale == importo, senza finestra date
4. MANUAL - nessuna fattura, il pagamento resta da verificare a mano

Ai livelli 2 e 3 un pareggio tra più candidati equivale a nessun
candidato: non si sceglie mai tra fatture equivalenti.
"""

import datetime
import logging
import uuid
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from billing.core.config import settings
from billing.models import Invoice
from billing.schemas.invoice import OPEN_STATUSES
from billing.schemas.payment import MatchConfidence, MatchResult, normalize_reference

# Logger per questo modulo
logger = logging.getLogger(__name__)

_OPEN_STATUS_VALUES = frozenset(status.value for status in OPEN_STATUSES)


def _unique(candidates: Sequence[Any]) -> Optional[Any]:
    """Restituisce l'unico candidato, oppure None se zero o più di uno."""
    return candidates[0] if len(candidates) == 1 else None


def select_match(
    invoices: Iterable[Any],
    amount: int,
    value_date: datetime.date,
    reference: Optional[str] = None,
    window_days: Optional[int] = None,
) -> MatchResult:
    """
    Sceglie la fattura da abbinare tra quelle di una singola azienda.

    Funzione pura: non accede al database e non modifica le fatture.

    Args:
        invoices: Fatture dell'azienda (id, qr_reference, status, total, due_date)
        amount: Importo del pagamento in unità minori
        value_date: Data valuta del pagamento
        reference: Riferimento del pagamento (gli spazi vengono rimossi)
        window_days: Tolleranza in giorni per il livello MEDIUM

    Returns:
        MatchResult: Fattura proposta e livello di confidenza
    """
    if window_days is None:
        window_days = settings.match_date_window_days

    invoices = list(invoices)
    reference = normalize_reference(reference)

    # Livello 1: riferimento esatto
    if reference:
        by_reference = [inv for inv in invoices if inv.qr_reference == reference]
        invoice = _unique(by_reference)
        if invoice is not None:
            return MatchResult(invoice_id=invoice.id, confidence=MatchConfidence.HIGH)
        if len(by_reference) > 1:
            logger.warning(
                "Riferimento %s condiviso da %d fatture, livello HIGH ignorato",
                reference,
                len(by_reference),
            )

    by_amount = [
        inv for inv in invoices
        if inv.status in _OPEN_STATUS_VALUES and inv.total == amount
    ]

    # Livello 2: importo + scadenza entro la finestra
    window = datetime.timedelta(days=window_days)
    in_window = [
        inv for inv in by_amount
        if value_date - window <= inv.due_date <= value_date + window
    ]
    invoice = _unique(in_window)
    if invoice is not None:
        return MatchResult(invoice_id=invoice.id, confidence=MatchConfidence.MEDIUM)

    # Livello 3: solo importo
    invoice = _unique(by_amount)
    if invoice is not None:
        return MatchResult(invoice_id=invoice.id, confidence=MatchConfidence.LOW)

    return MatchResult(invoice_id=None, confidence=MatchConfidence.MANUAL)


async def load_candidates(
    db: AsyncSession,
    company_id: uuid.UUID,
    amount: int,
    reference: Optional[str] = None,
) -> Sequence[Invoice]:
    """
    Carica le sole fatture dell'azienda che possono partecipare all'abbinamento.

    Sono quelle con lo stesso riferimento oppure con totale uguale
    all'importo. Il filtro sugli stati aperti resta in select_match,
    perché il livello HIGH non dipende dallo stato.

    Le fatture già nella sessione vengono aggiornate con lo stato
    corrente, così che un lotto lungo non filtri su stati vecchi.
    """
    conditions = [Invoice.total == amount]
    if reference:
        conditions.append(Invoice.qr_reference == reference)

    stmt = (
        select(Invoice)
        .where(
            Invoice.company_id == company_id,
            or_(*conditions),
        )
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalars().all()


async def match_payment(
    db: AsyncSession,
    company_id: uuid.UUID,
    amount: int,
    value_date: datetime.date,
    reference: Optional[str] = None,
) -> MatchResult:
    """
    Propone un abbinamento per un pagamento, senza scrivere nulla.

    Args:
        db: Sessione database
        company_id: Azienda beneficiaria
        amount: Importo in unità minori
        value_date: Data valuta
        reference: Riferimento del pagamento

    Returns:
        MatchResult: Proposta di abbinamento
    """
    reference = normalize_reference(reference)
    candidates = await load_candidates(db, company_id, amount, reference)
    match = select_match(candidates, amount, value_date, reference)

    logger.info(
        "Abbinamento pagamento %s (rif. %s): %s -> %s",
        amount,
        reference or "-",
        match.confidence.value,
        match.invoice_id,
    )
    return match
