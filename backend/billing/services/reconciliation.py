"""
Riconciliazione fattura / pagamenti
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Ricalcola paid_amount e stato di una fattura a partire dall'insieme
completo dei pagamenti abbinati. Non incrementa mai: il risultato non
dipende da quale pagamento ha scatenato il ricalcolo né dall'ordine.

La lettura dei pagamenti e la scrittura della fattura avvengono con la
riga fattura bloccata (SELECT ... FOR UPDATE) all'interno della
transazione del chiamante, che resta responsabile del commit.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from billing.models import Invoice, Payment
from billing.schemas.invoice import InvoiceStatus, RECONCILIATION_FROZEN_STATUSES

# Logger per questo modulo
logger = logging.getLogger(__name__)

_FROZEN_STATUS_VALUES = frozenset(status.value for status in RECONCILIATION_FROZEN_STATUSES)


def derive_payment_status(current_status: str, paid_amount: int, total: int) -> str:
    """
    Stato di una fattura in funzione del pagato.

    - paid >= total       -> PAID
    - 0 < paid < total    -> PARTIAL_PAID
    - paid == 0           -> OPEN (anche se la fattura era OVERDUE)

    DRAFT e CANCELLED restano invariati.

    Args:
        current_status: Stato attuale
        paid_amount: Somma dei pagamenti abbinati
        total: Totale fattura

    Returns:
        str: Nuovo stato
    """
    if current_status in _FROZEN_STATUS_VALUES:
        return current_status
    if paid_amount >= total:
        return InvoiceStatus.PAID.value
    if paid_amount > 0:
        return InvoiceStatus.PARTIAL_PAID.value
    return InvoiceStatus.OPEN.value


async def matched_total(db: AsyncSession, invoice_id: uuid.UUID) -> int:
    """Somma degli importi dei pagamenti abbinati alla fattura."""
    stmt = select(func.coalesce(func.sum(Payment.amount), 0)).where(
        Payment.invoice_id == invoice_id,
        Payment.is_matched.is_(True),
    )
    result = await db.execute(stmt)
    return int(result.scalar_one())


async def reconcile_invoice(
    db: AsyncSession,
    invoice_id: Optional[uuid.UUID],
) -> Optional[Invoice]:
    """
    Ricalcola paid_amount e stato di una fattura.

    Esegue un flush prima della somma, così che le modifiche ai
    pagamenti ancora pendenti nella sessione vengano conteggiate.
    La fattura bloccata viene riletta dal database anche se già
    presente nella sessione: stato e totale sono quelli della riga
    bloccata, non quelli caricati in precedenza.

    Args:
        db: Sessione database (transazione aperta dal chiamante)
        invoice_id: Fattura da riconciliare (None: nessuna operazione)

    Returns:
        Optional[Invoice]: La fattura aggiornata, None se non esiste
    """
    if invoice_id is None:
        return None

    await db.flush()

    stmt = (
        select(Invoice)
        .where(Invoice.id == invoice_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    invoice = result.scalar_one_or_none()

    if not invoice:
        logger.warning("Riconciliazione: fattura %s non trovata", invoice_id)
        return None

    paid = await matched_total(db, invoice_id)
    new_status = derive_payment_status(invoice.status, paid, invoice.total)

    if invoice.paid_amount != paid or invoice.status != new_status:
        logger.info(
            "Fattura %s riconciliata: pagato %s -> %s, stato %s -> %s",
            invoice.number,
            invoice.paid_amount,
            paid,
            invoice.status,
            new_status,
        )

    invoice.paid_amount = paid
    invoice.status = new_status
    return invoice
