"""
Numerazione documenti, riferimenti di pagamento e token di accettazione
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Contiene:
- ReferenceGenerator: collaboratore che fornisce il riferimento di
  pagamento di una fattura (calcolo del check digit esterno)
- next_document_number: numerazione progressiva per azienda e anno
- generate_acceptance_token / build_acceptance_link: link pubblico
  di accettazione delle offerte
"""

import base64
import datetime
import logging
import re
import time
import uuid
from typing import Optional

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from billing.core.config import settings
from billing.core.exceptions import ConflictError

# Logger per questo modulo
logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")

MAX_SEQUENCE = 9999


class ReferenceGenerator:
    """
    Generatore dei riferimenti di pagamento (QRR) delle fatture.

    L'implementazione predefinita delega alla funzione di database
    generate_qr_reference, che calcola il riferimento a 27 cifre con
    check digit. Il valore è trattato come stringa opaca.
    """

    async def generate(
        self,
        db: AsyncSession,
        invoice_number: str,
        company_id: uuid.UUID,
    ) -> str:
        """
        Args:
            db: Sessione database
            invoice_number: Numero della fattura
            company_id: Azienda emittente

        Returns:
            str: Riferimento di pagamento
        """
        result = await db.execute(
            text("SELECT generate_qr_reference(:invoice_num, :company_uuid)"),
            {"invoice_num": invoice_number, "company_uuid": str(company_id)},
        )
        return result.scalar_one()


async def next_document_number(
    db: AsyncSession,
    model: type,
    company_id: uuid.UUID,
    document_date: datetime.date,
    prefix: str,
    separator: str = "/",
) -> str:
    """
    Genera il numero progressivo annuale di un documento.

    Formato: {prefix}{anno}{separator}{NNNN}, es. "2025/0001" per le
    fatture e "AN-2025-0001" per le offerte.

    Logica:
    1. Acquisisce un advisory lock di transazione per azienda, anno e tabella
    2. Cerca l'ultimo numero dell'anno per l'azienda
    3. Incrementa il progressivo con zero-padding a 4 cifre

    Args:
        db: Sessione database
        model: Classe ORM con colonne company_id e number
        company_id: Azienda emittente
        document_date: Data del documento (per l'anno)
        prefix: Prefisso prima dell'anno ("" per le fatture)
        separator: Separatore tra anno e progressivo

    Returns:
        str: Numero formattato

    Raises:
        ConflictError: Limite di 9999 documenti annui raggiunto
    """
    year = document_date.year
    year_prefix = f"{prefix}{year}{separator}"

    # SELECT FOR UPDATE non blocca nulla se non esistono righe per l'anno
    lock_key = f"{model.__tablename__}:{company_id}:{year}"
    await db.execute(
        text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))"),
        {"lock_key": lock_key},
    )

    stmt = select(func.max(model.number)).where(
        model.company_id == company_id,
        model.number.like(f"{year_prefix}%"),
    )
    result = await db.execute(stmt)
    last_number: Optional[str] = result.scalar_one_or_none()

    next_sequence = int(last_number[len(year_prefix):]) + 1 if last_number else 1

    if next_sequence > MAX_SEQUENCE:
        raise ConflictError(f"Limite numerazione raggiunto per l'anno {year}")

    return f"{year_prefix}{next_sequence:04d}"


def generate_acceptance_token(company_id: uuid.UUID, now_ms: Optional[int] = None) -> str:
    """
    Token opaco per il link di accettazione di un'offerta.

    Base64 di "{company_id}-{epoch_ms}" senza caratteri non
    alfanumerici. Non è crittograficamente forte.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    raw = f"{company_id}-{now_ms}".encode("utf-8")
    return _NON_ALNUM.sub("", base64.b64encode(raw).decode("ascii"))


def build_acceptance_link(token: str) -> str:
    """URL pubblico di accettazione dell'offerta."""
    return f"{settings.frontend_url}/quotes/accept/{token}"
