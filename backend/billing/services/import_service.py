"""
Importazione a lotti dei pagamenti
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

I record arrivano già normalizzati (il parsing CSV/CAMT è esterno).
Vengono elaborati in sequenza, uno per transazione: un record che
fallisce viene annullato e riportato, il lotto prosegue comunque.
"""

import logging
import time
import uuid
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing.core.exceptions import AppException, StorageError
from billing.schemas.payment import ImportFailure, ImportResult, PaymentRead, PaymentRecord
from billing.services.payment_service import PaymentService

# Logger per questo modulo
logger = logging.getLogger(__name__)


def default_batch_tag() -> str:
    """Identificativo del lotto: timestamp corrente in millisecondi."""
    return str(int(time.time() * 1000))


class ImportService:
    """
    Orchestratore dell'importazione a lotti.

    Per ogni record: validazione, salvataggio, abbinamento,
    riconciliazione se abbinato, commit.
    """

    def __init__(self, payment_service: Optional[PaymentService] = None) -> None:
        self.payment_service = payment_service or PaymentService()

    async def import_payments(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        records: Sequence[PaymentRecord],
        batch_tag: Optional[str] = None,
    ) -> ImportResult:
        """
        Importa una lista di pagamenti.

        Args:
            db: Sessione database
            company_id: Azienda beneficiaria
            records: Record normalizzati
            batch_tag: Identificativo del lotto (default: timestamp ms)

        Returns:
            ImportResult: Conteggi, errori per record e pagamenti salvati
        """
        batch_tag = batch_tag or default_batch_tag()

        imported: list[PaymentRead] = []
        failures: list[ImportFailure] = []

        for index, record in enumerate(records):
            try:
                payment = await self.payment_service.apply_record(
                    db, company_id, record, import_batch=batch_tag
                )
                await db.commit()
                await db.refresh(payment)
                imported.append(PaymentRead.model_validate(payment))
            except AppException as e:
                await db.rollback()
                logger.warning("Lotto %s, record %d scartato: %s", batch_tag, index, e.detail)
                failures.append(ImportFailure(index=index, reference=record.reference, reason=e.detail))
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(
                    "Lotto %s, record %d: errore SQLAlchemy %s - %s",
                    batch_tag,
                    index,
                    e.__class__.__name__,
                    e,
                )
                failures.append(
                    ImportFailure(index=index, reference=record.reference, reason=StorageError.default_detail)
                )

        auto_matched = sum(1 for p in imported if p.is_matched)

        logger.info(
            "Lotto %s importato: %d record, %d salvati, %d abbinati, %d scartati",
            batch_tag,
            len(records),
            len(imported),
            auto_matched,
            len(failures),
        )

        return ImportResult(
            total=len(records),
            imported=len(imported),
            auto_matched=auto_matched,
            needs_review=len(imported) - auto_matched,
            failed=len(failures),
            failures=failures,
            batch_tag=batch_tag,
            payments=imported,
        )
