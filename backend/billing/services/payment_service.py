"""
Service Layer per i Pagamenti
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Registrazione dei pagamenti in entrata con abbinamento automatico,
abbinamento manuale, annullamento abbinamento, ri-esecuzione
dell'abbinamento sui pagamenti aperti e statistiche.

Ogni variazione di invoice_id/is_matched di un pagamento è seguita
dalla riconciliazione della fattura coinvolta, nella stessa transazione.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing.core.exceptions import BusinessValidationError, NotFoundError, StorageError
from billing.models import Invoice, Payment
from billing.schemas.payment import (
    AutoMatchResult,
    MatchConfidence,
    PaymentList,
    PaymentRead,
    PaymentRecord,
    PaymentStats,
    normalize_reference,
)
from billing.services.matching import match_payment
from billing.services.reconciliation import reconcile_invoice

# Logger per questo modulo
logger = logging.getLogger(__name__)

MAX_REFERENCE_LENGTH = 35


def validate_payment_record(record: PaymentRecord) -> None:
    """
    Verifica un record di pagamento prima del salvataggio.

    Raises:
        BusinessValidationError: Importo non positivo o riferimento troppo lungo
    """
    if record.amount <= 0:
        raise BusinessValidationError(
            f"L'importo del pagamento deve essere maggiore di zero (ricevuto {record.amount})"
        )
    reference = normalize_reference(record.reference)
    if reference and len(reference) > MAX_REFERENCE_LENGTH:
        raise BusinessValidationError(
            f"Il riferimento di pagamento supera i {MAX_REFERENCE_LENGTH} caratteri"
        )


class PaymentService:
    """
    Service per la gestione dei pagamenti.

    Fornisce metodi asincroni per interagire con il database
    in modo centralizzato, senza dipendenze da FastAPI.
    """

    # ----------------------------------------------------------------
    # Registrazione
    # ----------------------------------------------------------------

    async def apply_record(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        record: PaymentRecord,
        import_batch: Optional[str] = None,
    ) -> Payment:
        """
        Salva un pagamento, lo abbina e riconcilia la fattura, senza commit.

        Steps:
        1. Valida il record
        2. Salva il pagamento (non abbinato)
        3. Esegue l'abbinamento automatico
        4. Se abbinato, riconcilia la fattura

        Raises:
            BusinessValidationError: Record non valido
        """
        validate_payment_record(record)

        payment = Payment(
            company_id=company_id,
            amount=record.amount,
            value_date=record.value_date,
            reference=normalize_reference(record.reference),
            description=record.description,
            notes=record.notes,
            raw_data=record.raw_data,
            import_batch=import_batch,
            confidence=MatchConfidence.MANUAL.value,
            is_matched=False,
        )
        db.add(payment)
        await db.flush()

        match = await match_payment(
            db,
            company_id,
            amount=payment.amount,
            value_date=payment.value_date,
            reference=payment.reference,
        )
        payment.confidence = match.confidence.value
        if match.invoice_id is not None:
            payment.invoice_id = match.invoice_id
            payment.is_matched = True
            await reconcile_invoice(db, match.invoice_id)

        return payment

    async def record(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        record: PaymentRecord,
    ) -> Payment:
        """
        Registra un singolo pagamento con abbinamento automatico.

        Returns:
            Payment: Il pagamento salvato (abbinato o da verificare)

        Raises:
            BusinessValidationError: Record non valido
            StorageError: Errore del database
        """
        try:
            payment = await self.apply_record(db, company_id, record)
            await db.commit()
            await db.refresh(payment)
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy registrazione pagamento: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        logger.info(
            "Pagamento %s registrato: confidenza %s, fattura %s",
            payment.id,
            payment.confidence,
            payment.invoice_id,
        )
        return payment

    # ----------------------------------------------------------------
    # Lettura
    # ----------------------------------------------------------------

    async def get_by_id(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        payment_id: uuid.UUID,
    ) -> Payment:
        """
        Raises:
            NotFoundError: Pagamento non trovato
        """
        stmt = select(Payment).where(
            Payment.id == payment_id,
            Payment.company_id == company_id,
        )
        result = await db.execute(stmt)
        payment = result.scalar_one_or_none()

        if not payment:
            raise NotFoundError(f"Pagamento {payment_id} non trovato")

        return payment

    async def get_all(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        is_matched: Optional[bool] = None,
        confidence: Optional[MatchConfidence] = None,
        import_batch: Optional[str] = None,
    ) -> PaymentList:
        """Lista dei pagamenti dell'azienda con filtri opzionali."""
        stmt = select(Payment).where(Payment.company_id == company_id)
        if is_matched is not None:
            stmt = stmt.where(Payment.is_matched.is_(is_matched))
        if confidence:
            stmt = stmt.where(Payment.confidence == MatchConfidence(confidence).value)
        if import_batch:
            stmt = stmt.where(Payment.import_batch == import_batch)

        result = await db.execute(stmt.order_by(Payment.value_date.desc()))
        payments = result.scalars().all()

        return PaymentList(items=list(payments), total=len(payments))

    async def get_stats(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
    ) -> PaymentStats:
        """Statistiche dei pagamenti: totali, tasso di abbinamento, confidenze."""
        stmt = (
            select(
                Payment.confidence,
                Payment.is_matched,
                func.count(Payment.id),
                func.coalesce(func.sum(Payment.amount), 0),
            )
            .where(Payment.company_id == company_id)
            .group_by(Payment.confidence, Payment.is_matched)
        )
        result = await db.execute(stmt)

        total_payments = 0
        total_amount = 0
        matched = 0
        confidence_counts: dict[str, int] = {}
        for confidence, is_matched, count, amount in result.all():
            total_payments += count
            total_amount += int(amount)
            if is_matched:
                matched += count
            confidence_counts[confidence] = confidence_counts.get(confidence, 0) + count

        return PaymentStats(
            total_payments=total_payments,
            total_amount=total_amount,
            matched_payments=matched,
            unmatched_payments=total_payments - matched,
            matching_rate=round(matched / total_payments * 100) if total_payments else 0,
            confidence_counts=confidence_counts,
            average_payment_amount=round(total_amount / total_payments) if total_payments else 0,
        )

    # ----------------------------------------------------------------
    # Abbinamento
    # ----------------------------------------------------------------

    async def match_manually(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        payment_id: uuid.UUID,
        invoice_id: uuid.UUID,
    ) -> Payment:
        """
        Abbina manualmente un pagamento a una fattura (confidenza MANUAL).

        Se il pagamento era abbinato a un'altra fattura, anche quella
        viene riconciliata.

        Raises:
            NotFoundError: Pagamento o fattura non trovati
            StorageError: Errore del database
        """
        payment = await self.get_by_id(db, company_id, payment_id)

        stmt = select(Invoice.id).where(
            Invoice.id == invoice_id,
            Invoice.company_id == company_id,
        )
        result = await db.execute(stmt)
        if result.scalar_one_or_none() is None:
            raise NotFoundError(f"Fattura {invoice_id} non trovata")

        previous_invoice_id = payment.invoice_id if payment.is_matched else None

        payment.invoice_id = invoice_id
        payment.confidence = MatchConfidence.MANUAL.value
        payment.is_matched = True

        try:
            await reconcile_invoice(db, invoice_id)
            if previous_invoice_id is not None and previous_invoice_id != invoice_id:
                await reconcile_invoice(db, previous_invoice_id)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy abbinamento manuale: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        logger.info("Pagamento %s abbinato manualmente alla fattura %s", payment_id, invoice_id)
        return payment

    async def unmatch(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        payment_id: uuid.UUID,
    ) -> Payment:
        """
        Rimuove l'abbinamento di un pagamento e riconcilia la fattura.

        Raises:
            NotFoundError: Pagamento non trovato
            StorageError: Errore del database
        """
        payment = await self.get_by_id(db, company_id, payment_id)
        previous_invoice_id = payment.invoice_id

        payment.invoice_id = None
        payment.is_matched = False
        payment.confidence = MatchConfidence.MANUAL.value

        try:
            await reconcile_invoice(db, previous_invoice_id)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy rimozione abbinamento: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        return payment

    async def run_auto_match(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
    ) -> AutoMatchResult:
        """
        Riesegue l'abbinamento automatico su tutti i pagamenti non abbinati.

        Le fatture abbinate in questo giro partecipano già come "pagate"
        (o parzialmente) ai controlli successivi, perché la riconciliazione
        ne aggiorna lo stato prima del pagamento seguente.

        Raises:
            StorageError: Errore del database (nessuna modifica salvata)
        """
        stmt = (
            select(Payment)
            .where(
                Payment.company_id == company_id,
                Payment.is_matched.is_(False),
            )
            .order_by(Payment.value_date.asc())
        )
        result = await db.execute(stmt)
        payments = list(result.scalars().all())

        matched: list[Payment] = []
        try:
            for payment in payments:
                match = await match_payment(
                    db,
                    company_id,
                    amount=payment.amount,
                    value_date=payment.value_date,
                    reference=payment.reference,
                )
                if match.invoice_id is None:
                    continue
                payment.invoice_id = match.invoice_id
                payment.confidence = match.confidence.value
                payment.is_matched = True
                await reconcile_invoice(db, match.invoice_id)
                matched.append(payment)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy abbinamento automatico: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        logger.info(
            "Abbinamento automatico: %d pagamenti esaminati, %d abbinati",
            len(payments),
            len(matched),
        )
        return AutoMatchResult(
            processed=len(payments),
            matched=len(matched),
            payments=[PaymentRead.model_validate(p) for p in matched],
        )

    async def delete(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        payment_id: uuid.UUID,
    ) -> None:
        """
        Elimina un pagamento e riconcilia la fattura a cui era abbinato.

        Raises:
            NotFoundError: Pagamento non trovato
            StorageError: Errore del database
        """
        payment = await self.get_by_id(db, company_id, payment_id)
        previous_invoice_id = payment.invoice_id if payment.is_matched else None

        try:
            await db.delete(payment)
            await reconcile_invoice(db, previous_invoice_id)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy eliminazione pagamento: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()
