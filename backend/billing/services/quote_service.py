"""
Service Layer per le Offerte
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Gestione offerte (creazione, modifica in bozza, cambi di stato,
link di accettazione) e accettazione pubblica tramite token con
conversione in fattura.
"""

import datetime
import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing.core.config import settings
from billing.core.exceptions import (
    ConflictError,
    NotFoundError,
    QuoteExpiredError,
    StateConflictError,
    StorageError,
)
from billing.models import Invoice, InvoiceItem, Quote, QuoteItem
from billing.schemas.invoice import InvoiceStatus
from billing.schemas.quote import (
    QuoteCreate,
    QuoteStatus,
    QuoteUpdate,
)
from billing.services import lifecycle
from billing.services.calculator import apply_totals, compute_document_totals
from billing.services.invoice_service import due_date_for, get_customer
from billing.services.references import (
    ReferenceGenerator,
    build_acceptance_link,
    generate_acceptance_token,
    next_document_number,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)


class QuoteService:
    """
    Service per la gestione delle offerte.

    Include la logica di accettazione: un'offerta accettata viene
    convertita direttamente in fattura (stato CONVERTED), senza
    passare per ACCEPTED.
    """

    def __init__(self, reference_generator: Optional[ReferenceGenerator] = None) -> None:
        """
        Args:
            reference_generator: Generatore dei riferimenti di pagamento
                per la fattura creata dalla conversione
        """
        self.reference_generator = reference_generator or ReferenceGenerator()

    # ----------------------------------------------------------------
    # Lettura
    # ----------------------------------------------------------------

    async def get_by_id(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        quote_id: uuid.UUID,
    ) -> Quote:
        """
        Recupera un'offerta dell'azienda con le righe.

        Raises:
            NotFoundError: Offerta non trovata
        """
        stmt = select(Quote).where(
            Quote.id == quote_id,
            Quote.company_id == company_id,
        )
        result = await db.execute(stmt)
        quote = result.scalar_one_or_none()

        if not quote:
            raise NotFoundError(f"Offerta {quote_id} non trovata")

        return quote

    async def get_by_token(
        self,
        db: AsyncSession,
        token: str,
        for_update: bool = False,
    ) -> Quote:
        """
        Recupera un'offerta dal token di accettazione.

        Raises:
            NotFoundError: Token sconosciuto
        """
        stmt = select(Quote).where(Quote.acceptance_token == token)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        quote = result.scalar_one_or_none()

        if not quote:
            raise NotFoundError("Offerta non trovata o token non valido")

        return quote

    async def get_all(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        status_filter: Optional[QuoteStatus] = None,
        customer_id: Optional[uuid.UUID] = None,
    ) -> list[Quote]:
        """Lista delle offerte dell'azienda, più recenti prima."""
        stmt = select(Quote).where(Quote.company_id == company_id)
        if status_filter:
            stmt = stmt.where(Quote.status == QuoteStatus(status_filter).value)
        if customer_id:
            stmt = stmt.where(Quote.customer_id == customer_id)

        result = await db.execute(stmt.order_by(Quote.date.desc(), Quote.number.desc()))
        return list(result.scalars().all())

    # ----------------------------------------------------------------
    # Scrittura
    # ----------------------------------------------------------------

    async def create(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        data: QuoteCreate,
    ) -> Quote:
        """
        Crea un'offerta in bozza con il relativo link di accettazione.

        Raises:
            NotFoundError: Cliente non trovato
            InvalidLineItemError / EmptyDocumentError: Righe non valide
            ConflictError: Numero offerta duplicato
            StorageError: Errore del database
        """
        customer = await get_customer(db, company_id, data.customer_id)
        totals = compute_document_totals(data.items, data.discount_amount)

        quote_date = data.date or datetime.date.today()
        token = generate_acceptance_token(company_id)

        try:
            number = await next_document_number(
                db,
                Quote,
                company_id,
                quote_date,
                prefix=f"{settings.quote_number_prefix}-",
                separator="-",
            )
            quote = Quote(
                company_id=company_id,
                customer_id=customer.id,
                number=number,
                date=quote_date,
                expiry_date=data.expiry_date,
                status=QuoteStatus.DRAFT.value,
                discount_code=data.discount_code,
                notes=data.notes,
                internal_notes=data.internal_notes,
                acceptance_token=token,
                acceptance_link=build_acceptance_link(token),
            )
            apply_totals(quote, totals, QuoteItem)
            db.add(quote)
            await db.commit()
            await db.refresh(quote)
        except IntegrityError as e:
            logger.error("Errore IntegrityError creazione offerta: %s - %s", e.__class__.__name__, e.orig)
            await db.rollback()
            raise ConflictError("Numero offerta o token già esistente, riprovare")
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy creazione offerta: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        logger.info("Offerta %s creata (totale %s)", quote.number, quote.total)
        return await self.get_by_id(db, company_id, quote.id)

    async def update(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        quote_id: uuid.UUID,
        data: QuoteUpdate,
    ) -> Quote:
        """
        Modifica un'offerta in bozza.

        Raises:
            NotFoundError: Offerta o cliente non trovati
            NotEditableError: L'offerta non è in DRAFT
        """
        quote = await self.get_by_id(db, company_id, quote_id)
        lifecycle.ensure_quote_editable(quote)

        fields = data.model_fields_set

        if "customer_id" in fields and data.customer_id is not None:
            customer = await get_customer(db, company_id, data.customer_id)
            quote.customer_id = customer.id
        if "date" in fields and data.date is not None:
            quote.date = data.date
        if "expiry_date" in fields and data.expiry_date is not None:
            quote.expiry_date = data.expiry_date
        for field in ("discount_code", "notes", "internal_notes"):
            if field in fields:
                setattr(quote, field, getattr(data, field))

        if data.items is not None or data.discount_amount is not None:
            items = data.items if data.items is not None else quote.items
            discount_amount = (
                data.discount_amount if data.discount_amount is not None else quote.discount_amount
            )
            apply_totals(quote, compute_document_totals(items, discount_amount), QuoteItem)

        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy aggiornamento offerta: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        return await self.get_by_id(db, company_id, quote_id)

    async def change_status(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        quote_id: uuid.UUID,
        new_status: QuoteStatus,
    ) -> Quote:
        """
        Invio, rifiuto o annullamento di un'offerta.

        Raises:
            NotFoundError: Offerta non trovata
            InvalidTransitionError: Transizione non ammessa
        """
        quote = await self.get_by_id(db, company_id, quote_id)
        target = lifecycle.check_quote_transition(quote.status, new_status)

        quote.status = target.value
        if target == QuoteStatus.SENT:
            quote.sent_at = datetime.datetime.now(datetime.timezone.utc)

        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy cambio stato offerta: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        logger.info("Offerta %s: stato -> %s", quote.number, target.value)
        return quote

    async def regenerate_acceptance_link(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        quote_id: uuid.UUID,
    ) -> Quote:
        """
        Ricompone il link di accettazione (es. dopo un cambio di frontend_url).

        Il token esistente viene mantenuto; se manca ne viene generato uno.

        Raises:
            NotFoundError: Offerta non trovata
            AlreadyAcceptedError: Offerta già accettata o convertita
        """
        quote = await self.get_by_id(db, company_id, quote_id)
        lifecycle.ensure_not_accepted(quote)

        if not quote.acceptance_token:
            quote.acceptance_token = generate_acceptance_token(company_id)
        quote.acceptance_link = build_acceptance_link(quote.acceptance_token)

        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy rigenerazione link: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        return quote

    async def delete(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        quote_id: uuid.UUID,
    ) -> None:
        """
        Elimina un'offerta e le sue righe.

        Raises:
            NotFoundError: Offerta non trovata
            StateConflictError: Offerta già convertita in fattura
        """
        quote = await self.get_by_id(db, company_id, quote_id)
        if quote.status == QuoteStatus.CONVERTED.value:
            raise StateConflictError(
                "Impossibile eliminare un'offerta già convertita in fattura",
                error_code="QUOTE_CONVERTED",
            )

        try:
            await db.delete(quote)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy eliminazione offerta: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

    # ----------------------------------------------------------------
    # Accettazione e conversione
    # ----------------------------------------------------------------

    async def accept(
        self,
        db: AsyncSession,
        token: str,
        customer_email: Optional[str] = None,
        today: Optional[datetime.date] = None,
    ) -> tuple[Quote, Invoice]:
        """
        Accetta un'offerta tramite token e la converte in fattura.

        Steps:
        1. Recupera l'offerta dal token (riga bloccata)
        2. Rifiuta offerte già accettate o convertite
        3. Se scaduta: stato EXPIRED salvato, poi QuoteExpiredError
        4. Altrimenti conversione diretta in fattura (stato CONVERTED)

        Args:
            db: Sessione database
            token: Token di accettazione
            customer_email: Email di chi accetta
            today: Data di riferimento per la scadenza (default: oggi)

        Returns:
            tuple[Quote, Invoice]: Offerta convertita e nuova fattura

        Raises:
            NotFoundError: Token sconosciuto
            AlreadyAcceptedError: Offerta già accettata o convertita
            QuoteExpiredError: Offerta scaduta
            StorageError: Conversione non riuscita (nessuna scrittura persistita)
        """
        if today is None:
            today = datetime.date.today()

        quote = await self.get_by_token(db, token, for_update=True)
        lifecycle.ensure_not_accepted(quote)

        if lifecycle.is_quote_expired(quote, today):
            quote.status = QuoteStatus.EXPIRED.value
            try:
                await db.commit()
            except SQLAlchemyError as e:
                logger.error("Errore SQLAlchemy scadenza offerta: %s - %s", e.__class__.__name__, e)
                await db.rollback()
                raise StorageError()
            logger.info("Offerta %s scaduta il %s, accettazione rifiutata", quote.number, quote.expiry_date)
            raise QuoteExpiredError()

        invoice = await self._convert_to_invoice(db, quote, customer_email)
        return quote, invoice

    async def _convert_to_invoice(
        self,
        db: AsyncSession,
        quote: Quote,
        customer_email: Optional[str] = None,
    ) -> Invoice:
        """
        Crea la fattura dall'offerta e marca l'offerta come CONVERTED.

        Righe e totali vengono copiati tali e quali, senza ricalcolo.
        Testata fattura, righe e aggiornamento dell'offerta vengono
        scritti in un'unica transazione.

        Raises:
            StorageError: Errore del database (rollback completo)
        """
        customer = await get_customer(db, quote.company_id, quote.customer_id)
        due_date = due_date_for(customer, quote.date)

        try:
            number = await next_document_number(db, Invoice, quote.company_id, quote.date, prefix="")
            qr_reference = await self.reference_generator.generate(db, number, quote.company_id)

            invoice = Invoice(
                company_id=quote.company_id,
                customer_id=quote.customer_id,
                number=number,
                date=quote.date,
                due_date=due_date,
                status=InvoiceStatus.OPEN.value,
                subtotal=quote.subtotal,
                vat_amount=quote.vat_amount,
                discount_code=quote.discount_code,
                discount_amount=quote.discount_amount,
                total=quote.total,
                paid_amount=0,
                qr_reference=qr_reference,
                reminder_level=0,
                notes=quote.notes,
            )
            invoice.items = [
                InvoiceItem(
                    description=item.description,
                    quantity=item.quantity,
                    unit=item.unit,
                    unit_price=item.unit_price,
                    discount=item.discount,
                    vat_rate=item.vat_rate,
                    line_total=item.line_total,
                    vat_amount=item.vat_amount,
                    sort_order=item.sort_order,
                )
                for item in quote.items
            ]
            db.add(invoice)
            await db.flush()

            now = datetime.datetime.now(datetime.timezone.utc)
            quote.status = QuoteStatus.CONVERTED.value
            quote.converted_to_invoice_id = invoice.id
            quote.converted_at = now
            quote.accepted_at = now
            quote.accepted_by_email = customer_email

            await db.commit()
            await db.refresh(invoice)
            await db.refresh(quote)
        except SQLAlchemyError as e:
            logger.error(
                "Errore SQLAlchemy conversione offerta %s: %s - %s",
                quote.number,
                e.__class__.__name__,
                e,
            )
            await db.rollback()
            raise StorageError("Conversione dell'offerta in fattura non riuscita")

        logger.info("Offerta %s convertita nella fattura %s", quote.number, invoice.number)
        return invoice
