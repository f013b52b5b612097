"""
Service Layer per la Fatturazione
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Definisce la logica di business per la gestione delle fatture:
creazione da righe, modifica in bozza, cambi di stato,
numerazione progressiva annuale e statistiche.
"""

import datetime
import logging
import uuid
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing.core.config import settings
from billing.core.exceptions import ConflictError, NotFoundError, StorageError
from billing.models import Customer, Invoice, InvoiceItem
from billing.schemas.invoice import (
    InvoiceCreate,
    InvoiceList,
    InvoiceStats,
    InvoiceStatus,
    InvoiceUpdate,
)
from billing.services import lifecycle
from billing.services.calculator import apply_totals, compute_document_totals
from billing.services.references import ReferenceGenerator, next_document_number

# Logger per questo modulo
logger = logging.getLogger(__name__)


def payment_terms_days(customer: Any) -> int:
    """
    Termini di pagamento effettivi di un cliente, in giorni.

    Ordine: termini del cliente, default dell'azienda, impostazione globale.
    """
    if customer is not None and customer.payment_terms is not None:
        return customer.payment_terms
    company = getattr(customer, "company", None)
    if company is not None and company.default_payment_terms is not None:
        return company.default_payment_terms
    return settings.default_payment_terms_days


def due_date_for(customer: Any, document_date: datetime.date) -> datetime.date:
    """Data di scadenza: data documento + termini di pagamento del cliente."""
    return document_date + datetime.timedelta(days=payment_terms_days(customer))


async def get_customer(
    db: AsyncSession,
    company_id: uuid.UUID,
    customer_id: uuid.UUID,
) -> Customer:
    """
    Recupera un cliente dell'azienda.

    Raises:
        NotFoundError: Cliente inesistente o di un'altra azienda
    """
    stmt = select(Customer).where(
        Customer.id == customer_id,
        Customer.company_id == company_id,
    )
    result = await db.execute(stmt)
    customer = result.scalar_one_or_none()

    if not customer:
        raise NotFoundError(f"Cliente {customer_id} non trovato")

    return customer


class InvoiceService:
    """
    Service per la gestione delle operazioni sulle fatture.

    Fornisce metodi asincroni per interagire con il database
    in modo centralizzato, senza dipendenze da FastAPI.

    Implementa:
    - Creazione fattura in bozza con calcolo righe e totali
    - Modifica consentita solo in DRAFT
    - Cambi di stato secondo la macchina a stati
    - Numerazione progressiva annuale per azienda
    - Statistiche incassi
    """

    def __init__(self, reference_generator: Optional[ReferenceGenerator] = None) -> None:
        """
        Args:
            reference_generator: Generatore dei riferimenti di pagamento
        """
        self.reference_generator = reference_generator or ReferenceGenerator()

    async def create(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        data: InvoiceCreate,
    ) -> Invoice:
        """
        Crea una fattura in bozza.

        Steps:
        1. Verifica che il cliente appartenga all'azienda
        2. Calcola righe e totali
        3. Genera numero progressivo e riferimento di pagamento
        4. Salva fattura e righe in un'unica transazione

        Args:
            db: Sessione database
            company_id: Azienda emittente
            data: Dati della fattura

        Returns:
            Invoice: La fattura creata con le righe

        Raises:
            NotFoundError: Cliente non trovato
            InvalidLineItemError / EmptyDocumentError: Righe non valide
            ConflictError: Numero fattura duplicato
            StorageError: Errore del database
        """
        customer = await get_customer(db, company_id, data.customer_id)
        totals = compute_document_totals(data.items, data.discount_amount)

        invoice_date = data.date or datetime.date.today()
        due_date = data.due_date or due_date_for(customer, invoice_date)

        try:
            number = await next_document_number(db, Invoice, company_id, invoice_date, prefix="")
            qr_reference = await self.reference_generator.generate(db, number, company_id)

            invoice = Invoice(
                company_id=company_id,
                customer_id=customer.id,
                number=number,
                date=invoice_date,
                due_date=due_date,
                status=InvoiceStatus.DRAFT.value,
                paid_amount=0,
                qr_reference=qr_reference,
                reminder_level=0,
                discount_code=data.discount_code,
                notes=data.notes,
            )
            apply_totals(invoice, totals, InvoiceItem)
            db.add(invoice)
            await db.commit()
            await db.refresh(invoice)
        except IntegrityError as e:
            logger.error("Errore IntegrityError creazione fattura: %s - %s", e.__class__.__name__, e.orig)
            await db.rollback()
            raise ConflictError("Numero fattura già esistente, riprovare")
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy creazione fattura: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        logger.info("Fattura %s creata (totale %s)", invoice.number, invoice.total)
        return await self.get_by_id(db, company_id, invoice.id)

    async def get_by_id(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        invoice_id: uuid.UUID,
    ) -> Invoice:
        """
        Recupera una fattura dell'azienda con le righe.

        Raises:
            NotFoundError: Fattura non trovata
        """
        stmt = select(Invoice).where(
            Invoice.id == invoice_id,
            Invoice.company_id == company_id,
        )
        result = await db.execute(stmt)
        invoice = result.scalar_one_or_none()

        if not invoice:
            raise NotFoundError(f"Fattura {invoice_id} non trovata")

        return invoice

    async def get_all(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        status_filter: Optional[InvoiceStatus] = None,
        customer_id: Optional[uuid.UUID] = None,
        page: int = 1,
        per_page: int = 10,
    ) -> InvoiceList:
        """
        Recupera la lista paginata delle fatture con filtri.

        Args:
            db: Sessione database
            company_id: Azienda
            status_filter: Filtro per stato
            customer_id: Filtro per cliente
            page: Numero pagina
            per_page: Elementi per pagina

        Returns:
            InvoiceList: Lista paginata
        """
        conditions = [Invoice.company_id == company_id]
        if status_filter:
            conditions.append(Invoice.status == InvoiceStatus(status_filter).value)
        if customer_id:
            conditions.append(Invoice.customer_id == customer_id)

        count_result = await db.execute(select(func.count(Invoice.id)).where(*conditions))
        total = count_result.scalar() or 0

        stmt = (
            select(Invoice)
            .where(*conditions)
            .order_by(Invoice.date.desc(), Invoice.number.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(stmt)
        invoices = result.scalars().all()

        total_pages = (total + per_page - 1) // per_page if total > 0 else 1

        return InvoiceList(
            items=list(invoices),
            total=total,
            page=page,
            per_page=per_page,
            total_pages=total_pages,
        )

    async def update(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        invoice_id: uuid.UUID,
        data: InvoiceUpdate,
    ) -> Invoice:
        """
        Modifica una fattura in bozza.

        Se vengono passate le righe, righe e totali vengono ricalcolati
        e sostituiti insieme. Se cambia solo lo sconto, i totali vengono
        ricalcolati sulle righe esistenti.

        Raises:
            NotFoundError: Fattura o cliente non trovati
            NotEditableError: La fattura non è in DRAFT
        """
        invoice = await self.get_by_id(db, company_id, invoice_id)
        lifecycle.ensure_invoice_editable(invoice)

        fields = data.model_fields_set

        if "customer_id" in fields and data.customer_id is not None:
            customer = await get_customer(db, company_id, data.customer_id)
            invoice.customer_id = customer.id
        if "date" in fields and data.date is not None:
            invoice.date = data.date
        if "due_date" in fields and data.due_date is not None:
            invoice.due_date = data.due_date
        if "discount_code" in fields:
            invoice.discount_code = data.discount_code
        if "notes" in fields:
            invoice.notes = data.notes

        if data.items is not None or data.discount_amount is not None:
            items = data.items if data.items is not None else invoice.items
            discount_amount = (
                data.discount_amount if data.discount_amount is not None else invoice.discount_amount
            )
            totals = compute_document_totals(items, discount_amount)
            apply_totals(invoice, totals, InvoiceItem)

        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy aggiornamento fattura: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        return await self.get_by_id(db, company_id, invoice_id)

    async def change_status(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
        invoice_id: uuid.UUID,
        new_status: InvoiceStatus,
    ) -> Invoice:
        """
        Cambia lo stato di una fattura su azione del chiamante.

        Il passaggio a OPEN registra la data di emissione (sent_at).

        Raises:
            NotFoundError: Fattura non trovata
            InvalidTransitionError: Transizione non ammessa
        """
        invoice = await self.get_by_id(db, company_id, invoice_id)
        target = lifecycle.check_invoice_transition(invoice.status, new_status)

        invoice.status = target.value
        if target == InvoiceStatus.OPEN:
            invoice.sent_at = datetime.datetime.now(datetime.timezone.utc)

        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy cambio stato fattura: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise StorageError()

        logger.info("Fattura %s: stato -> %s", invoice.number, target.value)
        return await self.get_by_id(db, company_id, invoice_id)

    async def get_stats(
        self,
        db: AsyncSession,
        company_id: uuid.UUID,
    ) -> InvoiceStats:
        """
        Statistiche delle fatture dell'azienda.

        Le fatture annullate non contano nel fatturato né nel residuo.
        """
        stmt = (
            select(
                Invoice.status,
                func.count(Invoice.id),
                func.coalesce(func.sum(Invoice.total), 0),
                func.coalesce(func.sum(Invoice.paid_amount), 0),
            )
            .where(Invoice.company_id == company_id)
            .group_by(Invoice.status)
        )
        result = await db.execute(stmt)

        status_counts: dict[str, int] = {}
        total_invoices = 0
        revenue = 0
        paid = 0
        for status, count, total, paid_amount in result.all():
            status_counts[status] = count
            total_invoices += count
            if status == InvoiceStatus.CANCELLED.value:
                continue
            revenue += int(total)
            paid += int(paid_amount)

        active = total_invoices - status_counts.get(InvoiceStatus.CANCELLED.value, 0)

        return InvoiceStats(
            total_invoices=total_invoices,
            status_counts=status_counts,
            total_revenue=revenue,
            paid_amount=paid,
            outstanding_amount=revenue - paid,
            average_invoice_amount=round(revenue / active) if active else 0,
        )
