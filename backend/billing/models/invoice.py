"""
Modelli SQLAlchemy per la Fatturazione
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Contiene:
- Invoice: Fattura principale
- InvoiceItem: Righe della fattura
"""

from __future__ import annotations

import datetime
import uuid
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing.models import Base
from billing.models.mixins import DocumentTotalsMixin, LineItemMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from billing.models.company import Customer
    from billing.models.payment import Payment


INVOICE_STATUSES = ("DRAFT", "OPEN", "PARTIAL_PAID", "PAID", "OVERDUE", "CANCELLED")


class Invoice(Base, UUIDMixin, TimestampMixin, DocumentTotalsMixin):
    """
    Modello per le fatture.

    Gli importi sono interi in unità minori. paid_amount è un valore
    denormalizzato, ricalcolato dalla riconciliazione come somma dei
    pagamenti abbinati (is_matched=True) a questa fattura.

    Attributes:
        id: UUID primary key, generato automaticamente
        company_id: Azienda emittente
        customer_id: Cliente destinatario
        number: Numero fattura, univoco per azienda (formato: YYYY/NNNN)
        date: Data emissione
        due_date: Data scadenza pagamento
        status: Stato (DRAFT, OPEN, PARTIAL_PAID, PAID, OVERDUE, CANCELLED)
        paid_amount: Totale incassato
        qr_reference: Riferimento di pagamento stampato sulla polizza QR
        reminder_level: Livello di sollecito raggiunto
        sent_at: Data/ora di emissione verso il cliente

    Relationships:
        customer: Cliente associato
        items: Righe della fattura
        payments: Pagamenti che referenziano la fattura
    """

    __tablename__ = "invoices"

    # ------------------------------------------------------------
    # Colonne Relazioni
    # ------------------------------------------------------------
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID dell'azienda emittente",
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del cliente",
    )

    # ------------------------------------------------------------
    # Colonne Identificazione
    # ------------------------------------------------------------
    number: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        doc="Numero fattura progressivo annuale (formato: YYYY/NNNN)",
    )

    date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Data emissione fattura",
    )

    due_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Data scadenza pagamento",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="DRAFT",
        doc="Stato della fattura",
    )

    # ------------------------------------------------------------
    # Colonne Pagamento
    # ------------------------------------------------------------
    paid_amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Somma dei pagamenti abbinati",
    )

    qr_reference: Mapped[Optional[str]] = mapped_column(
        String(35),
        nullable=True,
        doc="Riferimento di pagamento (QRR a 27 cifre o SCOR)",
    )

    reminder_level: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Livello di sollecito (0 = nessuno)",
    )

    sent_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Data/ora di emissione verso il cliente",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note stampate in fattura",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    customer: Mapped["Customer"] = relationship(
        "Customer",
        back_populates="invoices",
        lazy="selectin",
        doc="Cliente associato",
    )

    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.sort_order",
        lazy="selectin",
        doc="Righe della fattura",
    )

    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
        doc="Pagamenti che referenziano la fattura",
    )

    # ------------------------------------------------------------
    # Properties Calcolate
    # ------------------------------------------------------------
    @property
    def remaining_amount(self) -> int:
        """Importo residuo da incassare."""
        return self.total - self.paid_amount

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        UniqueConstraint("company_id", "number", name="uq_invoices_company_number"),
        Index("ix_invoices_company_status", "company_id", "status"),
        Index("ix_invoices_company_qr_reference", "company_id", "qr_reference"),
        Index("ix_invoices_company_total", "company_id", "total"),
        Index("ix_invoices_due_date", "due_date"),
        CheckConstraint(
            "status IN ('DRAFT', 'OPEN', 'PARTIAL_PAID', 'PAID', 'OVERDUE', 'CANCELLED')",
            name="ck_invoices_status",
        ),
        CheckConstraint("subtotal >= 0", name="ck_invoices_subtotal_positive"),
        CheckConstraint("vat_amount >= 0", name="ck_invoices_vat_amount_positive"),
        CheckConstraint("discount_amount >= 0", name="ck_invoices_discount_positive"),
        CheckConstraint("paid_amount >= 0", name="ck_invoices_paid_amount_positive"),
        CheckConstraint("due_date >= date", name="ck_invoices_due_after_date"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.number}, total={self.total}, status={self.status})>"


class InvoiceItem(Base, UUIDMixin, TimestampMixin, LineItemMixin):
    """
    Riga di fattura.

    I valori calcolati (line_total, vat_amount) vengono salvati così
    come prodotti dal calcolatore, oppure copiati dall'offerta in fase
    di conversione, mai ricalcolati alla lettura.
    """

    __tablename__ = "invoice_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID della fattura padre",
    )

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="items",
        doc="Fattura padre",
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_items_unit_price_positive"),
        CheckConstraint("discount >= 0 AND discount <= 10000", name="ck_invoice_items_discount"),
        CheckConstraint("vat_rate >= 0 AND vat_rate <= 10000", name="ck_invoice_items_vat_rate"),
    )

    def __repr__(self) -> str:
        return f"<InvoiceItem(id={self.id}, sort_order={self.sort_order}, description={self.description[:30]})>"
