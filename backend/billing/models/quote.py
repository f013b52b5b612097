"""
Modelli SQLAlchemy per le Offerte
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Contiene:
- Quote: Offerta inviata al cliente, accettabile tramite link
- QuoteItem: Righe dell'offerta
"""

from __future__ import annotations

import datetime
import uuid
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
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
    from billing.models.invoice import Invoice


class Quote(Base, UUIDMixin, TimestampMixin, DocumentTotalsMixin):
    """
    Modello per le offerte.

    Stessa struttura importi della fattura, più i dati di
    accettazione. Il token di accettazione è opaco e non
    crittograficamente forte: identifica l'offerta nel link
    inviato al cliente.

    Attributes:
        number: Numero offerta, univoco per azienda (formato: AN-YYYY-NNNN)
        expiry_date: Ultimo giorno di validità (incluso)
        status: DRAFT, SENT, ACCEPTED, DECLINED, EXPIRED, CANCELLED, CONVERTED
        acceptance_token: Token del link di accettazione
        acceptance_link: URL completo inviato al cliente
        accepted_at / accepted_by_email: Chi e quando ha accettato
        converted_to_invoice_id: Fattura generata dalla conversione
        converted_at: Data/ora della conversione
        internal_notes: Note non stampate sul documento
    """

    __tablename__ = "quotes"

    # ------------------------------------------------------------
    # Colonne Relazioni
    # ------------------------------------------------------------
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="RESTRICT"),
        nullable=False,
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # ------------------------------------------------------------
    # Colonne Identificazione
    # ------------------------------------------------------------
    number: Mapped[str] = mapped_column(String(30), nullable=False)

    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)

    expiry_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Ultimo giorno in cui l'offerta è accettabile",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="DRAFT",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    internal_notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note interne, non visibili al cliente",
    )

    # ------------------------------------------------------------
    # Colonne Accettazione
    # ------------------------------------------------------------
    acceptance_token: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        unique=True,
        doc="Token del link di accettazione",
    )

    acceptance_link: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    sent_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    accepted_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    accepted_by_email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # ------------------------------------------------------------
    # Colonne Conversione
    # ------------------------------------------------------------
    converted_to_invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
        doc="Fattura generata dall'accettazione",
    )

    converted_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    customer: Mapped["Customer"] = relationship(
        "Customer",
        back_populates="quotes",
        lazy="selectin",
    )

    items: Mapped[List["QuoteItem"]] = relationship(
        "QuoteItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteItem.sort_order",
        lazy="selectin",
    )

    converted_invoice: Mapped[Optional["Invoice"]] = relationship(
        "Invoice",
        foreign_keys=[converted_to_invoice_id],
    )

    __table_args__ = (
        UniqueConstraint("company_id", "number", name="uq_quotes_company_number"),
        Index("ix_quotes_company_status", "company_id", "status"),
        CheckConstraint(
            "status IN ('DRAFT', 'SENT', 'ACCEPTED', 'DECLINED', 'EXPIRED', 'CANCELLED', 'CONVERTED')",
            name="ck_quotes_status",
        ),
        CheckConstraint("subtotal >= 0", name="ck_quotes_subtotal_positive"),
        CheckConstraint("vat_amount >= 0", name="ck_quotes_vat_amount_positive"),
        CheckConstraint("discount_amount >= 0", name="ck_quotes_discount_positive"),
        CheckConstraint("expiry_date >= date", name="ck_quotes_expiry_after_date"),
    )

    def __repr__(self) -> str:
        return f"<Quote(id={self.id}, number={self.number}, status={self.status})>"


class QuoteItem(Base, UUIDMixin, TimestampMixin, LineItemMixin):
    """Riga di offerta. Copiata tale e quale nella fattura alla conversione."""

    __tablename__ = "quote_items"

    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    quote: Mapped["Quote"] = relationship("Quote", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_quote_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_quote_items_unit_price_positive"),
        CheckConstraint("discount >= 0 AND discount <= 10000", name="ck_quote_items_discount"),
        CheckConstraint("vat_rate >= 0 AND vat_rate <= 10000", name="ck_quote_items_vat_rate"),
    )

    def __repr__(self) -> str:
        return f"<QuoteItem(id={self.id}, sort_order={self.sort_order})>"
