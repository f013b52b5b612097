"""
Modello SQLAlchemy per i Pagamenti in entrata
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Un pagamento arriva dall'estratto conto bancario (già normalizzato)
oppure da registrazione manuale. Finché non viene abbinato a una
fattura resta con invoice_id NULL e is_matched False.
"""

from __future__ import annotations

import datetime
import uuid
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing.models import Base
from billing.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from billing.models.invoice import Invoice


class Payment(Base, UUIDMixin, TimestampMixin):
    """
    Modello per i pagamenti bancari.

    Attributes:
        company_id: Azienda beneficiaria
        invoice_id: Fattura abbinata (NULL finché non abbinato)
        amount: Importo in unità minori
        value_date: Data valuta
        reference: Riferimento libero (QRR/SCOR) senza spazi
        description: Testo della causale
        confidence: HIGH, MEDIUM, LOW, MANUAL
        is_matched: True se conteggiato nel pagato della fattura
        import_batch: Identificativo del lotto di importazione
        raw_data: Record sorgente originale, solo per audit/debug
    """

    __tablename__ = "payments"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="RESTRICT"),
        nullable=False,
    )

    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="RESTRICT"),
        nullable=True,
        doc="Fattura abbinata",
    )

    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        doc="Importo in unità minori",
    )

    value_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Data valuta",
    )

    reference: Mapped[Optional[str]] = mapped_column(String(35), nullable=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    confidence: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="MANUAL",
    )

    is_matched: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    import_batch: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Lotto di importazione",
    )

    raw_data: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        doc="Record sorgente (opaco)",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    invoice: Mapped[Optional["Invoice"]] = relationship(
        "Invoice",
        back_populates="payments",
    )

    __table_args__ = (
        Index("ix_payments_company_matched", "company_id", "is_matched"),
        Index("ix_payments_invoice_id", "invoice_id"),
        Index("ix_payments_import_batch", "import_batch"),
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "confidence IN ('HIGH', 'MEDIUM', 'LOW', 'MANUAL')",
            name="ck_payments_confidence",
        ),
        CheckConstraint(
            "is_matched = false OR invoice_id IS NOT NULL",
            name="ck_payments_matched_has_invoice",
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, confidence={self.confidence})>"
