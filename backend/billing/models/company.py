"""
Modelli SQLAlchemy per Azienda e Clienti
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Contiene:
- Company: Azienda che emette offerte e fatture
- Customer: Cliente di un'azienda
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing.models import Base
from billing.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from billing.models.invoice import Invoice
    from billing.models.quote import Quote


class Company(Base, UUIDMixin, TimestampMixin):
    """
    Azienda emittente.

    Ogni dato di business (clienti, documenti, pagamenti) è
    sempre filtrato per company_id.
    """

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    iban: Mapped[Optional[str]] = mapped_column(String(34), nullable=True)
    qr_iban: Mapped[Optional[str]] = mapped_column(
        String(34),
        nullable=True,
        doc="QR-IBAN, richiesto per i riferimenti QRR a 27 cifre",
    )
    default_payment_terms: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=30,
        doc="Termini di pagamento predefiniti in giorni",
    )

    customers: Mapped[List["Customer"]] = relationship(
        "Customer",
        back_populates="company",
        doc="Clienti dell'azienda",
    )

    __table_args__ = (
        CheckConstraint("default_payment_terms >= 0", name="ck_companies_payment_terms_positive"),
    )

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name})>"


class Customer(Base, UUIDMixin, TimestampMixin):
    """
    Cliente di un'azienda.

    Attributes:
        company_id: Azienda proprietaria
        customer_number: Numero cliente interno
        name: Nome o ragione sociale
        email: Email per invio documenti
        payment_terms: Termini di pagamento in giorni (None = default azienda)
        language: Lingua dei documenti
    """

    __tablename__ = "customers"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="RESTRICT"),
        nullable=False,
    )
    customer_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_terms: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Termini di pagamento in giorni",
    )
    language: Mapped[str] = mapped_column(String(5), nullable=False, default="de")

    company: Mapped["Company"] = relationship(
        "Company",
        back_populates="customers",
        lazy="selectin",
    )
    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice",
        back_populates="customer",
    )
    quotes: Mapped[List["Quote"]] = relationship(
        "Quote",
        back_populates="customer",
    )

    __table_args__ = (
        Index("ix_customers_company_id", "company_id"),
        CheckConstraint(
            "payment_terms IS NULL OR payment_terms >= 0",
            name="ck_customers_payment_terms_positive",
        ),
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name={self.name})>"
