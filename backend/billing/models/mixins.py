"""
Mixin SQLAlchemy per modelli
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Mixin riutilizzabili per aggiungere funzionalità comuni ai modelli.
"""

import datetime
import uuid
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func


class TimestampMixin:
    """
    Mixin per gestione automatica timestamp creazione e aggiornamento.

    Aggiunge i campi:
    - created_at: data/ora di creazione record (impostato automaticamente)
    - updated_at: data/ora ultimo aggiornamento (aggiornato automaticamente)
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Data/ora di creazione del record",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Data/ora ultimo aggiornamento del record",
    )


class UUIDMixin:
    """
    Mixin per ID UUID generato lato applicazione.

    Aggiunge il campo id come UUID primary key con generazione automatica.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


class DocumentTotalsMixin:
    """
    Importi aggregati comuni a offerte e fatture.

    Tutti gli importi sono interi in unità minori (Rappen).
    Vale sempre: total = subtotal + vat_amount - discount_amount
    """

    subtotal: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Somma degli imponibili di riga (già scontati)",
    )

    vat_amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Somma dell'IVA di riga",
    )

    discount_code: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Codice sconto applicato al documento",
    )

    discount_amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Sconto forfettario applicato dopo l'IVA",
    )

    total: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Totale documento",
    )


class LineItemMixin:
    """
    Colonne di una riga documento (offerta o fattura).

    La riga appartiene esclusivamente al documento padre:
    viene creata e cancellata insieme ad esso.
    """

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Descrizione della riga",
    )

    quantity: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        doc="Quantità in millesimi (2.5 -> 2500)",
    )

    unit: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="Stk",
        doc="Unità di misura",
    )

    unit_price: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        doc="Prezzo unitario in unità minori",
    )

    discount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Sconto percentuale x 100",
    )

    vat_rate: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Aliquota IVA x 100 (770 = 7.7%)",
    )

    line_total: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        doc="Totale riga IVA inclusa",
    )

    vat_amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        doc="IVA della riga",
    )

    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Posizione della riga (1-based, contigua)",
    )

    @property
    def discounted_amount(self) -> int:
        """Imponibile scontato della riga."""
        return self.line_total - self.vat_amount


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Event listener per aggiornare automaticamente il campo updated_at.

    Aggiorna updated_at di tutti gli oggetti modificati (dirty)
    e nuovi (new) prima di ogni flush.
    """
    now = datetime.datetime.now(datetime.timezone.utc)

    for obj in session.dirty:
        if hasattr(obj, "updated_at"):
            if session.is_modified(obj, include_collections=False):
                obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, "updated_at"):
            obj.updated_at = now
