"""
Schemas Pydantic per la Fatturazione
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Contiene:
- Enum: InvoiceStatus
- Matrice delle transizioni di stato ammesse su azione del chiamante
- Schemas per Invoice (creazione, modifica, lettura, lista, statistiche)
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)

from billing.core.exceptions import BusinessValidationError
from billing.schemas.document import LineItemInput, LineItemRead


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class InvoiceStatus(str, Enum):
    """Stati di una fattura."""
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    PARTIAL_PAID = "PARTIAL_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


# Stati in cui una fattura attende ancora un incasso
OPEN_STATUSES: frozenset[InvoiceStatus] = frozenset({
    InvoiceStatus.OPEN,
    InvoiceStatus.PARTIAL_PAID,
    InvoiceStatus.OVERDUE,
})

# Stati che la riconciliazione non tocca
RECONCILIATION_FROZEN_STATUSES: frozenset[InvoiceStatus] = frozenset({
    InvoiceStatus.DRAFT,
    InvoiceStatus.CANCELLED,
})


# -------------------------------------------------------------------
# Matrice delle transizioni di stato valide
# -------------------------------------------------------------------

# Solo azioni esplicite del chiamante. PARTIAL_PAID e PAID vengono
# raggiunti unicamente dalla riconciliazione.
VALID_TRANSITIONS: dict[InvoiceStatus, list[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: [InvoiceStatus.OPEN, InvoiceStatus.CANCELLED],
    InvoiceStatus.OPEN: [InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED],
    InvoiceStatus.PARTIAL_PAID: [InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED],
    InvoiceStatus.OVERDUE: [InvoiceStatus.CANCELLED],
    InvoiceStatus.PAID: [],  # Stato finale
    InvoiceStatus.CANCELLED: [],  # Stato finale
}


# -------------------------------------------------------------------
# Schemas per Invoice
# -------------------------------------------------------------------

class InvoiceCreate(BaseModel):
    """
    Schema per la creazione di una fattura in bozza.

    NON include numero, riferimento di pagamento e importi:
    sono generati o calcolati dal service.
    """

    customer_id: uuid.UUID = Field(
        ...,
        description="UUID del cliente",
        serialization_alias="customerId",
    )
    date: Optional[datetime.date] = Field(
        None,
        description="Data emissione (default: oggi)",
    )
    due_date: Optional[datetime.date] = Field(
        None,
        description="Scadenza (default: data + termini di pagamento del cliente)",
        serialization_alias="dueDate",
    )
    items: list[LineItemInput] = Field(
        default_factory=list,
        description="Righe della fattura",
    )
    discount_code: Optional[str] = Field(
        None,
        max_length=50,
        serialization_alias="discountCode",
    )
    discount_amount: int = Field(
        default=0,
        ge=0,
        description="Sconto forfettario in unità minori",
        serialization_alias="discountAmount",
    )
    notes: Optional[str] = Field(None, description="Note stampate in fattura")

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def validate_dates(self) -> "InvoiceCreate":
        """Valida che due_date >= date."""
        if self.date and self.due_date and self.due_date < self.date:
            raise BusinessValidationError(
                "La data di scadenza non può essere precedente alla data fattura"
            )
        return self


class InvoiceUpdate(BaseModel):
    """Schema per la modifica di una fattura in bozza."""

    customer_id: Optional[uuid.UUID] = Field(None, serialization_alias="customerId")
    date: Optional[datetime.date] = None
    due_date: Optional[datetime.date] = Field(None, serialization_alias="dueDate")
    items: Optional[list[LineItemInput]] = Field(
        None,
        description="Se presente sostituisce tutte le righe",
    )
    discount_code: Optional[str] = Field(None, max_length=50, serialization_alias="discountCode")
    discount_amount: Optional[int] = Field(None, ge=0, serialization_alias="discountAmount")
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def validate_update(self) -> "InvoiceUpdate":
        """Valida che almeno un campo sia stato modificato."""
        if not self.model_fields_set:
            raise BusinessValidationError("È necessario modificare almeno un campo")
        return self


class InvoiceStatusUpdate(BaseModel):
    """Schema per il cambio di stato su azione del chiamante."""

    status: InvoiceStatus = Field(..., description="Nuovo stato")


class InvoiceRead(BaseModel):
    """Schema per la lettura di una fattura."""

    id: uuid.UUID = Field(..., description="UUID della fattura")
    company_id: uuid.UUID = Field(..., serialization_alias="companyId")
    customer_id: uuid.UUID = Field(..., serialization_alias="customerId")
    number: str = Field(..., description="Numero fattura (YYYY/NNNN)")
    date: datetime.date
    due_date: datetime.date = Field(..., serialization_alias="dueDate")
    status: InvoiceStatus
    subtotal: int
    vat_amount: int = Field(..., serialization_alias="vatAmount")
    discount_code: Optional[str] = Field(None, serialization_alias="discountCode")
    discount_amount: int = Field(..., serialization_alias="discountAmount")
    total: int
    paid_amount: int = Field(..., serialization_alias="paidAmount")
    qr_reference: Optional[str] = Field(None, serialization_alias="qrReference")
    reminder_level: int = Field(0, serialization_alias="reminderLevel")
    sent_at: Optional[datetime.datetime] = Field(None, serialization_alias="sentAt")
    notes: Optional[str] = None
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime.datetime = Field(..., serialization_alias="updatedAt")

    items: list[LineItemRead] = Field(
        default_factory=list,
        description="Righe della fattura",
    )

    # -------------------------------------------------------------------
    # Computed Fields
    # -------------------------------------------------------------------
    @computed_field
    @property
    def remaining_amount(self) -> int:
        """Importo ancora da incassare."""
        return self.total - self.paid_amount

    model_config = ConfigDict(from_attributes=True)


class InvoiceList(BaseModel):
    """Schema per la lista paginata delle fatture."""

    items: list[InvoiceRead] = Field(default_factory=list)
    total: int = Field(..., description="Numero totale di fatture")
    page: int = Field(..., description="Pagina corrente")
    per_page: int = Field(..., serialization_alias="perPage")
    total_pages: int = Field(..., serialization_alias="totalPages")


class InvoiceStats(BaseModel):
    """Statistiche fatture di un'azienda (importi in unità minori)."""

    total_invoices: int = Field(..., serialization_alias="totalInvoices")
    status_counts: dict[str, int] = Field(
        default_factory=dict,
        serialization_alias="statusCounts",
    )
    total_revenue: int = Field(..., serialization_alias="totalRevenue")
    paid_amount: int = Field(..., serialization_alias="paidAmount")
    outstanding_amount: int = Field(..., serialization_alias="outstandingAmount")
    average_invoice_amount: int = Field(..., serialization_alias="averageInvoiceAmount")
