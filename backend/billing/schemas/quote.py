"""
Schemas Pydantic per le Offerte
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Definisce gli schemi di validazione e serializzazione per l'API,
inclusa l'accettazione pubblica tramite token.
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from billing.core.exceptions import BusinessValidationError
from billing.schemas.document import LineItemInput, LineItemRead
from billing.schemas.invoice import InvoiceRead


# -------------------------------------------------------------------
# Enum per gli stati dell'offerta
# -------------------------------------------------------------------

class QuoteStatus(str, Enum):
    """Stati di un'offerta."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    CONVERTED = "CONVERTED"


# -------------------------------------------------------------------
# Matrice delle transizioni di stato valide
# -------------------------------------------------------------------

# Azioni esplicite del chiamante. EXPIRED e CONVERTED vengono
# impostati solo dall'accettazione tramite token.
VALID_TRANSITIONS: dict[QuoteStatus, list[QuoteStatus]] = {
    QuoteStatus.DRAFT: [QuoteStatus.SENT, QuoteStatus.CANCELLED],
    QuoteStatus.SENT: [QuoteStatus.DECLINED, QuoteStatus.CANCELLED],
    QuoteStatus.ACCEPTED: [],
    QuoteStatus.DECLINED: [],
    QuoteStatus.EXPIRED: [],
    QuoteStatus.CANCELLED: [],
    QuoteStatus.CONVERTED: [],
}

# Un'offerta in uno di questi stati non può più essere accettata
ACCEPTED_STATUSES: frozenset[QuoteStatus] = frozenset({
    QuoteStatus.ACCEPTED,
    QuoteStatus.CONVERTED,
})


# -------------------------------------------------------------------
# Schemas per Quote
# -------------------------------------------------------------------

class QuoteCreate(BaseModel):
    """Schema per la creazione di un'offerta in bozza."""

    customer_id: uuid.UUID = Field(..., serialization_alias="customerId")
    date: Optional[datetime.date] = Field(None, description="Data offerta (default: oggi)")
    expiry_date: datetime.date = Field(
        ...,
        description="Ultimo giorno di validità",
        serialization_alias="expiryDate",
    )
    items: list[LineItemInput] = Field(default_factory=list)
    discount_code: Optional[str] = Field(None, max_length=50, serialization_alias="discountCode")
    discount_amount: int = Field(default=0, ge=0, serialization_alias="discountAmount")
    notes: Optional[str] = None
    internal_notes: Optional[str] = Field(None, serialization_alias="internalNotes")

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def validate_dates(self) -> "QuoteCreate":
        """Valida che expiry_date >= date."""
        if self.date and self.expiry_date < self.date:
            raise BusinessValidationError(
                "La data di scadenza non può essere precedente alla data offerta"
            )
        return self


class QuoteUpdate(BaseModel):
    """Schema per la modifica di un'offerta in bozza."""

    customer_id: Optional[uuid.UUID] = Field(None, serialization_alias="customerId")
    date: Optional[datetime.date] = None
    expiry_date: Optional[datetime.date] = Field(None, serialization_alias="expiryDate")
    items: Optional[list[LineItemInput]] = None
    discount_code: Optional[str] = Field(None, max_length=50, serialization_alias="discountCode")
    discount_amount: Optional[int] = Field(None, ge=0, serialization_alias="discountAmount")
    notes: Optional[str] = None
    internal_notes: Optional[str] = Field(None, serialization_alias="internalNotes")

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def validate_update(self) -> "QuoteUpdate":
        """Valida che almeno un campo sia stato modificato."""
        if not self.model_fields_set:
            raise BusinessValidationError("È necessario modificare almeno un campo")
        return self


class QuoteStatusUpdate(BaseModel):
    """Cambio di stato su azione del chiamante (invio, rifiuto, annullamento)."""

    status: QuoteStatus


class QuoteAcceptRequest(BaseModel):
    """Dati opzionali inviati dal cliente che accetta l'offerta."""

    customer_email: Optional[str] = Field(
        None,
        max_length=255,
        description="Email di chi accetta",
        serialization_alias="customerEmail",
    )


class QuoteRead(BaseModel):
    """Schema per la lettura di un'offerta."""

    id: uuid.UUID
    company_id: uuid.UUID = Field(..., serialization_alias="companyId")
    customer_id: uuid.UUID = Field(..., serialization_alias="customerId")
    number: str
    date: datetime.date
    expiry_date: datetime.date = Field(..., serialization_alias="expiryDate")
    status: QuoteStatus
    subtotal: int
    vat_amount: int = Field(..., serialization_alias="vatAmount")
    discount_code: Optional[str] = Field(None, serialization_alias="discountCode")
    discount_amount: int = Field(..., serialization_alias="discountAmount")
    total: int
    notes: Optional[str] = None
    internal_notes: Optional[str] = Field(None, serialization_alias="internalNotes")
    acceptance_token: Optional[str] = Field(None, serialization_alias="acceptanceToken")
    acceptance_link: Optional[str] = Field(None, serialization_alias="acceptanceLink")
    sent_at: Optional[datetime.datetime] = Field(None, serialization_alias="sentAt")
    accepted_at: Optional[datetime.datetime] = Field(None, serialization_alias="acceptedAt")
    accepted_by_email: Optional[str] = Field(None, serialization_alias="acceptedByEmail")
    converted_to_invoice_id: Optional[uuid.UUID] = Field(
        None,
        serialization_alias="convertedToInvoiceId",
    )
    converted_at: Optional[datetime.datetime] = Field(None, serialization_alias="convertedAt")
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime.datetime = Field(..., serialization_alias="updatedAt")

    items: list[LineItemRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class QuoteAcceptanceResult(BaseModel):
    """Esito dell'accettazione: l'offerta convertita e la nuova fattura."""

    quote: QuoteRead
    invoice: InvoiceRead
