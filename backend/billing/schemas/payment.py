"""
Schemas Pydantic per i Pagamenti e la Riconciliazione
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Contiene:
- Enum: MatchConfidence
- Schemas per Payment (registrazione, lettura, abbinamento manuale)
- Schemas per l'importazione a lotti e per le statistiche
"""

import datetime
import re
import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


_WHITESPACE = re.compile(r"\s+")


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class MatchConfidence(str, Enum):
    """Livello di certezza dell'abbinamento pagamento -> fattura."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    MANUAL = "MANUAL"


# -------------------------------------------------------------------
# Funzioni di normalizzazione standalone
# -------------------------------------------------------------------

def normalize_reference(reference: Optional[str]) -> Optional[str]:
    """
    Rimuove tutti gli spazi dal riferimento di pagamento.

    Un riferimento vuoto dopo la pulizia viene trattato come assente.
    """
    if reference is None:
        return None
    cleaned = _WHITESPACE.sub("", reference)
    return cleaned or None


# -------------------------------------------------------------------
# Schemas per Payment
# -------------------------------------------------------------------

class PaymentRecord(BaseModel):
    """
    Record di pagamento normalizzato (da estratto conto o inserimento manuale).

    L'importo non è vincolato a livello di schema: nell'importazione a
    lotti un record non valido deve fallire da solo, non l'intera richiesta.
    """

    amount: int = Field(..., description="Importo in unità minori")
    value_date: datetime.date = Field(
        ...,
        description="Data valuta",
        serialization_alias="valueDate",
    )
    reference: Optional[str] = Field(
        None,
        description="Riferimento QRR/SCOR (gli spazi vengono rimossi)",
    )
    description: Optional[str] = Field(None, description="Causale")
    notes: Optional[str] = None
    raw_data: Optional[dict[str, Any]] = Field(
        None,
        description="Record sorgente originale",
        serialization_alias="rawData",
    )

    @field_validator("reference")
    @classmethod
    def clean_reference(cls, v: Optional[str]) -> Optional[str]:
        """Normalizza il riferimento rimuovendo gli spazi."""
        return normalize_reference(v)


class PaymentCreate(PaymentRecord):
    """Registrazione di un singolo pagamento."""
    pass


class PaymentRead(BaseModel):
    """Schema per la lettura di un pagamento."""

    id: uuid.UUID
    company_id: uuid.UUID = Field(..., serialization_alias="companyId")
    invoice_id: Optional[uuid.UUID] = Field(None, serialization_alias="invoiceId")
    amount: int
    value_date: datetime.date = Field(..., serialization_alias="valueDate")
    reference: Optional[str] = None
    description: Optional[str] = None
    confidence: MatchConfidence
    is_matched: bool = Field(..., serialization_alias="isMatched")
    import_batch: Optional[str] = Field(None, serialization_alias="importBatch")
    notes: Optional[str] = None
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")

    model_config = ConfigDict(from_attributes=True)


class PaymentMatchRequest(BaseModel):
    """Abbinamento manuale di un pagamento a una fattura."""

    invoice_id: uuid.UUID = Field(..., serialization_alias="invoiceId")


class MatchResult(BaseModel):
    """
    Proposta del motore di abbinamento.

    invoice_id è None solo con confidenza MANUAL.
    """

    invoice_id: Optional[uuid.UUID] = Field(None, serialization_alias="invoiceId")
    confidence: MatchConfidence

    @computed_field
    @property
    def is_matched(self) -> bool:
        """True se è stata individuata una fattura."""
        return self.invoice_id is not None


# -------------------------------------------------------------------
# Schemas per l'importazione a lotti
# -------------------------------------------------------------------

class PaymentImportRequest(BaseModel):
    """Richiesta di importazione di più pagamenti."""

    payments: list[PaymentRecord] = Field(
        ...,
        min_length=1,
        description="Record normalizzati da importare",
    )
    batch_tag: Optional[str] = Field(
        None,
        max_length=100,
        description="Identificativo del lotto (default: timestamp in millisecondi)",
        serialization_alias="batchTag",
    )


class ImportFailure(BaseModel):
    """Record scartato durante l'importazione."""

    index: int = Field(..., description="Posizione del record nel lotto (0-based)")
    reference: Optional[str] = None
    reason: str


class ImportResult(BaseModel):
    """
    Esito dell'importazione.

    Un errore su un record non interrompe il lotto: viene riportato
    in failures e l'elaborazione prosegue.
    """

    total: int = Field(..., description="Record ricevuti")
    imported: int = Field(..., description="Record salvati")
    auto_matched: int = Field(..., serialization_alias="autoMatched")
    needs_review: int = Field(..., serialization_alias="needsReview")
    failed: int
    failures: list[ImportFailure] = Field(default_factory=list)
    batch_tag: str = Field(..., serialization_alias="batchTag")
    payments: list[PaymentRead] = Field(default_factory=list)


class AutoMatchResult(BaseModel):
    """Esito della ri-esecuzione dell'abbinamento automatico."""

    processed: int
    matched: int
    payments: list[PaymentRead] = Field(default_factory=list)


# -------------------------------------------------------------------
# Statistiche
# -------------------------------------------------------------------

class PaymentStats(BaseModel):
    """Statistiche pagamenti di un'azienda (importi in unità minori)."""

    total_payments: int = Field(..., serialization_alias="totalPayments")
    total_amount: int = Field(..., serialization_alias="totalAmount")
    matched_payments: int = Field(..., serialization_alias="matchedPayments")
    unmatched_payments: int = Field(..., serialization_alias="unmatchedPayments")
    matching_rate: int = Field(..., description="Percentuale abbinati", serialization_alias="matchingRate")
    confidence_counts: dict[str, int] = Field(
        default_factory=dict,
        serialization_alias="confidenceCounts",
    )
    average_payment_amount: int = Field(..., serialization_alias="averagePaymentAmount")


class PaymentList(BaseModel):
    """Schema per la lista dei pagamenti."""

    items: list[PaymentRead] = Field(default_factory=list)
    total: int
