"""
Schemas Pydantic comuni ai documenti (offerte e fatture)
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Contiene:
- Schemas per le righe documento (input e lettura)
- Risultati del calcolo di riga e dei totali documento

Tutti i valori numerici sono interi nelle rispettive scale
(importi in unità minori, quantità in millesimi, aliquote x 100).
I range di quantità e aliquote sono verificati dal calcolatore,
che solleva InvalidLineItemError con un messaggio specifico.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# -------------------------------------------------------------------
# Schemas per le righe documento
# -------------------------------------------------------------------

class LineItemInput(BaseModel):
    """
    Riga documento in ingresso, prima del calcolo.

    Attributes:
        description: Descrizione della riga
        quantity: Quantità in millesimi (2.5 -> 2500)
        unit: Unità di misura
        unit_price: Prezzo unitario in unità minori
        discount: Sconto percentuale x 100 (10% -> 1000)
        vat_rate: Aliquota IVA x 100 (8.1% -> 810)
        sort_order: Posizione 1-based; se assente vale la posizione in lista
    """

    description: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Descrizione della riga",
    )
    quantity: int = Field(
        ...,
        description="Quantità in millesimi",
    )
    unit: str = Field(
        default="Stk",
        max_length=20,
        description="Unità di misura",
    )
    unit_price: int = Field(
        ...,
        description="Prezzo unitario in unità minori",
        serialization_alias="unitPrice",
    )
    discount: int = Field(
        default=0,
        description="Sconto percentuale x 100",
    )
    vat_rate: int = Field(
        default=0,
        description="Aliquota IVA x 100",
        serialization_alias="vatRate",
    )
    sort_order: Optional[int] = Field(
        None,
        description="Posizione della riga (1-based)",
        serialization_alias="sortOrder",
    )

    model_config = ConfigDict(from_attributes=True)


class LineItemRead(BaseModel):
    """Riga documento salvata, con i valori calcolati."""

    id: uuid.UUID = Field(..., description="UUID della riga")
    description: str
    quantity: int
    unit: str
    unit_price: int = Field(..., serialization_alias="unitPrice")
    discount: int
    vat_rate: int = Field(..., serialization_alias="vatRate")
    line_total: int = Field(..., serialization_alias="lineTotal")
    vat_amount: int = Field(..., serialization_alias="vatAmount")
    sort_order: int = Field(..., serialization_alias="sortOrder")

    @computed_field
    @property
    def discounted_amount(self) -> int:
        """Imponibile scontato della riga."""
        return self.line_total - self.vat_amount

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Risultati di calcolo
# -------------------------------------------------------------------

class LineItemResult(LineItemInput):
    """
    Riga calcolata: input originale più gli importi derivati.

    Vale sempre line_total == discounted_amount + vat_amount.
    """

    sort_order: int = Field(..., serialization_alias="sortOrder")
    discounted_amount: int = Field(
        ...,
        ge=0,
        description="Imponibile scontato",
        serialization_alias="discountedAmount",
    )
    vat_amount: int = Field(
        ...,
        ge=0,
        description="IVA della riga",
        serialization_alias="vatAmount",
    )
    line_total: int = Field(
        ...,
        ge=0,
        description="Totale riga IVA inclusa",
        serialization_alias="lineTotal",
    )


class DocumentTotals(BaseModel):
    """
    Totali di un documento.

    total == subtotal + vat_amount - discount_amount
    """

    subtotal: int = Field(..., description="Somma imponibili scontati")
    vat_amount: int = Field(..., description="Somma IVA", serialization_alias="vatAmount")
    discount_amount: int = Field(
        default=0,
        description="Sconto forfettario dopo IVA",
        serialization_alias="discountAmount",
    )
    total: int = Field(..., description="Totale documento")
    items: list[LineItemResult] = Field(
        default_factory=list,
        description="Righe calcolate, nell'ordine di sort_order",
    )


class DocumentTotalsRequest(BaseModel):
    """Richiesta di calcolo totali senza salvataggio."""

    items: list[LineItemInput] = Field(
        default_factory=list,
        description="Righe del documento",
    )
    discount_amount: int = Field(
        default=0,
        description="Sconto forfettario in unità minori",
        serialization_alias="discountAmount",
    )
