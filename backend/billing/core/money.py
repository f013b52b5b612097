"""
Modello monetario a virgola fissa
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Convenzioni di scala (tutte intere, nessun float persistito):
- Importi: unità minori (Rappen), 1 CHF = 100
- Quantità: millesimi di unità, 2.5 pezzi = 2500
- Aliquote/percentuali: percentuale x 100, 7.7% = 770, 100% = 10000

Le due funzioni di calcolo arrotondano ciascuna per conto proprio
(half-up all'unità minore). I totali di documento sommano valori già
arrotondati, senza un arrotondamento globale successivo.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

MONEY_SCALE = 100
QUANTITY_SCALE = 1000
RATE_SCALE = 10000

MAX_RATE = RATE_SCALE

_ONE = Decimal("1")


def round_half_up(value: Decimal) -> int:
    """Arrotonda all'intero più vicino, metà per eccesso."""
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


def line_amount(quantity: int, unit_price: int, discount_rate: int = 0) -> int:
    """
    Imponibile di riga, già scontato.

    Formula: quantity/1000 * unit_price * (1 - discount_rate/10000)

    Args:
        quantity: Quantità in millesimi
        unit_price: Prezzo unitario in unità minori
        discount_rate: Sconto percentuale x 100

    Returns:
        int: Importo in unità minori
    """
    gross = Decimal(quantity) * Decimal(unit_price) / Decimal(QUANTITY_SCALE)
    discounted = gross * (Decimal(RATE_SCALE) - Decimal(discount_rate)) / Decimal(RATE_SCALE)
    return round_half_up(discounted)


def vat_on_amount(amount: int, vat_rate: int) -> int:
    """
    IVA su un importo.

    Args:
        amount: Imponibile in unità minori
        vat_rate: Aliquota x 100 (770 = 7.7%)

    Returns:
        int: IVA in unità minori
    """
    return round_half_up(Decimal(amount) * Decimal(vat_rate) / Decimal(RATE_SCALE))


def to_major_units(amount: int) -> Decimal:
    """Converte unità minori in unità maggiori (1235 -> Decimal('12.35'))."""
    return (Decimal(amount) / Decimal(MONEY_SCALE)).quantize(Decimal("0.01"))


def from_major_units(value: Union[Decimal, str, int]) -> int:
    """Converte un importo in unità maggiori nelle unità minori, half-up."""
    return round_half_up(Decimal(str(value)) * Decimal(MONEY_SCALE))


def format_money(amount: int) -> str:
    """Rappresentazione testuale per log e messaggi (1235 -> '12.35')."""
    return f"{to_major_units(amount):.2f}"


def format_rate(rate: int) -> str:
    """Rappresentazione testuale di un'aliquota (770 -> '7.70%')."""
    return f"{Decimal(rate) / Decimal(100):.2f}%"
