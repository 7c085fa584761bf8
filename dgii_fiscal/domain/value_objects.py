"""Value objects del dominio."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

CENT = Decimal("0.01")


class Currency(Enum):
    DOP = "DOP"
    USD = "USD"

    @property
    def symbol(self) -> str:
        return "US$" if self is Currency.USD else "RD$"


def to_decimal(value: object) -> Decimal:
    """Convierte int/str/float/Decimal a Decimal sin pasar por binario."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Monto inválido: '{value}'") from e


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """Value object para montos financieros. Siempre Decimal, nunca float."""

    amount: Decimal
    currency: Currency = Currency.DOP

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        if not self.amount.is_finite():
            raise ValueError(f"Monto inválido: {self.amount}")

    def format(self) -> str:
        """Formato es-DO: RD$ 1,234.56"""
        return f"{self.currency.symbol} {quantize_money(self.amount):,.2f}"
