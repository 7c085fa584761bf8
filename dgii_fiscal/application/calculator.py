"""Aritmética fiscal de la factura: ITBIS, retención ISR y total a pagar."""

from decimal import Decimal

from dgii_fiscal.application.dtos import TaxBreakdown
from dgii_fiscal.domain.exceptions import InvoiceValidationError
from dgii_fiscal.domain.tax_tables import ISR_RETENTION_RATES, ITBIS_RATES
from dgii_fiscal.domain.value_objects import quantize_money, to_decimal

HUNDRED = Decimal("100")


class InvoiceCalculator:
    """
    Cálculo puro y determinista de los campos derivados que se persisten.

    Los montos se guardan con 2 decimales (ROUND_HALF_UP). La conversión a
    centavos enteros ocurre solo al exportar, ver `to_cents`.
    """

    def compute(self, amount: object, tax_rate: object, isr_retention_rate: object) -> TaxBreakdown:
        base, rate, isr_rate = self._parse_inputs(amount, tax_rate, isr_retention_rate)
        base = quantize_money(base)
        if base <= 0:
            raise InvoiceValidationError(["El monto debe ser mayor que cero"])

        itbis = quantize_money(base * rate / HUNDRED)
        isr = quantize_money(base * isr_rate / HUNDRED)
        total = quantize_money(base + itbis - isr)

        return TaxBreakdown(
            itbis_amount=itbis,
            isr_retention_amount=isr,
            total_amount=total,
        )

    def validate_rates(self, tax_rate: object, isr_retention_rate: object) -> list[str]:
        """Verifica que las tasas pertenezcan a las tablas DGII vigentes."""
        errors: list[str] = []
        try:
            if to_decimal(tax_rate) not in ITBIS_RATES:
                errors.append(f"Tasa de ITBIS no permitida: {tax_rate}")
        except ValueError:
            errors.append(f"Tasa de ITBIS inválida: '{tax_rate}'")
        try:
            if to_decimal(isr_retention_rate) not in ISR_RETENTION_RATES:
                errors.append(f"Tasa de retención ISR no permitida: {isr_retention_rate}")
        except ValueError:
            errors.append(f"Tasa de retención ISR inválida: '{isr_retention_rate}'")
        return errors

    @staticmethod
    def to_cents(amount: Decimal) -> int:
        return int(quantize_money(amount) * 100)

    @staticmethod
    def dop_equivalent(total_amount: Decimal, exchange_rate: Decimal) -> Decimal:
        """Valor informativo; nunca modifica total_amount."""
        return quantize_money(total_amount * exchange_rate)

    @staticmethod
    def _parse_inputs(*values: object) -> tuple[Decimal, Decimal, Decimal]:
        names = ("amount", "tax_rate", "isr_retention_rate")
        errors: list[str] = []
        parsed: list[Decimal] = []
        for name, value in zip(names, values):
            try:
                number = to_decimal(value)
            except ValueError:
                errors.append(f"{name} no es numérico: '{value}'")
                parsed.append(Decimal("0"))
                continue
            if not number.is_finite():
                errors.append(f"{name} debe ser finito: {value}")
            elif number < 0:
                errors.append(f"{name} no puede ser negativo: {value}")
            parsed.append(number)

        if errors:
            raise InvoiceValidationError(errors)
        return parsed[0], parsed[1], parsed[2]
