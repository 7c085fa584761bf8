from decimal import Decimal

import pytest

from dgii_fiscal.application.calculator import InvoiceCalculator
from dgii_fiscal.domain.exceptions import InvoiceValidationError


@pytest.fixture
def calculator():
    return InvoiceCalculator()


class TestCompute:
    def test_itbis_and_isr_scenario(self, calculator):
        result = calculator.compute(Decimal("1000.00"), 18, 5)
        assert result.itbis_amount == Decimal("180.00")
        assert result.isr_retention_amount == Decimal("50.00")
        assert result.total_amount == Decimal("1130.00")

    def test_accepts_strings(self, calculator):
        result = calculator.compute("250.50", "16", "0")
        assert result.itbis_amount == Decimal("40.08")
        assert result.total_amount == Decimal("290.58")

    def test_rounds_half_up(self, calculator):
        # 0.05 * 18% = 0.009 -> 0.01
        result = calculator.compute("0.05", 18, 0)
        assert result.itbis_amount == Decimal("0.01")

    def test_total_is_non_negative_with_highest_retention(self, calculator):
        result = calculator.compute("100", 0, 27)
        assert result.total_amount == Decimal("73.00")

    @pytest.mark.parametrize("amount", [0, "0.00", "0.004"])
    def test_rejects_zero_amount(self, calculator, amount):
        with pytest.raises(InvoiceValidationError, match="mayor que cero"):
            calculator.compute(amount, 18, 0)

    def test_rejects_negative(self, calculator):
        with pytest.raises(InvoiceValidationError, match="negativo"):
            calculator.compute("-10", 18, 0)

    def test_rejects_non_numeric(self, calculator):
        with pytest.raises(InvoiceValidationError) as exc:
            calculator.compute("abc", "x", 0)
        assert len(exc.value.errors) == 2

    def test_rejects_infinite(self, calculator):
        with pytest.raises(InvoiceValidationError, match="finito"):
            calculator.compute("Infinity", 18, 0)


class TestValidateRates:
    def test_allowed_rates(self, calculator):
        assert calculator.validate_rates(16, 10) == []

    def test_disallowed_rates(self, calculator):
        errors = calculator.validate_rates(12, 7)
        assert len(errors) == 2
        assert "ITBIS" in errors[0]
        assert "ISR" in errors[1]


class TestConversions:
    def test_to_cents(self):
        assert InvoiceCalculator.to_cents(Decimal("1130.00")) == 113000
        assert InvoiceCalculator.to_cents(Decimal("0.015")) == 2

    def test_dop_equivalent(self):
        assert InvoiceCalculator.dop_equivalent(Decimal("100.00"), Decimal("58.75")) == Decimal(
            "5875.00"
        )
