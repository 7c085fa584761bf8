from decimal import Decimal

import pytest

from dgii_fiscal.domain.tax_tables import (
    ISR_RETENTION_RATES,
    ITBIS_RATES,
    NCF_TYPES,
    CancellationReason,
    is_electronic,
    is_known_ncf_type,
    isr_retention_label,
    ncf_type_label,
)


class TestNcfTypes:
    @pytest.mark.parametrize("code", sorted(NCF_TYPES))
    def test_is_electronic_matches_table(self, code):
        assert is_electronic(code) == NCF_TYPES[code].is_electronic

    def test_examples(self):
        assert is_electronic("E31") is True
        assert is_electronic("B01") is False

    def test_table_has_twelve_types(self):
        assert len(NCF_TYPES) == 12
        assert sum(1 for t in NCF_TYPES.values() if t.is_electronic) == 7

    def test_known_type(self):
        assert is_known_ncf_type("B02")
        assert not is_known_ncf_type("B99")

    def test_label(self):
        assert ncf_type_label("B01") == "Crédito Fiscal"
        assert ncf_type_label("E46") == "e-CF Exportación"

    def test_unknown_label_falls_back_to_code(self):
        assert ncf_type_label("X01") == "X01"


class TestRates:
    def test_itbis_rates(self):
        assert ITBIS_RATES == (Decimal("0"), Decimal("16"), Decimal("18"))

    def test_isr_rates(self):
        assert sorted(ISR_RETENTION_RATES) == [Decimal(r) for r in (0, 5, 10, 15, 25, 27)]

    def test_isr_label(self):
        assert isr_retention_label(Decimal("5")) == "Honorarios profesionales"

    def test_isr_label_unknown_rate(self):
        assert isr_retention_label(Decimal("7")) == "7%"


class TestCancellationReason:
    def test_only_deterioro(self):
        assert [r.value for r in CancellationReason] == ["02"]
        assert CancellationReason.DETERIORO.label == "Deterioro de factura pre-impresa"
