from decimal import Decimal
from datetime import date

import pytest

from dgii_fiscal.domain.entities import Client, Invoice, InvoiceStatus
from dgii_fiscal.domain.exceptions import InvalidTransitionError
from dgii_fiscal.domain.value_objects import Currency, Money


def _make_invoice(**overrides) -> Invoice:
    defaults = {
        "id": "inv-1",
        "invoice_number": "F-001",
        "ncf_type": "B01",
        "ncf": "B0100000001",
        "rnc_cedula": "131234567",
        "client": Client(name="Constructora Caribe", document_number="101000001"),
        "concept": "Asesoría legal",
        "amount": Decimal("1000.00"),
        "tax_rate": Decimal("18"),
        "isr_retention_rate": Decimal("5"),
        "isr_retention_amount": Decimal("50.00"),
        "total_amount": Decimal("1130.00"),
        "issue_date": date(2024, 3, 10),
    }
    defaults.update(overrides)
    return Invoice(**defaults)


class TestInvoice:
    def test_itbis_derived_from_amount(self):
        assert _make_invoice().itbis_amount == Decimal("180.00")

    def test_rejects_ncf_of_other_type(self):
        with pytest.raises(ValueError, match="no corresponde"):
            _make_invoice(ncf="B0200000001")

    def test_rejects_short_ncf(self):
        with pytest.raises(ValueError, match="no corresponde"):
            _make_invoice(ncf="B011")

    def test_rejects_zero_amount(self):
        with pytest.raises(ValueError, match="mayor que cero"):
            _make_invoice(
                amount=Decimal("0"),
                isr_retention_amount=Decimal("0"),
                total_amount=Decimal("0"),
            )

    def test_validates_total(self):
        with pytest.raises(ValueError, match="no coincide"):
            _make_invoice(total_amount=Decimal("1180.00"))

    def test_rejects_exchange_rate_below_one(self):
        with pytest.raises(ValueError, match="exchange_rate"):
            _make_invoice(exchange_rate=Decimal("0.5"))

    def test_paid_requires_paid_date(self):
        with pytest.raises(ValueError, match="paid_date"):
            _make_invoice(status=InvoiceStatus.PAID)

    def test_rejects_empty_invoice_number(self):
        with pytest.raises(ValueError, match="invoice_number"):
            _make_invoice(invoice_number="  ")

    def test_immutability(self):
        invoice = _make_invoice()
        with pytest.raises(AttributeError):
            invoice.ncf = "B0100000002"  # type: ignore[misc]

    def test_buyer_tax_id_falls_back_to_client(self):
        assert _make_invoice().buyer_tax_id == "131234567"
        assert _make_invoice(rnc_cedula=None).buyer_tax_id == "101000001"
        no_doc = _make_invoice(rnc_cedula=None, client=Client(name="Sin RNC"))
        assert no_doc.buyer_tax_id == ""

    def test_dop_equivalent_only_for_usd(self):
        assert _make_invoice().dop_equivalent is None
        usd = _make_invoice(currency=Currency.USD, exchange_rate=Decimal("58.50"))
        assert usd.dop_equivalent == Money(Decimal("66105.00"), Currency.DOP)
        assert usd.total_amount == Decimal("1130.00")


class TestStatusTransitions:
    def test_mark_paid_sets_date(self):
        original = _make_invoice()
        paid = original.mark_paid(date(2024, 3, 20))
        assert paid.status is InvoiceStatus.PAID
        assert paid.paid_date == date(2024, 3, 20)
        assert original.status is InvoiceStatus.PENDING

    def test_cancel_keeps_ncf(self):
        cancelled = _make_invoice().cancel()
        assert cancelled.status is InvoiceStatus.CANCELLED
        assert cancelled.ncf == "B0100000001"

    def test_paid_can_be_cancelled(self):
        cancelled = _make_invoice().mark_paid(date(2024, 3, 20)).cancel()
        assert cancelled.status is InvoiceStatus.CANCELLED

    def test_nothing_leaves_cancelled(self):
        cancelled = _make_invoice().cancel()
        with pytest.raises(InvalidTransitionError):
            cancelled.mark_paid()
        with pytest.raises(InvalidTransitionError):
            cancelled.with_status(InvoiceStatus.PENDING)

    def test_paid_cannot_be_paid_again(self):
        paid = _make_invoice().mark_paid(date(2024, 3, 20))
        with pytest.raises(InvalidTransitionError):
            paid.mark_paid()


class TestDisplayStatus:
    def test_overdue_is_derived(self):
        invoice = _make_invoice(due_date=date(2024, 3, 31))
        assert invoice.display_status(date(2024, 4, 1)) is InvoiceStatus.OVERDUE
        assert invoice.status is InvoiceStatus.PENDING

    def test_not_overdue_on_due_date(self):
        invoice = _make_invoice(due_date=date(2024, 3, 31))
        assert invoice.display_status(date(2024, 3, 31)) is InvoiceStatus.PENDING

    def test_paid_never_overdue(self):
        invoice = _make_invoice(due_date=date(2024, 3, 31)).mark_paid(date(2024, 4, 5))
        assert invoice.display_status(date(2024, 5, 1)) is InvoiceStatus.PAID


class TestMoney:
    def test_format(self):
        assert Money(Decimal("1234.5")).format() == "RD$ 1,234.50"
        assert Money(Decimal("10"), Currency.USD).format() == "US$ 10.00"

    def test_client_requires_name(self):
        with pytest.raises(ValueError, match="nombre"):
            Client(name=" ")
