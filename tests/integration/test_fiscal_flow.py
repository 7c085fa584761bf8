"""End-to-end: create invoices with real SQLite, change status, export 607/608, render PDFs."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import openpyxl
import pytest

from dgii_fiscal.application.dtos import PDF_MIME, FiscalPeriod, ReportType
from dgii_fiscal.application.report_formatter import parse_607_detail
from dgii_fiscal.application.verification import security_code
from dgii_fiscal.domain.entities import InvoiceStatus
from dgii_fiscal.domain.exceptions import InvoiceValidationError
from dgii_fiscal.domain.value_objects import Currency

from tests.integration.conftest import make_draft

MARCH_2024 = FiscalPeriod(2024, 3)


@pytest.fixture
def march_book(create_invoice, lifecycle):
    """3 facturas válidas (una pagada) y 1 anulada en marzo, más 1 en abril."""
    first = create_invoice.execute(
        make_draft(1, issue_date=date(2024, 3, 1), due_date=date(2024, 3, 31))
    )
    second = create_invoice.execute(
        make_draft(2, amount=Decimal("1000.00"), isr_retention_rate=Decimal("5"))
    )
    third = create_invoice.execute(make_draft(3, issue_date=date(2024, 3, 31)))
    voided = create_invoice.execute(make_draft(4, issue_date=date(2024, 3, 20)))
    create_invoice.execute(make_draft(5, issue_date=date(2024, 4, 1)))

    lifecycle.mark_paid(second.id, date(2024, 3, 28))
    lifecycle.cancel(voided.id)
    return {"first": first, "second": second, "third": third, "voided": voided}


class TestInvoiceCreation:
    def test_sequence_persists_across_sequencers(self, create_invoice, counter_store):
        create_invoice.execute(make_draft(1))
        create_invoice.execute(make_draft(2))
        assert counter_store.get("B01") == 2
        assert create_invoice.preview_ncf("B01") == "B0100000003"

    def test_failed_validation_leaves_no_trace(self, create_invoice, repository, counter_store):
        with pytest.raises(InvoiceValidationError):
            create_invoice.execute(make_draft(1, amount="0"))
        assert counter_store.snapshot() == {}
        assert repository.list_by_issue_date(date(2024, 1, 1), date(2024, 12, 31)) == []

    def test_reconciles_counter_behind_store(self, create_invoice, counter_store):
        create_invoice.execute(make_draft(1))
        # simula un commit perdido tras un insert exitoso
        counter_store.set("B01", 0)
        invoice = create_invoice.execute(make_draft(2))
        assert invoice.ncf == "B0100000002"
        assert counter_store.get("B01") == 2


class TestExports:
    def test_607_and_608_headers(self, march_book, export_report):
        sales = export_report.execute(ReportType.SALES, MARCH_2024)
        voided = export_report.execute(ReportType.CANCELLED, MARCH_2024)

        assert sales.file.content.split(b"\r\n")[0] == b"607|000000000|202403|3"
        assert voided.file.content.split(b"\r\n")[0] == b"608|000000000|202403|1"

    def test_invoice_in_exactly_one_report(self, march_book, export_report):
        sales = export_report.execute(ReportType.SALES, MARCH_2024).file.content.decode()
        voided = export_report.execute(ReportType.CANCELLED, MARCH_2024).file.content.decode()

        voided_ncf = march_book["voided"].ncf
        assert voided_ncf not in sales
        assert voided_ncf in voided
        for key in ("first", "second", "third"):
            assert march_book[key].ncf in sales
            assert march_book[key].ncf not in voided

    def test_607_detail_values(self, march_book, export_report):
        content = export_report.execute(ReportType.SALES, MARCH_2024).file.content.decode()
        details = [parse_607_detail(line) for line in content.split("\r\n")[1:]]
        by_ncf = {d["ncf"]: d for d in details}

        paid = by_ncf[march_book["second"].ncf]
        assert paid["rnc_cedula"] == "00130000001"
        assert paid["monto_facturado"] == 100000
        assert paid["itbis_facturado"] == 18000
        assert paid["isr_retenido"] == 5000
        assert paid["forma_pago"] == "01"
        assert by_ncf[march_book["first"].ncf]["forma_pago"] == "02"

    def test_files_written(self, march_book, export_report, app_config):
        result = export_report.execute(ReportType.SALES, MARCH_2024)
        output_dir = Path(app_config.reports.output_dir)

        assert (output_dir / "607_202403.txt").read_bytes() == result.file.content

        preview = output_dir / "607_202403_vista_previa.xlsx"
        wb = openpyxl.load_workbook(preview)
        try:
            ws = wb["Vista previa 607"]
            headers = [c.value for c in ws[1]]
            assert headers[:3] == ["Tipo NCF", "Descripción Tipo", "NCF"]
            assert ws.max_row == 4
        finally:
            wb.close()

    def test_empty_period_is_no_data(self, march_book, export_report, app_config):
        result = export_report.execute(ReportType.SALES, FiscalPeriod(2024, 5))
        assert result.status == "NO_DATA"
        assert not (Path(app_config.reports.output_dir) / "607_202405.txt").exists()

    def test_summary(self, march_book, export_report):
        summary = export_report.execute(ReportType.SALES, MARCH_2024).summary
        assert summary.valid_count == 3
        assert summary.cancelled_count == 1
        assert summary.total_sales == Decimal("1180.00") * 2 + Decimal("1130.00")
        assert summary.total_isr_retained == Decimal("50.00")


class TestPdfRendering:
    def test_paper_invoice(self, create_invoice, renderer):
        invoice = create_invoice.execute(make_draft(1, notes="Gracias por su preferencia"))
        document = renderer.render(invoice, generated_at=datetime(2024, 3, 5, 10, 0))

        assert document.content.startswith(b"%PDF")
        assert document.mime_type == PDF_MIME
        assert document.filename == "Factura_B0100000001_20240305.pdf"

    def test_electronic_invoice(self, create_invoice, renderer):
        invoice = create_invoice.execute(
            make_draft(1, ncf_type="E31", currency=Currency.USD, exchange_rate="58.50")
        )
        document = renderer.render(invoice, generated_at=datetime(2024, 3, 5, 10, 0))

        assert document.content.startswith(b"%PDF")
        assert document.filename == "e-CF_E3100000001_20240305.pdf"
        assert len(security_code(invoice.ncf, invoice.issue_date, invoice.total_amount)) == 8

    def test_every_status_renders(self, march_book, repository, renderer):
        overdue = repository.get(march_book["first"].id)
        assert overdue.display_status(date(2024, 6, 1)) is InvoiceStatus.OVERDUE
        for invoice in [
            overdue,
            repository.get(march_book["second"].id),
            repository.get(march_book["voided"].id),
        ]:
            document = renderer.render(invoice, today=date(2024, 6, 1))
            assert document.content.startswith(b"%PDF")
