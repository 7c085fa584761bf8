"""Integration test fixtures.

Real components: SqliteCounterStore, SqliteInvoiceRepository, OpenpyxlPreviewWriter,
InvoiceDocumentRenderer. Both SQLite adapters share one database file in tmp_path.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from dgii_fiscal.application.config import (
    AppConfig,
    DocumentsConfig,
    IssuerConfig,
    LoggingConfig,
    ReportsConfig,
    StorageConfig,
)
from dgii_fiscal.application.dtos import InvoiceDraft
from dgii_fiscal.application.report_formatter import FiscalReportFormatter
from dgii_fiscal.application.sequencer import NCFSequencer
from dgii_fiscal.application.use_cases.create_invoice import CreateInvoiceUseCase
from dgii_fiscal.application.use_cases.export_fiscal_report import ExportFiscalReportUseCase
from dgii_fiscal.application.use_cases.invoice_lifecycle import InvoiceLifecycleUseCase
from dgii_fiscal.domain.entities import Client
from dgii_fiscal.infrastructure.excel_handler import OpenpyxlPreviewWriter
from dgii_fiscal.infrastructure.pdf_renderer import InvoiceDocumentRenderer
from dgii_fiscal.infrastructure.sqlite_counter_store import SqliteCounterStore
from dgii_fiscal.infrastructure.sqlite_invoice_repository import SqliteInvoiceRepository


# ── Draft Factory ───────────────────────────────────────────────────


def make_draft(number: int, **overrides) -> InvoiceDraft:
    defaults = {
        "invoice_number": f"F-{number:04d}",
        "client": Client(name="Constructora del Este, SRL", document_number="130000001"),
        "ncf_type": "B01",
        "amount": Decimal("1000.00"),
        "tax_rate": Decimal("18"),
        "isr_retention_rate": Decimal("0"),
        "concept": "Servicios legales",
        "issue_date": date(2024, 3, 5),
    }
    defaults.update(overrides)
    return InvoiceDraft(**defaults)


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        issuer=IssuerConfig(name="Mi Empresa Legal, SRL", rnc="000-00000-0"),
        storage=StorageConfig(db_path=str(tmp_path / "data" / "fiscal.db")),
        reports=ReportsConfig(
            output_dir=str(tmp_path / "reportes"),
            write_excel_preview=True,
        ),
        documents=DocumentsConfig(output_dir=str(tmp_path / "facturas")),
        logging=LoggingConfig(log_to_file=False),
    )


@pytest.fixture
def counter_store(app_config: AppConfig):
    store = SqliteCounterStore(app_config.storage.db_path)
    yield store
    store.close()


@pytest.fixture
def repository(app_config: AppConfig):
    repo = SqliteInvoiceRepository(app_config.storage.db_path)
    yield repo
    repo.close()


@pytest.fixture
def sequencer(counter_store: SqliteCounterStore) -> NCFSequencer:
    return NCFSequencer(counter_store)


@pytest.fixture
def create_invoice(repository, sequencer) -> CreateInvoiceUseCase:
    return CreateInvoiceUseCase(repository=repository, sequencer=sequencer)


@pytest.fixture
def lifecycle(repository) -> InvoiceLifecycleUseCase:
    return InvoiceLifecycleUseCase(repository=repository)


@pytest.fixture
def export_report(repository, app_config: AppConfig) -> ExportFiscalReportUseCase:
    return ExportFiscalReportUseCase(
        repository=repository,
        formatter=FiscalReportFormatter(informant_rnc=app_config.reports.informant_rnc),
        output_dir=Path(app_config.reports.output_dir),
        preview_writer=OpenpyxlPreviewWriter(),
    )


@pytest.fixture
def renderer(app_config: AppConfig) -> InvoiceDocumentRenderer:
    return InvoiceDocumentRenderer(issuer=app_config.issuer, documents=app_config.documents)
