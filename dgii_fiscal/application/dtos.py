import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from dgii_fiscal.domain.entities import Client, Invoice, InvoiceStatus
from dgii_fiscal.domain.value_objects import Currency

TEXT_MIME = "text/plain;charset=utf-8"
PDF_MIME = "application/pdf"


class ReportType(Enum):
    SALES = "607"
    CANCELLED = "608"


@dataclass(frozen=True)
class FiscalPeriod:
    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Mes inválido: {self.month}")
        if self.year < 1:
            raise ValueError(f"Año inválido: {self.year}")

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        last_day = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, last_day)

    @property
    def code(self) -> str:
        return f"{self.year:04d}{self.month:02d}"

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class TaxBreakdown:
    itbis_amount: Decimal
    isr_retention_amount: Decimal
    total_amount: Decimal


@dataclass
class InvoiceDraft:
    """Datos capturados en el formulario antes de asignar NCF."""

    invoice_number: str
    client: Optional[Client]
    ncf_type: str
    amount: object
    tax_rate: object = Decimal("18")
    isr_retention_rate: object = Decimal("0")
    concept: str = ""
    rnc_cedula: Optional[str] = None
    currency: Currency = Currency.DOP
    exchange_rate: object = Decimal("1")
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ExportFile:
    content: bytes
    filename: str
    mime_type: str


@dataclass
class PeriodSummary:
    valid_count: int = 0
    cancelled_count: int = 0
    total_sales: Decimal = Decimal("0")
    total_itbis: Decimal = Decimal("0")
    total_isr_retained: Decimal = Decimal("0")

    @classmethod
    def from_invoices(cls, invoices: list[Invoice]) -> "PeriodSummary":
        summary = cls()
        for inv in invoices:
            if inv.status is InvoiceStatus.CANCELLED:
                summary.cancelled_count += 1
                continue
            summary.valid_count += 1
            summary.total_sales += inv.total_amount
            summary.total_itbis += inv.itbis_amount
            summary.total_isr_retained += inv.isr_retention_amount
        return summary


@dataclass
class ExportResult:
    report_type: ReportType
    period: FiscalPeriod
    status: str = "PENDING"  # SUCCESS | NO_DATA
    file: Optional[ExportFile] = None
    record_count: int = 0
    summary: PeriodSummary = field(default_factory=PeriodSummary)
    written_paths: list[str] = field(default_factory=list)

    @property
    def has_file(self) -> bool:
        return self.status == "SUCCESS" and self.file is not None

    @property
    def message(self) -> str:
        if self.status == "NO_DATA":
            if self.report_type is ReportType.CANCELLED:
                return "No hay comprobantes anulados para el período"
            return "No hay facturas para el período seleccionado"
        if self.report_type is ReportType.CANCELLED:
            return f"{self.record_count} NCF anulados exportados"
        return f"{self.record_count} registros de ventas exportados"
