"""Caso de uso: exportar el 607 o el 608 de un mes para carga en la DGII."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pandas as pd
import structlog

from dgii_fiscal.application.dtos import (
    ExportResult,
    FiscalPeriod,
    PeriodSummary,
    ReportType,
)
from dgii_fiscal.application.ports.excel_handler import ExcelPreviewWriter
from dgii_fiscal.application.ports.invoice_repository import InvoiceRepository
from dgii_fiscal.application.report_formatter import (
    FiscalReportFormatter,
    normalize_rnc,
    split_for_period,
)
from dgii_fiscal.domain.entities import Invoice
from dgii_fiscal.domain.exceptions import AmountOutOfRangeError
from dgii_fiscal.domain.tax_tables import ncf_type_label

logger = structlog.get_logger()

STATUS_LABELS = {
    "pending": "Pendiente",
    "paid": "Pagada",
    "overdue": "Vencida",
    "cancelled": "Anulada",
}


@dataclass(frozen=True)
class ExportFiscalReportUseCase:
    repository: InvoiceRepository
    formatter: FiscalReportFormatter = field(default_factory=FiscalReportFormatter)
    output_dir: Optional[Path] = None
    preview_writer: Optional[ExcelPreviewWriter] = None

    def execute(self, report_type: ReportType, period: FiscalPeriod) -> ExportResult:
        result = ExportResult(report_type=report_type, period=period)

        invoices = self.repository.list_by_issue_date(period.start, period.end)
        valid, cancelled = split_for_period(invoices, period)
        result.summary = PeriodSummary.from_invoices(valid + cancelled)

        selected = valid if report_type is ReportType.SALES else cancelled
        if not selected:
            result.status = "NO_DATA"
            logger.info(
                "fiscal_report_no_data",
                report_type=report_type.value,
                period=period.code,
                fetched=len(invoices),
            )
            return result

        # Se formatea completo antes de escribir: un monto fuera de rango no deja archivo parcial.
        try:
            result.file = self.formatter.format(report_type, period, selected)
        except AmountOutOfRangeError as e:
            logger.error(
                "fiscal_report_rejected",
                report_type=report_type.value,
                period=period.code,
                ncf=e.ncf,
                field=e.field_name,
            )
            raise
        result.record_count = len(selected)
        result.status = "SUCCESS"

        if self.output_dir is not None:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            target = self.output_dir / result.file.filename
            target.write_bytes(result.file.content)
            result.written_paths.append(str(target))

            if self.preview_writer is not None and report_type is ReportType.SALES:
                preview_path = self.output_dir / f"{report_type.value}_{period.code}_vista_previa.xlsx"
                self.preview_writer.write(self._invoices_to_dataframe(selected), preview_path)
                result.written_paths.append(str(preview_path))

        logger.info(
            "fiscal_report_exported",
            report_type=report_type.value,
            period=period.code,
            records=result.record_count,
            filename=result.file.filename,
            written=result.written_paths,
        )
        return result

    @staticmethod
    def _invoices_to_dataframe(invoices: list[Invoice]) -> pd.DataFrame:
        rows = []
        for inv in invoices:
            rows.append(
                {
                    "Tipo NCF": inv.ncf_type,
                    "Descripción Tipo": ncf_type_label(inv.ncf_type),
                    "NCF": inv.ncf,
                    "RNC/Cédula": normalize_rnc(inv.buyer_tax_id) or "-",
                    "Cliente": inv.client.name,
                    "Fecha": inv.issue_date,
                    "Moneda": inv.currency.value,
                    "Monto": float(inv.amount),
                    "ITBIS": float(inv.itbis_amount),
                    "Ret. ISR": float(inv.isr_retention_amount),
                    "Total": float(inv.total_amount),
                    "Estado": STATUS_LABELS.get(inv.status.value, inv.status.value),
                }
            )
        return pd.DataFrame(rows)
