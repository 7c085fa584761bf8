"""Exporta el formato 607 o 608 de un mes para carga en la Oficina Virtual DGII.

Usage:
    python scripts/export_dgii_report.py <607|608> <YYYY> <MM> [path/to/config.yaml]
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from dgii_fiscal.application.config import load_config
from dgii_fiscal.application.dtos import FiscalPeriod, ReportType
from dgii_fiscal.application.report_formatter import FiscalReportFormatter
from dgii_fiscal.application.use_cases.export_fiscal_report import ExportFiscalReportUseCase
from dgii_fiscal.infrastructure.excel_handler import OpenpyxlPreviewWriter
from dgii_fiscal.infrastructure.logging_config import close_log_file, setup_logging
from dgii_fiscal.infrastructure.sqlite_invoice_repository import SqliteInvoiceRepository


def main() -> int:
    if len(sys.argv) < 4:
        print(__doc__)
        return 1

    try:
        report_type = ReportType(sys.argv[1])
        period = FiscalPeriod(year=int(sys.argv[2]), month=int(sys.argv[3]))
    except ValueError as e:
        print(f"Argumentos inválidos: {e}")
        return 1

    config_path = sys.argv[4] if len(sys.argv) > 4 else "configs/configuration.yaml"
    config = load_config(config_path)

    setup_logging(
        log_level=config.logging.level,
        log_dir=Path(config.logging.log_dir) if config.logging.log_to_file else None,
    )
    logger = structlog.get_logger()
    logger.info(
        "export_starting",
        config_path=config_path,
        report_type=report_type.value,
        period=period.code,
    )

    repository = SqliteInvoiceRepository(db_path=config.storage.db_path)
    try:
        use_case = ExportFiscalReportUseCase(
            repository=repository,
            formatter=FiscalReportFormatter(informant_rnc=config.reports.informant_rnc),
            output_dir=Path(config.reports.output_dir),
            preview_writer=OpenpyxlPreviewWriter() if config.reports.write_excel_preview else None,
        )
        result = use_case.execute(report_type, period)
        print(result.message)
        for path in result.written_paths:
            print(f"  -> {path}")
        logger.info(
            "export_finished",
            status=result.status,
            records=result.record_count,
            total_sales=str(result.summary.total_sales),
        )
        return 0 if result.has_file else 1
    finally:
        repository.close()
        close_log_file()


if __name__ == "__main__":
    sys.exit(main())
