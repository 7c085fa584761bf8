"""Genera el PDF de una factura guardada.

Usage:
    python scripts/render_invoice_pdf.py <invoice_id> [path/to/config.yaml]
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from dgii_fiscal.application.config import load_config
from dgii_fiscal.infrastructure.logging_config import close_log_file, setup_logging
from dgii_fiscal.infrastructure.pdf_renderer import InvoiceDocumentRenderer
from dgii_fiscal.infrastructure.sqlite_invoice_repository import SqliteInvoiceRepository


def main() -> int:
    if len(sys.argv) < 2:
        print(__doc__)
        return 1

    invoice_id = sys.argv[1]
    config_path = sys.argv[2] if len(sys.argv) > 2 else "configs/configuration.yaml"
    config = load_config(config_path)

    setup_logging(
        log_level=config.logging.level,
        log_dir=Path(config.logging.log_dir) if config.logging.log_to_file else None,
    )
    logger = structlog.get_logger()

    repository = SqliteInvoiceRepository(db_path=config.storage.db_path)
    try:
        invoice = repository.get(invoice_id)
        if invoice is None:
            logger.error("invoice_not_found", invoice_id=invoice_id)
            print(f"Factura no encontrada: {invoice_id}")
            return 1

        renderer = InvoiceDocumentRenderer(issuer=config.issuer, documents=config.documents)
        document = renderer.render(invoice)

        output_dir = Path(config.documents.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        target = output_dir / document.filename
        target.write_bytes(document.content)

        logger.info("invoice_pdf_saved", invoice_id=invoice_id, path=str(target))
        print(f"PDF generado: {target}")
        return 0
    finally:
        repository.close()
        close_log_file()


if __name__ == "__main__":
    sys.exit(main())
