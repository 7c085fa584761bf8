"""Transiciones de estado: pagar y anular. Anular nunca borra el registro."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

import structlog

from dgii_fiscal.application.ports.invoice_repository import InvoiceRepository
from dgii_fiscal.domain.entities import Invoice
from dgii_fiscal.domain.exceptions import InvoiceNotFoundError

logger = structlog.get_logger()


@dataclass(frozen=True)
class InvoiceLifecycleUseCase:
    repository: InvoiceRepository

    def mark_paid(self, invoice_id: str, paid_date: Optional[date] = None) -> Invoice:
        invoice = self._load(invoice_id)
        updated = self.repository.update(invoice.mark_paid(paid_date))
        logger.info(
            "invoice_marked_paid",
            invoice_id=invoice_id,
            ncf=updated.ncf,
            paid_date=updated.paid_date.isoformat() if updated.paid_date else None,
        )
        return updated

    def cancel(self, invoice_id: str) -> Invoice:
        invoice = self._load(invoice_id)
        updated = self.repository.update(invoice.cancel())
        logger.info("invoice_cancelled", invoice_id=invoice_id, ncf=updated.ncf)
        return updated

    def _load(self, invoice_id: str) -> Invoice:
        invoice = self.repository.get(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice
