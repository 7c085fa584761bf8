from __future__ import annotations

from datetime import date
from typing import Protocol

from dgii_fiscal.domain.entities import Invoice


class InvoiceRepository(Protocol):
    def insert(self, invoice: Invoice) -> Invoice:
        """Persiste una factura nueva. Cualquier fallo del store se propaga."""
        ...

    def update(self, invoice: Invoice) -> Invoice: ...

    def get(self, invoice_id: str) -> Invoice | None: ...

    def find_by_ncf(self, ncf: str) -> Invoice | None: ...

    def list_by_issue_date(self, start: date, end: date) -> list[Invoice]:
        """Facturas con issue_date en [start, end], ordenadas por fecha ascendente."""
        ...
