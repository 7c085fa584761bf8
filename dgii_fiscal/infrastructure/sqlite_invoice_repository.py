"""Repositorio de facturas en SQLite. Montos guardados como TEXT para no perder precisión."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import structlog

from dgii_fiscal.domain.entities import Client, Invoice, InvoiceStatus
from dgii_fiscal.domain.exceptions import ImmutableFieldError, InvoiceNotFoundError
from dgii_fiscal.domain.value_objects import Currency

logger = structlog.get_logger()

_SCHEMA = """
CREATE TABLE IF NOT EXISTS invoices (
    id                      TEXT PRIMARY KEY,
    invoice_number          TEXT NOT NULL,
    ncf_type                TEXT NOT NULL,
    ncf                     TEXT NOT NULL UNIQUE,
    rnc_cedula              TEXT,
    client_name             TEXT NOT NULL,
    client_document         TEXT,
    concept                 TEXT NOT NULL DEFAULT '',
    notes                   TEXT,
    amount                  TEXT NOT NULL,
    tax_rate                TEXT NOT NULL,
    isr_retention_rate      TEXT NOT NULL,
    isr_retention_amount    TEXT NOT NULL,
    total_amount            TEXT NOT NULL,
    currency                TEXT NOT NULL,
    exchange_rate           TEXT NOT NULL,
    status                  TEXT NOT NULL,
    issue_date              TEXT NOT NULL,
    due_date                TEXT,
    paid_date               TEXT,
    created_at              TEXT
);

CREATE INDEX IF NOT EXISTS idx_invoices_issue_date ON invoices(issue_date);
CREATE INDEX IF NOT EXISTS idx_invoices_status ON invoices(status);
"""

_COLUMNS = (
    "id",
    "invoice_number",
    "ncf_type",
    "ncf",
    "rnc_cedula",
    "client_name",
    "client_document",
    "concept",
    "notes",
    "amount",
    "tax_rate",
    "isr_retention_rate",
    "isr_retention_amount",
    "total_amount",
    "currency",
    "exchange_rate",
    "status",
    "issue_date",
    "due_date",
    "paid_date",
    "created_at",
)

# Fijos desde la emisión; `update` solo toca status y paid_date.
_ISSUED_COLUMNS = (
    "invoice_number",
    "ncf_type",
    "ncf",
    "amount",
    "tax_rate",
    "isr_retention_rate",
    "isr_retention_amount",
    "total_amount",
    "currency",
    "exchange_rate",
    "issue_date",
)


class SqliteInvoiceRepository:
    def __init__(self, db_path: str) -> None:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()
        logger.info("sqlite_invoice_repository_initialized", db_path=db_path)

    def insert(self, invoice: Invoice) -> Invoice:
        """Inserta la factura. Un NCF repetido levanta sqlite3.IntegrityError."""
        placeholders = ", ".join("?" for _ in _COLUMNS)
        with self._conn:
            self._conn.execute(
                f"INSERT INTO invoices ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                self._to_row(invoice),
            )
        logger.debug("invoice_inserted", invoice_id=invoice.id, ncf=invoice.ncf)
        return invoice

    def update(self, invoice: Invoice) -> Invoice:
        """
        Persiste solo el ciclo de vida (estado y fecha de pago).

        NCF, tipo y montos quedan fijos al emitir: si difieren de lo guardado
        se levanta ImmutableFieldError y no se escribe nada.
        """
        row = dict(zip(_COLUMNS, self._to_row(invoice)))
        with self._conn:
            stored = self._conn.execute(
                "SELECT * FROM invoices WHERE id=?", (invoice.id,)
            ).fetchone()
            if stored is None:
                raise InvoiceNotFoundError(invoice.id)
            changed = [col for col in _ISSUED_COLUMNS if stored[col] != row[col]]
            if changed:
                logger.warning(
                    "invoice_immutable_fields_rejected",
                    invoice_id=invoice.id,
                    ncf=stored["ncf"],
                    fields=changed,
                )
                raise ImmutableFieldError(invoice.id, changed)
            self._conn.execute(
                "UPDATE invoices SET status=?, paid_date=? WHERE id=?",
                (row["status"], row["paid_date"], invoice.id),
            )
        logger.debug("invoice_updated", invoice_id=invoice.id, status=invoice.status.value)
        return invoice

    def get(self, invoice_id: str) -> Invoice | None:
        row = self._conn.execute("SELECT * FROM invoices WHERE id=?", (invoice_id,)).fetchone()
        return self._from_row(row) if row else None

    def find_by_ncf(self, ncf: str) -> Invoice | None:
        row = self._conn.execute("SELECT * FROM invoices WHERE ncf=?", (ncf,)).fetchone()
        return self._from_row(row) if row else None

    def list_by_issue_date(self, start: date, end: date) -> list[Invoice]:
        cursor = self._conn.execute(
            """SELECT * FROM invoices
               WHERE issue_date BETWEEN ? AND ?
               ORDER BY issue_date ASC, ncf ASC""",
            (start.isoformat(), end.isoformat()),
        )
        return [self._from_row(row) for row in cursor.fetchall()]

    def close(self) -> None:
        """Cierra la conexión a la base de datos."""
        self._conn.close()

    @staticmethod
    def _to_row(inv: Invoice) -> tuple:
        return (
            inv.id,
            inv.invoice_number,
            inv.ncf_type,
            inv.ncf,
            inv.rnc_cedula,
            inv.client.name,
            inv.client.document_number,
            inv.concept,
            inv.notes,
            str(inv.amount),
            str(inv.tax_rate),
            str(inv.isr_retention_rate),
            str(inv.isr_retention_amount),
            str(inv.total_amount),
            inv.currency.value,
            str(inv.exchange_rate),
            inv.status.value,
            inv.issue_date.isoformat(),
            inv.due_date.isoformat() if inv.due_date else None,
            inv.paid_date.isoformat() if inv.paid_date else None,
            inv.created_at.isoformat() if inv.created_at else None,
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Invoice:
        return Invoice(
            id=row["id"],
            invoice_number=row["invoice_number"],
            ncf_type=row["ncf_type"],
            ncf=row["ncf"],
            rnc_cedula=row["rnc_cedula"],
            client=Client(name=row["client_name"], document_number=row["client_document"]),
            concept=row["concept"],
            notes=row["notes"],
            amount=Decimal(row["amount"]),
            tax_rate=Decimal(row["tax_rate"]),
            isr_retention_rate=Decimal(row["isr_retention_rate"]),
            isr_retention_amount=Decimal(row["isr_retention_amount"]),
            total_amount=Decimal(row["total_amount"]),
            currency=Currency(row["currency"]),
            exchange_rate=Decimal(row["exchange_rate"]),
            status=InvoiceStatus(row["status"]),
            issue_date=date.fromisoformat(row["issue_date"]),
            due_date=_parse_date(row["due_date"]),
            paid_date=_parse_date(row["paid_date"]),
            created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
        )


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None
