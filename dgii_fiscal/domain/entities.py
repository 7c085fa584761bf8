"""Entidades de dominio de facturación fiscal."""

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from dgii_fiscal.domain.exceptions import InvalidTransitionError
from dgii_fiscal.domain.tax_tables import NCF_SEQUENCE_DIGITS
from dgii_fiscal.domain.value_objects import Currency, Money, quantize_money


class InvoiceStatus(Enum):
    """Estado persistido de una factura."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"  # Solo como etiqueta derivada; este núcleo no la persiste
    CANCELLED = "cancelled"


_ALLOWED_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.PENDING: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.CANCELLED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.CANCELLED}),
    InvoiceStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class Client:
    name: str
    document_number: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("El cliente debe tener nombre")


@dataclass(frozen=True, kw_only=True)
class Invoice:
    """
    Entidad central: una factura con comprobante fiscal.

    Inmutable: las transiciones de estado crean nuevas instancias.
    total_amount e isr_retention_amount se persisten tal como se
    calcularon al crearla y no se recalculan al leer.
    """

    # === Identidad ===
    id: str
    invoice_number: str

    # === Datos fiscales ===
    ncf_type: str
    ncf: str
    rnc_cedula: Optional[str] = None

    # === Relaciones ===
    client: Client
    concept: str = ""
    notes: Optional[str] = None

    # === Montos ===
    amount: Decimal
    tax_rate: Decimal
    isr_retention_rate: Decimal = Decimal("0")
    isr_retention_amount: Decimal
    total_amount: Decimal
    currency: Currency = Currency.DOP
    exchange_rate: Decimal = Decimal("1")

    # === Ciclo de vida ===
    status: InvoiceStatus = InvoiceStatus.PENDING
    issue_date: date
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validaciones de invariantes de dominio."""
        if not self.id or not self.id.strip():
            raise ValueError("id no puede estar vacío")
        if not self.invoice_number or not self.invoice_number.strip():
            raise ValueError("invoice_number no puede estar vacío")
        expected_len = len(self.ncf_type) + NCF_SEQUENCE_DIGITS
        if (
            not self.ncf.startswith(self.ncf_type)
            or len(self.ncf) != expected_len
            or not self.ncf[len(self.ncf_type):].isdigit()
        ):
            raise ValueError(f"NCF '{self.ncf}' no corresponde al tipo {self.ncf_type}")
        if self.amount <= 0:
            raise ValueError(f"amount debe ser mayor que cero: {self.amount}")
        if self.exchange_rate < 1:
            raise ValueError(f"exchange_rate debe ser >= 1: {self.exchange_rate}")
        if self.status is InvoiceStatus.PAID and self.paid_date is None:
            raise ValueError("Una factura pagada requiere paid_date")
        # Validación cruzada: total ≈ monto + ITBIS − retención
        expected = self.amount + self.itbis_amount - self.isr_retention_amount
        if abs(self.total_amount - expected) > Decimal("0.01"):
            raise ValueError(
                f"total_amount ({self.total_amount}) no coincide con "
                f"amount ({self.amount}) + ITBIS ({self.itbis_amount}) "
                f"- ISR ({self.isr_retention_amount}) = {expected}"
            )

    @property
    def itbis_amount(self) -> Decimal:
        return quantize_money(self.amount * self.tax_rate / Decimal("100"))

    @property
    def buyer_tax_id(self) -> str:
        """RNC/cédula del comprador; cae al documento del cliente si falta."""
        return self.rnc_cedula or self.client.document_number or ""

    @property
    def dop_equivalent(self) -> Optional[Money]:
        """Equivalente informativo en DOP; no forma parte del total."""
        if self.currency is not Currency.USD:
            return None
        return Money(quantize_money(self.total_amount * self.exchange_rate), Currency.DOP)

    def display_status(self, today: date) -> InvoiceStatus:
        """Estado a mostrar: 'vencida' se deriva de due_date, no se persiste."""
        if (
            self.status is InvoiceStatus.PENDING
            and self.due_date is not None
            and self.due_date < today
        ):
            return InvoiceStatus.OVERDUE
        return self.status

    def with_status(
        self, new_status: InvoiceStatus, paid_date: Optional[date] = None
    ) -> "Invoice":
        """Retorna copia con el nuevo estado, validando la transición."""
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, new_status.value)
        if new_status is InvoiceStatus.PAID:
            return replace(self, status=new_status, paid_date=paid_date or date.today())
        return replace(self, status=new_status)

    def mark_paid(self, paid_date: Optional[date] = None) -> "Invoice":
        return self.with_status(InvoiceStatus.PAID, paid_date)

    def cancel(self) -> "Invoice":
        # El NCF se conserva: la DGII exige registro permanente de los anulados.
        return self.with_status(InvoiceStatus.CANCELLED)
