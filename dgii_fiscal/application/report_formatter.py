"""
Formatos de envío DGII para carga masiva.

607 - Ventas de Bienes y Servicios (21 campos por detalle)
608 - Comprobantes Anulados (4 campos por detalle)

Campos separados por '|', líneas terminadas en CRLF, montos en centavos
enteros rellenos a 12 dígitos. Las herramientas de la DGII leen anchos
fijos: cualquier cambio de orden o ancho invalida el archivo.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Annotated

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from dgii_fiscal.application.calculator import InvoiceCalculator
from dgii_fiscal.application.dtos import TEXT_MIME, ExportFile, FiscalPeriod, ReportType
from dgii_fiscal.domain.entities import Invoice, InvoiceStatus
from dgii_fiscal.domain.exceptions import AmountOutOfRangeError, EmptyReportError
from dgii_fiscal.domain.tax_tables import CancellationReason

logger = structlog.get_logger()

LINE_TERMINATOR = "\r\n"
NCF_WIDTH = 19
RNC_WIDTH = 11
AMOUNT_WIDTH = 12
ZERO_AMOUNT = "0" * AMOUNT_WIDTH
MAX_CENTS = 10**AMOUNT_WIDTH - 1
DEFAULT_INFORMANT_RNC = "000000000"

TIPO_INGRESO_OPERACIONES = "01"
FORMA_PAGO_EFECTIVO = "01"
FORMA_PAGO_CREDITO = "02"

_Cents = Annotated[int, Field(ge=0)]


class Detail607(BaseModel):
    """Línea de detalle 607 releída desde archivo, en el orden exacto del formato."""

    rnc_cedula: str = Field(pattern=r"^(\d{11})?$")
    tipo_ncf: str = Field(pattern=r"^[BE]\d{2}$")
    ncf: str
    ncf_modificado: str
    tipo_ingreso: str = Field(pattern=r"^\d{2}$")
    fecha_comprobante: str = Field(pattern=r"^\d{8}$")
    fecha_retencion: str
    monto_facturado: _Cents
    itbis_facturado: _Cents
    itbis_retenido_terceros: _Cents
    itbis_proporcionalidad: _Cents
    itbis_costo: _Cents
    itbis_adelantar: _Cents
    itbis_percibido: _Cents
    tipo_retencion_isr: str
    isr_retenido: _Cents
    isr_percibido: _Cents
    impuesto_selectivo: _Cents
    otros_impuestos: _Cents
    monto_propina: _Cents
    forma_pago: str = Field(pattern=r"^\d{2}$")

    @field_validator("ncf", "ncf_modificado")
    @classmethod
    def _fixed_width_ncf(cls, value: str) -> str:
        if len(value) != NCF_WIDTH:
            raise ValueError(f"debe tener {NCF_WIDTH} caracteres: '{value}'")
        return value.rstrip(" ")

    @field_validator(
        "monto_facturado",
        "itbis_facturado",
        "itbis_retenido_terceros",
        "itbis_proporcionalidad",
        "itbis_costo",
        "itbis_adelantar",
        "itbis_percibido",
        "isr_retenido",
        "isr_percibido",
        "impuesto_selectivo",
        "otros_impuestos",
        "monto_propina",
        mode="before",
    )
    @classmethod
    def _fixed_width_cents(cls, value: str) -> int:
        if not isinstance(value, str) or len(value) != AMOUNT_WIDTH or not value.isdigit():
            raise ValueError(f"monto mal formado: '{value}'")
        return int(value)


FIELDS_607 = tuple(Detail607.model_fields)


def normalize_rnc(value: str | None) -> str:
    """Solo dígitos, rellenado a 11 con ceros a la izquierda. Vacío si no hay dato."""
    if not value:
        return ""
    return re.sub(r"[^0-9]", "", value).rjust(RNC_WIDTH, "0")


def split_for_period(
    invoices: Iterable[Invoice], period: FiscalPeriod
) -> tuple[list[Invoice], list[Invoice]]:
    """Separa las facturas del período en (válidas → 607, anuladas → 608)."""
    valid: list[Invoice] = []
    cancelled: list[Invoice] = []
    for inv in invoices:
        if not period.contains(inv.issue_date):
            continue
        if inv.status is InvoiceStatus.CANCELLED:
            cancelled.append(inv)
        else:
            valid.append(inv)
    return valid, cancelled


class FiscalReportFormatter:
    def __init__(
        self,
        informant_rnc: str = DEFAULT_INFORMANT_RNC,
        cancellation_reason: CancellationReason = CancellationReason.DETERIORO,
    ) -> None:
        self._informant_rnc = informant_rnc
        self._cancellation_reason = cancellation_reason

    def format_607(self, period: FiscalPeriod, invoices: list[Invoice]) -> ExportFile:
        if not invoices:
            raise EmptyReportError(ReportType.SALES.value, period.code)
        if any(inv.status is InvoiceStatus.CANCELLED for inv in invoices):
            raise ValueError("El formato 607 no admite facturas anuladas")

        lines = [self._header(ReportType.SALES, period, len(invoices))]
        lines.extend(self.detail_607(inv) for inv in invoices)
        return self._to_file(ReportType.SALES, period, lines)

    def format_608(self, period: FiscalPeriod, invoices: list[Invoice]) -> ExportFile:
        if not invoices:
            raise EmptyReportError(ReportType.CANCELLED.value, period.code)
        if any(inv.status is not InvoiceStatus.CANCELLED for inv in invoices):
            raise ValueError("El formato 608 solo admite facturas anuladas")

        lines = [self._header(ReportType.CANCELLED, period, len(invoices))]
        lines.extend(self.detail_608(inv) for inv in invoices)
        return self._to_file(ReportType.CANCELLED, period, lines)

    def format(
        self, report_type: ReportType, period: FiscalPeriod, invoices: list[Invoice]
    ) -> ExportFile:
        if report_type is ReportType.SALES:
            return self.format_607(period, invoices)
        return self.format_608(period, invoices)

    def detail_607(self, inv: Invoice) -> str:
        forma_pago = (
            FORMA_PAGO_EFECTIVO if inv.status is InvoiceStatus.PAID else FORMA_PAGO_CREDITO
        )
        fields = [
            normalize_rnc(inv.buyer_tax_id),
            inv.ncf_type,
            inv.ncf.ljust(NCF_WIDTH),
            " " * NCF_WIDTH,  # NCF modificado: notas de crédito no se modelan
            TIPO_INGRESO_OPERACIONES,
            inv.issue_date.strftime("%Y%m%d"),
            "",
            _cents(inv, "monto_facturado", inv.amount),
            _cents(inv, "itbis_facturado", inv.itbis_amount),
            ZERO_AMOUNT,
            ZERO_AMOUNT,
            ZERO_AMOUNT,
            ZERO_AMOUNT,
            ZERO_AMOUNT,
            "",
            _cents(inv, "isr_retenido", inv.isr_retention_amount),
            ZERO_AMOUNT,
            ZERO_AMOUNT,
            ZERO_AMOUNT,
            ZERO_AMOUNT,
            forma_pago,
        ]
        return "|".join(fields)

    def detail_608(self, inv: Invoice) -> str:
        return "|".join(
            [
                inv.ncf_type,
                inv.ncf.ljust(NCF_WIDTH),
                inv.issue_date.strftime("%Y%m%d"),
                self._cancellation_reason.value,
            ]
        )

    def _header(self, report_type: ReportType, period: FiscalPeriod, count: int) -> str:
        return f"{report_type.value}|{self._informant_rnc}|{period.code}|{count}"

    @staticmethod
    def _to_file(report_type: ReportType, period: FiscalPeriod, lines: list[str]) -> ExportFile:
        content = LINE_TERMINATOR.join(lines).encode("utf-8")
        filename = f"{report_type.value}_{period.code}.txt"
        logger.info(
            "fiscal_report_formatted",
            report_type=report_type.value,
            period=period.code,
            records=len(lines) - 1,
            size=len(content),
        )
        return ExportFile(content=content, filename=filename, mime_type=TEXT_MIME)


def parse_607_detail(line: str) -> dict[str, str | int]:
    """Relee una línea de detalle 607. Los montos vuelven como centavos enteros."""
    parts = line.rstrip("\r\n").split("|")
    if len(parts) != len(FIELDS_607):
        raise ValueError(f"Se esperaban {len(FIELDS_607)} campos, se obtuvieron {len(parts)}")
    try:
        detail = Detail607.model_validate(dict(zip(FIELDS_607, parts)))
    except ValidationError as e:
        logger.warning("detail_607_invalid", errors=e.errors(include_url=False))
        raise ValueError(f"Línea 607 inválida ({e.error_count()} errores): {e}") from e
    return detail.model_dump()


def _cents(inv: Invoice, field_name: str, amount) -> str:
    cents = InvoiceCalculator.to_cents(amount)
    if not 0 <= cents <= MAX_CENTS:
        logger.warning(
            "report_amount_out_of_range", ncf=inv.ncf, field=field_name, amount=str(amount)
        )
        raise AmountOutOfRangeError(inv.ncf, field_name, amount)
    return f"{cents:0{AMOUNT_WIDTH}d}"
