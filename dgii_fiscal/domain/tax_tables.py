"""Tablas de referencia DGII: tipos de NCF, tasas de ITBIS y retenciones ISR."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


@dataclass(frozen=True)
class NcfTypeInfo:
    code: str
    label: str
    is_electronic: bool


NCF_TYPES: dict[str, NcfTypeInfo] = {
    info.code: info
    for info in (
        NcfTypeInfo("B01", "Crédito Fiscal", False),
        NcfTypeInfo("B02", "Consumidor Final", False),
        NcfTypeInfo("B14", "Régimen Especial", False),
        NcfTypeInfo("B15", "Gubernamental", False),
        NcfTypeInfo("B16", "Exportación", False),
        NcfTypeInfo("E31", "e-CF Crédito Fiscal", True),
        NcfTypeInfo("E32", "e-CF Consumo", True),
        NcfTypeInfo("E33", "e-CF Nota de Débito", True),
        NcfTypeInfo("E34", "e-CF Nota de Crédito", True),
        NcfTypeInfo("E44", "e-CF Régimen Especial", True),
        NcfTypeInfo("E45", "e-CF Gubernamental", True),
        NcfTypeInfo("E46", "e-CF Exportación", True),
    )
}

ITBIS_RATES: tuple[Decimal, ...] = (Decimal("0"), Decimal("16"), Decimal("18"))

# Etiquetas solo para presentación; el cálculo no depende de ellas.
ISR_RETENTION_RATES: dict[Decimal, str] = {
    Decimal("0"): "Sin retención",
    Decimal("5"): "Honorarios profesionales",
    Decimal("10"): "Alquileres y servicios de personas físicas",
    Decimal("15"): "Intereses pagados a personas físicas",
    Decimal("25"): "Premios y ganancias de juegos",
    Decimal("27"): "Pagos al exterior",
}

NCF_SEQUENCE_DIGITS = 8


class CancellationReason(Enum):
    """Tipo de anulación informado en el formato 608."""

    DETERIORO = "02"  # Deterioro de factura pre-impresa

    @property
    def label(self) -> str:
        return _CANCELLATION_LABELS[self]


_CANCELLATION_LABELS = {
    CancellationReason.DETERIORO: "Deterioro de factura pre-impresa",
}


def is_electronic(ncf_type: str) -> bool:
    return ncf_type.startswith("E")


def is_known_ncf_type(ncf_type: str) -> bool:
    return ncf_type in NCF_TYPES


def ncf_type_label(ncf_type: str) -> str:
    """Etiqueta legible del tipo; si no se conoce devuelve el código tal cual."""
    info = NCF_TYPES.get(ncf_type)
    return info.label if info else ncf_type


def isr_retention_label(rate: Decimal) -> str:
    return ISR_RETENTION_RATES.get(Decimal(rate), f"{rate}%")
