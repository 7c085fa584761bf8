"""
Código de seguridad y contenido del QR para la representación impresa de e-CF.

PLACEHOLDER VISUAL: el código es un hash rodante de 32 bits, no una firma
digital DGII. Este sistema no llama a ningún servicio de firma; solo imita
el diseño impreso. No usar como garantía de integridad fiscal.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal

from dgii_fiscal.domain.entities import Invoice
from dgii_fiscal.domain.value_objects import quantize_money

_HASH_BASE = 31
_HASH_MASK = 0xFFFFFFFF


def security_code(ncf: str, issue_date: date, total_amount: Decimal) -> str:
    """8 caracteres hexadecimales deterministas a partir de ncf + fecha + total."""
    source = f"{ncf}{issue_date.isoformat()}{quantize_money(total_amount)}"
    h = 0
    for ch in source:
        h = (h * _HASH_BASE + ord(ch)) & _HASH_MASK
    return f"{h:08X}"


def verification_payload(
    invoice: Invoice, issuer_rnc: str, signed_at: datetime
) -> dict[str, str]:
    return {
        "RncEmisor": _digits(issuer_rnc),
        "RncComprador": _digits(invoice.buyer_tax_id),
        "ENCF": invoice.ncf,
        "FechaEmision": invoice.issue_date.strftime("%d-%m-%Y"),
        "MontoTotal": f"{quantize_money(invoice.total_amount)}",
        "MontoITBIS": f"{invoice.itbis_amount}",
        "CodigoSeguridad": security_code(invoice.ncf, invoice.issue_date, invoice.total_amount),
        "FechaFirma": signed_at.strftime("%d-%m-%Y %H:%M:%S"),
    }


def encode_payload(payload: dict[str, str]) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def _digits(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())
