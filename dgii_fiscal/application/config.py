"""Configuración de la aplicación cargada desde YAML."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class IssuerConfig:
    """Datos del emisor impresos en la factura."""

    name: str
    rnc: str
    address: str = "Santo Domingo, República Dominicana"
    phone: str = "(809) 000-0000"
    email: str = "contacto@miempresa.com"


@dataclass(frozen=True)
class StorageConfig:
    db_path: str = "data/dgii_fiscal.db"


@dataclass(frozen=True)
class ReportsConfig:
    output_dir: str = "output/reportes"
    informant_rnc: str = "000000000"
    write_excel_preview: bool = False


@dataclass(frozen=True)
class DocumentsConfig:
    output_dir: str = "output/facturas"
    paper_prefix: str = "Factura"
    electronic_prefix: str = "e-CF"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"


@dataclass(frozen=True)
class AppConfig:
    issuer: IssuerConfig
    storage: StorageConfig
    reports: ReportsConfig
    documents: DocumentsConfig
    logging: LoggingConfig


def load_config(config_path: str | Path) -> AppConfig:
    """Carga y valida la configuración desde un archivo YAML."""
    path = Path(config_path).resolve()
    if not path.exists():
        msg = f"Archivo de configuración no encontrado: {path}"
        raise FileNotFoundError(msg)

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        msg = f"YAML inválido: se esperaba dict, se obtuvo {type(raw).__name__}"
        raise ValueError(msg)

    _validate_required_keys(raw)

    return AppConfig(
        issuer=_build_issuer_config(raw["issuer"]),
        storage=StorageConfig(**raw.get("storage", {})),
        reports=_build_reports_config(raw.get("reports", {})),
        documents=DocumentsConfig(**raw.get("documents", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
    )


def _validate_required_keys(raw: dict[str, Any]) -> None:
    """Valida que las secciones requeridas existan en el YAML."""
    required = {"issuer"}
    missing = required - set(raw.keys())
    if missing:
        msg = f"Secciones requeridas faltantes en YAML: {sorted(missing)}"
        raise ValueError(msg)


def _build_issuer_config(data: dict[str, Any]) -> IssuerConfig:
    for key in ("name", "rnc"):
        if key not in data:
            msg = f"issuer.{key} es requerido"
            raise ValueError(msg)
    return IssuerConfig(**data)


def _build_reports_config(data: dict[str, Any]) -> ReportsConfig:
    """Construye ReportsConfig; el RNC informante se guarda como texto."""
    data = dict(data)  # shallow copy
    if "informant_rnc" in data:
        # YAML lee 000000000 como entero 0
        data["informant_rnc"] = str(data["informant_rnc"]).zfill(9)
    return ReportsConfig(**data)
