from pathlib import Path
from typing import TextIO

import structlog

LOG_FILE_NAME = "dgii_fiscal.log"

# Un solo archivo abierto por proceso; se reutiliza entre llamadas a setup_logging.
_log_file: TextIO | None = None


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> None:
    level_map = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40, "CRITICAL": 50}
    level = level_map.get(log_level.upper(), 20)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_dir:
        # JSON por línea, apto para auditoría de emisiones NCF
        log_dir.mkdir(parents=True, exist_ok=True)
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
        logger_factory = structlog.WriteLoggerFactory(file=_open_log_file(log_dir / LOG_FILE_NAME))
    else:
        close_log_file()
        processors.append(structlog.dev.ConsoleRenderer())
        logger_factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )


def close_log_file() -> None:
    """Cierra el archivo de log abierto por setup_logging, si lo hay."""
    global _log_file
    if _log_file is not None:
        _log_file.close()
        _log_file = None


def _open_log_file(path: Path) -> TextIO:
    global _log_file
    if _log_file is not None and Path(_log_file.name) == path:
        return _log_file
    close_log_file()
    _log_file = open(path, "a", encoding="utf-8")  # noqa: SIM115
    return _log_file
