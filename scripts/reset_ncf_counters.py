"""Reinicia TODOS los contadores NCF a cero. Operación administrativa sin deshacer.

Usage:
    python scripts/reset_ncf_counters.py [path/to/config.yaml]
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from dgii_fiscal.application.config import load_config
from dgii_fiscal.application.sequencer import NCFSequencer
from dgii_fiscal.infrastructure.logging_config import close_log_file, setup_logging
from dgii_fiscal.infrastructure.sqlite_counter_store import SqliteCounterStore

CONFIRMATION_WORD = "REINICIAR"


def main() -> int:
    config_path = sys.argv[1] if len(sys.argv) > 1 else "configs/configuration.yaml"
    config = load_config(config_path)

    setup_logging(
        log_level=config.logging.level,
        log_dir=Path(config.logging.log_dir) if config.logging.log_to_file else None,
    )
    logger = structlog.get_logger()

    store = SqliteCounterStore(db_path=config.storage.db_path)
    try:
        current = store.snapshot()
        print("Contadores actuales:")
        for ncf_type, value in current.items():
            print(f"  {ncf_type}: {value}")
        if not current:
            print("  (sin contadores registrados)")

        print(
            "\nLos próximos NCF volverán a empezar en 00000001 y pueden chocar "
            "con comprobantes ya emitidos."
        )
        answer = input(f"Escriba {CONFIRMATION_WORD} para continuar: ").strip()
        if answer != CONFIRMATION_WORD:
            logger.info("ncf_reset_aborted")
            print("Operación cancelada.")
            return 1

        NCFSequencer(store).reset()
        print("Contadores reiniciados.")
        return 0
    finally:
        store.close()
        close_log_file()


if __name__ == "__main__":
    sys.exit(main())
