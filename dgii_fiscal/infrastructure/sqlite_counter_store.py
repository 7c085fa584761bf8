"""Contadores NCF persistidos en SQLite, con bitácora de cada avance y reinicio."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()

_SCHEMA = """
CREATE TABLE IF NOT EXISTS ncf_counters (
    ncf_type            TEXT PRIMARY KEY,
    current_value       INTEGER NOT NULL DEFAULT 0 CHECK (current_value >= 0),
    updated_at          TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS ncf_counter_log (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    ncf_type            TEXT,
    action              TEXT NOT NULL,
    old_value           INTEGER,
    new_value           INTEGER,
    created_at          TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_counter_log_type ON ncf_counter_log(ncf_type);
"""


class SqliteCounterStore:
    """
    Almacén durable de contadores por tipo de NCF.

    `increment` corre dentro de BEGIN IMMEDIATE: el bloqueo de escritura de
    SQLite serializa lectura y avance aun entre procesos distintos. Eso cubre
    cada avance por separado, no la secuencia peek, insert y commit del
    emisor; un desfase entre procesos se detecta al comparar el NCF que
    retorna el commit con el emitido.
    """

    def __init__(self, db_path: str) -> None:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        # isolation_level=None: las transacciones se abren explícitamente
        self._conn = sqlite3.connect(str(path), isolation_level=None, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA)
        logger.info("sqlite_counter_store_initialized", db_path=db_path)

    def get(self, ncf_type: str) -> int:
        row = self._conn.execute(
            "SELECT current_value FROM ncf_counters WHERE ncf_type=?", (ncf_type,)
        ).fetchone()
        return int(row[0]) if row else 0

    def set(self, ncf_type: str, value: int) -> None:
        if value < 0:
            raise ValueError(f"El contador no puede ser negativo: {value}")
        with self._transaction():
            old = self.get(ncf_type)
            self._upsert(ncf_type, value)
            self._log(ncf_type, "SET", old, value)
        logger.warning("ncf_counter_set", ncf_type=ncf_type, old_value=old, new_value=value)

    def increment(self, ncf_type: str) -> int:
        with self._transaction():
            old = self.get(ncf_type)
            new = old + 1
            self._upsert(ncf_type, new)
            self._log(ncf_type, "COMMIT", old, new)
        return new

    def reset_all(self) -> None:
        with self._transaction():
            self._conn.execute(
                "UPDATE ncf_counters SET current_value=0, updated_at=?",
                (datetime.now(UTC).isoformat(),),
            )
            self._log(None, "RESET_ALL", None, 0)

    def snapshot(self) -> dict[str, int]:
        cursor = self._conn.execute(
            "SELECT ncf_type, current_value FROM ncf_counters ORDER BY ncf_type"
        )
        return {row[0]: int(row[1]) for row in cursor.fetchall()}

    def history(self, ncf_type: str | None = None) -> list[dict[str, Any]]:
        """Bitácora de avances/reinicios, más reciente primero."""
        if ncf_type is None:
            cursor = self._conn.execute("SELECT * FROM ncf_counter_log ORDER BY id DESC")
        else:
            cursor = self._conn.execute(
                "SELECT * FROM ncf_counter_log WHERE ncf_type=? ORDER BY id DESC",
                (ncf_type,),
            )
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def close(self) -> None:
        """Cierra la conexión a la base de datos."""
        self._conn.close()

    def _transaction(self) -> "_ImmediateTransaction":
        return _ImmediateTransaction(self._conn)

    def _upsert(self, ncf_type: str, value: int) -> None:
        self._conn.execute(
            """INSERT INTO ncf_counters (ncf_type, current_value, updated_at)
               VALUES (?, ?, ?)
               ON CONFLICT(ncf_type) DO UPDATE
               SET current_value=excluded.current_value, updated_at=excluded.updated_at""",
            (ncf_type, value, datetime.now(UTC).isoformat()),
        )

    def _log(self, ncf_type: str | None, action: str, old: int | None, new: int) -> None:
        self._conn.execute(
            """INSERT INTO ncf_counter_log (ncf_type, action, old_value, new_value)
               VALUES (?, ?, ?, ?)""",
            (ncf_type, action, old, new),
        )


class _ImmediateTransaction:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def __enter__(self) -> sqlite3.Connection:
        self._conn.execute("BEGIN IMMEDIATE")
        return self._conn

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self._conn.execute("COMMIT")
        else:
            self._conn.execute("ROLLBACK")
