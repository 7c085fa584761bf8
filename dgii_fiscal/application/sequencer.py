"""Secuenciador de NCF: vista previa sin efectos y avance del contador."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import structlog

from dgii_fiscal.application.ports.counter_store import CounterStore
from dgii_fiscal.domain.exceptions import UnknownNcfTypeError
from dgii_fiscal.domain.tax_tables import NCF_SEQUENCE_DIGITS, is_known_ncf_type

logger = structlog.get_logger()

_MAX_SEQUENCE = 10**NCF_SEQUENCE_DIGITS - 1


def format_ncf(ncf_type: str, number: int) -> str:
    if not 1 <= number <= _MAX_SEQUENCE:
        raise ValueError(f"Secuencia fuera de rango para {ncf_type}: {number}")
    return f"{ncf_type}{number:0{NCF_SEQUENCE_DIGITS}d}"


class NCFSequencer:
    """
    Único dueño de los contadores NCF.

    El contador persistido es la fuente de verdad; nunca se deriva
    escaneando facturas. `commit` se llama una sola vez por factura y solo
    después de que la factura quedó guardada.
    """

    def __init__(self, store: CounterStore) -> None:
        self._store = store
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def reserve(self, ncf_type: str) -> Iterator[None]:
        """Serializa peek → insert → commit para un mismo tipo."""
        self._check_type(ncf_type)
        with self._lock_for(ncf_type):
            yield

    def peek_next(self, ncf_type: str) -> str:
        """Siguiente NCF sin modificar el contador."""
        self._check_type(ncf_type)
        return format_ncf(ncf_type, self._store.get(ncf_type) + 1)

    def commit(self, ncf_type: str) -> str:
        """Avanza el contador en 1 y retorna el NCF que quedó consumido."""
        self._check_type(ncf_type)
        with self._lock_for(ncf_type):
            value = self._store.increment(ncf_type)
        ncf = format_ncf(ncf_type, value)
        logger.info("ncf_committed", ncf_type=ncf_type, ncf=ncf, counter=value)
        return ncf

    def reconcile(self, ncf_type: str, is_issued: Callable[[str], bool]) -> int:
        """
        Repara el contador si quedó detrás de una factura ya guardada
        (insert exitoso cuyo commit se perdió). Retorna cuántos avances aplicó.
        """
        repaired = 0
        with self._lock_for(ncf_type):
            while is_issued(self.peek_next(ncf_type)):
                self._store.increment(ncf_type)
                repaired += 1
        if repaired:
            logger.warning("ncf_counter_reconciled", ncf_type=ncf_type, advanced_by=repaired)
        return repaired

    def reset(self) -> None:
        """Operación administrativa: todos los contadores a 0. Sin deshacer."""
        before = self._store.snapshot()
        self._store.reset_all()
        logger.warning("ncf_counters_reset", previous=before)

    def _lock_for(self, ncf_type: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(ncf_type)
            if lock is None:
                lock = threading.RLock()
                self._locks[ncf_type] = lock
            return lock

    @staticmethod
    def _check_type(ncf_type: str) -> None:
        if not is_known_ncf_type(ncf_type):
            raise UnknownNcfTypeError(ncf_type)
