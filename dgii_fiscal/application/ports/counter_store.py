"""Port para el almacenamiento durable de contadores NCF."""

from __future__ import annotations

from typing import Protocol


class CounterStore(Protocol):
    def get(self, ncf_type: str) -> int:
        """Último número emitido para el tipo; 0 si nunca se emitió."""
        ...

    def set(self, ncf_type: str, value: int) -> None: ...

    def increment(self, ncf_type: str) -> int:
        """Incremento atómico en el almacenamiento. Retorna el nuevo valor."""
        ...

    def reset_all(self) -> None:
        """Pone todos los contadores en 0. Irreversible."""
        ...

    def snapshot(self) -> dict[str, int]: ...
