from __future__ import annotations

import threading


class AggregateStatus:
    """
    Status global (AND de todos os monitores).
    Escrito só pelo supervisor, lido só pelo gate de comandos.
    Começa False até o primeiro tick do supervisor.
    """

    def __init__(self, initial: bool = False):
        self._lock = threading.Lock()
        self._value = bool(initial)

    def set(self, value: bool) -> None:
        with self._lock:
            self._value = bool(value)

    def get(self) -> bool:
        with self._lock:
            return self._value
