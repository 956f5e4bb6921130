from __future__ import annotations

import threading
import time
from typing import Callable


class Rate:
    """
    Marca-passo de loop com grade fixa (tipo ros::Rate).

    O próximo despertar avança sempre de um período exato; se o loop atrasar
    mais de um período inteiro, a grade é realinhada em "agora".
    """

    def __init__(self, hz: float, *, now: Callable[[], float] = time.monotonic):
        if hz <= 0:
            raise ValueError(f"Rate precisa ser > 0 Hz (recebido {hz})")
        self.period = 1.0 / float(hz)
        self._now = now
        self._next = self._now() + self.period

    def sleep(self, stop: threading.Event) -> bool:
        """Espera até o próximo tick. Retorna False se `stop` foi sinalizado."""
        now = self._now()
        remaining = self._next - now
        if remaining > 0:
            if stop.wait(remaining):
                return False
            self._next += self.period
        else:
            # atrasado: mantém a grade se couber, senão realinha
            self._next += self.period
            if now - self._next > self.period:
                self._next = now + self.period
        return not stop.is_set()
