from __future__ import annotations

import logging
import threading
import time
from typing import List, Optional, Tuple

from domain.models import StreamConfig
from domain.rate_check import window_healthy

from .rate import Rate

logger = logging.getLogger("app.stream_monitor")


class StreamMonitor:
    """
    Monitor de frequência de um único stream.

    - record_arrival(): chamado pelo transporte a cada mensagem recebida
    - evaluate(): roda periodicamente na thread do monitor, a
      min(min_freq, monitoring_rate) Hz
    - Depois de cada avaliação a janela é limpa e o último timestamp vira a
      semente da próxima, para que ele também seja comparado com a próxima
      mensagem.

    O veredito começa False (sem evidência) e só vira True depois que uma
    janela com >= 2 chegadas passa na regra.
    """

    def __init__(self, cfg: StreamConfig):
        if cfg.min_freq <= 0:
            raise ValueError(f"min_freq deve ser > 0 para '{cfg.name}' (recebido {cfg.min_freq})")
        if cfg.monitoring_rate <= 0:
            raise ValueError(f"monitoring_rate deve ser > 0 para '{cfg.name}' (recebido {cfg.monitoring_rate})")

        self.cfg = cfg
        self.min_interval = cfg.min_interval

        self._lock = threading.Lock()
        self._stamps: List[float] = []
        self._status = False

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # -----------------------------
    # Identidade
    # -----------------------------
    def get_name(self) -> str:
        return self.cfg.name

    @property
    def source(self) -> str:
        return self.cfg.source

    def describe(self) -> str:
        mode = "average" if self.cfg.use_average else "strict"
        return (
            f"name={self.cfg.name} source={self.cfg.source} "
            f"min_freq={self.cfg.min_freq:g}Hz mode={mode} eval_rate={self.cfg.eval_rate:g}Hz"
        )

    # -----------------------------
    # Produtor (threads do transporte)
    # -----------------------------
    def record_arrival(self, now: Optional[float] = None) -> None:
        with self._lock:
            # sem `now`, lê o relógio dentro da seção crítica: produtores
            # concorrentes nunca inserem fora de ordem
            self._stamps.append(time.monotonic() if now is None else float(now))

    # -----------------------------
    # Consumidor (thread do monitor)
    # -----------------------------
    def evaluate(self) -> bool:
        with self._lock:
            status = window_healthy(self._stamps, self.min_interval, self.cfg.use_average)
            if self._stamps:
                last = self._stamps[-1]
                self._stamps.clear()
                self._stamps.append(last)
            self._status = status
            return status

    def get_status(self) -> bool:
        with self._lock:
            return self._status

    def window_snapshot(self) -> Tuple[float, ...]:
        with self._lock:
            return tuple(self._stamps)

    # -----------------------------
    # Ciclo de vida
    # -----------------------------
    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=f"monitor-{self.cfg.name}",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _run(self) -> None:
        rate = Rate(self.cfg.eval_rate)
        while rate.sleep(self._stop):
            self.evaluate()
        logger.debug("monitor %s stopped", self.cfg.name)
