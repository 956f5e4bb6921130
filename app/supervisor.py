from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from domain.models import ConfigError, StatusReport, StatusTransition, StreamConfig, StreamStatus
from domain.ports import Clock, StatusSink, TransitionSink

from .aggregate import AggregateStatus
from .rate import Rate
from .stream_monitor import StreamMonitor

logger = logging.getLogger("app.supervisor")


class WatchdogSupervisor:
    """
    Agrega os vereditos de todos os StreamMonitor.

    A cada tick (rate Hz):
      1) lê nome + status de cada monitor, status global = AND de todos
         (sem monitores -> True)
      2) atualiza o AggregateStatus lido pelo CommandGate
      3) publica StatusReport nos sinks (falha de sink só é logada)
    """

    def __init__(
        self,
        rate: float,
        *,
        clock: Clock,
        aggregate: AggregateStatus,
        status_sinks: Sequence[StatusSink] = (),
        transition_sink: Optional[TransitionSink] = None,
    ):
        if rate <= 0:
            raise ConfigError(f"rate do supervisor deve ser > 0 (recebido {rate})")
        self.rate = float(rate)
        self.clock = clock
        self.aggregate = aggregate
        self.status_sinks = list(status_sinks)
        self.transition_sink = transition_sink

        self._monitors: List[StreamMonitor] = []
        self._last: Dict[int, bool] = {}

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def monitors(self) -> Tuple[StreamMonitor, ...]:
        return tuple(self._monitors)

    def initialize(self, configs: Optional[Sequence[StreamConfig]], *, start: bool = True) -> None:
        if not configs:
            raise ConfigError("Nenhum stream configurado para monitorar.")

        logger.info("Monitoring %d topics", len(configs))
        for i, cfg in enumerate(configs, start=1):
            try:
                monitor = StreamMonitor(cfg)
            except ValueError as e:
                raise ConfigError(f"topic_{i}: {e}") from e
            if start:
                monitor.start()
            logger.info("topic_%d %s", i, monitor.describe())
            self._monitors.append(monitor)

    def tick(self) -> StatusReport:
        status = True
        streams: List[StreamStatus] = []
        for m in self._monitors:
            ok = m.get_status()
            streams.append(StreamStatus(name=m.get_name(), status=ok))
            if not ok:
                status = False

        stamp = self.clock.now_epoch()
        report = StatusReport(stamp_epoch=stamp, status=status, streams=streams)

        # o gate lê o status antes de qualquer sink (que pode bloquear ou falhar)
        self.aggregate.set(status)

        for sink in self.status_sinks:
            try:
                sink.publish(report)
            except Exception:
                logger.exception("status sink %s falhou", type(sink).__name__)

        self._emit_transitions(stamp, streams)
        return report

    def _emit_transitions(self, stamp: float, streams: List[StreamStatus]) -> None:
        for i, s in enumerate(streams):
            prev = self._last.get(i)
            self._last[i] = s.status
            if prev is None:
                # primeiro tick: só reporta quem já está saudável
                if not s.status:
                    continue
            elif prev == s.status:
                continue

            if s.status:
                logger.info("stream %s healthy", s.name)
            else:
                logger.warning("stream %s UNHEALTHY (below minimum rate)", s.name)

            if self.transition_sink is not None:
                try:
                    self.transition_sink.publish(StatusTransition(t_epoch=stamp, name=s.name, status=s.status))
                except Exception:
                    logger.exception("transition sink falhou")

    # -----------------------------
    # Loop
    # -----------------------------
    def run(self, stop: Optional[threading.Event] = None) -> None:
        stop = stop or self._stop
        r = Rate(self.rate)
        while not stop.is_set():
            try:
                self.tick()
            except Exception:
                # tick incompleto: fecha o gate até o próximo
                self.aggregate.set(False)
                logger.exception("supervisor tick falhou")
            if not r.sleep(stop):
                break
        logger.info("supervisor loop stopped")

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="watchdog-supervisor", daemon=True)
        self._thread.start()

    def shutdown(self, timeout: float = 2.0) -> None:
        self._stop.set()
        for m in self._monitors:
            m.stop()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        for m in self._monitors:
            m.join(timeout=timeout)
