from __future__ import annotations

import logging
import threading

from domain.ports import CommandSink, Neutralizable

from .aggregate import AggregateStatus

logger = logging.getLogger("app.command_gate")


class CommandGate:
    """
    Repassa o comando quando o status global está saudável; caso contrário
    publica o valor neutro do mesmo tipo (ex.: velocidade zero).

    Usa o último status conhecido (atualizado pelo supervisor), não recalcula.
    """

    def __init__(self, aggregate: AggregateStatus, sink: CommandSink):
        self.aggregate = aggregate
        self.sink = sink

        self._lock = threading.Lock()
        self._blocking = False
        self.total_forwarded = 0
        self.total_suppressed = 0

    def on_command(self, msg: Neutralizable) -> None:
        healthy = self.aggregate.get()
        out = msg if healthy else msg.neutral()

        with self._lock:
            if healthy:
                self.total_forwarded += 1
            else:
                self.total_suppressed += 1
            changed = self._blocking == healthy
            self._blocking = not healthy

        if changed:
            if healthy:
                logger.info("command gate open: forwarding commands")
            else:
                logger.warning("command gate closed: publishing neutral commands")

        self.sink.publish(out)
