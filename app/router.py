from __future__ import annotations

import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from domain.models import CommandMessage

from .command_gate import CommandGate
from .stream_monitor import StreamMonitor


class ArrivalRouter:
    """
    Direciona cada medida recebida pelo transporte:
      - chave monitorada -> record_arrival() em cada monitor da chave
      - chave de comando -> CommandGate.on_command()
    Chaves desconhecidas são ignoradas.
    """

    ARRIVAL = "arrival"
    COMMAND = "command"

    def __init__(
        self,
        monitors_by_key: Dict[int, Iterable[StreamMonitor]],
        *,
        gate: Optional[CommandGate] = None,
        command_keys: Iterable[int] = (),
    ):
        self._monitors: Dict[int, List[StreamMonitor]] = defaultdict(list)
        for k, ms in monitors_by_key.items():
            self._monitors[int(k)].extend(ms)
        self._gate = gate
        self._command_keys: Set[int] = set(int(k) for k in command_keys)

        self._lock = threading.Lock()
        self.total_arrivals = 0
        self.total_commands = 0
        self.total_ignored = 0

    @property
    def keys(self) -> Set[int]:
        return set(self._monitors.keys()) | self._command_keys

    def route(self, key: int, value: float = 0.0, t_meas_epoch: float = 0.0) -> Optional[str]:
        key = int(key)
        routed: Optional[str] = None

        monitors = self._monitors.get(key)
        if monitors:
            for m in monitors:
                m.record_arrival()
            routed = self.ARRIVAL

        if self._gate is not None and key in self._command_keys:
            self._gate.on_command(CommandMessage(key=key, value=float(value), t_meas_epoch=t_meas_epoch))
            routed = self.COMMAND

        with self._lock:
            if routed is None:
                self.total_ignored += 1
            else:
                if monitors:
                    self.total_arrivals += 1
                if routed == self.COMMAND:
                    self.total_commands += 1
        return routed
