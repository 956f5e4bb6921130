from __future__ import annotations
from dataclasses import dataclass, replace
from typing import List


@dataclass(frozen=True)
class StreamConfig:
    name: str
    source: str          # "PPA:101"
    min_freq: float      # Hz
    use_average: bool
    monitoring_rate: float  # Hz, teto da avaliação

    @property
    def min_interval(self) -> float:
        return 1.0 / self.min_freq

    @property
    def eval_rate(self) -> float:
        # nunca avalia mais devagar que a frequência mínima
        return min(self.min_freq, self.monitoring_rate)


@dataclass(frozen=True)
class StreamStatus:
    name: str
    status: bool


@dataclass(frozen=True)
class StatusReport:
    stamp_epoch: float
    status: bool
    streams: List[StreamStatus]


@dataclass(frozen=True)
class StatusTransition:
    """
    Mudança de veredito de um stream entre dois ticks do supervisor.
    """
    t_epoch: float
    name: str
    status: bool


@dataclass(frozen=True)
class CommandMessage:
    key: int
    value: float
    t_meas_epoch: float = 0.0

    def neutral(self) -> CommandMessage:
        return replace(self, value=0.0)


class ConfigError(ValueError):
    """Configuração ausente/inválida: fatal na inicialização."""
