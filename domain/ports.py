from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol, TypeVar

from .models import StatusReport, StatusTransition

if TYPE_CHECKING:
    from sttp.transport.measurement import Measurement

T = TypeVar("T", bound="Neutralizable")


class Clock(Protocol):
    def now_epoch(self) -> float: ...


class KeyExtractor(Protocol):
    def key_from(self, measurement: Measurement, metadata: object) -> int: ...


class Neutralizable(Protocol):
    """Comando que sabe construir o próprio valor neutro (zero)."""
    def neutral(self: T) -> T: ...


class StatusSink(Protocol):
    def publish(self, report: StatusReport) -> None: ...


class CommandSink(Protocol):
    def publish(self, cmd: Neutralizable) -> None: ...


class TransitionSink(Protocol):
    def publish(self, transition: StatusTransition) -> None: ...


# -----------------------------
# Escrita do comando filtrado (HTTP)
# -----------------------------

@dataclass(frozen=True)
class WriteJob:
    server_ip: str
    tempo: str        # "YYYY-MM-DD HH:MM:SS.mmm"
    ppa: int          # PPA de saída do comando
    indicator: float  # valor do comando (0.0 quando bloqueado)


class PpaMapper(Protocol):
    def try_map(self, ppa_src: int) -> Optional[int]:
        """Mapeia PPA de entrada do comando -> PPA de saída. None = não publica."""
        ...
