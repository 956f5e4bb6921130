from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Tuple

from domain.models import CommandMessage, StatusReport
from domain.ports import PpaMapper, StatusSink, WriteJob

from .http_sink import HttpJsonSink


def fmt_epoch(epoch: float) -> str:
    dt = datetime.fromtimestamp(epoch, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


class PrintStatusSink(StatusSink):
    """Imprime o relatório só quando algum status muda."""

    def __init__(self) -> None:
        self._last: Optional[Tuple[bool, Tuple[Tuple[str, bool], ...]]] = None

    def publish(self, report: StatusReport) -> None:
        sig = (report.status, tuple((s.name, s.status) for s in report.streams))
        if sig == self._last:
            return
        self._last = sig

        lines = [f"[{fmt_epoch(report.stamp_epoch)}] status={'OK' if report.status else 'FAIL'} streams={len(report.streams)}"]
        for s in report.streams:
            lines.append(f"  {s.name:<24} | {'ok' if s.status else 'FAIL'}")
        print("\n".join(lines), flush=True)


class TickCommandSink:
    """
    Comando filtrado -> WriteJob no PPA de saída mapeado.
    Comandos sem mapeamento não são publicados.
    """

    def __init__(self, http: HttpJsonSink, ppa_mapper: PpaMapper, server_ip: str):
        self.http = http
        self.ppa_mapper = ppa_mapper
        self.server_ip = server_ip

    def publish(self, cmd: CommandMessage) -> None:
        ppa_out = self.ppa_mapper.try_map(cmd.key)
        if ppa_out is None:
            return

        self.http.publish(
            WriteJob(
                server_ip=self.server_ip,
                tempo=fmt_epoch(cmd.t_meas_epoch),
                ppa=int(ppa_out),
                indicator=float(cmd.value),
            )
        )
