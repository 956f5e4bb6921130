from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from domain.models import ConfigError, StreamConfig


@dataclass(frozen=True)
class StatusWriteConfig:
    url: str

    workers: int = 1
    queue_max: int = 1000
    timeout_sec: float = 2.0
    max_retries: int = 1
    drop_on_full: bool = True


@dataclass(frozen=True)
class CommandGateConfig:
    url: str
    server_ip: str

    workers: int = 2
    queue_max: int = 5000
    timeout_sec: float = 2.0
    max_retries: int = 3
    drop_on_full: bool = False

    # dict[ppa_in] -> ppa_out
    ppa_map: dict[int, int] = None  # type: ignore


@dataclass(frozen=True)
class TransitionsConfig:
    enabled: bool = False

    csv_path: str = "transitions.csv"
    queue_max: int = 10000
    drop_on_full: bool = True
    flush_every_n: int = 50
    flush_every_sec: float = 1.0


@dataclass(frozen=True)
class WatchdogConfig:
    hostname: str
    port: int
    rate: float

    streams: list[StreamConfig] = None  # type: ignore

    subscription: str = ""
    udp_port: int = 9600
    log_level: str = "INFO"

    status_write: StatusWriteConfig | None = None
    command_gate: CommandGateConfig | None = None
    transitions: TransitionsConfig | None = None


_STREAM_FIELDS = ("name", "topic_name", "min_freq", "use_average", "monitoring_rate")


def _req(d: Mapping[str, Any], path: str) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur or cur[part] is None:
            raise ConfigError(f"Config inválida: campo obrigatório '{path}' ausente.")
        cur = cur[part]
    return cur


def _opt(d: Mapping[str, Any], path: str, default: Any) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return default
        cur = cur[part]
    return cur


def _positive(x: Any, path: str) -> float:
    try:
        v = float(x)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Config inválida: '{path}' deve ser numérico (recebido {x!r}).") from e
    if v <= 0:
        raise ConfigError(f"Config inválida: '{path}' deve ser > 0 (recebido {v}).")
    return v


def _int(x: Any, path: str) -> int:
    try:
        return int(x)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Config inválida: '{path}' deve ser inteiro (recebido {x!r}).") from e


def _to_bool(x: Any, path: str) -> bool:
    if isinstance(x, bool):
        return x
    if isinstance(x, str) and x.strip().lower() in ("true", "false"):
        return x.strip().lower() == "true"
    raise ConfigError(f"Config inválida: '{path}' deve ser true/false (recebido {x!r}).")


def _to_int_map(x: Any, path: str) -> dict[int, int]:
    if not isinstance(x, Mapping):
        raise ConfigError(f"Config inválida: '{path}' deve ser um mapa (dict).")
    out: dict[int, int] = {}
    for k, v in x.items():
        try:
            out[int(k)] = int(v)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Config inválida: '{path}' contém chave/valor não-inteiro: {k}:{v}") from e
    return out


def _to_stream(raw: Any, path: str) -> StreamConfig:
    """
    Espera:
      name: "lidar"
      topic_name: "PPA:101"
      min_freq: 10
      use_average: false
      monitoring_rate: 10
    """
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Config inválida: '{path}' deve ser um objeto.")
    missing = [f for f in _STREAM_FIELDS if raw.get(f) is None]
    if missing:
        raise ConfigError(f"Config inválida: '{path}' sem campo(s) obrigatório(s): {', '.join(missing)}.")

    return StreamConfig(
        name=str(raw["name"]),
        source=str(raw["topic_name"]),
        min_freq=_positive(raw["min_freq"], f"{path}.min_freq"),
        use_average=_to_bool(raw["use_average"], f"{path}.use_average"),
        monitoring_rate=_positive(raw["monitoring_rate"], f"{path}.monitoring_rate"),
    )


def _to_streams(data: Mapping[str, Any]) -> list[StreamConfig]:
    """
    Duas formas aceitas:
      streams: [ {...}, {...} ]
    ou o layout por contagem:
      nb_of_topics: 2
      topic_1: {...}
      topic_2: {...}
    """
    raw_list = _opt(data, "streams", None)
    if raw_list is not None:
        if not isinstance(raw_list, list) or not raw_list:
            raise ConfigError("Config inválida: 'streams' deve ser uma lista não vazia.")
        return [_to_stream(r, f"streams[{i}]") for i, r in enumerate(raw_list)]

    n = _int(_req(data, "nb_of_topics"), "nb_of_topics")
    if n < 1:
        raise ConfigError("Config inválida: 'nb_of_topics' deve ser >= 1.")

    return [_to_stream(_req(data, f"topic_{i}"), f"topic_{i}") for i in range(1, n + 1)]


def parse_config(data: Mapping[str, Any]) -> WatchdogConfig:
    if not isinstance(data, Mapping):
        raise ConfigError("Config inválida: raiz do YAML deve ser um mapa.")

    hostname = _req(data, "hostname")
    port = _int(_req(data, "port"), "port")
    rate = _positive(_req(data, "rate"), "rate")
    streams = _to_streams(data)

    subscription = str(_opt(data, "subscription", "") or "")
    udp_port = _int(_opt(data, "udp_port", 9600), "udp_port")
    log_level = str(_opt(data, "log_level", "INFO")).upper()

    # ---- status_write (opcional) ----
    sw_raw = _opt(data, "status_write", None)
    status_write = None
    if isinstance(sw_raw, Mapping) and bool(_opt(sw_raw, "enabled", True)):
        status_write = StatusWriteConfig(
            url=str(_req(sw_raw, "url")),
            workers=int(_opt(sw_raw, "workers", 1)),
            queue_max=int(_opt(sw_raw, "queue_max", 1000)),
            timeout_sec=float(_opt(sw_raw, "timeout_sec", 2.0)),
            max_retries=int(_opt(sw_raw, "max_retries", 1)),
            drop_on_full=bool(_opt(sw_raw, "drop_on_full", True)),
        )

    # ---- command_gate (opcional) ----
    cg_raw = _opt(data, "command_gate", None)
    command_gate = None
    if isinstance(cg_raw, Mapping) and bool(_opt(cg_raw, "enabled", True)):
        command_gate = CommandGateConfig(
            url=str(_req(cg_raw, "url")),
            server_ip=str(_req(cg_raw, "server_ip")),
            workers=int(_opt(cg_raw, "workers", 2)),
            queue_max=int(_opt(cg_raw, "queue_max", 5000)),
            timeout_sec=float(_opt(cg_raw, "timeout_sec", 2.0)),
            max_retries=int(_opt(cg_raw, "max_retries", 3)),
            drop_on_full=bool(_opt(cg_raw, "drop_on_full", False)),
            ppa_map=_to_int_map(_req(cg_raw, "ppa_map"), "command_gate.ppa_map"),
        )

    # ---- transitions (opcional) ----
    tr_raw = _opt(data, "transitions", None)
    transitions = None
    if isinstance(tr_raw, Mapping):
        transitions = TransitionsConfig(
            enabled=bool(_opt(tr_raw, "enabled", False)),
            csv_path=str(_opt(tr_raw, "csv_path", "transitions.csv")),
            queue_max=int(_opt(tr_raw, "queue_max", 10000)),
            drop_on_full=bool(_opt(tr_raw, "drop_on_full", True)),
            flush_every_n=int(_opt(tr_raw, "flush_every_n", 50)),
            flush_every_sec=float(_opt(tr_raw, "flush_every_sec", 1.0)),
        )

    return WatchdogConfig(
        hostname=str(hostname),
        port=port,
        rate=rate,
        streams=streams,
        subscription=subscription,
        udp_port=udp_port,
        log_level=log_level,
        status_write=status_write,
        command_gate=command_gate,
        transitions=transitions,
    )


def load_config(path: str = "config.yaml") -> WatchdogConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Arquivo de configuração não encontrado: {p}")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    return parse_config(data)
