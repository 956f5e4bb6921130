from gsf import Limits

import logging
import signal
import sys
import threading
from collections import defaultdict

from config import load_config
from domain.models import ConfigError
from app.aggregate import AggregateStatus
from app.command_gate import CommandGate
from app.router import ArrivalRouter
from app.supervisor import WatchdogSupervisor
from infra.clock import SystemClock
from infra.http_sink import HttpJsonSink
from infra.key_extractors import PpaKeyExtractor, build_subscription, ppa_of_source, ppas_in_subscription
from infra.ppa_mapper import DictPpaMapper
from infra.sinks import PrintStatusSink, TickCommandSink
from infra.sttp_client import SttpWatchdogSubscriber
from infra.transitions_csv_sink import AsyncCsvTransitionWriter

logger = logging.getLogger("watchdog")


def main(config_path: str = "config.yaml"):
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        raise SystemExit(str(e))

    logging.basicConfig(
        level=cfg.log_level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )

    if cfg.port < 1 or cfg.port > Limits.MAXUINT16:
        raise SystemExit(f"Port out of range: {cfg.port}")

    # ---- chave STTP de cada stream monitorado ----
    try:
        stream_keys = [ppa_of_source(s.source) for s in cfg.streams]
    except ValueError as e:
        raise SystemExit(f"Config inválida: {e}")

    # ---- sinks de status ----
    clock = SystemClock()
    aggregate = AggregateStatus()

    status_http = None
    status_sinks = [PrintStatusSink()]
    if cfg.status_write is not None:
        status_http = HttpJsonSink(
            cfg.status_write.url,
            workers=cfg.status_write.workers,
            queue_max=cfg.status_write.queue_max,
            timeout_sec=cfg.status_write.timeout_sec,
            max_retries=cfg.status_write.max_retries,
            drop_on_full=cfg.status_write.drop_on_full,
            name="status",
        )
        status_sinks.append(status_http)

    transitions = None
    if cfg.transitions and cfg.transitions.enabled:
        transitions = AsyncCsvTransitionWriter(
            cfg.transitions.csv_path,
            queue_max=cfg.transitions.queue_max,
            drop_on_full=cfg.transitions.drop_on_full,
            flush_every_n=cfg.transitions.flush_every_n,
            flush_every_sec=cfg.transitions.flush_every_sec,
        )

    # ---- gate de comandos (opcional) ----
    gate = None
    command_http = None
    command_keys: set[int] = set()
    if cfg.command_gate is not None:
        command_http = HttpJsonSink(
            cfg.command_gate.url,
            workers=cfg.command_gate.workers,
            queue_max=cfg.command_gate.queue_max,
            timeout_sec=cfg.command_gate.timeout_sec,
            max_retries=cfg.command_gate.max_retries,
            drop_on_full=cfg.command_gate.drop_on_full,
            name="command",
        )
        mapper = DictPpaMapper(cfg.command_gate.ppa_map)
        command_keys = mapper.inputs
        gate = CommandGate(aggregate, TickCommandSink(command_http, mapper, cfg.command_gate.server_ip))
        for k in sorted(command_keys):
            logger.info("[command-map] PPA_IN %d -> PPA_OUT %d", k, mapper.try_map(k))

    supervisor = WatchdogSupervisor(
        cfg.rate,
        clock=clock,
        aggregate=aggregate,
        status_sinks=status_sinks,
        transition_sink=transitions,
    )

    stop = threading.Event()

    def _on_signal(signum, _frame):
        logger.info("signal %d received, shutting down", signum)
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    sub = None
    try:
        # ---- tudo que é iniciado aqui é parado no finally ----
        if status_http is not None:
            status_http.start()
        if command_http is not None:
            command_http.start()
        if transitions is not None:
            transitions.start()
            logger.info("transitions csv=%s", cfg.transitions.csv_path)

        try:
            supervisor.initialize(cfg.streams)
        except ConfigError as e:
            raise SystemExit(str(e))

        monitors_by_key = defaultdict(list)
        for key, monitor in zip(stream_keys, supervisor.monitors):
            monitors_by_key[key].append(monitor)
        router = ArrivalRouter(monitors_by_key, gate=gate, command_keys=command_keys)

        # ---- subscription: se não vier no YAML, gera a partir de streams ∪ comandos ----
        subscription = cfg.subscription.strip() or build_subscription(router.keys)
        logger.info("subscription=%r ppas=%s", subscription, ppas_in_subscription(subscription))

        sub = SttpWatchdogSubscriber(router, PpaKeyExtractor())
        sub.config.compress_payloaddata = False
        sub.settings.udpport = cfg.udp_port
        sub.settings.use_millisecondresolution = True

        sub.subscribe(subscription, sub.settings)
        sub.connect(f"{cfg.hostname}:{cfg.port}", sub.config)
        supervisor.start()
        print(f"Watchdog running: {len(supervisor.monitors)} streams at {cfg.rate:g} Hz. Ctrl+C to stop...", flush=True)
        while not stop.wait(0.5):
            pass
    finally:
        try:
            if sub is not None:
                sub.dispose()
        finally:
            try:
                supervisor.shutdown()
            finally:
                try:
                    if command_http is not None:
                        command_http.stop()
                    if status_http is not None:
                        status_http.stop()
                finally:
                    if transitions is not None:
                        transitions.stop()


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "config.yaml")
