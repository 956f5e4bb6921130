"""
Cenário: um stream a 10 Hz mínimo (100 ms), modo estrito, avaliação a 10 Hz.
Chegadas a cada 50 ms por 1 s, depois silêncio de 500 ms.
"""
import threading
import time

from app.aggregate import AggregateStatus
from app.command_gate import CommandGate
from app.router import ArrivalRouter
from app.supervisor import WatchdogSupervisor
from domain.models import CommandMessage
from conftest import ListSink, wait_until


def _build(clock, stream_cfg, status_rate=10.0):
    aggregate = AggregateStatus()
    commands = ListSink()
    gate = CommandGate(aggregate, commands)
    sup = WatchdogSupervisor(status_rate, clock=clock, aggregate=aggregate, status_sinks=[ListSink()])
    cfg = stream_cfg(name="lidar", min_freq=10.0, use_average=False, monitoring_rate=10.0)
    return sup, gate, commands, cfg


def test_scripted_timeline(clock, stream_cfg):
    sup, gate, commands, cfg = _build(clock, stream_cfg)
    sup.initialize([cfg], start=False)
    (monitor,) = sup.monitors

    arrivals_ms = list(range(0, 1001, 50))   # 0..1000 ms
    ticks_ms = list(range(100, 1501, 100))   # avaliação a cada 100 ms

    verdicts = {}
    gated = {}
    pending = iter(arrivals_ms)
    nxt = next(pending, None)
    for tick in ticks_ms:
        while nxt is not None and nxt <= tick:
            monitor.record_arrival(nxt / 1000.0)
            nxt = next(pending, None)
        monitor.evaluate()
        sup.tick()
        gate.on_command(CommandMessage(key=200, value=1.0, t_meas_epoch=tick / 1000.0))
        verdicts[tick] = monitor.get_status()
        gated[tick] = commands.last.value

    # alimentado: saudável o tempo todo, comandos passam
    assert all(verdicts[t] for t in ticks_ms if t <= 1000)
    assert all(gated[t] == 1.0 for t in ticks_ms if t <= 1000)

    # parou em 1000 ms: cai no primeiro período e não volta
    assert all(not verdicts[t] for t in ticks_ms if t > 1000)
    assert gated[1100] == 0.0
    assert all(gated[t] == 0.0 for t in ticks_ms if t > 1000)


def test_threaded_feed_then_silence(clock, stream_cfg):
    sup, gate, commands, cfg = _build(clock, stream_cfg, status_rate=20.0)
    sup.initialize([cfg])
    router = ArrivalRouter({101: sup.monitors}, gate=gate, command_keys=[200])
    sup.start()

    feeding = threading.Event()
    feeding.set()

    def feeder():
        while feeding.is_set():
            router.route(101)
            time.sleep(0.05)

    t = threading.Thread(target=feeder)
    t.start()
    try:
        assert wait_until(sup.aggregate.get, timeout=1.0)
        router.route(200, value=1.0)
        assert commands.last.value == 1.0

        time.sleep(0.5)
        feeding.clear()
        t.join()
        stopped_at = time.monotonic()

        assert wait_until(lambda: not sup.aggregate.get(), timeout=0.5)
        # avaliação (100 ms) + supervisor (50 ms) + folga de agendamento
        assert time.monotonic() - stopped_at < 0.5

        router.route(200, value=1.0)
        assert commands.last.value == 0.0
    finally:
        feeding.clear()
        sup.shutdown()
