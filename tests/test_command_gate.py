import threading

from app.aggregate import AggregateStatus
from app.command_gate import CommandGate
from domain.models import CommandMessage
from conftest import ListSink


def test_forwards_unchanged_when_healthy(sink):
    gate = CommandGate(AggregateStatus(True), sink)
    msg = CommandMessage(key=200, value=1.5, t_meas_epoch=10.0)
    gate.on_command(msg)
    assert sink.items == [msg]
    assert gate.total_forwarded == 1


def test_publishes_neutral_when_unhealthy(sink):
    gate = CommandGate(AggregateStatus(False), sink)
    gate.on_command(CommandMessage(key=200, value=-3.0, t_meas_epoch=10.0))
    gate.on_command(CommandMessage(key=200, value=0.0, t_meas_epoch=11.0))
    assert [c.value for c in sink.items] == [0.0, 0.0]
    assert sink.items[0] == CommandMessage(key=200, value=0.0, t_meas_epoch=10.0)
    assert gate.total_suppressed == 2


def test_default_aggregate_blocks_until_first_tick(sink):
    gate = CommandGate(AggregateStatus(), sink)
    gate.on_command(CommandMessage(key=1, value=2.0))
    assert sink.last.value == 0.0


def test_reads_last_known_status(sink):
    agg = AggregateStatus(True)
    gate = CommandGate(agg, sink)
    gate.on_command(CommandMessage(key=1, value=2.0))
    agg.set(False)
    gate.on_command(CommandMessage(key=1, value=2.0))
    agg.set(True)
    gate.on_command(CommandMessage(key=1, value=2.0))
    assert [c.value for c in sink.items] == [2.0, 0.0, 2.0]


class Twist:
    def __init__(self, linear=(0.0, 0.0, 0.0), angular=(0.0, 0.0, 0.0)):
        self.linear = linear
        self.angular = angular

    def neutral(self):
        return Twist()


def test_any_neutralizable_command_type(sink):
    gate = CommandGate(AggregateStatus(False), sink)
    gate.on_command(Twist(linear=(1.0, 0.0, 0.0), angular=(0.0, 0.0, 0.5)))
    out = sink.last
    assert isinstance(out, Twist)
    assert out.linear == (0.0, 0.0, 0.0)
    assert out.angular == (0.0, 0.0, 0.0)


def test_concurrent_commands_and_status_writes():
    agg = AggregateStatus(True)
    out = ListSink()
    gate = CommandGate(agg, out)
    stop = threading.Event()

    def flipper():
        v = True
        while not stop.is_set():
            v = not v
            agg.set(v)

    f = threading.Thread(target=flipper)
    f.start()
    try:
        workers = [
            threading.Thread(target=lambda: [gate.on_command(CommandMessage(key=1, value=1.0)) for _ in range(500)])
            for _ in range(4)
        ]
        for w in workers:
            w.start()
        for w in workers:
            w.join()
    finally:
        stop.set()
        f.join()

    assert len(out.items) == 2000
    assert all(c.value in (0.0, 1.0) for c in out.items)
    assert gate.total_forwarded + gate.total_suppressed == 2000
