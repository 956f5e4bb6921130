import threading
import time

import pytest

from domain.models import StreamConfig


class FakeClock:
    def __init__(self, t: float = 1_700_000_000.0):
        self.t = t

    def now_epoch(self) -> float:
        return self.t


class ListSink:
    """Sink em memória (thread-safe) para status, transições e comandos."""

    def __init__(self):
        self._lock = threading.Lock()
        self.items = []

    def publish(self, item) -> None:
        with self._lock:
            self.items.append(item)

    @property
    def last(self):
        with self._lock:
            return self.items[-1] if self.items else None


def wait_until(pred, timeout: float = 2.0, step: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pred():
            return True
        time.sleep(step)
    return pred()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return ListSink()


@pytest.fixture
def stream_cfg():
    def _make(name="lidar", source="PPA:101", min_freq=4.0, use_average=False, monitoring_rate=10.0):
        return StreamConfig(
            name=name,
            source=source,
            min_freq=min_freq,
            use_average=use_average,
            monitoring_rate=monitoring_rate,
        )
    return _make
