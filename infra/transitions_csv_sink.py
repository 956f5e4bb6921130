from __future__ import annotations

import csv
import os
import threading
import time
from queue import Queue, Full, Empty
from typing import List

from domain.models import StatusTransition

from .sinks import fmt_epoch


class AsyncCsvTransitionWriter:
    """
    Histórico de transições (saudável <-> falha) em CSV.
    Escrita em thread própria; não bloqueia o supervisor.
    """

    HEADER = ["utc_time", "name", "status"]

    def __init__(
        self,
        csv_path: str,
        *,
        queue_max: int = 10000,
        drop_on_full: bool = True,
        flush_every_n: int = 50,
        flush_every_sec: float = 1.0,
    ):
        self.csv_path = csv_path
        self.drop_on_full = drop_on_full
        self.flush_every_n = flush_every_n
        self.flush_every_sec = flush_every_sec
        self.total_dropped = 0

        self._q: Queue[StatusTransition] = Queue(maxsize=queue_max)
        self._stop = threading.Event()
        self._t = threading.Thread(target=self._worker, name="transitions-csv", daemon=True)

    def start(self) -> None:
        self._t.start()

    def stop(self) -> None:
        self._stop.set()
        self._t.join(timeout=5)

    def publish(self, ev: StatusTransition) -> None:
        try:
            self._q.put_nowait(ev)
        except Full:
            if self.drop_on_full:
                self.total_dropped += 1
            else:
                self._q.put(ev)

    def _ensure_header(self) -> None:
        if not os.path.exists(self.csv_path) or os.path.getsize(self.csv_path) == 0:
            with open(self.csv_path, "a", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(self.HEADER)

    def _flush(self, batch: List[StatusTransition]) -> None:
        if not batch:
            return
        self._ensure_header()
        with open(self.csv_path, "a", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            for ev in batch:
                w.writerow([fmt_epoch(ev.t_epoch), ev.name, int(ev.status)])

    def _drain(self, batch: List[StatusTransition]) -> None:
        while True:
            try:
                batch.append(self._q.get_nowait())
            except Empty:
                return

    def _worker(self) -> None:
        batch: List[StatusTransition] = []
        last_flush = time.time()

        while not self._stop.is_set():
            try:
                batch.append(self._q.get(timeout=0.2))
            except Empty:
                pass

            now = time.time()
            if batch and (
                len(batch) >= self.flush_every_n
                or (now - last_flush) >= self.flush_every_sec
            ):
                self._flush(batch)
                batch.clear()
                last_flush = now

        # o que ainda estiver na fila também vai para o arquivo
        self._drain(batch)
        self._flush(batch)
