from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import asdict
from typing import Any, Optional

import httpx

logger = logging.getLogger("infra.http_sink")


class HttpJsonSink:
    """
    Publica dataclasses como JSON (POST) em background.

    - fila limitada + N workers com um httpx.Client compartilhado
    - retry com backoff exponencial (máx. 2s); depois de max_retries conta
      como falha e segue
    - drop_on_full=True: publish() nunca bloqueia o chamador
    """

    def __init__(
        self,
        url: str,
        *,
        workers: int = 1,
        queue_max: int = 1000,
        timeout_sec: float = 2.0,
        max_retries: int = 3,
        drop_on_full: bool = True,
        name: str = "http",
    ) -> None:
        self._url = url
        self._timeout = timeout_sec
        self._max_retries = max_retries
        self._drop_on_full = drop_on_full
        self._name = name

        self._q: queue.Queue[Any] = queue.Queue(maxsize=queue_max)
        self._workers = workers
        self._threads: list[threading.Thread] = []
        self._client: Optional[httpx.Client] = None
        self._started = False

        self._stats_lock = threading.Lock()
        self.total_published = 0
        self.total_dropped = 0
        self.total_failed = 0
        self.total_sent = 0

    def start(self) -> None:
        if self._started:
            return
        self._client = httpx.Client(timeout=self._timeout)
        self._threads = []
        for i in range(self._workers):
            t = threading.Thread(target=self._worker, args=(i,), name=f"{self._name}-sink-{i}", daemon=True)
            t.start()
            self._threads.append(t)
        self._started = True
        logger.info("%s sink started url=%s workers=%d", self._name, self._url, self._workers)

    def stop(self) -> None:
        if not self._started:
            return
        for _ in self._threads:
            self._q.put(_Stop())
        for t in self._threads:
            t.join(timeout=3)
        self._threads.clear()
        self._started = False
        if self._client:
            self._client.close()
            self._client = None
        logger.info(
            "%s sink stopped published=%d sent=%d failed=%d dropped=%d",
            self._name, self.total_published, self.total_sent, self.total_failed, self.total_dropped,
        )

    def publish(self, item: Any) -> None:
        if not self._started:
            raise RuntimeError(f"HttpJsonSink({self._name}).publish chamado antes de start()")

        with self._stats_lock:
            self.total_published += 1

        if self._drop_on_full:
            try:
                self._q.put_nowait(item)
            except queue.Full:
                with self._stats_lock:
                    self.total_dropped += 1
        else:
            self._q.put(item)

    def _post(self, payload: dict) -> bool:
        assert self._client is not None
        attempt = 0
        while True:
            try:
                r = self._client.post(self._url, json=payload)
                r.raise_for_status()
                return True
            except Exception as e:
                attempt += 1
                if attempt > self._max_retries:
                    logger.warning("%s sink: desistindo após %d tentativas: %s", self._name, attempt, e)
                    return False
                time.sleep(min(0.25 * (2 ** (attempt - 1)), 2.0))

    def _worker(self, wid: int) -> None:
        while True:
            item = self._q.get()
            try:
                if isinstance(item, _Stop):
                    return

                try:
                    ok = self._post(asdict(item))
                except Exception:
                    logger.exception("%s sink: item descartado", self._name)
                    ok = False
                with self._stats_lock:
                    if ok:
                        self.total_sent += 1
                    else:
                        self.total_failed += 1
            finally:
                self._q.task_done()


class _Stop:
    pass
