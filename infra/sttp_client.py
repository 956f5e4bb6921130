from __future__ import annotations

from typing import List
from sttp.subscriber import Subscriber
from sttp.config import Config
from sttp.settings import Settings
from sttp.transport.measurement import Measurement
from sttp.transport.signalindexcache import SignalIndexCache

from domain.ports import KeyExtractor
from app.router import ArrivalRouter


class SttpWatchdogSubscriber(Subscriber):
    """
    Transporte STTP do watchdog.

    Cada medida recebida conta como uma chegada (hora de recebimento, não a
    hora da medida). O valor só é lido nas chaves de comando.
    """

    def __init__(self, router: ArrivalRouter, key_extractor: KeyExtractor):
        super().__init__()
        self.config = Config()
        self.settings = Settings()

        self.router = router
        self.key_extractor = key_extractor

        self._started = False

        self.set_subscriptionupdated_receiver(self.subscription_updated)
        self.set_newmeasurements_receiver(self.new_measurements)
        self.set_connectionterminated_receiver(self.connection_terminated)

    def subscription_updated(self, signalindexcache: SignalIndexCache):
        self.statusmessage(f"Received signal index cache with {signalindexcache.count:,} mappings")

    def new_measurements(self, measurements: List[Measurement]):
        if not self._started:
            self._started = True
            self.statusmessage("Receiving measurements...")

        for m in measurements:
            md = self.measurement_metadata(m)
            key = int(self.key_extractor.key_from(m, md))
            self.router.route(key, value=float(m.value), t_meas_epoch=float(m.datetime.timestamp()))

    def connection_terminated(self):
        # sem chegadas os monitores caem sozinhos para "falha"
        self.default_connectionterminated_receiver()
        self._started = False
