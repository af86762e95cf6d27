"""Fake connectivity manager for NetCounter testing and simulation."""

import logging
import random

from PySide6.QtCore import QObject, Signal

from netcounter.models import RX_BYTES_KEY, TIME_KEY, TX_BYTES_KEY
from netcounter.transport import LocalTransport

logger = logging.getLogger(__name__)

SIMULATED_SERVICE = "/net/connman/service/simulated"


class FakeManager(QObject):
    """In-process stand-in for the connectivity manager.

    Records every register/unregister call and can simulate usage reports
    for registered counters exposed on a LocalTransport.
    """

    availability_changed = Signal(bool)

    def __init__(
        self,
        transport: LocalTransport | None = None,
        available: bool = True,
        seed: int | None = None,
        parent=None,
    ):
        """Initialize fake manager.

        Args:
            transport: Transport used to reach registered counters
            available: Initial availability
            seed: Random seed for deterministic simulation
            parent: Qt parent object
        """
        super().__init__(parent)
        self.transport = transport if transport is not None else LocalTransport()
        self._available = available

        # Create isolated random instance
        self._random = random.Random(seed)

        self.calls = []  # [("register", path, accuracy, interval) | ("unregister", path)]
        self.registered = {}  # {path: (accuracy, interval)}
        self._totals = {}  # {path: {"RX.Bytes": int, "TX.Bytes": int, "Time": int}}

        # Simulation parameters
        self.base_rate_bytes = 4096  # Bytes per second per direction
        self.rate_variance = 0.5  # Relative variance of the rate
        self.idle_probability = 0.1  # Chance that a direction reports nothing
        self.roaming_probability = 0.0  # Chance a tick is reported as roaming

    def is_available(self) -> bool:
        return self._available

    def set_available(self, available: bool):
        """Change availability, emitting availability_changed on transitions."""
        available = bool(available)
        if available == self._available:
            return
        self._available = available
        logger.info("Fake manager available=%s", available)
        self.availability_changed.emit(available)

    def register_counter(self, path: str, accuracy: int, interval: int) -> None:
        self.calls.append(("register", path, accuracy, interval))
        self.registered[path] = (accuracy, interval)
        self._totals.setdefault(path, {RX_BYTES_KEY: 0, TX_BYTES_KEY: 0, TIME_KEY: 0})
        logger.debug("Counter registered: %s (accuracy=%d, interval=%d)", path, accuracy, interval)

    def unregister_counter(self, path: str) -> None:
        self.calls.append(("unregister", path))
        self.registered.pop(path, None)
        self._totals.pop(path, None)
        logger.debug("Counter unregistered: %s", path)

    def calls_for(self, path: str) -> list:
        """Return the recorded calls concerning path."""
        return [call for call in self.calls if call[1] == path]

    def release(self, path: str) -> bool:
        """Revoke a counter's registration, calling its Release method."""
        self.registered.pop(path, None)
        self._totals.pop(path, None)
        adaptor = self.transport.lookup(path)
        if adaptor is None:
            return False
        adaptor.release()
        return True

    def deliver_usage(self, path: str, service: str, home: dict, roaming: dict) -> bool:
        """Deliver a Usage call to the counter exposed at path.

        Returns:
            True if a counter was reached
        """
        adaptor = self.transport.lookup(path)
        if adaptor is None:
            logger.debug("No counter exposed at %s", path)
            return False
        adaptor.usage(service, home, roaming)
        return True

    def simulate_tick(self) -> int:
        """Advance simulated usage for every registered counter.

        Returns:
            Number of counters a report was delivered to
        """
        if not self._available:
            return 0

        delivered = 0
        for path, (_accuracy, interval) in list(self.registered.items()):
            payload = self._next_payload(path, max(1, interval))
            if self._random.random() < self.roaming_probability:
                home, roaming = {}, payload
            else:
                home, roaming = payload, {}
            if self.deliver_usage(path, SIMULATED_SERVICE, home, roaming):
                delivered += 1
        return delivered

    def _next_payload(self, path: str, interval: int) -> dict:
        totals = self._totals.setdefault(path, {RX_BYTES_KEY: 0, TX_BYTES_KEY: 0, TIME_KEY: 0})
        payload = {}

        for key in (RX_BYTES_KEY, TX_BYTES_KEY):
            if self._random.random() < self.idle_probability:
                payload[key] = 0
                continue
            factor = max(0.0, 1.0 + self._random.uniform(-self.rate_variance, self.rate_variance))
            totals[key] += max(1, int(self.base_rate_bytes * interval * factor))
            payload[key] = totals[key]

        totals[TIME_KEY] += interval
        payload[TIME_KEY] = totals[TIME_KEY]
        return payload
