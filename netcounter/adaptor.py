"""Inbound call surface the connectivity manager uses to reach a counter."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from netcounter.counter import Counter

logger = logging.getLogger(__name__)

COUNTER_INTERFACE = "net.connman.Counter"


class CounterAdaptor:
    """Dispatches manager calls (Usage, Release) into a Counter.

    A Usage call may carry a home payload, a roaming payload or both. Each
    non-empty payload is applied as its own report, home first.
    """

    def __init__(self, counter: Counter):
        self._counter = counter

    def usage(self, service_path: str, home: Mapping | None, roaming: Mapping | None) -> None:
        """Handle a Usage call from the manager."""
        if home:
            self._counter.apply_usage_report(service_path, home, False)
        if roaming:
            self._counter.apply_usage_report(service_path, roaming, True)
        if not home and not roaming:
            logger.debug("Empty usage call ignored: service=%s", service_path)

    def release(self) -> None:
        """Handle a Release call from the manager."""
        self._counter.release()
