"""Data models for NetCounter usage accounting."""

from collections.abc import Mapping
from dataclasses import dataclass

UINT32_MAX = 2**32 - 1
UINT64_MAX = 2**64 - 1

# Keys used by the connectivity manager in a counters payload
RX_BYTES_KEY = "RX.Bytes"
TX_BYTES_KEY = "TX.Bytes"
TIME_KEY = "Time"


def _unsigned(value, maximum: int) -> int:
    """Coerce a reported value to an unsigned int, 0 meaning "not reported"."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    if number < 0 or number > maximum:
        return 0
    return number


@dataclass
class UsageBucket:
    """Accumulated usage for one network context (home or roaming)."""

    bytes_in: int = 0
    bytes_out: int = 0
    seconds_online: int = 0

    def update(self, report: "UsageReport") -> None:
        """Overwrite fields with the non-zero values of a report."""
        if report.rx_bytes:
            self.bytes_in = report.rx_bytes
        if report.tx_bytes:
            self.bytes_out = report.tx_bytes
        if report.online_seconds:
            self.seconds_online = report.online_seconds


@dataclass(frozen=True)
class UsageReport:
    """Values extracted from one counters payload."""

    rx_bytes: int = 0
    tx_bytes: int = 0
    online_seconds: int = 0

    @classmethod
    def from_counters(cls, counters: Mapping | None) -> "UsageReport":
        """Parse a counters mapping, treating missing or malformed entries as zero."""
        if not isinstance(counters, Mapping):
            return cls()
        return cls(
            rx_bytes=_unsigned(counters.get(RX_BYTES_KEY), UINT64_MAX),
            tx_bytes=_unsigned(counters.get(TX_BYTES_KEY), UINT64_MAX),
            online_seconds=_unsigned(counters.get(TIME_KEY), UINT32_MAX),
        )

    def is_empty(self) -> bool:
        return not (self.rx_bytes or self.tx_bytes or self.online_seconds)
