"""Manager abstraction for the connectivity service counters register with."""

from typing import Protocol

from PySide6.QtCore import SignalInstance


class Manager(Protocol):
    """Protocol for clients of the connectivity manager.

    Implementations emit ``availability_changed(bool)`` when the manager
    service appears on or disappears from its bus. Register and unregister
    calls return nothing; a failed call raises, and the counter logs it.
    """

    availability_changed: SignalInstance

    def is_available(self) -> bool:
        """Return True if the manager service is currently reachable."""
        ...

    def register_counter(self, path: str, accuracy: int, interval: int) -> None:
        """Ask the manager to start reporting usage to the counter at path."""
        ...

    def unregister_counter(self, path: str) -> None:
        """Ask the manager to stop reporting usage to the counter at path."""
        ...
