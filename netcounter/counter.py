"""Network usage counter registered with the connectivity manager."""

import logging
import secrets
from collections.abc import Mapping
from dataclasses import replace

from PySide6.QtCore import QObject, Signal

from netcounter.adaptor import CounterAdaptor
from netcounter.manager import Manager
from netcounter.models import UINT32_MAX, UsageBucket, UsageReport
from netcounter.transport import CounterTransport, LocalTransport

logger = logging.getLogger(__name__)

DEFAULT_ACCURACY_KB = 1024
DEFAULT_INTERVAL_S = 1
COUNTER_PATH_PREFIX = "/ConnectivityCounter"


def new_counter_path() -> str:
    """Return a fresh object path for a counter.

    Must be unique across counters running at the same time, including
    counters in other processes registered with the same manager.
    """
    return COUNTER_PATH_PREFIX + secrets.token_hex(8)


def _is_uint32(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, int) and 0 <= value <= UINT32_MAX


def _check_uint32(name: str, value: int) -> int:
    if not _is_uint32(value):
        raise ValueError(f"{name} must be an int between 0 and {UINT32_MAX}, got {value!r}")
    return value


class Counter(QObject):
    """Usage counter for the connectivity manager.

    The counter keeps two buckets, home and roaming. Reports from the
    manager update the bucket matching the report's roaming flag, and the
    accessors read whichever bucket the most recent report selected.

    Registration follows manager availability: a requested run state is
    remembered while the manager is away and reconciled once it appears.

    Single-threaded, driven by the Qt event loop.
    """

    # Signals
    usage_changed = Signal(str, object, bool)  # (service, counters, roaming)
    roaming_changed = Signal(bool)
    bytes_received_changed = Signal(object)
    bytes_transmitted_changed = Signal(object)
    seconds_online_changed = Signal(object)
    accuracy_changed = Signal(object)
    interval_changed = Signal(object)
    running_changed = Signal(bool)
    released = Signal()

    def __init__(
        self,
        manager: Manager,
        transport: CounterTransport | None = None,
        accuracy: int = DEFAULT_ACCURACY_KB,
        interval: int = DEFAULT_INTERVAL_S,
        parent=None,
    ):
        """Initialize counter and hook it to manager availability.

        Args:
            manager: Connectivity manager client
            transport: Transport exposing the counter; in-process if omitted
            accuracy: Update threshold in kilobytes
            interval: Update period in seconds
            parent: Qt parent object
        """
        super().__init__(parent)

        self._manager = manager
        self._transport = transport if transport is not None else LocalTransport()
        self._adaptor = CounterAdaptor(self)
        self._identity = new_counter_path()

        self._accuracy = _check_uint32("accuracy", accuracy)
        self._interval = _check_uint32("interval", interval)

        self._home = UsageBucket()
        self._roaming = UsageBucket()
        self._roaming_enabled = False

        self._is_running = False
        self._should_be_running = False

        self._manager.availability_changed.connect(self.on_manager_availability_changed)
        logger.debug("Counter created: %s", self._identity)

        if self._manager.is_available():
            self.on_manager_availability_changed(True)

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def adaptor(self) -> CounterAdaptor:
        return self._adaptor

    @property
    def should_be_running(self) -> bool:
        return self._should_be_running

    # Accessors

    def roaming(self) -> bool:
        return self._roaming_enabled

    def bytes_received(self) -> int:
        return self._current_bucket().bytes_in

    def bytes_transmitted(self) -> int:
        return self._current_bucket().bytes_out

    def seconds_online(self) -> int:
        return self._current_bucket().seconds_online

    def accuracy(self) -> int:
        return self._accuracy

    def interval(self) -> int:
        return self._interval

    def running(self) -> bool:
        return self._is_running

    def home_usage(self) -> UsageBucket:
        """Return a copy of the home bucket."""
        return replace(self._home)

    def roaming_usage(self) -> UsageBucket:
        """Return a copy of the roaming bucket."""
        return replace(self._roaming)

    def _current_bucket(self) -> UsageBucket:
        return self._roaming if self._roaming_enabled else self._home

    # Configuration

    def set_accuracy(self, accuracy: int):
        """Set the update threshold in kilobytes and re-register.

        Re-registering may make the manager report against a new baseline.
        Local buckets are kept as they are. Values outside the uint32
        range are logged and ignored.
        """
        if not _is_uint32(accuracy):
            logger.warning("Ignoring invalid accuracy %r: %s", accuracy, self._identity)
            return
        self._accuracy = accuracy
        self._re_register()
        self.accuracy_changed.emit(accuracy)

    def set_interval(self, interval: int):
        """Set the update period in seconds and re-register."""
        if not _is_uint32(interval):
            logger.warning("Ignoring invalid interval %r: %s", interval, self._identity)
            return
        self._interval = interval
        self._re_register()
        self.interval_changed.emit(interval)

    def set_running(self, on: bool):
        """Request the counter to run or stop.

        While the manager is unavailable the request is only remembered;
        it is applied when the manager becomes available again.
        """
        on = bool(on)
        self._should_be_running = on

        if not self._manager.is_available():
            logger.debug("Manager unavailable, deferring running=%s: %s", on, self._identity)
            return

        if on:
            if not self._call_manager(
                "register", self._manager.register_counter,
                self._identity, self._accuracy, self._interval,
            ):
                return
            self._is_running = True
        else:
            self._call_manager("unregister", self._manager.unregister_counter, self._identity)
            self._is_running = False

        logger.info("Counter running=%s: %s", self._is_running, self._identity)
        self.running_changed.emit(self._is_running)

    def _re_register(self):
        """Unregister and register again with current parameters, if possible."""
        if not self._manager.is_available():
            return

        self._call_manager("unregister", self._manager.unregister_counter, self._identity)
        self._call_manager(
            "register", self._manager.register_counter,
            self._identity, self._accuracy, self._interval,
        )
        logger.debug(
            "Counter re-registered: %s (accuracy=%dKB, interval=%ds)",
            self._identity,
            self._accuracy,
            self._interval,
        )

    def _call_manager(self, action: str, method, *args) -> bool:
        """Issue a manager call, logging any failure."""
        try:
            method(*args)
        except Exception as e:
            logger.exception("Manager %s failed: path=%s, error=%s", action, self._identity, str(e))
            return False
        return True

    # Manager callbacks

    def on_manager_availability_changed(self, available: bool):
        """Handle the manager appearing or disappearing.

        Only the available transition is acted on. When the manager goes
        away, running() keeps its last value until the next set_running()
        or the next time the manager becomes available.
        """
        if not available:
            logger.info("Manager unavailable: %s", self._identity)
            return

        try:
            exposed = self._transport.expose(self._identity, self._adaptor)
        except Exception:
            logger.exception("Transport failed to expose counter: %s", self._identity)
            exposed = False

        if not exposed:
            logger.warning("Could not expose counter: %s", self._identity)
            return

        self.set_running(self._should_be_running)

    def release(self):
        """Handle the manager revoking this counter's registration."""
        logger.info("Counter released by manager: %s", self._identity)
        self.released.emit()

    def apply_usage_report(self, service: str, counters: Mapping, roaming: bool):
        """Apply one usage report from the manager.

        Non-zero values overwrite the matching field of the bucket selected
        by ``roaming``; zero means "not reported this round".

        Args:
            service: Identifier of the network service the report is about
            counters: Mapping with RX.Bytes, TX.Bytes and Time entries
            roaming: True if the report covers roaming usage
        """
        roaming = bool(roaming)
        self.usage_changed.emit(service, counters, roaming)

        if roaming != self._roaming_enabled:
            self._roaming_enabled = roaming
            self.roaming_changed.emit(roaming)

        report = UsageReport.from_counters(counters)
        if report.is_empty():
            logger.debug("Usage report without counter values: service=%s", service)
            return

        bucket = self._roaming if roaming else self._home
        bucket.update(report)

        logger.debug(
            "Usage report: service=%s, roaming=%s, rx=%d, tx=%d, time=%d",
            service,
            roaming,
            report.rx_bytes,
            report.tx_bytes,
            report.online_seconds,
        )

        if report.rx_bytes:
            self.bytes_received_changed.emit(report.rx_bytes)
        if report.tx_bytes:
            self.bytes_transmitted_changed.emit(report.tx_bytes)
        if report.online_seconds:
            self.seconds_online_changed.emit(report.online_seconds)

    # Lifetime

    def shutdown(self):
        """Unregister from the manager and withdraw from the transport.

        Best-effort: failures are logged and never raised. Nothing is sent
        to a manager that is not available.
        """
        if self._manager.is_available():
            self._call_manager("unregister", self._manager.unregister_counter, self._identity)
        try:
            self._transport.withdraw(self._identity)
        except Exception:
            logger.exception("Transport failed to withdraw counter: %s", self._identity)
        if self._is_running:
            self._is_running = False
            self.running_changed.emit(False)
        logger.debug("Counter shut down: %s", self._identity)
