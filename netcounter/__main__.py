"""Entry point for NetCounter."""

import logging
import signal
import sys

from PySide6.QtCore import QCoreApplication, QTimer

from netcounter.counter import Counter
from netcounter.fake_manager import FakeManager
from netcounter.logging_config import configure_logging
from netcounter.settings import Settings
from netcounter.transport import LocalTransport

# Configure logging early
configure_logging()
logger = logging.getLogger(__name__)


def create_manager(settings: Settings):
    """Pick the manager client and matching transport.

    Tries ConnMan on the system bus unless the fake manager is requested,
    falling back to the fake manager when ConnMan cannot be reached.

    Returns:
        Tuple of (manager, transport, is_simulated)

    Raises:
        RuntimeError: If ConnMan was explicitly requested and is unusable
    """
    if settings.manager != "fake":
        ConnmanManager = None

        # Step 1: Try importing the module (QtDBus may be missing)
        try:
            from netcounter.manager_connman import ConnmanManager
            from netcounter.transport_dbus import DBusTransport

            logger.info("ConnmanManager module imported successfully")
        except ImportError as e:
            logger.warning("ConnmanManager unavailable: %s", e)
            if settings.manager == "connman":
                raise RuntimeError(f"ConnMan requested but QtDBus is unavailable: {e}") from e

        # Step 2: Try connecting if import succeeded
        if ConnmanManager is not None:
            try:
                manager = ConnmanManager()
                logger.info("ConnmanManager initialized: available=%s", manager.is_available())
                return manager, DBusTransport(manager.connection), False
            except ConnectionError as e:
                logger.warning("System bus unavailable: %s", e)
                if settings.manager == "connman":
                    raise RuntimeError(f"ConnMan requested but bus is unusable: {e}") from e

    transport = LocalTransport()
    manager = FakeManager(transport, available=True, seed=settings.simulation_seed)
    if settings.manager == "fake":
        logger.info("Fake manager explicitly requested via environment variable")
    else:
        logger.info("Using simulated usage data (ConnMan not reachable)")
    return manager, transport, True


def connect_logging(counter: Counter):
    """Log every observable counter event."""
    counter.usage_changed.connect(
        lambda service, counters, roaming: logger.info(
            "Usage: service=%s, roaming=%s, counters=%s", service, roaming, dict(counters)
        )
    )
    counter.roaming_changed.connect(lambda roaming: logger.info("Roaming: %s", roaming))
    counter.bytes_received_changed.connect(lambda value: logger.info("Received: %d bytes", value))
    counter.bytes_transmitted_changed.connect(
        lambda value: logger.info("Transmitted: %d bytes", value)
    )
    counter.seconds_online_changed.connect(lambda value: logger.info("Online: %d s", value))
    counter.running_changed.connect(lambda running: logger.info("Running: %s", running))
    counter.released.connect(lambda: logger.warning("Counter released by manager"))


def main():
    """Main entry point for NetCounter."""
    app = QCoreApplication(sys.argv)
    settings = Settings.from_env()

    try:
        manager, transport, simulated = create_manager(settings)
    except RuntimeError as e:
        logger.error("%s", e)
        sys.exit(1)

    counter = Counter(
        manager,
        transport,
        accuracy=settings.accuracy_kb,
        interval=settings.interval_s,
    )
    connect_logging(counter)
    counter.set_running(True)
    logger.info("Counter started: %s", counter.identity)

    # Simulated reports on the configured interval
    simulation_timer = None
    if simulated:
        simulation_timer = QTimer()
        simulation_timer.timeout.connect(manager.simulate_tick)
        simulation_timer.start(max(1, settings.interval_s) * 1000)

    app.aboutToQuit.connect(counter.shutdown)

    # Let Ctrl+C reach the Python handler while the Qt loop runs
    signal.signal(signal.SIGINT, lambda *_: app.quit())
    signal.signal(signal.SIGTERM, lambda *_: app.quit())
    wakeup_timer = QTimer()
    wakeup_timer.timeout.connect(lambda: None)
    wakeup_timer.start(200)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
