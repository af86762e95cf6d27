"""Shared fixtures for tests that need a running Qt application or a bus."""

import os

import pytest
from PySide6.QtCore import QCoreApplication


@pytest.fixture(scope="module")
def qapp():
    """Create QCoreApplication instance for tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture(scope="module")
def session_bus(qapp):
    """Session bus connection; skips when no session bus is running.

    Run under ``dbus-run-session -- pytest`` to get one.
    """
    if not os.environ.get("DBUS_SESSION_BUS_ADDRESS"):
        pytest.skip("no D-Bus session bus")

    from PySide6.QtDBus import QDBusConnection

    bus = QDBusConnection.sessionBus()
    if not bus.isConnected():
        pytest.skip(f"session bus not reachable: {bus.lastError().message()}")
    return bus
