"""Bus tests for netcounter.transport_dbus.

Usage and Release calls are sent from a second connection to a counter
exposed on the session bus, so the arguments go through real D-Bus
marshalling. Need a session bus; run under ``dbus-run-session -- pytest``.
"""

import pytest

from netcounter.adaptor import COUNTER_INTERFACE
from netcounter.counter import Counter
from netcounter.fake_manager import FakeManager
from netcounter.models import UsageBucket
from netcounter.transport_dbus import DBusTransport, _mapping

SERVICE = "/net/connman/service/wifi_home"
CLIENT_NAME = "netcounter-test-client"


@pytest.fixture(scope="module")
def client_bus(session_bus):
    """Second session bus connection playing the manager's side."""
    from PySide6.QtDBus import QDBusConnection

    bus = QDBusConnection.connectToBus(QDBusConnection.BusType.SessionBus, CLIENT_NAME)
    yield bus
    QDBusConnection.disconnectFromBus(CLIENT_NAME)


@pytest.fixture
def bus_counter(session_bus):
    """Counter exposed on the session bus, torn down after the test."""
    transport = DBusTransport(session_bus)
    counter = Counter(FakeManager(transport, available=True), transport)
    yield counter
    counter.shutdown()


def call_counter(client_bus, session_bus, identity, member, arguments=()):
    """Call a method on the exposed counter and wait for its reply."""
    from PySide6.QtDBus import QDBus, QDBusMessage

    message = QDBusMessage.createMethodCall(
        session_bus.baseService(), identity, COUNTER_INTERFACE, member
    )
    message.setArguments(list(arguments))
    # The counter object is served by this thread's event loop
    return client_bus.call(message, QDBus.CallMode.BlockWithGui, 5000)


def usage_arguments(home, roaming):
    from PySide6.QtDBus import QDBusObjectPath

    return [QDBusObjectPath(SERVICE), home, roaming]


class TestMapping:
    """Test payload conversion for values not coming from the bus."""

    def test_plain_mapping_copied(self):
        assert _mapping({"RX.Bytes": 5}) == {"RX.Bytes": 5}

    def test_other_values_empty(self):
        """Test anything that is not a dictionary gives an empty payload."""
        assert _mapping(None) == {}
        assert _mapping([("RX.Bytes", 5)]) == {}


class TestDBusTransport:
    """Test counters exposed as net.connman.Counter objects."""

    def test_usage_reaches_counter(self, client_bus, session_bus, bus_counter):
        """Test a{sv} payloads are decoded into the home bucket."""
        reply = call_counter(
            client_bus,
            session_bus,
            bus_counter.identity,
            "Usage",
            usage_arguments({"RX.Bytes": 100, "TX.Bytes": 50, "Time": 30}, {}),
        )

        assert reply.errorMessage() == ""
        assert bus_counter.home_usage() == UsageBucket(
            bytes_in=100, bytes_out=50, seconds_online=30
        )
        assert bus_counter.roaming() is False

    def test_roaming_usage_reaches_counter(self, client_bus, session_bus, bus_counter):
        """Test the roaming payload lands in the roaming bucket."""
        call_counter(
            client_bus,
            session_bus,
            bus_counter.identity,
            "Usage",
            usage_arguments({}, {"RX.Bytes": 7, "Time": 2}),
        )

        assert bus_counter.roaming() is True
        assert bus_counter.bytes_received() == 7
        assert bus_counter.seconds_online() == 2
        assert bus_counter.home_usage() == UsageBucket()

    def test_usage_signal_carries_service(self, client_bus, session_bus, bus_counter):
        """Test usage_changed reports the service path and decoded counters."""
        events = []
        bus_counter.usage_changed.connect(lambda *args: events.append(args))

        call_counter(
            client_bus,
            session_bus,
            bus_counter.identity,
            "Usage",
            usage_arguments({"Time": 9}, {}),
        )

        assert events == [(SERVICE, {"Time": 9}, False)]

    def test_release_reaches_counter(self, client_bus, session_bus, bus_counter):
        """Test Release is dispatched to the counter."""
        released = []
        bus_counter.released.connect(lambda: released.append(True))

        reply = call_counter(client_bus, session_bus, bus_counter.identity, "Release")

        assert reply.errorMessage() == ""
        assert released == [True]

    def test_unknown_method_rejected(self, client_bus, session_bus, bus_counter):
        """Test calls outside the counter interface get an error reply."""
        from PySide6.QtDBus import QDBusMessage

        reply = call_counter(client_bus, session_bus, bus_counter.identity, "Reset")

        assert reply.type() == QDBusMessage.MessageType.ErrorMessage

    def test_withdrawn_counter_unreachable(self, client_bus, session_bus):
        """Test a shut down counter no longer receives usage."""
        from PySide6.QtDBus import QDBusMessage

        transport = DBusTransport(session_bus)
        counter = Counter(FakeManager(transport, available=True), transport)
        counter.shutdown()

        reply = call_counter(
            client_bus,
            session_bus,
            counter.identity,
            "Usage",
            usage_arguments({"Time": 1}, {}),
        )

        assert reply.type() == QDBusMessage.MessageType.ErrorMessage
        assert counter.seconds_online() == 0
