"""ConnMan manager client for NetCounter using the system D-Bus."""

import logging

from PySide6.QtCore import Q_ARG, QMetaObject, QObject, Qt, Signal
from PySide6.QtDBus import (
    QDBusConnection,
    QDBusInterface,
    QDBusMessage,
    QDBusObjectPath,
    QDBusServiceWatcher,
)

logger = logging.getLogger(__name__)

CONNMAN_SERVICE = "net.connman"
CONNMAN_MANAGER_PATH = "/"
CONNMAN_MANAGER_INTERFACE = "net.connman.Manager"

DBUS_SERVICE = "org.freedesktop.DBus"
DBUS_PATH = "/org/freedesktop/DBus"

CALL_TIMEOUT_MS = 5000


class ConnmanManager(QObject):
    """Client of net.connman.Manager on the system bus.

    Availability follows the net.connman bus name: a QDBusServiceWatcher
    reports the service appearing and disappearing.

    Calls go through a QDBusInterface built from ConnMan's introspection
    data, so accuracy and period are marshalled as uint32 the way the
    manager declares them. Python ints handed to QDBusMessage.setArguments
    would go out as int32 and be rejected.
    """

    availability_changed = Signal(bool)

    def __init__(self, connection: QDBusConnection | None = None, parent=None):
        """Initialize ConnMan client.

        Args:
            connection: Bus connection; the system bus if omitted
            parent: Qt parent object

        Raises:
            ConnectionError: If the bus connection is not usable
        """
        super().__init__(parent)

        self.connection = connection if connection is not None else QDBusConnection.systemBus()
        if not self.connection.isConnected():
            error = self.connection.lastError()
            raise ConnectionError(f"System bus unavailable: {error.message() or error.name()}")

        self._interface: QDBusInterface | None = None
        self._watcher = QDBusServiceWatcher(
            CONNMAN_SERVICE,
            self.connection,
            QDBusServiceWatcher.WatchModeFlag.WatchForRegistration
            | QDBusServiceWatcher.WatchModeFlag.WatchForUnregistration,
            self,
        )
        self._watcher.serviceRegistered.connect(self._on_service_registered)
        self._watcher.serviceUnregistered.connect(self._on_service_unregistered)

        self._available = self._query_service_registered()
        logger.debug("ConnmanManager initialized: available=%s", self._available)

    def is_available(self) -> bool:
        return self._available

    def register_counter(self, path: str, accuracy: int, interval: int) -> None:
        """Call RegisterCounter(o, u, u).

        Raises:
            ConnectionError: If the manager object cannot be introspected
            RuntimeError: If the call is refused or fails
        """
        self._invoke(
            "RegisterCounter",
            Q_ARG("QDBusObjectPath", QDBusObjectPath(path)),
            Q_ARG("uint", accuracy),
            Q_ARG("uint", interval),
        )

    def unregister_counter(self, path: str) -> None:
        self._invoke("UnregisterCounter", Q_ARG("QDBusObjectPath", QDBusObjectPath(path)))

    def _manager_interface(self) -> QDBusInterface:
        if self._interface is None:
            interface = QDBusInterface(
                CONNMAN_SERVICE,
                CONNMAN_MANAGER_PATH,
                CONNMAN_MANAGER_INTERFACE,
                self.connection,
                self,
            )
            if not interface.isValid():
                error = interface.lastError()
                interface.deleteLater()
                raise ConnectionError(f"ConnMan manager unreachable: {error.message()}")
            interface.setTimeout(CALL_TIMEOUT_MS)
            self._interface = interface
        return self._interface

    def _invoke(self, method: str, *arguments):
        interface = self._manager_interface()
        # Direct connection: the dynamic meta-method performs a blocking call
        if not QMetaObject.invokeMethod(
            interface, method, Qt.ConnectionType.DirectConnection, *arguments
        ):
            raise RuntimeError(f"{CONNMAN_MANAGER_INTERFACE} does not export {method}")

        error = interface.lastError()
        if error.isValid():
            raise RuntimeError(f"{method} failed: {error.name()}: {error.message()}")
        logger.debug("Called %s on %s", method, CONNMAN_SERVICE)

    def _query_service_registered(self) -> bool:
        message = QDBusMessage.createMethodCall(
            DBUS_SERVICE, DBUS_PATH, DBUS_SERVICE, "NameHasOwner"
        )
        message.setArguments([CONNMAN_SERVICE])
        reply = self.connection.call(message)
        if reply.type() != QDBusMessage.MessageType.ReplyMessage:
            logger.warning("NameHasOwner failed: %s", reply.errorMessage())
            return False
        arguments = reply.arguments()
        return bool(arguments and arguments[0])

    def _on_service_registered(self, service: str):
        logger.info("Service appeared: %s", service)
        self._set_available(True)

    def _on_service_unregistered(self, service: str):
        logger.info("Service vanished: %s", service)
        # A restarted daemon gets introspected afresh
        if self._interface is not None:
            self._interface.deleteLater()
            self._interface = None
        self._set_available(False)

    def _set_available(self, available: bool):
        if available == self._available:
            return
        self._available = available
        self.availability_changed.emit(available)
