"""D-Bus transport exposing counters as net.connman.Counter objects."""

import logging
from collections.abc import Mapping

from PySide6.QtDBus import (
    QDBusArgument,
    QDBusConnection,
    QDBusMessage,
    QDBusObjectPath,
    QDBusVariant,
    QDBusVirtualObject,
)

from netcounter.adaptor import COUNTER_INTERFACE, CounterAdaptor

logger = logging.getLogger(__name__)

INTROSPECTION_XML = f"""  <interface name="{COUNTER_INTERFACE}">
    <method name="Release"/>
    <method name="Usage">
      <arg name="service" type="o" direction="in"/>
      <arg name="home" type="a{{sv}}" direction="in"/>
      <arg name="roaming" type="a{{sv}}" direction="in"/>
    </method>
  </interface>
"""


def _object_path(value) -> str:
    if isinstance(value, QDBusObjectPath):
        return value.path()
    return str(value)


def _mapping(value) -> dict:
    """Convert an a{sv} argument to a dict of plain values.

    QtDBus hands container arguments to virtual objects undecoded, as a
    QDBusArgument; each value inside is wrapped in a QDBusVariant.
    """
    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if not isinstance(value, QDBusArgument) or not value.currentSignature().startswith("a{"):
        return {}

    result = {}
    value.beginMap()
    while not value.atEnd():
        value.beginMapEntry()
        key = value.asVariant()
        item = value.asVariant()
        value.endMapEntry()
        result[str(key)] = _plain(item)
    value.endMap()
    return result


def _plain(value):
    if isinstance(value, QDBusVariant):
        return value.variant()
    return value


class CounterObject(QDBusVirtualObject):
    """Bus object routing net.connman.Counter calls to an adaptor."""

    def __init__(self, adaptor: CounterAdaptor, parent=None):
        super().__init__(parent)
        self.adaptor = adaptor

    def introspect(self, path: str) -> str:
        return INTROSPECTION_XML

    def handleMessage(self, message: QDBusMessage, connection: QDBusConnection) -> bool:
        if message.interface() not in ("", COUNTER_INTERFACE):
            return False

        member = message.member()
        arguments = message.arguments()

        if member == "Usage" and len(arguments) == 3:
            service, home, roaming = arguments
            self.adaptor.usage(_object_path(service), _mapping(home), _mapping(roaming))
        elif member == "Release":
            self.adaptor.release()
        else:
            logger.debug("Unhandled counter call: %s(%d args)", member, len(arguments))
            return False

        if message.isReplyRequired():
            connection.send(message.createReply())
        return True


class DBusTransport:
    """Exposes counter adaptors on a bus connection, one object per identity."""

    def __init__(self, connection: QDBusConnection | None = None):
        self.connection = connection if connection is not None else QDBusConnection.systemBus()
        self._objects: dict[str, CounterObject] = {}

    def expose(self, identity: str, adaptor: CounterAdaptor) -> bool:
        existing = self._objects.get(identity)
        if existing is not None:
            if existing.adaptor is adaptor:
                return True
            logger.warning("Identity already taken by another counter: %s", identity)
            return False

        bus_object = CounterObject(adaptor)
        registered = self.connection.registerVirtualObject(
            identity, bus_object, QDBusConnection.VirtualObjectRegisterOption.SingleNode
        )
        if not registered:
            logger.warning(
                "Bus refused object %s: %s", identity, self.connection.lastError().message()
            )
            return False

        self._objects[identity] = bus_object
        logger.debug("Counter object registered on bus: %s", identity)
        return True

    def withdraw(self, identity: str) -> None:
        if self._objects.pop(identity, None) is not None:
            self.connection.unregisterObject(identity)
            logger.debug("Counter object unregistered from bus: %s", identity)
