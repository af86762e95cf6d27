"""Transport abstraction exposing counter adaptors to the manager."""

import logging
from typing import Protocol

from netcounter.adaptor import CounterAdaptor

logger = logging.getLogger(__name__)


class CounterTransport(Protocol):
    """Protocol for making a counter reachable at its identity.

    ``expose`` must be idempotent per identity: exposing an identity that is
    already exposed succeeds without creating a second registration.
    """

    def expose(self, identity: str, adaptor: CounterAdaptor) -> bool:
        """Make adaptor reachable at identity. Returns False on failure."""
        ...

    def withdraw(self, identity: str) -> None:
        """Stop routing calls for identity."""
        ...


class LocalTransport:
    """In-process transport keeping a registry of exposed adaptors.

    Used together with FakeManager, which looks adaptors up here to deliver
    simulated usage reports.
    """

    def __init__(self):
        self._adaptors: dict[str, CounterAdaptor] = {}

    def expose(self, identity: str, adaptor: CounterAdaptor) -> bool:
        if not identity or not identity.startswith("/"):
            logger.warning("Refusing to expose invalid identity: %r", identity)
            return False

        existing = self._adaptors.get(identity)
        if existing is not None and existing is not adaptor:
            logger.warning("Identity already taken by another counter: %s", identity)
            return False

        if existing is None:
            self._adaptors[identity] = adaptor
            logger.debug("Counter exposed: %s (total: %d)", identity, len(self._adaptors))
        return True

    def withdraw(self, identity: str) -> None:
        if self._adaptors.pop(identity, None) is not None:
            logger.debug("Counter withdrawn: %s (remaining: %d)", identity, len(self._adaptors))

    def lookup(self, identity: str) -> CounterAdaptor | None:
        """Return the adaptor exposed at identity, if any."""
        return self._adaptors.get(identity)

    def identities(self) -> list[str]:
        return list(self._adaptors)
