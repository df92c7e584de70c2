from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, TypeVar, Union

from .config import DEFAULT_ERROR_KEY, DEFAULT_WILDCARD_KEY, EmitterSettings
from .exceptions import InvalidKeyError

logger = logging.getLogger(__name__)


WILDCARD = DEFAULT_WILDCARD_KEY
ERROR = DEFAULT_ERROR_KEY

EventKey = Union[str, Enum]
Listener = Callable[..., Any]

K = TypeVar("K", bound=Hashable)


def _validate_key(key: Any) -> None:
    if not isinstance(key, (str, Enum)):
        raise InvalidKeyError(f"Emitter: event key should be a string or enum member, got {key!r}")


class _OnceListener:
    """Wrapper registered by :meth:`Emitter.once`.

    Removes itself (by its own identity) before running the wrapped listener,
    so it fires at most once even under re-entrant emits.
    """

    __slots__ = ("_bus", "_key", "listener", "fired")

    def __init__(self, bus: "Emitter[Any]", key: Hashable, listener: Listener) -> None:
        self._bus = bus
        self._key = key
        self.listener = listener
        self.fired = False

    def __call__(self, *args: Any) -> Any:
        if self.fired:
            return None
        self.fired = True
        self._bus.off(self._key, self)
        return self.listener(*args)

    def __repr__(self) -> str:
        return f"<once {self.listener!r}>"


class Emitter(Generic[K]):
    """Synchronous in-process event emitter.

    Listeners are called in registration order on the caller's stack. After
    an event's own listeners, wildcard listeners receive ``(key, *args)``.
    A listener failure is handed to error-key listeners as
    ``(error, key, listener, *args)`` when any exist; otherwise it is
    re-raised to the ``emit`` caller and the rest of that dispatch is skipped.

    Keys are strings or enum members. Parameterize with your key type for
    static checking, e.g. ``Emitter[ShopEvent]``. Not thread-safe: serialize
    access to one instance yourself.
    """

    def __init__(self, settings: Optional[EmitterSettings] = None) -> None:
        self._settings = settings or EmitterSettings()
        self._listeners: Dict[Hashable, List[Listener]] = {}

    @property
    def settings(self) -> EmitterSettings:
        return self._settings

    @property
    def wildcard_key(self) -> str:
        return self._settings.wildcard_key

    @property
    def error_key(self) -> str:
        return self._settings.error_key

    # ------------------------ Registration ------------------------
    def on(self, key: Union[K, str], listener: Listener) -> "Emitter[K]":
        """Add ``listener`` to be called whenever ``key`` is emitted.

        Registering the same listener twice makes it fire twice. Register on
        the wildcard key to receive ``(key, *args)`` for every emission.
        """
        if not callable(listener):
            raise TypeError(f"Emitter: listener should be callable, got {listener!r}")
        self.listeners(key).append(listener)
        logger.debug("Registered listener %s for event %r", listener, key)
        return self

    def once(self, key: Union[K, str], listener: Listener) -> "Emitter[K]":
        """Add ``listener`` to be called the next time ``key`` is emitted, then dropped."""
        if not callable(listener):
            raise TypeError(f"Emitter: listener should be callable, got {listener!r}")
        return self.on(key, _OnceListener(self, key, listener))

    def off(self, key: Union[K, str], listener: Listener) -> "Emitter[K]":
        """Remove the first registration of ``listener`` for ``key``; no-op if absent."""
        _validate_key(key)
        listeners = self._listeners.get(key)
        if not listeners:
            return self
        for index, registered in enumerate(listeners):
            if registered is listener:
                del listeners[index]
                logger.debug("Removed listener %s from event %r", listener, key)
                break
        return self

    # ------------------------ Dispatch ------------------------
    def emit(self, key: Union[K, str], *args: Any) -> bool:
        """Synchronously call every listener for ``key``, then the wildcard listeners.

        Returns:
            True if the event or the wildcard key had listeners when dispatched.

        Raises:
            InvalidKeyError: ``key`` is not a valid key, or is the wildcard key.
            Exception: whatever a listener raised, when no error listener is
                registered, or whatever an error listener raised.
        """
        _validate_key(key)
        if key == self.wildcard_key:
            raise InvalidKeyError(f"Emitter: {key!r} is not an emittable event")

        received = self._dispatch(key, args)
        received = self._dispatch(self.wildcard_key, (key,) + args) or received
        return received

    def _dispatch(self, key: Hashable, args: tuple) -> bool:
        # Snapshot: listeners added during dispatch wait for the next emit.
        listeners = list(self._listeners.get(key, ()))
        if not listeners:
            logger.debug("Emitting %r with no listeners", key)
            return False
        logger.debug("Emitting %r to %d listeners", key, len(listeners))
        for listener in listeners:
            try:
                listener(*args)
            except Exception as exc:
                if key == self.error_key:
                    raise
                handlers = list(self._listeners.get(self.error_key, ()))
                if not handlers:
                    raise
                logger.debug("Listener %s for event %r failed; routing to %d error listeners", listener, key, len(handlers))
                for handler in handlers:
                    handler(exc, key, listener, *args)
        return True

    # ------------------------ Introspection ------------------------
    def listeners(self, key: Union[K, str]) -> List[Listener]:
        """Return the live list of listeners for ``key``, creating it if needed.

        Mutating the returned list changes the registry, e.g.
        ``bus.listeners("x").insert(0, fn)`` prepends ``fn``.
        """
        _validate_key(key)
        return self._listeners.setdefault(key, [])

    def listener_count(self, key: Union[K, str]) -> int:
        _validate_key(key)
        return len(self._listeners.get(key, ()))

    def has_listeners(self, key: Union[K, str]) -> bool:
        return self.listener_count(key) > 0

    def events(self) -> List[Hashable]:
        """Keys that currently have at least one listener, in first-registration order."""
        return [key for key, listeners in self._listeners.items() if listeners]

    def clear(self) -> None:
        """Remove all listeners, including wildcard and error listeners."""
        self._listeners.clear()
        logger.debug("Cleared all listeners")

    def __repr__(self) -> str:
        return f"<Emitter events={self.events()!r}>"


__all__ = [
    "ERROR",
    "Emitter",
    "EventKey",
    "Listener",
    "WILDCARD",
]
