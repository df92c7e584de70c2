from __future__ import annotations

from typing import Any, Callable, Hashable, Tuple


class EmitterError(Exception):
    """Base exception for the emitter package."""


class InvalidKeyError(EmitterError, TypeError):
    """Raised when an event key is not a string or enum member, or cannot be emitted."""


class ConfigError(EmitterError):
    """Raised when emitter settings cannot be loaded or fail validation."""


class ListenerError(EmitterError):
    """Describes a failure raised by a listener during dispatch.

    ``Emitter.emit`` never raises this: an unhandled listener failure
    propagates exactly as the listener raised it. Instances are built for
    failures that error-key listeners recovered (see ``FailureLog``).
    """

    def __init__(
        self,
        error: BaseException,
        key: Hashable,
        listener: Callable[..., Any],
        args: Tuple[Any, ...] = (),
    ) -> None:
        super().__init__(f"listener {listener!r} failed for event {key!r}: {error!r}")
        self.error = error
        self.key = key
        self.listener = listener
        self.event_args = tuple(args)
        self.__cause__ = error
