from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Deque, Hashable, Optional, Tuple

from .config import DEFAULT_FAILURE_HISTORY, EmitterSettings
from .exceptions import ListenerError

if TYPE_CHECKING:
    from .bus import Emitter

logger = logging.getLogger(__name__)


class FailureLog:
    """Error-key listener that logs recovered listener failures.

    Also keeps the most recent failures as :class:`ListenerError` records for
    tests and post-mortem inspection. Attaching one to a bus means listener
    failures no longer propagate out of ``emit``.
    """

    def __init__(self, maxlen: int = DEFAULT_FAILURE_HISTORY, log: Optional[logging.Logger] = None) -> None:
        if maxlen < 0:
            raise ValueError("maxlen must be >= 0")
        self._history: Deque[ListenerError] = deque(maxlen=maxlen)
        self._logger = log or logger
        self.total = 0

    @classmethod
    def for_settings(cls, settings: EmitterSettings, log: Optional[logging.Logger] = None) -> "FailureLog":
        return cls(maxlen=settings.failure_history, log=log)

    def __call__(self, error: BaseException, key: Hashable, listener: Callable[..., Any], *args: Any) -> None:
        record = ListenerError(error, key, listener, args)
        self.total += 1
        self._history.append(record)
        self._logger.error(
            "Error in listener %s for event %r (args=%r)",
            listener,
            key,
            args,
            exc_info=(type(error), error, error.__traceback__),
        )

    # ------------------------ Wiring ------------------------
    def attach(self, bus: "Emitter[Any]") -> "FailureLog":
        bus.on(bus.error_key, self)
        return self

    def detach(self, bus: "Emitter[Any]") -> None:
        bus.off(bus.error_key, self)

    # ------------------------ History ------------------------
    @property
    def failures(self) -> Tuple[ListenerError, ...]:
        return tuple(self._history)

    @property
    def last(self) -> Optional[ListenerError]:
        return self._history[-1] if self._history else None

    def clear(self) -> None:
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)


__all__ = ["FailureLog"]
