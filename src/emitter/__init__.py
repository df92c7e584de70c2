"""
In-process synchronous publish/subscribe.

``Emitter`` maps event keys to ordered listener lists. Emission is
synchronous on the caller's stack, wildcard listeners see every event, and
listener failures can be routed to error listeners instead of propagating.
"""

from .bus import ERROR, WILDCARD, Emitter, EventKey, Listener
from .config import EmitterSettings, load_settings
from .diagnostics import FailureLog
from .exceptions import ConfigError, EmitterError, InvalidKeyError, ListenerError

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ERROR",
    "Emitter",
    "EmitterError",
    "EmitterSettings",
    "EventKey",
    "FailureLog",
    "InvalidKeyError",
    "Listener",
    "ListenerError",
    "WILDCARD",
    "load_settings",
]
