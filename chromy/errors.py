"""Exception hierarchy for chromy.

Timeout classes share one base so callers can catch every deadline failure at once:

    ChromyError
    ├── TimeoutError            (internal executor signal, also a builtins.TimeoutError)
    │   ├── EvaluateTimeoutError
    │   ├── WaitTimeoutError
    │   └── GotoTimeoutError
    ├── EvaluateError           (exception thrown by remotely executed code)
    ├── SerializationError      (local: bad placeholder / unencodable value / corrupt envelope)
    ├── CdpError                (protocol error response)
    │   └── ConnectionClosedError
    ├── SessionClosedError
    └── LaunchError
"""

from __future__ import annotations

import builtins
from typing import Any


class ChromyError(Exception):
    """Base class for every error raised by chromy."""


class TimeoutError(ChromyError, builtins.TimeoutError):  # noqa: A001
    """A deadline elapsed before the awaited operation settled."""


class EvaluateTimeoutError(TimeoutError):
    pass


class WaitTimeoutError(TimeoutError):
    pass


class GotoTimeoutError(TimeoutError):
    pass


class EvaluateError(ChromyError):
    """The browser reported an exception while running evaluated code."""

    def __init__(self, message: str, description: str = "", result: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.description = description
        self.result = result or {}


class SerializationError(ChromyError, ValueError):
    """Source generation or result decoding failed locally."""


class CdpError(ChromyError):
    """Error response to a DevTools protocol command."""

    def __init__(self, message: str, *, code: int | None = None, method: str = "", data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.method = method
        self.data = data


class ConnectionClosedError(CdpError):
    pass


class SessionClosedError(ChromyError):
    """The session is not started or has been closed."""


class LaunchError(ChromyError):
    """The browser process could not be started or did not expose its debugging port."""


__all__ = [
    "CdpError",
    "ChromyError",
    "ConnectionClosedError",
    "EvaluateError",
    "EvaluateTimeoutError",
    "GotoTimeoutError",
    "LaunchError",
    "SerializationError",
    "SessionClosedError",
    "TimeoutError",
    "WaitTimeoutError",
]
