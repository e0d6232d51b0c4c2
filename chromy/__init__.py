"""
chromy: drive Chrome through the DevTools protocol from asyncio.

Modules:
- chromy: Chromy session (lifecycle, navigation, console, thin protocol calls)
- document: Document evaluation facade and element operations
- functions: JavaScript source generation with placeholder substitution
- results: protocol result decoding (envelopes, promises, remote errors)
- executor: deadline-bounded execution
- waiting: condition polling for wait()
- context: top-level / frame execution contexts
- connection, transport: DevTools WebSocket client and domain calls
- http_client, launcher: target discovery and browser process management
"""

from .chromy import Chromy
from .config import ChromyConfig
from .context import EvaluationContext
from .document import Document
from .errors import (
    CdpError,
    ChromyError,
    ConnectionClosedError,
    EvaluateError,
    EvaluateTimeoutError,
    GotoTimeoutError,
    LaunchError,
    SerializationError,
    SessionClosedError,
    TimeoutError,
    WaitTimeoutError,
)
from .functions import JsFunction, SerializedExpression, js
from .http_client import HttpClientError
from .results import UNDEFINED
from .waiting import Delay, Predicate, SelectorPresent

__version__ = "0.1.0"

__all__ = [
    "UNDEFINED",
    "CdpError",
    "Chromy",
    "ChromyConfig",
    "ChromyError",
    "ConnectionClosedError",
    "Delay",
    "Document",
    "EvaluateError",
    "EvaluateTimeoutError",
    "EvaluationContext",
    "GotoTimeoutError",
    "HttpClientError",
    "JsFunction",
    "LaunchError",
    "Predicate",
    "SelectorPresent",
    "SerializationError",
    "SerializedExpression",
    "SessionClosedError",
    "TimeoutError",
    "WaitTimeoutError",
    "js",
]
