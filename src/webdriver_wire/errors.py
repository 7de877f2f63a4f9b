"""Error taxonomy for WebDriver commands."""

from __future__ import annotations

import enum
from typing import Any, Optional


class ErrorKind(str, enum.Enum):
    """Known server error codes, keyed by their wire value."""

    INVALID_SESSION_ID = "invalid session id"
    NO_SUCH_SESSION = "no such session"
    NO_SUCH_ELEMENT = "no such element"
    STALE_ELEMENT_REFERENCE = "stale element reference"
    ELEMENT_NOT_INTERACTABLE = "element not interactable"
    ELEMENT_CLICK_INTERCEPTED = "element click intercepted"
    INVALID_ELEMENT_STATE = "invalid element state"
    INVALID_SELECTOR = "invalid selector"
    NO_SUCH_WINDOW = "no such window"
    NO_SUCH_FRAME = "no such frame"
    NO_SUCH_ALERT = "no such alert"
    UNEXPECTED_ALERT_OPEN = "unexpected alert open"
    NO_SUCH_COOKIE = "no such cookie"
    INVALID_COOKIE_DOMAIN = "invalid cookie domain"
    UNABLE_TO_SET_COOKIE = "unable to set cookie"
    TIMEOUT = "timeout"
    SCRIPT_ERROR = "javascript error"
    MOVE_TARGET_OUT_OF_BOUNDS = "move target out of bounds"
    SESSION_NOT_CREATED = "session not created"
    INSECURE_CERTIFICATE = "insecure certificate"
    INVALID_ARGUMENT = "invalid argument"
    UNABLE_TO_CAPTURE_SCREEN = "unable to capture screen"
    NO_SUCH_SHADOW_ROOT = "no such shadow root"
    DETACHED_SHADOW_ROOT = "detached shadow root"
    UNKNOWN_COMMAND = "unknown command"
    UNKNOWN_METHOD = "unknown method"
    UNSUPPORTED_OPERATION = "unsupported operation"
    UNKNOWN_ERROR = "unknown error"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_code(cls, code: str) -> "ErrorKind":
        """Map a raw ``error`` string onto a kind, falling back to ``UNRECOGNIZED``."""

        normalized = code.strip().lower()
        alias = _ALIASES.get(normalized)
        if alias is not None:
            return alias
        try:
            kind = cls(normalized)
        except ValueError:
            return cls.UNRECOGNIZED
        if kind is cls.UNRECOGNIZED:
            return cls.UNRECOGNIZED
        return kind

    @classmethod
    def is_known(cls, code: Any) -> bool:
        return isinstance(code, str) and cls.from_code(code) is not cls.UNRECOGNIZED


_ALIASES = {
    "script timeout": ErrorKind.TIMEOUT,
    "script timeout error": ErrorKind.TIMEOUT,
}


class WebDriverError(Exception):
    """Base class for every error raised by this package."""


class ProtocolError(WebDriverError):
    """A failure reported by the remote end."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str = "",
        *,
        code: Optional[str] = None,
        status: Optional[int] = None,
        stacktrace: Optional[str] = None,
        data: Any = None,
    ) -> None:
        self.kind = kind
        self.code = code if code is not None else kind.value
        self.message = message
        self.status = status
        self.stacktrace = stacktrace
        self.data = data
        super().__init__(self._describe())

    def _describe(self) -> str:
        label = self.code if self.kind is ErrorKind.UNRECOGNIZED else self.kind.value
        if self.status is not None:
            label = f"{label} (HTTP {self.status})"
        if self.message:
            return f"{label}: {self.message}"
        return label


class TransportFailure(str, enum.Enum):
    """Reasons a round trip failed before a protocol answer was decoded."""

    CONNECTION = "connection"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid_response"


class TransportError(WebDriverError):
    """Raised when the HTTP exchange itself fails."""

    def __init__(self, reason: TransportFailure, message: str) -> None:
        self.reason = reason
        self.message = message
        super().__init__(f"{reason.value}: {message}")


class LocalFailure(str, enum.Enum):
    """Violations detected locally, without contacting the server."""

    SESSION_CLOSED = "session_closed"
    FOREIGN_HANDLE = "foreign_handle"
    ALERT_OPEN = "alert_open"
    ALERT_RESOLVED = "alert_resolved"


class LocalStateError(WebDriverError):
    """Raised when an operation is illegal in the current local state."""

    def __init__(self, reason: LocalFailure, message: str) -> None:
        self.reason = reason
        self.message = message
        super().__init__(message)
