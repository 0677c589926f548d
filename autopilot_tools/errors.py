"""Exception types raised by the Autopilot command wrappers."""
from __future__ import annotations

from typing import Any


class AutopilotError(Exception):
    pass


class AuthenticationError(AutopilotError):
    pass


class InputError(AutopilotError, ValueError):
    pass


class GraphRequestError(AutopilotError):
    """Non-2xx response from Graph. `body` is the parsed error JSON when the server sent one."""

    def __init__(self, status_code: int, method: str, url: str, body: Any = None) -> None:
        self.status_code = status_code
        self.method = method
        self.url = url
        self.body = body
        super().__init__(f"{method} {url} failed with HTTP {status_code}: {self.message}")

    @property
    def message(self) -> str:
        if isinstance(self.body, dict):
            err = self.body.get("error") or {}
            if isinstance(err, dict) and err.get("message"):
                return str(err["message"])
        return str(self.body or "")


class GraphConnectionError(AutopilotError):
    """Graph could not be reached (DNS, TLS, connection reset, request timeout)."""

    def __init__(self, method: str, url: str, reason: Exception) -> None:
        self.method = method
        self.url = url
        self.reason = reason
        super().__init__(f"{method} {url} failed: {reason}")


class ImportTimeoutError(AutopilotError):
    pass


class ImportCancelledError(AutopilotError):
    pass
