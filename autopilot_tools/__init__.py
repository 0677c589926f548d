"""
Windows Autopilot administration tools (Microsoft Graph beta API).

List, import, configure, assign and delete Autopilot device identities,
deployment profiles and enrollment status pages.
"""

__version__ = "1.0.0"

from autopilot_tools.errors import (
    AuthenticationError,
    AutopilotError,
    GraphConnectionError,
    GraphRequestError,
    ImportCancelledError,
    ImportTimeoutError,
    InputError,
)
from autopilot_tools.graph import GraphSession

__all__ = [
    "AutopilotError",
    "AuthenticationError",
    "GraphConnectionError",
    "GraphRequestError",
    "ImportCancelledError",
    "ImportTimeoutError",
    "InputError",
    "GraphSession",
]
