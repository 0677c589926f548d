"""Enrollment status page (ESP) configurations."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from autopilot_tools.errors import InputError
from autopilot_tools.graph import GraphSession

CONFIGURATIONS = "deviceManagement/deviceEnrollmentConfigurations"
ESP_TYPE = "#microsoft.graph.windows10EnrollmentCompletionPageConfiguration"

DEFAULT_TIMEOUT_MINUTES = 60
DEFAULT_ERROR_MESSAGE = "Contact your organization's support person for help."


@dataclass
class EnrollmentStatusOptions:
    # None means "keep the current value" on update
    display_name: Optional[str] = None
    description: Optional[str] = None
    show_progress: Optional[bool] = None
    timeout_minutes: Optional[int] = None
    custom_error_message: Optional[str] = None
    allow_reset_on_failure: Optional[bool] = None
    allow_log_collection: Optional[bool] = None
    allow_use_on_failure: Optional[bool] = None
    block_retry: Optional[bool] = None
    track_autopilot_only: Optional[bool] = None
    disable_user_tracking: Optional[bool] = None

    def validate(self) -> None:
        if self.timeout_minutes is not None and self.timeout_minutes <= 0:
            raise InputError("timeout_minutes must be a positive number of minutes")


# option attribute -> (Graph property, default)
FIELDS = {
    "display_name": ("displayName", ""),
    "description": ("description", ""),
    "show_progress": ("showInstallationProgress", True),
    "timeout_minutes": ("installProgressTimeoutInMinutes", DEFAULT_TIMEOUT_MINUTES),
    "custom_error_message": ("customErrorMessage", DEFAULT_ERROR_MESSAGE),
    "allow_reset_on_failure": ("allowDeviceResetOnInstallFailure", False),
    "allow_log_collection": ("allowLogCollectionOnInstallFailure", False),
    "allow_use_on_failure": ("allowDeviceUseOnInstallFailure", False),
    "block_retry": ("blockDeviceSetupRetryByUser", False),
    "track_autopilot_only": ("trackInstallProgressForAutopilotOnly", False),
    "disable_user_tracking": ("disableUserStatusTrackingAfterFirstUser", False),
}


def build_page_body(options: EnrollmentStatusOptions, current: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    current = current or {}
    body: Dict[str, Any] = {"@odata.type": ESP_TYPE}
    for attr, (prop, default) in FIELDS.items():
        value = getattr(options, attr)
        if value is None:
            value = current.get(prop, default)
            if value is None:
                value = default
        body[prop] = value
    if body["installProgressTimeoutInMinutes"] <= 0:
        raise InputError("timeout_minutes must be a positive number of minutes")
    return body


def get_pages(session: GraphSession, id: Optional[str] = None) -> List[Dict[str, Any]]:
    if id:
        return [session.get(f"{CONFIGURATIONS}/{id}")]
    return [c for c in session.get_all(CONFIGURATIONS) if c.get("@odata.type") == ESP_TYPE]


def create_page(session: GraphSession, options: EnrollmentStatusOptions) -> Dict[str, Any]:
    if not options.display_name:
        raise InputError("display_name is required to create an enrollment status page")
    return session.post(CONFIGURATIONS, build_page_body(options))


def update_page(session: GraphSession, id: str, options: EnrollmentStatusOptions) -> Dict[str, Any]:
    options.validate()
    current = session.get(f"{CONFIGURATIONS}/{id}")
    body = build_page_body(options, current)
    session.patch(f"{CONFIGURATIONS}/{id}", body)
    return body


def delete_page(session: GraphSession, id: str) -> None:
    session.delete(f"{CONFIGURATIONS}/{id}")
