"""
Deployment profile encoding.

Two outputs are built from the same settings:
- the Graph body for windowsAutopilotDeploymentProfiles create/update
- the offline AutopilotConfigurationFile.json consumed by Windows OOBE

The OOBE flag values and the configuration file layout are fixed by Windows; they
must not change.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

AZURE_AD_PROFILE = "#microsoft.graph.azureADWindowsAutopilotDeploymentProfile"
HYBRID_PROFILE = "#microsoft.graph.activeDirectoryWindowsAutopilotDeploymentProfile"

JOIN_MODES = {"azure_ad": AZURE_AD_PROFILE, "hybrid": HYBRID_PROFILE}
USER_TYPES = {"administrator", "standard"}
DEVICE_USAGE = {"single_user": "singleUser", "shared": "shared"}

# CloudAssignedOobeConfig bits
OOBE_SKIP_CORTANA = 8
OOBE_SKIP_EXPRESS = 256
OOBE_STANDARD_USER = 2
OOBE_HIDE_PRIVACY = 4
OOBE_HIDE_EULA = 16
OOBE_SHARED_DEVICE = 32 | 64
OOBE_SKIP_KEYBOARD = 1024

CONFIG_FILE_VERSION = 2049
UPDATE_TIMEOUT_MS = 1800000
OS_DEFAULT_LANGUAGE = "os-default"


@dataclass
class ProfileOptions:
    """
    Deployment profile settings as supplied by the operator.

    None means "not supplied": on update the current value is kept. An explicit
    False is a supplied value and overrides whatever the profile had.
    """
    display_name: Optional[str] = None
    description: Optional[str] = None
    join_mode: Optional[str] = None  # azure_ad | hybrid
    user_type: Optional[str] = None  # administrator | standard
    hide_eula: Optional[bool] = None
    hide_privacy: Optional[bool] = None
    skip_keyboard: Optional[bool] = None
    hide_escape_link: Optional[bool] = None
    language: Optional[str] = None
    device_name_template: Optional[str] = None
    device_usage: Optional[str] = None  # single_user | shared
    allow_white_glove: Optional[bool] = None
    skip_connectivity_check: Optional[bool] = None
    extract_hardware_hash: Optional[bool] = None
    role_scope_tag_ids: Optional[List[str]] = field(default=None)

    def validate(self) -> List[str]:
        errors: List[str] = []
        if self.join_mode is not None and self.join_mode not in JOIN_MODES:
            errors.append(f"join_mode must be one of {sorted(JOIN_MODES)}")
        if self.user_type is not None and self.user_type not in USER_TYPES:
            errors.append(f"user_type must be one of {sorted(USER_TYPES)}")
        if self.device_usage is not None and self.device_usage not in DEVICE_USAGE:
            errors.append(f"device_usage must be one of {sorted(DEVICE_USAGE)}")
        return errors


def _pick(supplied: Any, current: Dict[str, Any], key: str, default: Any) -> Any:
    if supplied is not None:
        return supplied
    if key in current and current[key] is not None:
        return current[key]
    return default


def _join_mode_of(profile: Dict[str, Any]) -> str:
    if profile.get("@odata.type") == HYBRID_PROFILE:
        return "hybrid"
    return "azure_ad"


def build_profile_body(options: ProfileOptions, current: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Graph body for a deployment profile.

    With `current` (the profile as read from Graph) every field that is not supplied in
    `options` is carried over unchanged.
    """
    current = current or {}
    cur_oobe = current.get("outOfBoxExperienceSettings") or {}

    join_mode = options.join_mode or _join_mode_of(current)
    usage = DEVICE_USAGE[options.device_usage] if options.device_usage else cur_oobe.get("deviceUsageType") or "singleUser"

    body: Dict[str, Any] = {
        "@odata.type": JOIN_MODES[join_mode],
        "displayName": _pick(options.display_name, current, "displayName", ""),
        "description": _pick(options.description, current, "description", ""),
        "language": _pick(options.language, current, "language", OS_DEFAULT_LANGUAGE),
        "extractHardwareHash": _pick(options.extract_hardware_hash, current, "extractHardwareHash", False),
        "deviceNameTemplate": _pick(options.device_name_template, current, "deviceNameTemplate", ""),
        "deviceType": current.get("deviceType") or "windowsPc",
        "enableWhiteGlove": _pick(options.allow_white_glove, current, "enableWhiteGlove", False),
        "roleScopeTagIds": _pick(options.role_scope_tag_ids, current, "roleScopeTagIds", []),
        "outOfBoxExperienceSettings": {
            "hidePrivacySettings": _pick(options.hide_privacy, cur_oobe, "hidePrivacySettings", False),
            "hideEULA": _pick(options.hide_eula, cur_oobe, "hideEULA", False),
            "userType": _pick(options.user_type, cur_oobe, "userType", "administrator"),
            "deviceUsageType": usage,
            "skipKeyboardSelectionPage": _pick(options.skip_keyboard, cur_oobe, "skipKeyboardSelectionPage", False),
            "hideEscapeLink": _pick(options.hide_escape_link, cur_oobe, "hideEscapeLink", False),
        },
    }
    if join_mode == "hybrid":
        body["hybridAzureADJoinSkipConnectivityCheck"] = _pick(
            options.skip_connectivity_check, current, "hybridAzureADJoinSkipConnectivityCheck", False
        )
    return body


def oobe_config(oobe: Dict[str, Any]) -> int:
    flags = OOBE_SKIP_CORTANA | OOBE_SKIP_EXPRESS
    if oobe.get("userType") == "standard":
        flags |= OOBE_STANDARD_USER
    if oobe.get("hidePrivacySettings"):
        flags |= OOBE_HIDE_PRIVACY
    if oobe.get("hideEULA"):
        flags |= OOBE_HIDE_EULA
    if oobe.get("skipKeyboardSelectionPage"):
        flags |= OOBE_SKIP_KEYBOARD
    if oobe.get("deviceUsageType") == "shared":
        flags |= OOBE_SHARED_DEVICE
    return flags


def aad_server_data(tenant_domain: str) -> str:
    data = {
        "ZeroTouchConfig": {
            "CloudAssignedTenantUpn": "",
            "ForcedEnrollment": 1,
            "CloudAssignedTenantDomain": tenant_domain,
        }
    }
    return json.dumps(data, separators=(",", ":"))


def configuration_json(profile: Dict[str, Any], tenant_id: str, tenant_domain: str) -> Dict[str, Any]:
    """AutopilotConfigurationFile.json content for a profile as returned by Graph."""
    oobe = profile.get("outOfBoxExperienceSettings") or {}

    cfg: Dict[str, Any] = {"CloudAssignedTenantId": tenant_id}
    template = profile.get("deviceNameTemplate")
    if template:
        cfg["CloudAssignedDeviceName"] = template
    cfg.update({
        "CloudAssignedAutopilotUpdateTimeout": UPDATE_TIMEOUT_MS,
        "CloudAssignedAutopilotUpdateDisabled": 1,
        "CloudAssignedForcedEnrollment": 1,
        "Version": CONFIG_FILE_VERSION,
        "Comment_File": f"Profile {profile.get('displayName', '')}",
        "CloudAssignedAadServerData": aad_server_data(tenant_domain),
        "CloudAssignedTenantDomain": tenant_domain,
        "CloudAssignedDomainJoinMethod": 1 if _join_mode_of(profile) == "hybrid" else 0,
        "CloudAssignedOobeConfig": oobe_config(oobe),
        "ZtdCorrelationId": profile.get("id", ""),
    })

    language = profile.get("language")
    if oobe.get("skipKeyboardSelectionPage") and language and language != OS_DEFAULT_LANGUAGE:
        cfg["CloudAssignedLanguage"] = language
        cfg["CloudAssignedRegion"] = language
    return cfg


def configuration_json_text(profile: Dict[str, Any], tenant_id: str, tenant_domain: str) -> str:
    return json.dumps(configuration_json(profile, tenant_id, tenant_domain), indent=2)
