"""
Deployment profiles and their group assignments.

Updates are read-merge-PATCH: the profile is fetched first and only the supplied
options change. Assignments are addressed by the composite key "<profile id>_<group id>".
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from autopilot_tools import profile_json, sync
from autopilot_tools.errors import InputError
from autopilot_tools.graph import GraphSession
from autopilot_tools.profile_json import ProfileOptions

logger = logging.getLogger(__name__)

PROFILES = "deviceManagement/windowsAutopilotDeploymentProfiles"

GROUP_TARGET = "#microsoft.graph.groupAssignmentTarget"
EXCLUSION_TARGET = "#microsoft.graph.exclusionGroupAssignmentTarget"


def assignment_key(profile_id: str, group_id: str) -> str:
    return f"{profile_id}_{group_id}"


def _validated(options: ProfileOptions) -> ProfileOptions:
    errors = options.validate()
    if errors:
        raise InputError("; ".join(errors))
    return options


def get_profiles(session: GraphSession, id: Optional[str] = None) -> List[Dict[str, Any]]:
    if id:
        return [session.get(f"{PROFILES}/{id}")]
    return session.get_all(PROFILES)


def get_assigned_devices(session: GraphSession, id: str) -> List[Dict[str, Any]]:
    return session.get_all(f"{PROFILES}/{id}/assignedDevices")


def create_profile(session: GraphSession, options: ProfileOptions) -> Dict[str, Any]:
    if not options.display_name:
        raise InputError("display_name is required to create a profile")
    body = profile_json.build_profile_body(_validated(options))
    created = session.post(PROFILES, body)
    logger.info("Created profile %r", options.display_name)
    return created


def update_profile(session: GraphSession, id: str, options: ProfileOptions) -> Dict[str, Any]:
    options = _validated(options)
    current = session.get(f"{PROFILES}/{id}")
    body = profile_json.build_profile_body(options, current)
    session.patch(f"{PROFILES}/{id}", body)
    logger.info("Updated profile %s", id)
    return body


def delete_profile(session: GraphSession, id: str) -> None:
    session.delete(f"{PROFILES}/{id}")
    logger.info("Deleted profile %s", id)


def get_assignments(session: GraphSession, id: str) -> List[Dict[str, Any]]:
    return session.get_all(f"{PROFILES}/{id}/assignments")


def assign_group(session: GraphSession, id: str, group_id: str, exclude: bool = False) -> Dict[str, Any]:
    body = {
        "target": {
            "@odata.type": EXCLUSION_TARGET if exclude else GROUP_TARGET,
            "groupId": group_id,
        }
    }
    created = session.post(f"{PROFILES}/{id}/assignments", body)
    logger.info("Assigned profile %s to group %s%s", id, group_id, " (exclusion)" if exclude else "")
    return created


def remove_assignment(session: GraphSession, id: str, group_id: str) -> None:
    session.delete(f"{PROFILES}/{id}/assignments/{assignment_key(id, group_id)}")
    logger.info("Removed assignment of profile %s from group %s", id, group_id)


def export_configuration(session: GraphSession, id: str) -> Dict[str, Any]:
    """AutopilotConfigurationFile.json content for an existing profile."""
    profile = session.get(f"{PROFILES}/{id}")
    tenant_id, domain = sync.get_tenant_info(session)
    return profile_json.configuration_json(profile, tenant_id, domain)
