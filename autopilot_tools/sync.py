"""Autopilot service sync, event log and tenant information."""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from autopilot_tools.errors import AutopilotError
from autopilot_tools.graph import GraphSession

SETTINGS = "deviceManagement/windowsAutopilotSettings"
EVENTS = "deviceManagement/autopilotEvents"
ORGANIZATION = "organization"


def invoke_sync(session: GraphSession) -> None:
    session.post(f"{SETTINGS}/sync")


def get_sync_info(session: GraphSession) -> Dict[str, Any]:
    """lastSyncDateTime / lastManualSyncTriggerDateTime / syncStatus of the Autopilot service."""
    return session.get(SETTINGS)


def get_events(session: GraphSession) -> List[Dict[str, Any]]:
    return session.get_all(EVENTS)


def get_tenant_info(session: GraphSession) -> Tuple[str, str]:
    """(tenant id, initial *.onmicrosoft.com domain) of the signed-in organization."""
    orgs = session.get_all(ORGANIZATION)
    if not orgs:
        raise AutopilotError("No organization returned by Graph")
    org = orgs[0]
    domains = org.get("verifiedDomains") or []
    initial = next((d.get("name") for d in domains if d.get("isInitial")), None)
    if not initial:
        initial = next((d.get("name") for d in domains if d.get("isDefault")), "")
    return org.get("id", ""), initial or ""
