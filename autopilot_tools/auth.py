"""
Token acquisition for Microsoft Graph.

Two modes:
- app-only: tenant + app id + client secret (client credentials grant)
- delegated: interactive browser sign-in or device-code flow

Either way the result is a `GraphSession`. Failures are fatal to the caller; there is no retry.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import msal

from autopilot_tools.errors import AuthenticationError
from autopilot_tools.graph import GRAPH_BETA, GraphSession

logger = logging.getLogger(__name__)

AUTHORITY = "https://login.microsoftonline.com"
APP_SCOPES = ["https://graph.microsoft.com/.default"]

# Microsoft Graph PowerShell public client; pre-consented in most tenants.
DEFAULT_PUBLIC_CLIENT_ID = "14d82eec-204b-4c2f-b7e8-296a70dab67e"

DEFAULT_SCOPES = (
    "DeviceManagementServiceConfig.ReadWrite.All "
    "DeviceManagementManagedDevices.ReadWrite.All "
    "Group.ReadWrite.All "
    "GroupMember.ReadWrite.All "
    "Organization.Read.All"
)


def _token_from(result: Optional[Dict[str, Any]]) -> str:
    if result and "access_token" in result:
        return result["access_token"]
    detail = (result or {}).get("error_description") or (result or {}).get("error") or "no token returned"
    raise AuthenticationError(f"Authentication failed: {detail}")


def connect_app(
    tenant_id: str,
    app_id: str,
    app_secret: str,
    base_url: str = GRAPH_BETA,
) -> GraphSession:
    if not tenant_id or not app_id or not app_secret:
        raise AuthenticationError("tenant, app id and app secret are all required for app-only authentication")

    app = msal.ConfidentialClientApplication(
        app_id,
        authority=f"{AUTHORITY}/{tenant_id}",
        client_credential=app_secret,
    )
    token = _token_from(app.acquire_token_for_client(scopes=APP_SCOPES))
    logger.info("Connected to Graph as app %s in tenant %s", app_id, tenant_id)
    return GraphSession(token, base_url=base_url)


def connect_interactive(
    tenant_id: str = "organizations",
    app_id: str = DEFAULT_PUBLIC_CLIENT_ID,
    scopes: str = DEFAULT_SCOPES,
    device_code: bool = False,
    base_url: str = GRAPH_BETA,
) -> GraphSession:
    scope_list: List[str] = scopes.split()
    app = msal.PublicClientApplication(app_id, authority=f"{AUTHORITY}/{tenant_id}")

    if device_code:
        flow = app.initiate_device_flow(scopes=scope_list)
        if "user_code" not in flow:
            raise AuthenticationError(f"Failed to start device code flow: {flow.get('error_description')}")
        print(flow["message"])
        result = app.acquire_token_by_device_flow(flow)
    else:
        result = app.acquire_token_interactive(scopes=scope_list)

    token = _token_from(result)
    logger.info("Connected to Graph with delegated permissions (%s)", tenant_id)
    return GraphSession(token, base_url=base_url)


def connect_from_env() -> GraphSession:
    """App-only session from AZURE_TENANT_ID / AZURE_CLIENT_ID / AZURE_CLIENT_SECRET."""
    return connect_app(
        os.environ.get("AZURE_TENANT_ID", "").strip(),
        os.environ.get("AZURE_CLIENT_ID", "").strip(),
        os.environ.get("AZURE_CLIENT_SECRET", "").strip(),
        base_url=os.environ.get("GRAPH_BASE_URL", "").strip() or GRAPH_BETA,
    )
