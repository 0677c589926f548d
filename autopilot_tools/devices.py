"""
Autopilot device identities and imported device (status) records.

Device identities live under deviceManagement/windowsAutopilotDeviceIdentities.
Imported device records are the transient per-device status entries created by an
import and removed once their outcome has been read.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from autopilot_tools.errors import InputError
from autopilot_tools.graph import GraphSession

logger = logging.getLogger(__name__)

DEVICES = "deviceManagement/windowsAutopilotDeviceIdentities"
IMPORTED = "deviceManagement/importedWindowsAutopilotDeviceIdentities"
EXPAND = "$expand=deploymentProfile,intendedDeploymentProfile"


def odata_literal(value: str) -> str:
    return value.replace("'", "''")


def get_devices(
    session: GraphSession,
    id: Optional[str] = None,
    serial: Optional[str] = None,
    expand: bool = False,
) -> List[Dict[str, Any]]:
    """
    Device identities, either one by id, all matching a serial number, or all.

    The contains() filter cannot carry an embedded space, so for such serials the
    part before the first space is queried and the result narrowed to exact matches.
    """
    if id:
        uri = f"{DEVICES}/{id}"
        if expand:
            uri = f"{uri}?{EXPAND}"
        return [session.get(uri)]

    if serial:
        query = serial.split(" ", 1)[0] if " " in serial else serial
        uri = f"{DEVICES}?$filter=contains(serialNumber,'{odata_literal(query)}')"
        devices = session.get_all(uri)
        if " " in serial:
            devices = [d for d in devices if d.get("serialNumber") == serial]
    else:
        devices = session.get_all(DEVICES)

    if expand:
        # $expand is only honoured on single-entity reads
        devices = [session.get(f"{DEVICES}/{d['id']}?{EXPAND}") for d in devices]
    return devices


def update_device(
    session: GraphSession,
    id: str,
    user_principal_name: Optional[str] = None,
    addressable_user_name: Optional[str] = None,
    display_name: Optional[str] = None,
    group_tag: Optional[str] = None,
) -> None:
    body: Dict[str, Any] = {}
    if user_principal_name is not None:
        body["userPrincipalName"] = user_principal_name
    if addressable_user_name is not None:
        body["addressableUserName"] = addressable_user_name
    if display_name is not None:
        body["displayName"] = display_name
    if group_tag is not None:
        body["groupTag"] = group_tag
    if not body:
        raise InputError("Nothing to update: supply at least one device property")

    session.post(f"{DEVICES}/{id}/UpdateDeviceProperties", body)
    logger.info("Updated device %s: %s", id, sorted(body))


def delete_device(session: GraphSession, id: Optional[str] = None, serial: Optional[str] = None) -> List[str]:
    """Delete by id, or every identity whose serial matches. Returns the deleted ids."""
    if id:
        ids = [id]
    elif serial:
        ids = [d["id"] for d in get_devices(session, serial=serial)]
    else:
        raise InputError("Either id or serial is required")

    for device_id in ids:
        session.delete(f"{DEVICES}/{device_id}")
        logger.info("Deleted device %s", device_id)
    return ids


def get_imported_devices(
    session: GraphSession,
    id: Optional[str] = None,
    serial: Optional[str] = None,
) -> List[Dict[str, Any]]:
    if id:
        return [session.get(f"{IMPORTED}/{id}")]
    if serial:
        return session.get_all(f"{IMPORTED}?$filter=startswith(serialNumber,'{odata_literal(serial)}')")
    return session.get_all(IMPORTED)


def add_imported_device(
    session: GraphSession,
    serial: str,
    hardware_hash: str,
    group_tag: str = "",
    assigned_user: str = "",
) -> Dict[str, Any]:
    body = {
        "@odata.type": "#microsoft.graph.importedWindowsAutopilotDeviceIdentity",
        "groupTag": group_tag or "",
        "serialNumber": serial,
        "productKey": "",
        "hardwareIdentifier": hardware_hash,
        "assignedUserPrincipalName": assigned_user or "",
        "state": {
            "@odata.type": "microsoft.graph.importedWindowsAutopilotDeviceIdentityState",
            "deviceImportStatus": "pending",
            "deviceRegistrationId": "",
            "deviceErrorCode": 0,
            "deviceErrorName": "",
        },
    }
    created = session.post(IMPORTED, body)
    logger.info("Submitted import for serial %s (group tag %r)", serial, group_tag)
    return created


def delete_imported_device(session: GraphSession, id: str) -> None:
    session.delete(f"{IMPORTED}/{id}")
