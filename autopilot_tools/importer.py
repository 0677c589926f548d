"""
Bulk import of Autopilot devices from a hardware-hash CSV.

Input CSV columns (as written by Get-WindowsAutopilotInfo / OEM exports):
  Device Serial Number, Hardware Hash, Group Tag, OrderID, Assigned User

Flow:
- one import-create call per row, in file order
- poll the imported device records until none of ours is still unresolved
- print each device's outcome
- delete every status record we created, whatever the outcome

Waits are bounded: pass `timeout` (seconds) and/or a `threading.Event` to cancel.
"""

from __future__ import annotations

import codecs
import csv
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from autopilot_tools import devices, sync
from autopilot_tools.errors import AutopilotError, ImportCancelledError, ImportTimeoutError, InputError
from autopilot_tools.graph import GraphSession

logger = logging.getLogger(__name__)

COL_SERIAL = "Device Serial Number"
COL_HASH = "Hardware Hash"
COL_GROUP_TAG = "Group Tag"
COL_ORDER_ID = "OrderID"
COL_USER = "Assigned User"

REQUIRED_COLUMNS = {COL_SERIAL, COL_HASH}
UNRESOLVED = {"unknown", "pending"}

DEFAULT_INTERVAL = 15


@dataclass
class DeviceRecord:
    serial: str
    hardware_hash: str
    group_tag: str = ""
    order_id: str = ""
    assigned_user: str = ""


@dataclass
class ImportStatus:
    serial: str
    status: str  # success | error | unknown | complete ...
    error_code: int = 0
    error_name: str = ""
    id: str = ""


@dataclass
class ImportResult:
    statuses: List[ImportStatus] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for s in self.statuses if s.status in ("success", "complete"))

    @property
    def failed(self) -> int:
        return sum(1 for s in self.statuses if s.status == "error")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": len(self.statuses),
            "summary": {"success": self.succeeded, "error": self.failed},
            "devices": [s.__dict__ for s in self.statuses],
        }


def detect_encoding(input_csv: Path) -> str:
    """
    Windows PowerShell 5.1 Out-File writes UTF-16 with a BOM; newer exports are
    UTF-8, with or without a BOM.
    """
    with input_csv.open("rb") as f:
        head = f.read(4)
    if head.startswith(codecs.BOM_UTF16_LE) or head.startswith(codecs.BOM_UTF16_BE):
        return "utf-16"
    return "utf-8-sig"


def read_csv(input_csv: Path) -> List[DeviceRecord]:
    """Parse and validate the CSV; every problem is reported at once as an InputError."""
    records: List[DeviceRecord] = []
    errors: List[str] = []
    encoding = detect_encoding(input_csv)
    try:
        with input_csv.open(newline="", encoding=encoding) as f:
            reader = csv.DictReader(f)
            missing = REQUIRED_COLUMNS - set(reader.fieldnames or [])
            if missing:
                raise InputError(f"{input_csv}: missing columns: {sorted(missing)}")

            for line, row in enumerate(reader, start=2):
                serial = (row.get(COL_SERIAL) or "").strip()
                hw_hash = (row.get(COL_HASH) or "").strip()
                if not serial:
                    errors.append(f"{input_csv}:{line}: empty {COL_SERIAL}")
                if not hw_hash:
                    errors.append(f"{input_csv}:{line}: empty {COL_HASH}")
                records.append(DeviceRecord(
                    serial=serial,
                    hardware_hash=hw_hash,
                    group_tag=(row.get(COL_GROUP_TAG) or "").strip(),
                    order_id=(row.get(COL_ORDER_ID) or "").strip(),
                    assigned_user=(row.get(COL_USER) or "").strip(),
                ))
    except UnicodeDecodeError as e:
        raise InputError(f"{input_csv}: not a valid {encoding} text file: {e}") from e

    if errors:
        raise InputError("\n".join(errors))
    if not records:
        raise InputError(f"{input_csv}: no devices found")
    return records


def effective_group_tag(record: DeviceRecord, override: Optional[str] = None) -> str:
    if override:
        return override
    if record.group_tag:
        return record.group_tag
    return record.order_id


def _state(entry: Dict[str, Any]) -> Dict[str, Any]:
    return entry.get("state") or {}


def _pause(cancel: threading.Event, interval: float, deadline: Optional[float], what: str) -> None:
    wait = interval
    if deadline is not None:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ImportTimeoutError(f"Timed out waiting for {what}")
        wait = min(interval, remaining)
    if cancel.wait(wait):
        raise ImportCancelledError(f"Cancelled while waiting for {what}")


def wait_for_imports(
    session: GraphSession,
    ids: List[str],
    interval: float = DEFAULT_INTERVAL,
    timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
    out: Callable[[str], None] = print,
) -> Dict[str, Dict[str, Any]]:
    """Poll until every record in `ids` has left the unresolved state. Returns records by id."""
    cancel = cancel or threading.Event()
    deadline = time.monotonic() + timeout if timeout is not None else None
    wanted = set(ids)

    while True:
        current = {e.get("id"): e for e in session.get_all(devices.IMPORTED) if e.get("id") in wanted}
        pending = sum(
            1 for i in ids
            if i not in current or _state(current[i]).get("deviceImportStatus", "unknown") in UNRESOLVED
        )
        out(f"Waiting for {pending} of {len(ids)} to be imported")
        if pending == 0:
            return current
        _pause(cancel, interval, deadline, f"{pending} device import(s)")


def wait_for_devices(
    session: GraphSession,
    serials: List[str],
    interval: float = DEFAULT_INTERVAL,
    timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
    out: Callable[[str], None] = print,
) -> None:
    """Trigger an Autopilot sync and wait until every serial shows up as a device identity."""
    cancel = cancel or threading.Event()
    deadline = time.monotonic() + timeout if timeout is not None else None

    sync.invoke_sync(session)
    remaining = list(serials)
    while True:
        remaining = [s for s in remaining if not devices.get_devices(session, serial=s)]
        out(f"Waiting for {len(remaining)} of {len(serials)} to be synced")
        if not remaining:
            return
        _pause(cancel, interval, deadline, f"{len(remaining)} device(s) to sync")


def import_devices(
    session: GraphSession,
    records: List[DeviceRecord],
    group_tag: Optional[str] = None,
    interval: float = DEFAULT_INTERVAL,
    timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
    wait_sync: bool = False,
    out: Callable[[str], None] = print,
) -> ImportResult:
    submitted: List[Dict[str, Any]] = []
    for rec in records:
        created = devices.add_imported_device(
            session,
            rec.serial,
            rec.hardware_hash,
            group_tag=effective_group_tag(rec, group_tag),
            assigned_user=rec.assigned_user,
        )
        import_id = (created or {}).get("id")
        if not import_id:
            raise AutopilotError(f"Import of serial {rec.serial} returned no record id")
        submitted.append({"id": import_id, "serial": rec.serial})

    ids = [s["id"] for s in submitted]
    logger.info("Submitted %d device import(s)", len(ids))
    final = wait_for_imports(session, ids, interval=interval, timeout=timeout, cancel=cancel, out=out)

    result = ImportResult()
    for sub in submitted:
        st = _state(final.get(sub["id"], {}))
        status = ImportStatus(
            serial=sub["serial"],
            status=st.get("deviceImportStatus", "unknown"),
            error_code=st.get("deviceErrorCode") or 0,
            error_name=st.get("deviceErrorName") or "",
            id=sub["id"],
        )
        result.statuses.append(status)
        out(f"Serial number {status.serial}: {status.status} {status.error_code} {status.error_name}".rstrip())

    for sub in submitted:
        devices.delete_imported_device(session, sub["id"])
    logger.info("Removed %d import status record(s)", len(submitted))

    if wait_sync:
        imported = [s.serial for s in result.statuses if s.status in ("success", "complete")]
        if imported:
            wait_for_devices(session, imported, interval=interval, timeout=timeout, cancel=cancel, out=out)
    return result


def import_csv(session: GraphSession, input_csv: Path, group_tag: Optional[str] = None, **kwargs: Any) -> ImportResult:
    return import_devices(session, read_csv(input_csv), group_tag, **kwargs)
