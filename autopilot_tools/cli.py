#!/usr/bin/env python3
"""
Windows Autopilot administration from the command line (Microsoft Graph beta).

Usage:
  export AZURE_TENANT_ID="contoso.onmicrosoft.com"
  export AZURE_CLIENT_ID="<app id>"
  export AZURE_CLIENT_SECRET="<secret>"
  autopilot-tools devices list --serial "PF0 ABC1"
  autopilot-tools import --csv hashes.csv --group-tag Kiosk --timeout 3600
  autopilot-tools profiles create --name "Kiosk" --device-usage shared --hide-eula
  autopilot-tools profiles export --id <profile id> --out AutopilotConfigurationFile.json
  autopilot-tools --interactive sync --info

Exit codes:
  0 = OK
  1 = Graph request failed / import did not finish
  2 = usage, input or authentication errors
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, List, Optional

import requests

from autopilot_tools import auth, devices, enrollment_status, importer, profile_json, profiles, sync
from autopilot_tools.enrollment_status import EnrollmentStatusOptions
from autopilot_tools.errors import (
    AuthenticationError,
    AutopilotError,
    GraphRequestError,
    ImportCancelledError,
    ImportTimeoutError,
    InputError,
)
from autopilot_tools.graph import GRAPH_BETA, GraphSession
from autopilot_tools.profile_json import ProfileOptions

logger = logging.getLogger("autopilot_tools")

Handler = Callable[[GraphSession, argparse.Namespace], Any]


def connect(args: argparse.Namespace) -> GraphSession:
    base_url = os.environ.get("GRAPH_BASE_URL", "").strip() or GRAPH_BETA
    tenant = args.tenant or os.environ.get("AZURE_TENANT_ID", "").strip()
    app_id = args.app_id or os.environ.get("AZURE_CLIENT_ID", "").strip()

    if args.interactive or args.device_code:
        return auth.connect_interactive(
            tenant_id=tenant or "organizations",
            app_id=app_id or auth.DEFAULT_PUBLIC_CLIENT_ID,
            device_code=args.device_code,
            base_url=base_url,
        )

    secret = args.app_secret or os.environ.get("AZURE_CLIENT_SECRET", "").strip()
    if not tenant or not app_id or not secret:
        raise AuthenticationError(
            "Missing credentials: set AZURE_TENANT_ID, AZURE_CLIENT_ID, AZURE_CLIENT_SECRET "
            "(or --tenant/--app-id/--app-secret), or use --interactive"
        )
    return auth.connect_app(tenant, app_id, secret, base_url=base_url)


# ---- handlers -----------------------------------------------------------------

def _profile_options(args: argparse.Namespace) -> ProfileOptions:
    return ProfileOptions(
        display_name=args.name,
        description=args.description,
        join_mode=args.join_mode,
        user_type=args.user_type,
        hide_eula=args.hide_eula,
        hide_privacy=args.hide_privacy,
        skip_keyboard=args.skip_keyboard,
        hide_escape_link=args.hide_escape_link,
        language=args.language,
        device_name_template=args.device_name_template,
        device_usage=args.device_usage,
        allow_white_glove=args.allow_white_glove,
        skip_connectivity_check=args.skip_connectivity_check,
        extract_hardware_hash=args.extract_hardware_hash,
    )


def _esp_options(args: argparse.Namespace) -> EnrollmentStatusOptions:
    return EnrollmentStatusOptions(
        display_name=args.name,
        description=args.description,
        show_progress=args.show_progress,
        timeout_minutes=args.timeout_minutes,
        custom_error_message=args.error_message,
        allow_reset_on_failure=args.allow_reset,
        allow_log_collection=args.allow_log_collection,
        allow_use_on_failure=args.allow_use,
        block_retry=args.block_retry,
        track_autopilot_only=args.autopilot_only,
        disable_user_tracking=args.disable_user_tracking,
    )


def _write_or_return(payload: Any, out: Optional[Path]) -> Any:
    if out is None:
        return payload
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote {out}")
    return None


def prepare_import(args: argparse.Namespace) -> None:
    if not args.csv.exists():
        raise InputError(f"CSV not found: {args.csv}")
    args.records = importer.read_csv(args.csv)


def cmd_import(session: GraphSession, args: argparse.Namespace) -> Any:
    result = importer.import_devices(
        session,
        args.records,
        group_tag=args.group_tag,
        interval=args.interval,
        timeout=args.timeout,
        wait_sync=args.wait_sync,
    )
    print(f"Success={result.succeeded}, Error={result.failed}")
    return _write_or_return(result.to_dict(), args.out)


def cmd_profile_export(session: GraphSession, args: argparse.Namespace) -> Any:
    return _write_or_return(profiles.export_configuration(session, args.id), args.out)


def cmd_sync(session: GraphSession, args: argparse.Namespace) -> Any:
    if args.info:
        return sync.get_sync_info(session)
    sync.invoke_sync(session)
    print("Autopilot sync requested")
    return None


# ---- parser -------------------------------------------------------------------

def _bool_flag(p: argparse.ArgumentParser, name: str, help: str) -> None:
    p.add_argument(name, action=argparse.BooleanOptionalAction, default=None, help=help)


def _add_profile_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--name", help="Display name")
    p.add_argument("--description")
    p.add_argument("--join-mode", choices=sorted(profile_json.JOIN_MODES))
    p.add_argument("--user-type", choices=sorted(profile_json.USER_TYPES))
    p.add_argument("--device-usage", choices=sorted(profile_json.DEVICE_USAGE))
    p.add_argument("--language", help="e.g. en-US, or os-default")
    p.add_argument("--device-name-template", help="e.g. KIOSK-%%SERIAL%%")
    _bool_flag(p, "--hide-eula", "Hide the license terms page")
    _bool_flag(p, "--hide-privacy", "Hide the privacy settings page")
    _bool_flag(p, "--skip-keyboard", "Skip keyboard/region selection")
    _bool_flag(p, "--hide-escape-link", "Hide 'change account' options")
    _bool_flag(p, "--allow-white-glove", "Allow pre-provisioned deployment")
    _bool_flag(p, "--skip-connectivity-check", "Hybrid join: skip domain connectivity check")
    _bool_flag(p, "--extract-hardware-hash", "Convert all targeted devices to Autopilot")


def _add_esp_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--name", help="Display name")
    p.add_argument("--description")
    p.add_argument("--timeout-minutes", type=int)
    p.add_argument("--error-message")
    _bool_flag(p, "--show-progress", "Show app and profile installation progress")
    _bool_flag(p, "--allow-reset", "Allow device reset on installation failure")
    _bool_flag(p, "--allow-log-collection", "Allow log collection on installation failure")
    _bool_flag(p, "--allow-use", "Allow device use on installation failure")
    _bool_flag(p, "--block-retry", "Block the user from retrying setup")
    _bool_flag(p, "--autopilot-only", "Only show the page to Autopilot devices")
    _bool_flag(p, "--disable-user-tracking", "Stop user status tracking after the first user")


def _action(sub: Any, name: str, handler: Handler, help: str) -> argparse.ArgumentParser:
    p = sub.add_parser(name, help=help)
    p.set_defaults(func=handler)
    return p


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="autopilot-tools", description="Windows Autopilot administration via Microsoft Graph")
    ap.add_argument("--tenant", help="Tenant id or domain (default: $AZURE_TENANT_ID)")
    ap.add_argument("--app-id", help="App registration client id (default: $AZURE_CLIENT_ID)")
    ap.add_argument("--app-secret", help="Client secret (default: $AZURE_CLIENT_SECRET)")
    ap.add_argument("--interactive", action="store_true", help="Sign in with a browser instead of an app secret")
    ap.add_argument("--device-code", action="store_true", help="Sign in with the device code flow")
    ap.add_argument("-v", "--verbose", action="store_true")
    commands = ap.add_subparsers(dest="command", required=True)

    # devices
    dev = commands.add_parser("devices", help="Autopilot device identities").add_subparsers(dest="action", required=True)
    p = _action(dev, "list", lambda s, a: devices.get_devices(s, id=a.id, serial=a.serial, expand=a.expand), "List devices")
    p.add_argument("--id")
    p.add_argument("--serial")
    p.add_argument("--expand", action="store_true", help="Include deployment profile details")
    p = _action(dev, "update", lambda s, a: devices.update_device(
        s, a.id,
        user_principal_name=a.user_principal_name,
        addressable_user_name=a.addressable_user_name,
        display_name=a.display_name,
        group_tag=a.group_tag,
    ), "Update device properties")
    p.add_argument("--id", required=True)
    p.add_argument("--user-principal-name")
    p.add_argument("--addressable-user-name")
    p.add_argument("--display-name")
    p.add_argument("--group-tag")
    p = _action(dev, "delete", lambda s, a: {"deleted": devices.delete_device(s, id=a.id, serial=a.serial)}, "Delete devices")
    g = p.add_mutually_exclusive_group(required=True)
    g.add_argument("--id")
    g.add_argument("--serial")

    # imported device records
    imp = commands.add_parser("imported", help="Imported device status records").add_subparsers(dest="action", required=True)
    p = _action(imp, "list", lambda s, a: devices.get_imported_devices(s, id=a.id, serial=a.serial), "List import records")
    p.add_argument("--id")
    p.add_argument("--serial")
    p = _action(imp, "add", lambda s, a: devices.add_imported_device(
        s, a.serial, a.hash, group_tag=a.group_tag, assigned_user=a.assigned_user
    ), "Submit one device import")
    p.add_argument("--serial", required=True)
    p.add_argument("--hash", required=True, help="Base64 hardware hash")
    p.add_argument("--group-tag", default="")
    p.add_argument("--assigned-user", default="")
    p = _action(imp, "delete", lambda s, a: devices.delete_imported_device(s, a.id), "Delete an import record")
    p.add_argument("--id", required=True)

    # bulk import
    p = _action(commands, "import", cmd_import, "Import devices from a hardware hash CSV")
    p.set_defaults(prepare=prepare_import)
    p.add_argument("--csv", required=True, type=Path)
    p.add_argument("--group-tag", help="Group tag for every device (overrides the CSV)")
    p.add_argument("--interval", type=float, default=importer.DEFAULT_INTERVAL, help="Seconds between status polls")
    p.add_argument("--timeout", type=float, help="Give up after this many seconds")
    p.add_argument("--wait-sync", action="store_true", help="Sync and wait until devices are registered")
    p.add_argument("--out", type=Path, help="Write the import report as JSON")

    # profiles
    prof = commands.add_parser("profiles", help="Deployment profiles").add_subparsers(dest="action", required=True)
    p = _action(prof, "list", lambda s, a: profiles.get_profiles(s, id=a.id), "List profiles")
    p.add_argument("--id")
    p = _action(prof, "devices", lambda s, a: profiles.get_assigned_devices(s, a.id), "Devices assigned to a profile")
    p.add_argument("--id", required=True)
    p = _action(prof, "create", lambda s, a: profiles.create_profile(s, _profile_options(a)), "Create a profile")
    _add_profile_options(p)
    p = _action(prof, "update", lambda s, a: profiles.update_profile(s, a.id, _profile_options(a)), "Update a profile")
    p.add_argument("--id", required=True)
    _add_profile_options(p)
    p = _action(prof, "delete", lambda s, a: profiles.delete_profile(s, a.id), "Delete a profile")
    p.add_argument("--id", required=True)
    p = _action(prof, "assignments", lambda s, a: profiles.get_assignments(s, a.id), "List group assignments")
    p.add_argument("--id", required=True)
    p = _action(prof, "assign", lambda s, a: profiles.assign_group(s, a.id, a.group_id, exclude=a.exclude), "Assign to a group")
    p.add_argument("--id", required=True)
    p.add_argument("--group-id", required=True)
    p.add_argument("--exclude", action="store_true", help="Create an exclusion assignment")
    p = _action(prof, "unassign", lambda s, a: profiles.remove_assignment(s, a.id, a.group_id), "Remove a group assignment")
    p.add_argument("--id", required=True)
    p.add_argument("--group-id", required=True)
    p = _action(prof, "export", cmd_profile_export, "Offline AutopilotConfigurationFile.json")
    p.add_argument("--id", required=True)
    p.add_argument("--out", type=Path)

    # enrollment status pages
    esp = commands.add_parser("esp", help="Enrollment status pages").add_subparsers(dest="action", required=True)
    p = _action(esp, "list", lambda s, a: enrollment_status.get_pages(s, id=a.id), "List status pages")
    p.add_argument("--id")
    p = _action(esp, "create", lambda s, a: enrollment_status.create_page(s, _esp_options(a)), "Create a status page")
    _add_esp_options(p)
    p = _action(esp, "update", lambda s, a: enrollment_status.update_page(s, a.id, _esp_options(a)), "Update a status page")
    p.add_argument("--id", required=True)
    _add_esp_options(p)
    p = _action(esp, "delete", lambda s, a: enrollment_status.delete_page(s, a.id), "Delete a status page")
    p.add_argument("--id", required=True)

    # sync / events
    p = _action(commands, "sync", cmd_sync, "Trigger an Autopilot sync")
    p.add_argument("--info", action="store_true", help="Show last sync details instead")
    _action(commands, "events", lambda s, a: sync.get_events(s), "Autopilot deployment events")

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        # local input is validated before signing in
        prepare = getattr(args, "prepare", None)
        if prepare is not None:
            prepare(args)
        session = connect(args)
        result = args.func(session, args)
    except (AuthenticationError, InputError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except GraphRequestError as e:
        print(f"ERROR: {e.method} {e.url} -> HTTP {e.status_code}", file=sys.stderr)
        print(json.dumps(e.body, indent=2) if isinstance(e.body, (dict, list)) else str(e.body), file=sys.stderr)
        return 1
    except (ImportTimeoutError, ImportCancelledError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except (AutopilotError, requests.RequestException) as e:
        # msal performs its own HTTP calls, so transport errors can surface from sign-in too
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if result is not None:
        print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
