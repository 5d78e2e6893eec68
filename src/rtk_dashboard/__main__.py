# Main Entry Point - Settings CLI
#
# Command-line stand-in for the dashboard's settings panel. It calls the
# same CredentialStore / StatusPreferenceStore operations the UI does and
# never prints a stored token.

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Tuple

from . import __version__
from .core import EventSeverity, EventType, Settings, get_audit_logger, get_settings
from .storage import ExtensionStorage
from .vault import (
    STATUS_OPTIONS,
    CipherCodec,
    CredentialRecord,
    CredentialStore,
    KeyDerivation,
    StaticIdentityProvider,
    StatusPreferenceStore,
    mask_token,
)
from .exceptions import RtkDashboardError, ValidationError


def build_services(
    settings: Settings,
    storage: Optional[ExtensionStorage] = None,
) -> Tuple[CredentialStore, StatusPreferenceStore]:
    """Wire storage, key derivation and the stores for one installation."""
    if storage is None:
        storage = ExtensionStorage.sqlite(settings.sync_db_path, settings.local_db_path)

    identity = StaticIdentityProvider(settings.installation_id)
    codec = CipherCodec(KeyDerivation(storage.local, identity))
    return CredentialStore(storage.sync, codec), StatusPreferenceStore(storage.sync)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rtk-dashboard",
        description="Manage the new tab dashboard's stored tracker credentials",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"rtk-dashboard v{__version__}",
    )
    groups = parser.add_subparsers(dest="group", required=True)

    creds = groups.add_parser("credentials", help="Issue-tracker credentials")
    creds_cmd = creds.add_subparsers(dest="command", required=True)

    save = creds_cmd.add_parser("save", help="Validate, encrypt and store credentials")
    save.add_argument("--email", required=True)
    save.add_argument("--domain", required=True, help="e.g. company.atlassian.net")
    save.add_argument(
        "--token",
        default="",
        help="API token (omit to keep the token already saved)",
    )
    creds_cmd.add_parser("show", help="Show saved credentials (token masked)")
    creds_cmd.add_parser("status", help="Exit 0 if credentials are configured")
    creds_cmd.add_parser("clear", help="Remove saved credentials")
    creds_cmd.add_parser("migrate", help="Encrypt legacy plaintext fields in place")

    statuses = groups.add_parser("statuses", help="Ticket status filter")
    statuses_cmd = statuses.add_subparsers(dest="command", required=True)
    statuses_cmd.add_parser("show", help="List status options and the current selection")
    toggle = statuses_cmd.add_parser("toggle", help="Select or deselect a status")
    toggle.add_argument("status_id", choices=[opt.id for opt in STATUS_OPTIONS])

    return parser


async def _run_credentials(args, store: CredentialStore) -> int:
    if args.command == "save":
        result = await store.save(
            CredentialRecord(email=args.email, api_token=args.token, domain=args.domain)
        )
        if not result.success:
            print(f"[ERROR] {result.message}", file=sys.stderr)
            return 2
        print("[OK] Credentials saved")
        return 0

    if args.command == "show":
        record = await store.load()
        if not record.is_complete():
            print("Not configured")
            return 1
        print(f"Email:  {record.email}")
        print(f"Token:  {mask_token(record.api_token)}")
        print(f"Domain: {record.domain}")
        return 0

    if args.command == "status":
        configured = await store.has()
        print("Configured" if configured else "Not configured")
        return 0 if configured else 1

    if args.command == "clear":
        await store.clear()
        print("[OK] Credentials removed")
        return 0

    if args.command == "migrate":
        migrated = await store.migrate()
        print("[OK] Legacy fields encrypted" if migrated else "Nothing to migrate")
        return 0

    return 2


async def _run_statuses(args, store: StatusPreferenceStore) -> int:
    prefs = await store.load()

    if args.command == "toggle":
        prefs.toggle(args.status_id)
        await store.save(prefs)

    for opt in STATUS_OPTIONS:
        mark = "x" if opt.id in prefs else " "
        print(f"[{mark}] {opt.id:<12} {opt.label}")
    return 0


async def _dispatch(args, credentials: CredentialStore, statuses: StatusPreferenceStore) -> int:
    if args.group == "credentials":
        return await _run_credentials(args, credentials)
    return await _run_statuses(args, statuses)


def main(argv: Optional[List[str]] = None, storage: Optional[ExtensionStorage] = None) -> int:
    """Entry point for the rtk-dashboard console script."""
    args = _build_parser().parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=settings.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="rtk-dashboard CLI invoked",
        details={"version": __version__, "command": f"{args.group} {args.command}"},
    )

    credentials, statuses = build_services(settings, storage)
    try:
        return asyncio.run(_dispatch(args, credentials, statuses))
    except ValidationError as e:
        print(f"[ERROR] {e.message}", file=sys.stderr)
        return 2
    except RtkDashboardError as e:
        print(f"[ERROR] {type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
