"""
adkar_backup/cli.py -- Command-line entry point.

Commands:
    diagnose <file.json> [--repair] [--output FILE] [--verbose]
    create [--description TEXT]
    list
    restore <file.json> [--confirm] [--repair]

``diagnose`` exits 0 when the backup is healthy and 1 when it is unhealthy
or cannot be read.  A malformed backup never crashes the tool; it is
reported like any other problem.

Usage:
    adkar-backup diagnose my-backup.json --repair --output repaired.json
"""

import argparse
import json
import logging
import os
import sys

from adkar_backup import __version__
from adkar_backup.backup_manager import BackupManager
from adkar_backup.config import BackupSettings
from adkar_backup.diagnostic import diagnose_backup
from adkar_backup.repair import repair_backup
from adkar_backup.utils import write_json_document

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def _print_header(title: str) -> None:
    print("=" * 60)
    print(f"  {title}")
    print("=" * 60)


def _load_json_file(path: str):
    """Load *path* as JSON, printing a friendly message on failure.

    Returns ``(ok, data)``.
    """
    if not os.path.isfile(path):
        print(f"Error: File not found: {path}", file=sys.stderr)
        return False, None
    try:
        with open(path, "r", encoding="utf-8") as fh:
            content = fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error loading backup file: {exc}", file=sys.stderr)
        return False, None
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        print(f"Error loading backup file: {exc.msg} at line {exc.lineno}, column {exc.colno}",
              file=sys.stderr)
        print("Suggestion: the file contains invalid JSON. Check that it is not "
              "corrupted or truncated.", file=sys.stderr)
        return False, None

    print("Backup file loaded successfully")
    print(f"File size: {len(content.encode('utf-8')) / 1024:.2f} KB")
    return True, data


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_diagnose(args, settings: BackupSettings) -> int:
    backup_path = os.path.abspath(args.file)
    _print_header("Backup Diagnostic Tool")
    print(f"File: {backup_path}")
    print()

    ok, backup = _load_json_file(backup_path)
    if not ok:
        return EXIT_FAILURE

    print("\nRunning diagnostic checks...\n")
    diagnostic = diagnose_backup(backup, settings=settings)
    print(diagnostic.format_report())
    report = diagnostic.get_report()
    if args.verbose:
        print(json.dumps(report, indent=2, ensure_ascii=False))

    if args.repair:
        print("\nAttempting to repair backup...\n")
        outcome = repair_backup(backup)
        stream = sys.stdout if outcome.success else sys.stderr
        print("Repair completed successfully" if outcome.success else "Repair failed", file=stream)
        print("\nRepair log:", file=stream)
        for i, line in enumerate(outcome.repair_log, 1):
            print(f"  {i}. {line}", file=stream)
        if not outcome.success:
            return EXIT_FAILURE

        if args.output:
            output_path = os.path.abspath(args.output)
            try:
                write_json_document(output_path, outcome.repaired_data, indent=2)
            except OSError as exc:
                print(f"Error saving repaired backup: {exc}", file=sys.stderr)
                return EXIT_FAILURE
            print(f"\nRepaired backup saved to: {output_path}")

            print("\nRunning diagnostics on repaired backup...\n")
            repaired = diagnose_backup(outcome.repaired_data, settings=settings)
            print(repaired.format_report())
            if repaired.is_healthy:
                print("Repaired backup is healthy and ready to use!")
            else:
                print("Repaired backup still has some issues. Manual intervention may be required.")
        else:
            print("\nTo save the repaired backup, use --output <filename>")

    if report["is_healthy"]:
        print("\nBackup file is healthy!")
        return EXIT_OK
    if report["fixable"]:
        print("\nBackup has issues but they appear fixable.")
        print("Run with --repair to attempt automatic repair:")
        print(f"  adkar-backup diagnose {args.file} --repair --output repaired.json")
    else:
        print("\nBackup has critical issues that cannot be automatically repaired.")
        print("Manual intervention is required.")
    return EXIT_FAILURE


def cmd_create(args, settings: BackupSettings) -> int:
    bm = BackupManager(settings)
    try:
        info = bm.create_backup(description=args.description)
    except RuntimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    stats = info["statistics"]
    print(f"Backup created: {info['path']}")
    print(f"  {stats['categories']} categories, {stats['adkar']} adkar, {stats['groups']} groups "
          f"({stats['formattedSize']})")
    for path in info["deleted"]:
        print(f"  Removed old backup: {os.path.basename(path)}")
    return EXIT_OK


def cmd_list(args, settings: BackupSettings) -> int:
    backups = BackupManager(settings).list_backups()
    if not backups:
        print(f"No backups found in {settings.backups_dir}")
        return EXIT_OK
    for backup in backups:
        stats = backup["statistics"]
        print(f"{backup['filename']}  v{backup['version']}  {backup['timestamp']}  "
              f"{stats.get('adkar', 0)} adkar / {stats.get('groups', 0)} groups")
    return EXIT_OK


def cmd_restore(args, settings: BackupSettings) -> int:
    bm = BackupManager(settings)
    try:
        result = bm.restore_backup(os.path.abspath(args.file), confirm=args.confirm, repair=args.repair)
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    for line in result["repair_log"]:
        print(f"  - {line}")
    stats = result["statistics"]
    summary = f"{stats['categories']} categories, {stats['adkar']} adkar, {stats['groups']} groups"
    if result["restored"]:
        print(f"Restored {summary}.")
        print(f"Pre-restore backup: {result['pre_restore_backup']}")
    else:
        print(f"Would restore {summary}. Re-run with --confirm to apply.")
    return EXIT_OK


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adkar-backup",
        description="Create, diagnose, repair and restore adkar bot backups",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--store-dir", help="Directory holding categories/adkar/groups JSON files")
    parser.add_argument("--backups-dir", help="Directory where snapshots are written")
    sub = parser.add_subparsers(dest="command", required=True)

    diagnose = sub.add_parser("diagnose", help="Diagnose (and optionally repair) a backup file")
    diagnose.add_argument("file", help="Backup JSON file")
    diagnose.add_argument("--repair", action="store_true", help="Attempt automatic repair")
    diagnose.add_argument("--output", help="Save the repaired backup to this file")
    diagnose.add_argument("--verbose", action="store_true", help="Show detailed diagnostic information")
    diagnose.set_defaults(handler=cmd_diagnose)

    create = sub.add_parser("create", help="Snapshot the store into a new backup")
    create.add_argument("--description", default="", help="Free-text description stored in metadata")
    create.set_defaults(handler=cmd_create)

    listing = sub.add_parser("list", help="List existing backups, newest first")
    listing.set_defaults(handler=cmd_list)

    restore = sub.add_parser("restore", help="Restore the store from a backup file")
    restore.add_argument("file", help="Backup JSON file")
    restore.add_argument("--confirm", action="store_true", help="Apply the restore (default: preview)")
    restore.add_argument("--repair", action="store_true", help="Repair the backup before restoring")
    restore.set_defaults(handler=cmd_restore)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.store_dir:
        overrides["store_dir"] = args.store_dir
    if args.backups_dir:
        overrides["backups_dir"] = args.backups_dir
    settings = BackupSettings(**overrides)

    return args.handler(args, settings)


if __name__ == "__main__":
    sys.exit(main())
