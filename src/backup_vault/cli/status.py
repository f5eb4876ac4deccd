"""Status command: show the selection, settings and job history."""

import argparse
import logging
from datetime import datetime

from ..__util__ import ValidationError, bytes_to_human
from ..config import ConfigError
from ..core.backup import backup_destination
from ..transaction import get_transaction_stats, read_transaction_log
from .common import prepare_command

logger = logging.getLogger(__name__)


def _format_timestamp(value: str | None) -> str:
    if not value:
        return "?"
    try:
        return datetime.fromisoformat(value).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value


def _print_transactions(limit: int) -> None:
    records = read_transaction_log(limit=limit)
    stats = get_transaction_stats()

    print("")
    print("Recent jobs:")
    if not records:
        print("  (none)")
    for record in records:
        line = (
            f"  {_format_timestamp(record.get('timestamp'))}  "
            f"{record.get('action', '?'):<6} {record.get('status', '?'):<9}"
        )
        if record.get("version"):
            line += f" v={record['version']}"
        if record.get("destination"):
            line += f" -> {record['destination']}"
        if record.get("error"):
            line += f" ({record['error']})"
        print(line)

    print("")
    print(
        f"Backups: {stats['backups']['completed']} completed, "
        f"{stats['backups']['failed']} failed"
    )
    print(
        f"Sends:   {stats['sends']['completed']} completed, "
        f"{stats['sends']['failed']} failed"
    )
    print(f"Copied:  {bytes_to_human(stats['total_bytes_copied'])}")


def execute_status(args: argparse.Namespace) -> int:
    """Execute the status command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    try:
        _config, model = prepare_command(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    settings = model.settings
    counts = model.get_selection_counts()

    print("backup-vault Status")
    print("=" * 60)
    print(f"Workspace: {model.workspace_root}")
    print(f"Selection: {counts.summary()}")
    for root in model.selected_roots():
        print(f"  + {root}")
    excluded = model.excluded_paths()
    if excluded:
        print(f"  ({len(excluded)} excluded path(s))")
    print("")
    print(f"Output directory:  {settings.output_dir or '(not set)'}")
    print(f"Sending directory: {settings.sending_dir or '(not set)'}")
    print(f"Suffix:            {settings.suffix!r}")
    print(f"Folder name:       {settings.folder_name or '(not set)'}")
    print(f"Pack files:        {'yes' if settings.pack_files else 'no'}")

    if model.included and settings.output_dir:
        job = model.backup_job("<version>")
        try:
            print(f"Next backup:       {backup_destination(job)}")
        except ValidationError as e:
            print(f"Next backup:       unavailable ({e})")

    if args.transactions:
        _print_transactions(args.limit)

    return 0
