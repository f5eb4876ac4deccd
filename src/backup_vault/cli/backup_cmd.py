"""Backup command: create a versioned backup of the selection."""

import argparse
import logging
import os

from ..__util__ import BackupVaultError, bytes_to_human
from ..config import ConfigError
from ..core.backup import backup_destination, create_backup
from ..core.retry import RetryPolicy
from .common import confirm, copy_progress, prepare_command

logger = logging.getLogger(__name__)


def execute_backup(args: argparse.Namespace) -> int:
    """Execute the backup command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    try:
        config, model = prepare_command(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    if not model.included:
        logger.error("No sources selected. Select items with: backup-vault toggle PATH")
        return 1

    job = model.backup_job(args.version, force=args.force)

    try:
        destination = backup_destination(job)
        if not job.force and os.path.lexists(destination):
            if not confirm(
                f"A backup with version '{job.version}' already exists at "
                f"{destination}. Overwrite?",
                assume_yes=args.yes,
            ):
                print("Backup cancelled")
                return 1
            job.force = True

        with copy_progress(not args.no_progress) as on_progress:
            result = create_backup(
                job,
                on_progress=on_progress,
                policy=RetryPolicy.from_config(config.global_config.retry),
                chunk_size=config.global_config.chunk_size,
            )
    except BackupVaultError as e:
        logger.error("Backup failed: %s", e)
        return 1

    print(f"Backup created: {result.destination}")
    print(
        f"  {result.files_verified} file(s) verified, "
        f"{bytes_to_human(result.bytes_copied)} copied in {result.duration_seconds:.1f}s"
    )
    return 0
