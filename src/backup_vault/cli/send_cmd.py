"""Send command: copy the selection into the sending directory."""

import argparse
import logging

from ..__util__ import BackupVaultError
from ..config import ConfigError
from ..core.retry import RetryPolicy
from ..core.transfer import send_files, would_overwrite
from .common import confirm, copy_progress, prepare_command

logger = logging.getLogger(__name__)


def execute_send(args: argparse.Namespace) -> int:
    """Execute the send command.

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

    job = model.transfer_job()

    if job.sources and job.sending_dir:
        existing = would_overwrite(job.sources, job.sending_dir)
        if existing and not confirm(
            f"{len(existing)} item(s) already exist in {job.sending_dir}. Overwrite?",
            assume_yes=args.yes,
        ):
            print("Send cancelled")
            return 1

    try:
        with copy_progress(not args.no_progress) as on_progress:
            result = send_files(
                job,
                on_progress=on_progress,
                policy=RetryPolicy.from_config(config.global_config.retry),
                chunk_size=config.global_config.chunk_size,
            )
    except BackupVaultError as e:
        logger.error("Send failed: %s", e)
        return 1

    print(f"Sent {result.success_count} item(s) to {job.sending_dir}")
    if result.error_count:
        print(f"{result.error_count} item(s) failed:")
        for message in result.errors:
            print(f"  - {message}")
        if result.error_count > len(result.errors):
            print(f"  ... and {result.error_count - len(result.errors)} more")
        return 1
    return 0
