"""Send the selection to a separate directory.

Unlike a backup, a transfer copies each selected root straight to
``{sending_dir}/{leaf}`` without staging or hashing, and overwrites whatever
is already there. Roots succeed or fail independently.
"""

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field

from .. import __util__
from ..__util__ import (
    BackupVaultError,
    PathFilter,
    ValidationError,
    is_within,
    normalize_path,
)
from ..config.schema import DEFAULT_CHUNK_SIZE
from ..transaction import TransactionContext
from .fileops import ProgressCallback, copy_tree
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 20


@dataclass
class TransferJob:
    sources: list[str]
    sending_dir: str
    deselected: list[str] = field(default_factory=list)


@dataclass
class TransferResult:
    """Outcome of a transfer; only the first errors are kept verbatim."""

    success_count: int = 0
    error_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error_count == 0

    def add_error(self, message: str) -> None:
        self.error_count += 1
        if len(self.errors) < MAX_REPORTED_ERRORS:
            self.errors.append(message)


def would_overwrite(sources: Iterable[str], sending_dir: str) -> list[str]:
    """Sources whose destination in ``sending_dir`` already exists."""
    sending_dir = normalize_path(sending_dir)
    return [
        source
        for source in sources
        if os.path.lexists(os.path.join(sending_dir, os.path.basename(normalize_path(source))))
    ]


def send_files(
    job: TransferJob,
    on_progress: ProgressCallback | None = None,
    policy: RetryPolicy | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> TransferResult:
    """Copy every selected root into the sending directory.

    Raises:
        ValidationError: If there is nothing to send or nowhere to send it.
    """
    if not job.sources:
        raise ValidationError("No sources selected")
    if not job.sending_dir:
        raise ValidationError("No sending directory configured")
    sending_dir = normalize_path(job.sending_dir)
    if not os.path.isdir(sending_dir):
        raise ValidationError(f"Sending directory does not exist: {sending_dir}")

    sources = [normalize_path(s) for s in job.sources]
    if sending_dir in sources:
        raise ValidationError(f"Sending directory cannot be a selected source: {sending_dir}")

    excluded_paths = list(job.deselected)
    if any(is_within(sending_dir, source) for source in sources):
        logger.info("Leaving out the sending directory %s", sending_dir)
        excluded_paths.append(sending_dir)
    excluded = PathFilter(excluded_paths)
    result = TransferResult()
    bytes_copied = 0

    logger.info(__util__.log_heading("Send"))
    logger.info("Sending %d item(s) to %s", len(job.sources), sending_dir)

    with TransactionContext("send", destination=sending_dir) as tx:
        for source in sources:
            destination = os.path.join(sending_dir, os.path.basename(source))
            try:
                if not os.path.lexists(source):
                    raise FileNotFoundError(f"Source not found: {source}")
                if os.path.lexists(destination):
                    logger.info("Overwriting existing item: %s", destination)
                bytes_copied += copy_tree(
                    source,
                    destination,
                    excluded=excluded,
                    chunk_size=chunk_size,
                    on_progress=on_progress,
                    policy=policy,
                )
            except (OSError, BackupVaultError) as e:
                logger.error("Failed to send %s: %s", source, e)
                result.add_error(f"Failed to send {source}: {e}")
                continue
            result.success_count += 1
            logger.info("Sent %s -> %s", source, destination)

        tx.set_size(bytes_copied)
        tx.add_detail("success_count", result.success_count)
        tx.add_detail("error_count", result.error_count)
        if result.error_count:
            tx.fail(f"{result.error_count} item(s) failed")

    return result
