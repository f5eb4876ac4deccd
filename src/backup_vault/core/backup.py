"""Versioned, hash-verified backups of a selection.

A backup is assembled in a staging directory inside the output directory,
verified against a manifest of the sources, and only then moved to its final
name. The existing destination, if overwriting was forced, is deleted after
verification and right before the move.
"""

import logging
import os
import tempfile
import time
from dataclasses import dataclass, field

from .. import __util__
from ..__util__ import (
    BackupVaultError,
    CopyError,
    DestinationExistsError,
    PathFilter,
    ValidationError,
    is_within,
    normalize_path,
    split_leaf,
)
from ..config.schema import DEFAULT_CHUNK_SIZE, DEFAULT_SUFFIX
from ..transaction import TransactionContext
from .fileops import (
    ProgressCallback,
    cleanup_staging,
    copy_tree,
    move_into_place,
    remove_path,
)
from .manifest import build_manifest, build_source_manifest, verify_manifest
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

STAGING_PREFIX = "._tmp_"


@dataclass
class BackupJob:
    """Everything needed to run one backup.

    Attributes:
        sources: Selected roots, none nested in another
        output_dir: Directory that receives the versioned backup
        version: Version label appended to the backup name
        pack_files: Pack even a single source into a named folder
        folder_name: Name of the packed folder
        suffix: Text placed between the name and the version
        force: Replace an existing backup of the same name
        deselected: Excluded paths inside the sources
    """

    sources: list[str]
    output_dir: str
    version: str
    pack_files: bool = False
    folder_name: str = ""
    suffix: str = DEFAULT_SUFFIX
    force: bool = False
    deselected: list[str] = field(default_factory=list)

    @property
    def should_pack(self) -> bool:
        return len(self.sources) > 1 or self.pack_files

    def destination_name(self) -> str:
        """Name of the finished backup inside the output directory.

        Raises:
            ValidationError: If packing without a folder name.
        """
        if self.should_pack:
            if not self.folder_name or not self.folder_name.strip():
                raise ValidationError("Folder name is required when packing files")
            return f"{self.folder_name}{self.suffix}{self.version}"

        stem, extension = split_leaf(os.path.basename(self.sources[0]))
        return f"{stem}{self.suffix}{self.version}{extension}"


@dataclass
class BackupResult:
    success: bool
    destination: str
    files_verified: int = 0
    bytes_copied: int = 0
    duration_seconds: float = 0.0


def backup_destination(job: BackupJob) -> str:
    """Absolute path the backup for ``job`` is written to."""
    return os.path.join(normalize_path(job.output_dir), job.destination_name())


def _validate_job(job: BackupJob) -> None:
    if not job.sources:
        raise ValidationError("No sources specified")
    if not job.output_dir:
        raise ValidationError("No output directory specified")
    if not job.version or not job.version.strip():
        raise ValidationError("No version specified")
    for source in job.sources:
        if not os.path.lexists(source):
            raise ValidationError(f"Source not found: {source}")

    if job.should_pack:
        leaves: dict[str, str] = {}
        for source in job.sources:
            leaf = os.path.basename(normalize_path(source))
            if leaf in leaves:
                raise ValidationError(
                    f"Sources {leaves[leaf]} and {source} would both be packed as '{leaf}'"
                )
            leaves[leaf] = source


def create_backup(
    job: BackupJob,
    on_progress: ProgressCallback | None = None,
    policy: RetryPolicy | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> BackupResult:
    """Copy the selection into a new versioned backup and verify it.

    Raises:
        ValidationError: Before anything is written, for an unusable job.
        DestinationExistsError: If the destination exists and ``force`` is off.
        IntegrityError: If the staged copy does not match the sources.
        CopyError: If copying fails for any other reason.
    """
    _validate_job(job)
    sources = [normalize_path(s) for s in job.sources]
    output_dir = normalize_path(job.output_dir)
    destination = backup_destination(job)

    if output_dir in sources:
        raise ValidationError(f"Output directory cannot be a selected source: {output_dir}")
    if os.path.lexists(destination):
        if not job.force:
            raise DestinationExistsError(job.version, destination)
        logger.info("Will overwrite existing backup: %s", destination)

    os.makedirs(output_dir, exist_ok=True)

    packed = job.should_pack
    excluded_paths = list(job.deselected)
    if any(is_within(output_dir, source) for source in sources):
        # Staging and earlier backups live here
        logger.info("Leaving out the output directory %s", output_dir)
        excluded_paths.append(output_dir)
    excluded = PathFilter(excluded_paths)
    start = time.monotonic()

    logger.info(__util__.log_heading(f"Backup {job.version}"))
    logger.info("Sources: %d, packed: %s, excluded paths: %d", len(sources), packed, len(excluded))
    logger.info("Destination: %s", destination)

    with TransactionContext(
        "backup", source=os.pathsep.join(sources), destination=destination, version=job.version
    ) as tx:
        try:
            source_manifest = build_source_manifest(
                sources, excluded, packed=packed, chunk_size=chunk_size, policy=policy
            )
            logger.info("Calculated hashes for %d file(s)", len(source_manifest))

            staging = tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=output_dir)
            logger.debug("Created staging directory %s", staging)
            try:
                if packed:
                    # mkdtemp leaves staging at mode 0700; packed content gets its own folder
                    staged = os.path.join(staging, os.path.basename(destination))
                    os.makedirs(staged)
                    staged_root = staged
                else:
                    staged = os.path.join(staging, os.path.basename(sources[0]))
                    staged_root = staging

                bytes_copied = 0
                for source in sources:
                    bytes_copied += copy_tree(
                        source,
                        os.path.join(staged_root, os.path.basename(source)),
                        excluded=excluded,
                        chunk_size=chunk_size,
                        on_progress=on_progress,
                        policy=policy,
                    )

                staged_manifest = build_manifest(staged, chunk_size=chunk_size, policy=policy)
                verify_manifest(source_manifest, staged_manifest)
                logger.info("Verified %d file(s)", len(staged_manifest))

                if os.path.lexists(destination):
                    logger.info("Removing previous backup %s", destination)
                    remove_path(destination, policy)
                move_into_place(staged, destination, chunk_size=chunk_size, policy=policy)
            finally:
                cleanup_staging(staging, policy)
        except BackupVaultError:
            raise
        except OSError as e:
            raise CopyError(f"Backup failed: {e}") from e

        tx.set_size(bytes_copied)
        tx.add_detail("files_verified", len(source_manifest))

    duration = time.monotonic() - start
    logger.info("Backup created at %s in %.2fs", destination, duration)
    return BackupResult(
        success=True,
        destination=destination,
        files_verified=len(source_manifest),
        bytes_copied=bytes_copied,
        duration_seconds=duration,
    )
