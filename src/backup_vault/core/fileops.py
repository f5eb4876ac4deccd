"""File primitives used by the backup and transfer engines.

All filesystem calls go through ``with_retry`` so busy files and exhausted
descriptor tables do not fail a job on the first attempt. Symlinked
directories and special files are skipped; symlinked regular files are copied
as their content.
"""

import logging
import os
import shutil
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from ..__util__ import CopyError, PathFilter
from ..config.schema import DEFAULT_CHUNK_SIZE
from .retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)


@dataclass
class CopyProgress:
    """Progress of one file copy, reported after every chunk."""

    source: str
    destination: str
    bytes_copied: int
    total_bytes: int
    percentage: float
    type: str = "file_progress"


ProgressCallback = Callable[[CopyProgress], None]


def _scandir(path: str, policy: RetryPolicy | None) -> list[os.DirEntry]:
    def _list() -> list[os.DirEntry]:
        with os.scandir(path) as it:
            return sorted(it, key=lambda e: e.name)

    return with_retry(_list, policy=policy, description=f"list {path}")


def iter_entries(
    root: str,
    excluded: PathFilter | None = None,
    policy: RetryPolicy | None = None,
) -> Iterator[tuple[str, str, bool]]:
    """Walk ``root`` top-down, yielding ``(path, relative_path, is_dir)``.

    ``root`` itself is not yielded. Anything matched by ``excluded`` is
    skipped together with its subtree. Listing errors propagate.
    """
    excluded = excluded or PathFilter()

    def _walk(directory: str, relative: str) -> Iterator[tuple[str, str, bool]]:
        for entry in _scandir(directory, policy):
            path = os.path.join(directory, entry.name)
            rel = os.path.join(relative, entry.name) if relative else entry.name
            if excluded.matches(path):
                logger.debug("Skipping excluded item: %s", path)
                continue
            if entry.is_dir(follow_symlinks=False):
                yield path, rel, True
                yield from _walk(path, rel)
            elif entry.is_file():
                yield path, rel, False
            else:
                logger.debug("Skipping special file or directory link: %s", path)

    yield from _walk(root, "")


def is_real_dir(path: str) -> bool:
    return os.path.isdir(path) and not os.path.islink(path)


def file_size(path: str, policy: RetryPolicy | None = None) -> int:
    return with_retry(
        lambda: os.stat(path).st_size, policy=policy, description=f"stat {path}"
    )


def copy_file(
    source: str,
    destination: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: ProgressCallback | None = None,
    policy: RetryPolicy | None = None,
) -> int:
    """Stream ``source`` into ``destination`` and check the resulting size.

    Returns:
        Number of bytes copied.

    Raises:
        CopyError: If the destination size differs from the source size.
    """
    total_bytes = file_size(source, policy)
    parent = os.path.dirname(destination)
    if parent:
        os.makedirs(parent, exist_ok=True)

    def _copy() -> int:
        copied = 0
        with open(source, "rb") as src, open(destination, "wb") as dst:
            while True:
                chunk = src.read(chunk_size)
                if not chunk:
                    break
                dst.write(chunk)
                copied += len(chunk)
                if on_progress is not None:
                    on_progress(
                        CopyProgress(
                            source=source,
                            destination=destination,
                            bytes_copied=copied,
                            total_bytes=total_bytes,
                            percentage=copied / total_bytes * 100 if total_bytes else 100.0,
                        )
                    )
        shutil.copystat(source, destination)
        return copied

    copied = with_retry(_copy, policy=policy, description=f"copy {source}")

    actual = file_size(destination, policy)
    if actual != total_bytes:
        raise CopyError(
            f"File size mismatch for {destination}: expected {total_bytes}, got {actual}"
        )
    return copied


def copy_tree(
    source: str,
    destination: str,
    *,
    excluded: PathFilter | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: ProgressCallback | None = None,
    policy: RetryPolicy | None = None,
) -> int:
    """Copy a file or directory tree, leaving out excluded paths.

    Returns:
        Total number of bytes copied.
    """
    excluded = excluded or PathFilter()
    if excluded.matches(source):
        logger.debug("Skipping excluded item: %s", source)
        return 0

    if not is_real_dir(source):
        if not os.path.isfile(source):
            raise CopyError(f"Not a regular file or directory: {source}")
        return copy_file(
            source,
            destination,
            chunk_size=chunk_size,
            on_progress=on_progress,
            policy=policy,
        )

    os.makedirs(destination, exist_ok=True)
    copied = 0
    for path, rel, is_dir in iter_entries(source, excluded, policy):
        target = os.path.join(destination, rel)
        if is_dir:
            os.makedirs(target, exist_ok=True)
        else:
            copied += copy_file(
                path,
                target,
                chunk_size=chunk_size,
                on_progress=on_progress,
                policy=policy,
            )
    return copied


def remove_path(path: str, policy: RetryPolicy | None = None) -> None:
    """Delete a file or a whole directory tree."""

    def _remove() -> None:
        if is_real_dir(path):
            shutil.rmtree(path)
        else:
            os.unlink(path)

    with_retry(_remove, policy=policy, description=f"remove {path}")


def move_into_place(
    staged: str,
    destination: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    policy: RetryPolicy | None = None,
) -> None:
    """Rename ``staged`` to ``destination``, copying across devices if needed."""
    try:
        with_retry(
            lambda: os.rename(staged, destination),
            policy=policy,
            description=f"rename {staged}",
        )
        return
    except OSError as e:
        logger.info("Rename failed (%s), falling back to copy and delete", e)

    copy_tree(staged, destination, chunk_size=chunk_size, policy=policy)
    remove_path(staged, policy)


def cleanup_staging(path: str, policy: RetryPolicy | None = None) -> bool:
    """Remove a staging directory; a directory that is already gone is fine.

    Returns:
        False if the directory could not be removed and was left in place.
    """
    try:
        remove_path(path, policy)
    except FileNotFoundError:
        logger.debug("Staging directory already gone: %s", path)
    except OSError as e:
        logger.warning("Failed to clean up staging directory %s: %s", path, e)
        return False
    return True
