"""backup-vault: backup_vault/__util__.py
Common errors and path helpers shared by the selection model and the engine.
"""

import os
from collections.abc import Iterable, Iterator
from pathlib import Path


class BackupVaultError(Exception):
    """Base class for all errors raised by backup-vault."""

    pass


class ValidationError(BackupVaultError):
    """A job was rejected before any filesystem change was made."""

    pass


class DestinationExistsError(ValidationError):
    """The backup destination already exists and overwrite was not forced."""

    def __init__(self, version: str, destination: str) -> None:
        super().__init__(
            f"A backup with version '{version}' already exists at: {destination}"
        )
        self.version = version
        self.destination = destination


class IntegrityError(BackupVaultError):
    """Copied content does not match the source manifest."""

    pass


class CopyError(BackupVaultError):
    """A single file copy produced a destination of the wrong size."""

    pass


class SelectionError(BackupVaultError):
    """A selection change was requested for a path that cannot be selected."""

    pass


def log_heading(caption: str) -> str:
    """Return a formatted heading for section starts in the log."""
    return f"--[ {caption} ]".ljust(60, "-")


def normalize_path(path: Path | str) -> str:
    """Return an absolute, user-expanded string form of ``path``."""
    return os.path.abspath(os.path.expanduser(os.fspath(path)))


def is_descendant(path: str, ancestor: str) -> bool:
    """True if ``path`` lies strictly below ``ancestor``."""
    prefix = ancestor if ancestor.endswith(os.sep) else ancestor + os.sep
    return path != ancestor and path.startswith(prefix)


def is_within(path: str, ancestor: str) -> bool:
    """True if ``path`` is ``ancestor`` itself or lies below it."""
    return path == ancestor or is_descendant(path, ancestor)


def iter_parents(path: str) -> Iterator[str]:
    """Yield the parent directories of ``path``, nearest first."""
    current = path
    while True:
        parent = os.path.dirname(current)
        if parent == current:
            return
        yield parent
        current = parent


def drop_nested_paths(paths: Iterable[str]) -> list[str]:
    """Remove every path that has an ancestor in the same collection.

    Shorter paths are considered first so a parent always wins over its
    children. The result is sorted.
    """
    kept: list[str] = []
    for path in sorted(set(paths), key=lambda p: (len(p), p)):
        if not any(is_descendant(path, parent) for parent in kept):
            kept.append(path)
    return sorted(kept)


class PathFilter:
    """Match paths that equal, or are nested under, any excluded path."""

    def __init__(self, excluded: Iterable[Path | str] = ()) -> None:
        self._excluded = {normalize_path(p) for p in excluded}

    def __bool__(self) -> bool:
        return bool(self._excluded)

    def __len__(self) -> int:
        return len(self._excluded)

    def matches(self, path: Path | str) -> bool:
        """Return True if ``path`` is excluded directly or through a parent."""
        if not self._excluded:
            return False
        path = os.fspath(path)
        if path in self._excluded:
            return True
        return any(parent in self._excluded for parent in iter_parents(path))


def split_leaf(name: str) -> tuple[str, str]:
    """Split a leaf name into stem and extension (``.bashrc`` has none)."""
    stem, extension = os.path.splitext(name)
    return stem, extension


def bytes_to_human(size: float) -> str:
    """Format a byte count using binary units."""
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if abs(size) < 1024 or unit == "TiB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TiB"
