"""SHA-256 manifests for verifying staged backups against their sources.

A manifest maps a relative path (always ``/`` separated) to the hex digest of
the file's content. Directories carry no entry of their own.
"""

import hashlib
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..__util__ import IntegrityError, PathFilter
from ..config.schema import DEFAULT_CHUNK_SIZE
from .fileops import is_real_dir, iter_entries
from .retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

Manifest = dict[str, str]

# How many offending paths are named per category in an error message
MAX_LISTED = 3


def hash_file(
    path: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    policy: RetryPolicy | None = None,
) -> str:
    """Return the SHA-256 hex digest of a file's content."""

    def _hash() -> str:
        digest = hashlib.sha256()
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                digest.update(chunk)
        return digest.hexdigest()

    return with_retry(_hash, policy=policy, description=f"hash {path}")


def build_manifest(
    root: str,
    *,
    excluded: PathFilter | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    policy: RetryPolicy | None = None,
) -> Manifest:
    """Hash everything under ``root``.

    For a directory, keys are relative to it. A single file yields one entry
    keyed by its own name.
    """
    if not is_real_dir(root):
        return {os.path.basename(root): hash_file(root, chunk_size, policy)}

    manifest: Manifest = {}
    for path, rel, is_dir in iter_entries(root, excluded, policy):
        if not is_dir:
            manifest[rel.replace(os.sep, "/")] = hash_file(path, chunk_size, policy)
    return manifest


def build_source_manifest(
    roots: Iterable[str],
    excluded: PathFilter | None = None,
    *,
    packed: bool,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    policy: RetryPolicy | None = None,
) -> Manifest:
    """Hash the selected roots the way they will be laid out in the backup.

    Packed backups nest every root under its own name; an unpacked backup is
    the single root itself.
    """
    manifest: Manifest = {}
    for root in roots:
        entries = build_manifest(
            root, excluded=excluded, chunk_size=chunk_size, policy=policy
        )
        if packed and is_real_dir(root):
            leaf = os.path.basename(root)
            entries = {f"{leaf}/{key}": digest for key, digest in entries.items()}
        manifest.update(entries)
    logger.debug("Source manifest holds %d file(s)", len(manifest))
    return manifest


@dataclass
class ManifestDiff:
    """Differences between an expected and an actual manifest."""

    corrupted: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    unexpected: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.corrupted or self.missing or self.unexpected)

    def message(self) -> str:
        parts = ["Hash verification failed:"]
        for label, paths in (
            ("files corrupted", self.corrupted),
            ("files missing", self.missing),
            ("unexpected files", self.unexpected),
        ):
            if paths:
                listed = ", ".join(paths[:MAX_LISTED])
                more = "..." if len(paths) > MAX_LISTED else ""
                parts.append(f"{len(paths)} {label} ({listed}{more});")
        return " ".join(parts)


def compare_manifests(expected: Manifest, actual: Manifest) -> ManifestDiff:
    diff = ManifestDiff()
    for key in sorted(expected):
        digest = actual.get(key)
        if digest is None:
            diff.missing.append(key)
        elif digest != expected[key]:
            diff.corrupted.append(key)
    diff.unexpected = sorted(key for key in actual if key not in expected)
    return diff


def verify_manifest(expected: Manifest, actual: Manifest) -> None:
    """Raise ``IntegrityError`` unless both manifests are identical."""
    diff = compare_manifests(expected, actual)
    if not diff.ok:
        raise IntegrityError(diff.message())
