"""backup-vault: backup_vault/__init__.py."""

from pathlib import Path


__version__ = "0.3.0"


def encode_path_for_dir(path: Path | str) -> str:
    """Replace path separators with '_' and drop the leading slash."""
    return str(path).strip("/").replace("/", "_").replace("\\", "_") or "root"
