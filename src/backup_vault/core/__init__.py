"""Core of backup-vault: the selection model and the backup/transfer engine."""

from .backup import BackupJob, BackupResult, backup_destination, create_backup
from .fileops import CopyProgress
from .retry import RetryPolicy, is_transient_error, with_retry
from .selection import SelectionCounts, SelectionModel
from .transfer import TransferJob, TransferResult, send_files, would_overwrite
from .tree import NodeArena, TreeNode

__all__ = [
    "BackupJob",
    "BackupResult",
    "backup_destination",
    "create_backup",
    "CopyProgress",
    "RetryPolicy",
    "is_transient_error",
    "with_retry",
    "SelectionCounts",
    "SelectionModel",
    "TransferJob",
    "TransferResult",
    "send_files",
    "would_overwrite",
    "NodeArena",
    "TreeNode",
]
