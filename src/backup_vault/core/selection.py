"""Hierarchical selection of workspace files and folders.

The selection is two sets of absolute paths:

- ``included``: explicitly selected paths; no entry is nested in another.
- ``excluded``: paths carved out of an included ancestor.

A path is included when it is in ``included`` itself, or when an ancestor is
in ``included`` and neither the path nor any directory between it and that
ancestor is in ``excluded``.

Every mutation is persisted through the settings store immediately and then
announced to subscribers.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..__util__ import (
    SelectionError,
    drop_nested_paths,
    is_descendant,
    is_within,
    normalize_path,
)
from ..config.schema import VaultSettings
from ..config.store import SettingsStore
from .backup import BackupJob
from .transfer import TransferJob
from .tree import NodeArena, iter_tree

logger = logging.getLogger(__name__)

SETTINGS_KEY = "backupSettings"


@dataclass
class SelectionCounts:
    """Tally of what the current selection covers."""

    folders: int = 0
    files: int = 0
    selected_folders: int = 0
    selected_files: int = 0

    @property
    def total(self) -> int:
        return self.folders + self.files

    def summary(self) -> str:
        if not (self.selected_folders or self.selected_files):
            return "None selected"
        return (
            f"{self.selected_folders} folders, {self.selected_files} files "
            f"({self.total} total)"
        )


class SelectionModel:
    """Included/excluded path sets for one workspace, plus its job settings."""

    def __init__(self, arena: NodeArena, store: SettingsStore) -> None:
        self.arena = arena
        self.store = store
        self.included: set[str] = set()
        self.excluded: set[str] = set()
        self.settings = VaultSettings()
        self._listeners: list[Callable[[], None]] = []
        self.load()

    @property
    def workspace_root(self) -> str:
        return self.arena.root.path

    # -- notifications ---------------------------------------------------

    def subscribe(self, callback: Callable[[], None]) -> None:
        """Call ``callback`` after every change to the selection or settings."""
        self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _refresh(self) -> None:
        for callback in list(self._listeners):
            callback()

    def _commit(self) -> None:
        self.save()
        self._refresh()

    # -- persistence -----------------------------------------------------

    def load(self) -> None:
        """Read the settings record, dropping paths that no longer exist."""
        settings = VaultSettings.from_record(self.store.get(SETTINGS_KEY))
        self.included = set(drop_nested_paths(_existing(settings.sources)))
        self.excluded = set(_existing(settings.deselected_sources))
        self.settings = settings
        logger.debug(
            "Loaded selection: %d included, %d excluded",
            len(self.included),
            len(self.excluded),
        )

    def save(self) -> None:
        """Write the selection and settings back to the store."""
        self.included = set(drop_nested_paths(_existing(self.included)))
        self.excluded = set(_existing(self.excluded))
        self.settings.sources = sorted(self.included)
        self.settings.deselected_sources = sorted(self.excluded)
        self.store.set(SETTINGS_KEY, self.settings.to_record())

    # -- queries ---------------------------------------------------------

    def is_included(self, path: Path | str, ancestors: list[str] | None = None) -> bool:
        """Return True if ``path`` is part of the selection.

        ``ancestors`` is the nearest-first chain of parent paths; it is taken
        from the node arena when not given.
        """
        path = normalize_path(path)
        if path in self.included:
            return True
        if path in self.excluded or not self.included:
            return False
        if ancestors is None:
            ancestors = self.arena.ancestors(path)
        for ancestor in ancestors:
            if ancestor in self.excluded:
                return False
            if ancestor in self.included:
                return True
        return False

    def covering_ancestor(self, path: str) -> str | None:
        """Nearest ancestor of ``path`` that is directly included."""
        for ancestor in self.arena.ancestors(path):
            if ancestor in self.included:
                return ancestor
        return None

    def selected_roots(self) -> list[str]:
        return sorted(self.included)

    def excluded_paths(self) -> list[str]:
        return sorted(self.excluded)

    def get_selection_counts(self) -> SelectionCounts:
        """Count folders and files covered by the selection.

        Excluded directories are pruned from the walk. Paths that cannot be
        read are skipped.
        """
        counts = SelectionCounts()
        for root in self.included:
            try:
                is_dir = os.path.isdir(root) and not os.path.islink(root)
                if not is_dir:
                    os.lstat(root)
            except OSError:
                continue

            if not is_dir:
                counts.selected_files += 1
                counts.files += 1
                continue

            counts.selected_folders += 1
            counts.folders += 1
            for _path, entry_is_dir in iter_tree(root, prune=self.excluded.__contains__):
                if entry_is_dir:
                    counts.folders += 1
                else:
                    counts.files += 1
        return counts

    # -- mutations -------------------------------------------------------

    def toggle(self, path: Path | str) -> bool:
        """Flip the selection state of ``path``.

        Returns:
            Whether ``path`` is included afterwards.

        Raises:
            SelectionError: If the path is missing or outside the workspace.
        """
        path = self._checked_path(path)
        if self.is_included(path):
            self.deselect(path)
        else:
            self.select(path)

        if len(self.included) > 1 and not self.settings.pack_files:
            logger.info("Multiple items selected, enabling file packing")
            self.settings.pack_files = True

        self._commit()
        return self.is_included(path)

    def select(self, path: Path | str) -> None:
        """Add ``path`` to the selection without persisting."""
        path = normalize_path(path)
        ancestor = self.covering_ancestor(path)

        if ancestor is not None:
            # Re-open the path inside its covering ancestor
            self._clear_exclusions(path)
            for parent in self.arena.ancestors(path):
                if parent == ancestor:
                    break
                self.excluded.discard(parent)
            return

        self.included = {p for p in self.included if not is_descendant(p, path)}
        self._clear_exclusions(path)
        self.included.add(path)

        if not self.arena.node(path).is_dir:
            self._fold_up(path)

    def deselect(self, path: Path | str) -> None:
        """Remove ``path`` from the selection without persisting."""
        path = normalize_path(path)

        if path in self.included:
            self.included.discard(path)
            self._clear_exclusions(path)
            return

        ancestor = self.covering_ancestor(path)
        if ancestor is None:
            return

        self.excluded.add(path)
        if self.arena.node(path).is_dir:
            self.excluded.update(p for p, _is_dir in iter_tree(path))

        if not self._has_included_descendant(ancestor):
            logger.debug("Nothing left under %s, dropping it", ancestor)
            self.included.discard(ancestor)
            self._clear_exclusions(ancestor)

    def select_none(self) -> None:
        self.included.clear()
        self.excluded.clear()
        self._commit()

    # -- settings --------------------------------------------------------

    def set_output_dir(self, path: Path | str | None) -> None:
        self.settings.output_dir = normalize_path(path) if path else ""
        self._commit()

    def set_sending_dir(self, path: Path | str | None) -> None:
        self.settings.sending_dir = normalize_path(path) if path else ""
        self._commit()

    def set_suffix(self, suffix: str) -> None:
        self.settings.suffix = suffix
        self._commit()

    def set_folder_name(self, name: str) -> None:
        self.settings.folder_name = name.strip()
        self._commit()

    def set_pack(self, enabled: bool) -> bool:
        """Enable or disable packing; it stays on while several roots are selected."""
        if not enabled and len(self.included) > 1:
            logger.info("Multiple items selected, file packing is required")
            enabled = True
        self.settings.pack_files = enabled
        self._commit()
        return enabled

    def toggle_pack(self) -> bool:
        return self.set_pack(not self.settings.pack_files)

    # -- jobs ------------------------------------------------------------

    def backup_job(self, version: str, force: bool = False) -> BackupJob:
        """Build a backup job from the current selection and settings."""
        return BackupJob(
            sources=self.selected_roots(),
            output_dir=self.settings.output_dir,
            version=version,
            pack_files=self.settings.pack_files or self.workspace_root in self.included,
            folder_name=self.settings.folder_name,
            suffix=self.settings.suffix,
            force=force,
            deselected=self.excluded_paths(),
        )

    def transfer_job(self) -> TransferJob:
        return TransferJob(
            sources=self.selected_roots(),
            sending_dir=self.settings.sending_dir,
            deselected=self.excluded_paths(),
        )

    # -- helpers ---------------------------------------------------------

    def _checked_path(self, path: Path | str) -> str:
        path = normalize_path(path)
        if not os.path.lexists(path):
            raise SelectionError(f"Path no longer exists: {path}")
        if path not in self.arena:
            raise SelectionError(f"Path is outside the workspace: {path}")
        return path

    def _clear_exclusions(self, path: str) -> None:
        self.excluded = {p for p in self.excluded if not is_within(p, path)}

    def _has_included_descendant(self, ancestor: str) -> bool:
        for _path in iter_tree(ancestor, prune=self.excluded.__contains__):
            return True
        return False

    def _fold_up(self, path: str) -> None:
        """Replace a fully selected set of siblings with their parent."""
        current = path
        while current != self.workspace_root:
            parent = self.arena.parent(current)
            if parent is None:
                return
            siblings = [child.path for child in self.arena.children(parent.path)]
            if not siblings or not all(s in self.included for s in siblings):
                return
            logger.debug("All entries of %s selected, selecting the folder", parent.path)
            self.included.difference_update(siblings)
            self._clear_exclusions(parent.path)
            self.included.add(parent.path)
            current = parent.path


def _existing(paths) -> list[str]:
    return [p for p in paths if os.path.lexists(p)]
