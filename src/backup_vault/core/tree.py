"""Workspace tree nodes.

Nodes are kept in an arena keyed by absolute path. A node only records the
path of its parent; upward traversal goes through the arena map. Children are
listed from the filesystem every time they are requested and replace the
previous listing.
"""

import logging
import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from ..__util__ import is_descendant, is_within, iter_parents, normalize_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeNode:
    """One file or directory of the workspace."""

    path: str
    name: str
    is_dir: bool
    parent: str | None = None
    is_root: bool = False

    def sort_key(self) -> tuple:
        # Directories first, then case-insensitive name
        return (not self.is_dir, self.name.casefold(), self.name)


class NodeArena:
    """All nodes of one workspace, indexed by path."""

    def __init__(self, root: Path | str) -> None:
        root_path = normalize_path(root)
        self.root = TreeNode(
            path=root_path,
            name=os.path.basename(root_path) or root_path,
            is_dir=True,
            parent=None,
            is_root=True,
        )
        self._nodes: dict[str, TreeNode] = {root_path: self.root}

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, os.PathLike)) and is_within(
            normalize_path(path), self.root.path
        )

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, path: Path | str) -> TreeNode:
        """Return the node for ``path``, creating it from the filesystem if needed."""
        path = normalize_path(path)
        node = self._nodes.get(path)
        if node is None:
            parent = os.path.dirname(path)
            node = TreeNode(
                path=path,
                name=os.path.basename(path) or path,
                is_dir=os.path.isdir(path) and not os.path.islink(path),
                parent=parent if is_within(parent, self.root.path) else None,
            )
            self._nodes[path] = node
        return node

    def parent(self, path: Path | str) -> TreeNode | None:
        parent_path = self.node(path).parent
        return self.node(parent_path) if parent_path else None

    def ancestors(self, path: Path | str) -> list[str]:
        """Ancestor paths of ``path``, nearest first.

        Inside the workspace the walk follows the arena's parent links and
        stops at the root; outside it falls back to plain path parents.
        """
        path = normalize_path(path)
        if not is_descendant(path, self.root.path):
            return list(iter_parents(path))

        chain = []
        current = self.node(path).parent
        while current is not None:
            chain.append(current)
            current = self.node(current).parent
        return chain

    def children(self, path: Path | str) -> list[TreeNode]:
        """List the children of a directory node, directories first."""
        node = self.node(path)
        if not node.is_dir:
            return []

        nodes = []
        try:
            with os.scandir(node.path) as entries:
                for entry in entries:
                    child = TreeNode(
                        path=os.path.join(node.path, entry.name),
                        name=entry.name,
                        is_dir=entry.is_dir(follow_symlinks=False),
                        parent=node.path,
                    )
                    self._nodes[child.path] = child
                    nodes.append(child)
        except OSError as e:
            logger.error("Error reading directory %s: %s", node.path, e)
            return []

        nodes.sort(key=TreeNode.sort_key)
        return nodes


def iter_tree(
    root: str,
    prune: Callable[[str], bool] | None = None,
) -> Iterator[tuple[str, bool]]:
    """Yield ``(path, is_dir)`` for every entry below ``root``, top-down.

    Entries for which ``prune`` returns True are skipped along with their
    subtree. Unreadable directories are skipped; this walker serves the
    selection model, which only needs a best-effort view.
    """
    try:
        with os.scandir(root) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.debug("Skipping unreadable directory %s: %s", root, e)
        return

    for entry in entries:
        path = os.path.join(root, entry.name)
        if prune is not None and prune(path):
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        yield path, is_dir
        if is_dir:
            yield from iter_tree(path, prune)
