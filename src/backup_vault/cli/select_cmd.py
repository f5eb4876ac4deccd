"""Selection commands: tree, toggle, clear and set."""

import argparse
import logging
import os

from rich.console import Console
from rich.tree import Tree

from ..__util__ import SelectionError, normalize_path
from ..config import ConfigError
from ..core.selection import SelectionModel
from ..core.tree import TreeNode
from .common import prepare_command

logger = logging.getLogger(__name__)

SELECTED_MARK = "[green]✓[/green]"
UNSELECTED_MARK = "[dim]·[/dim]"


def _resolve(model: SelectionModel, path: str) -> str:
    """Resolve ``path`` relative to the workspace root."""
    return normalize_path(os.path.join(model.workspace_root, os.path.expanduser(path)))


def _label(model: SelectionModel, node: TreeNode) -> str:
    mark = SELECTED_MARK if model.is_included(node.path) else UNSELECTED_MARK
    name = f"[bold blue]{node.name}/[/bold blue]" if node.is_dir else node.name
    return f"{mark} {name}"


def _add_children(model: SelectionModel, node: TreeNode, branch: Tree, depth: int) -> None:
    for child in model.arena.children(node.path):
        sub = branch.add(_label(model, child))
        if child.is_dir and depth > 1:
            _add_children(model, child, sub, depth - 1)


def execute_tree(args: argparse.Namespace) -> int:
    """Print the workspace tree with selection markers."""
    try:
        _config, model = prepare_command(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    start = model.arena.node(_resolve(model, args.path)) if args.path else model.arena.root
    if start.path not in model.arena:
        logger.error("Path is outside the workspace: %s", start.path)
        return 1
    if not start.is_dir:
        logger.error("Not a directory: %s", start.path)
        return 1

    tree = Tree(_label(model, start), guide_style="dim")
    _add_children(model, start, tree, max(args.depth, 1))

    console = Console()
    console.print(tree)
    console.print(f"Selection: {model.get_selection_counts().summary()}")
    return 0


def execute_toggle(args: argparse.Namespace) -> int:
    """Toggle each path given on the command line."""
    try:
        _config, model = prepare_command(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    exit_code = 0
    for path in [_resolve(model, p) for p in args.paths]:
        try:
            included = model.toggle(path)
        except SelectionError as e:
            logger.error("%s", e)
            exit_code = 1
            continue
        print(f"{'Selected' if included else 'Deselected'}: {path}")

    print(f"Selection: {model.get_selection_counts().summary()}")
    if model.settings.pack_files and len(model.included) > 1:
        print("Multiple items selected - file packing is required")
    return exit_code


def execute_clear(args: argparse.Namespace) -> int:
    """Deselect everything."""
    try:
        _config, model = prepare_command(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    model.select_none()
    print("Selection cleared")
    return 0


def execute_set(args: argparse.Namespace) -> int:
    """Update backup and send settings."""
    try:
        _config, model = prepare_command(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    changed = False
    if args.output_dir is not None:
        model.set_output_dir(args.output_dir)
        changed = True
    if args.sending_dir is not None:
        model.set_sending_dir(args.sending_dir)
        changed = True
    if args.suffix is not None:
        model.set_suffix(args.suffix)
        changed = True
    if args.folder_name is not None:
        model.set_folder_name(args.folder_name)
        changed = True
    if args.pack is not None:
        if model.set_pack(args.pack) != args.pack:
            print("Multiple items selected - file packing is required")
        changed = True

    if not changed:
        print("Nothing to change. Use --help to see the available settings.")

    settings = model.settings
    print(f"Output directory:  {settings.output_dir or '(not set)'}")
    print(f"Sending directory: {settings.sending_dir or '(not set)'}")
    print(f"Suffix:            {settings.suffix!r}")
    print(f"Folder name:       {settings.folder_name or '(not set)'}")
    print(f"Pack files:        {'yes' if settings.pack_files else 'no'}")
    return 0
