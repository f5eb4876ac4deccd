"""CLI dispatcher.

Builds the subcommand parser and routes each command to its handler module.
Handlers are imported lazily and return an integer exit code.
"""

import argparse
import sys
from typing import Callable

from .common import add_progress_args, add_verbosity_args


def create_subcommand_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="backup-vault",
        description="Select files in a workspace and back them up as verified versions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_verbosity_args(parser)

    parser.add_argument(
        "-V",
        "--version",
        dest="show_version",
        action="store_true",
        help="Show version and exit",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Path to configuration file",
    )

    parser.add_argument(
        "-w",
        "--workspace",
        metavar="DIR",
        help="Workspace root (default: current directory)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands (use 'command --help' for details)",
    )

    # tree command
    tree_parser = subparsers.add_parser(
        "tree",
        help="Show the workspace tree",
        description="Print the workspace tree, marking selected entries",
    )
    tree_parser.add_argument(
        "path",
        nargs="?",
        help="Directory to start from, relative to the workspace root",
    )
    tree_parser.add_argument(
        "-d",
        "--depth",
        type=int,
        default=3,
        metavar="N",
        help="Number of levels to show (default: 3)",
    )

    # toggle command
    toggle_parser = subparsers.add_parser(
        "toggle",
        help="Select or deselect paths",
        description="Flip the selection state of each given path",
    )
    toggle_parser.add_argument(
        "paths",
        nargs="+",
        metavar="PATH",
        help="Files or folders inside the workspace (relative to its root)",
    )

    # clear command
    subparsers.add_parser(
        "clear",
        help="Clear the selection",
        description="Deselect everything",
    )

    # set command
    set_parser = subparsers.add_parser(
        "set",
        help="Change backup and send settings",
        description="Update the settings used by backup and send",
    )
    set_parser.add_argument(
        "--output-dir",
        metavar="DIR",
        help="Directory that receives backups",
    )
    set_parser.add_argument(
        "--sending-dir",
        metavar="DIR",
        help="Directory that 'send' copies into",
    )
    set_parser.add_argument(
        "--suffix",
        metavar="TEXT",
        help="Text placed before the version label (default: 'v')",
    )
    set_parser.add_argument(
        "--folder-name",
        metavar="NAME",
        help="Folder name for packed backups",
    )
    set_parser.add_argument(
        "--pack",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Pack the selection into one named folder",
    )

    # status command
    status_parser = subparsers.add_parser(
        "status",
        help="Show selection and settings",
        description="Display the selection summary, settings and recent jobs",
    )
    status_parser.add_argument(
        "-t",
        "--transactions",
        action="store_true",
        help="Show recent backup and send history",
    )
    status_parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=10,
        metavar="N",
        help="Number of history records to show (default: 10)",
    )

    # backup command
    backup_parser = subparsers.add_parser(
        "backup",
        help="Create a versioned backup of the selection",
        description="Copy the selection into the output directory and verify it",
    )
    backup_parser.add_argument(
        "version",
        help="Version label, appended after the suffix",
    )
    backup_parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite an existing backup of the same version",
    )
    add_progress_args(backup_parser)

    # send command
    send_parser = subparsers.add_parser(
        "send",
        help="Copy the selection to the sending directory",
        description="Copy each selected item into the sending directory",
    )
    add_progress_args(send_parser)

    # config command with subcommands
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Validate or initialize configuration",
    )
    config_subs = config_parser.add_subparsers(dest="config_action")

    config_subs.add_parser(
        "validate",
        help="Validate configuration file",
    )

    init_parser = config_subs.add_parser(
        "init",
        help="Generate example configuration",
    )
    init_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )

    return parser


def run_subcommand(args: argparse.Namespace) -> int:
    """Run the specified subcommand.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    from .. import __version__

    if args.show_version:
        print(f"backup-vault {__version__}")
        return 0

    if not args.command:
        print("No command specified. Use --help for usage information.")
        return 1

    # Route to appropriate command handler
    handlers: dict[str, Callable] = {
        "tree": cmd_tree,
        "toggle": cmd_toggle,
        "clear": cmd_clear,
        "set": cmd_set,
        "status": cmd_status,
        "backup": cmd_backup,
        "send": cmd_send,
        "config": cmd_config,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


def cmd_tree(args: argparse.Namespace) -> int:
    """Execute tree command."""
    from .select_cmd import execute_tree

    return execute_tree(args)


def cmd_toggle(args: argparse.Namespace) -> int:
    """Execute toggle command."""
    from .select_cmd import execute_toggle

    return execute_toggle(args)


def cmd_clear(args: argparse.Namespace) -> int:
    """Execute clear command."""
    from .select_cmd import execute_clear

    return execute_clear(args)


def cmd_set(args: argparse.Namespace) -> int:
    """Execute set command."""
    from .select_cmd import execute_set

    return execute_set(args)


def cmd_status(args: argparse.Namespace) -> int:
    """Execute status command."""
    from .status import execute_status

    return execute_status(args)


def cmd_backup(args: argparse.Namespace) -> int:
    """Execute backup command."""
    from .backup_cmd import execute_backup

    return execute_backup(args)


def cmd_send(args: argparse.Namespace) -> int:
    """Execute send command."""
    from .send_cmd import execute_send

    return execute_send(args)


def cmd_config(args: argparse.Namespace) -> int:
    """Execute config command."""
    from .config_cmd import execute_config

    return execute_config(args)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for backup-vault CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_subcommand_parser()
    args = parser.parse_args(argv)

    return run_subcommand(args)
