"""Shared CLI utilities and argument parsers."""

import argparse
import contextlib
import logging
import os
from collections.abc import Iterator
from pathlib import Path

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TimeElapsedColumn,
)
from rich.prompt import Confirm

from .. import __logger__
from ..__logger__ import create_logger
from ..config import Config, JsonSettingsStore, resolve_config
from ..core.fileops import CopyProgress, ProgressCallback
from ..core.selection import SelectionModel
from ..core.tree import NodeArena
from ..transaction import set_transaction_log

logger = logging.getLogger(__name__)


def create_global_parser() -> argparse.ArgumentParser:
    """Create a parser with global options that can be used as a parent."""
    parser = argparse.ArgumentParser(add_help=False)
    add_verbosity_args(parser)
    return parser


def add_verbosity_args(parser: argparse.ArgumentParser) -> None:
    """Add verbosity-related arguments to a parser."""
    group = parser.add_argument_group("Output options")
    group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )


def add_progress_args(parser: argparse.ArgumentParser) -> None:
    """Add progress and confirmation arguments to a job command."""
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not draw a progress bar while copying",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Answer yes to overwrite confirmations",
    )


def get_log_level(args: argparse.Namespace) -> str:
    """Determine log level from parsed arguments.

    Args:
        args: Parsed command line arguments

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR)
    """
    if getattr(args, "debug", False):
        return "DEBUG"
    elif getattr(args, "quiet", False):
        return "WARNING"
    elif getattr(args, "verbose", False):
        return "DEBUG"
    else:
        return "INFO"


def prepare_command(args: argparse.Namespace) -> tuple[Config, SelectionModel]:
    """Load configuration, set up logging and open the workspace selection.

    Raises:
        ConfigError: If the configuration file is missing or invalid.
    """
    config, config_path, warnings = resolve_config(getattr(args, "config", None))
    create_logger(get_log_level(args), config.global_config.log_file)
    if config_path:
        logger.debug("Using configuration %s", config_path)
    for warning in warnings:
        logger.warning("Config: %s", warning)

    set_transaction_log(config.get_transaction_log())

    workspace = getattr(args, "workspace", None) or os.getcwd()
    arena = NodeArena(workspace)
    store = JsonSettingsStore(config.get_state_file(arena.root.path))
    logger.debug("Workspace %s, settings in %s", arena.root.path, store.path)
    return config, SelectionModel(arena, store)


def confirm(question: str, assume_yes: bool = False) -> bool:
    """Ask a yes/no question; a closed stdin counts as no."""
    if assume_yes:
        return True
    try:
        return Confirm.ask(question, default=False, console=__logger__.cons)
    except EOFError:
        return False


@contextlib.contextmanager
def copy_progress(enabled: bool = True) -> Iterator[ProgressCallback | None]:
    """Draw a progress bar for the file being copied.

    Yields the callback to hand to the engine, or None when disabled.
    """
    if not enabled:
        yield None
        return

    progress = Progress(
        "[progress.description]{task.description}",
        BarColumn(),
        "[progress.percentage]{task.percentage:>3.0f}%",
        DownloadColumn(),
        SpinnerColumn(),
        TimeElapsedColumn(),
        console=__logger__.cons,
        transient=True,
    )
    task_id = progress.add_task("Copying", total=None)
    current: list[str] = []

    def _update(event: CopyProgress) -> None:
        if current != [event.source]:
            current[:] = [event.source]
            progress.reset(
                task_id,
                total=event.total_bytes,
                description=Path(event.source).name,
            )
        progress.update(task_id, completed=event.bytes_copied)

    with progress:
        yield _update
