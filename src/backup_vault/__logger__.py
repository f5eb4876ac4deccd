# pyright: standard

"""backup-vault: backup_vault/__logger__.py
A common logger rendering through rich, with an optional rotating log file.
"""

import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

# Initialize basic console and handler
cons = Console(stderr=True)
rich_handler = RichHandler(console=cons, show_path=False)
# Create a logger directly
logger = logging.getLogger("backup_vault")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def create_logger(level: str = "INFO", log_file: Path | str | None = None) -> None:
    """Helper function to setup logging for a command run.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path of a rotating log file that always records DEBUG
    """
    # pylint: disable=global-statement
    global cons, rich_handler

    cons = Console(stderr=True)
    rich_handler = RichHandler(console=cons, show_path=False)
    rich_handler.setLevel(getattr(logging, level.upper(), logging.INFO))

    handlers: list[logging.Handler] = [rich_handler]

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        format="%(message)s",
        datefmt="%H:%M:%S",
        level=logging.DEBUG if log_file else rich_handler.level,
        handlers=handlers,
        force=True,
    )
    logger.setLevel(logging.NOTSET)
