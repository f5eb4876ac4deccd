"""Command line interface for backup-vault."""

from .dispatcher import main

__all__ = ["main"]
