"""CLI Commands - Command modules."""

from src.cli.commands.practice import run, show

__all__ = [
    "run",
    "show",
]
