"""CLI Module - Command-line interface for exam practice.

This module provides an interactive CLI built with Typer and Rich.

Usage:
    exam-practice --help              Show all commands
    exam-practice show <exam_id>      Show an exam's outline
    exam-practice run <exam_id>       Take an exam
    exam-practice config              Show configuration
"""

from src.cli.main import app, main

__all__ = ["app", "main"]
