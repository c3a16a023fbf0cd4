"""CLI Entry Point - Main command interface.

This module provides the main entry point for the exam-practice CLI.
It registers the practice commands and a few informational commands.
"""

import typer
from rich.console import Console
from rich.panel import Panel

from src.cli.commands.practice import run, show

# Main application
app = typer.Typer(
    name="exam-practice",
    help="Exam Practice - Timed exam sessions with self-assessment",
    no_args_is_help=True,
    pretty_exceptions_enable=True,
)
console = Console()

app.command("run")(run)
app.command("show")(show)


@app.command("config")
def config() -> None:
    """View and validate configuration."""
    from src.shared.config import get_settings
    from src.shared.feature_flags import get_feature_flags

    console.print(Panel.fit(
        "[bold]Configuration[/bold]",
        border_style="cyan",
    ))

    try:
        settings = get_settings()

        console.print("\n[bold]Environment:[/bold]")
        console.print(f"  Mode: {settings.environment}")
        console.print(f"  Log level: {settings.log_level}")

        console.print("\n[bold]Practice:[/bold]")
        console.print(f"  Exam library: {settings.exam_library_dir}")
        console.print(f"  Tick interval: {settings.practice_tick_seconds}s")
        console.print(f"  Device label: {settings.client_device}")

        console.print("\n[bold]Feature Flags:[/bold]")
        for flag, enabled in get_feature_flags().get_all_states().items():
            state = "[green]on[/green]" if enabled else "[dim]off[/dim]"
            console.print(f"  {flag}: {state}")

    except Exception as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        console.print("\n[yellow]Make sure the .env file holds valid settings.[/yellow]")
        raise typer.Exit(1)


@app.command("version")
def version() -> None:
    """Show version information."""
    console.print(Panel.fit(
        "[bold]Exam Practice CLI[/bold]\n"
        "Version: 0.1.0\n"
        "Timed exam practice with self-assessment",
        border_style="cyan",
    ))


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """Exam Practice - timed exam sessions with self-assessment.

    Use 'exam-practice --help' to see all available commands.

    Quick start:
      exam-practice show <exam_id>   - Look at an exam's elements
      exam-practice run <exam_id>    - Take the exam
    """
    from src.api.middleware.logging import setup_logging

    setup_logging("DEBUG" if verbose else "WARNING")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
