"""Practice Commands - Take an exam in the terminal, inspect exams."""

import asyncio
import getpass
import logging
from pathlib import Path
from typing import Optional
from uuid import NAMESPACE_URL, UUID, uuid5

import typer
from rich.console import Console
from rich.prompt import Prompt

from src.cli.ui.display import (
    display_exam_intro,
    display_exam_outline,
    display_question,
    display_result,
    display_review,
    display_score_summary,
)
from src.cli.ui.prompts import (
    NAVIGATION_COMMANDS,
    ask_level,
    ask_line,
    confirm_action,
    input_help,
    parse_answer,
)
from src.modules.exam.interface import IExamLoader
from src.modules.exam.service import JsonFileExamLoader
from src.modules.practice.engine import PracticeSession
from src.modules.practice.interface import FinalizationResult
from src.modules.practice.service import PracticeService
from src.modules.practice.timers import AsyncioTickSource
from src.shared.database import close_db
from src.shared.exceptions import (
    ExperienceUpdateError,
    InvalidAnswerError,
    InvalidTransitionError,
    PracticeError,
    SessionSubmissionError,
)
from src.shared.feature_flags import is_database_persistence_enabled
from src.shared.models import SessionPhase, SessionTab
from src.shared.service_registry import get_service_registry

logger = logging.getLogger(__name__)
console = Console()

# How often the prompt watcher checks for an auto-advance
_WATCH_SECONDS = 0.2


def run_async(coro):
    """Helper to run async functions in sync context."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def default_learner_id() -> UUID:
    """Stable learner id for the local OS user."""
    return uuid5(NAMESPACE_URL, f"exam-practice:{getpass.getuser()}")


def _exam_loader(library: Optional[Path]) -> IExamLoader:
    if library is not None:
        return JsonFileExamLoader(library)
    return get_service_registry().get_exam_loader()


# =============================================================================
# Session runner
# =============================================================================


async def read_line(session: PracticeSession, prompt_text: str) -> Optional[str]:
    """Read a line while session ticks keep running.

    Returns:
        The line, or None if the element changed (time ran out) meanwhile
    """
    visit = session.visit_id
    reader = asyncio.ensure_future(asyncio.to_thread(ask_line, prompt_text))
    notified = False
    while not reader.done():
        await asyncio.wait({reader}, timeout=_WATCH_SECONDS)
        if session.visit_id != visit and not notified:
            console.print("\n[yellow]Time is up, moving on. Press Enter.[/yellow]")
            notified = True

    line = reader.result()
    if session.visit_id != visit:
        logger.debug("Discarding input typed for an expired question")
        return None
    return line


async def answer_questions(session: PracticeSession) -> bool:
    """Drive the question phase.

    Returns:
        False if the learner quit
    """
    while session.phase == SessionPhase.IN_QUESTION:
        view = session.view()
        display_question(view, session.elapsed.format(), session.countdown)
        console.print(f"[dim]{input_help(view)}[/dim]")

        line = await read_line(session, ">")
        if line is None:
            continue

        command = NAVIGATION_COMMANDS.get(line.strip().lower())
        if command is None and not view.accepts_input:
            command = "next"

        try:
            if command == "quit":
                return False
            if command == "next":
                session.next()
            elif command == "back":
                session.back()
            elif command == "finish":
                session.finish()
            elif command == "intro":
                session.set_tab(SessionTab.INTRO)
                display_exam_intro(session.exam)
                session.set_tab(SessionTab.QUESTIONS)
            else:
                session.answer(parse_answer(view, line))
        except (ValueError, InvalidAnswerError, InvalidTransitionError) as e:
            message = e.message if isinstance(e, PracticeError) else str(e)
            console.print(f"[red]{message}[/red]")

    return True


async def review(session: PracticeSession) -> str:
    """Rate every question, then pick what to do next.

    Returns:
        "save", "reopen" or "quit"
    """
    choices = ["s", "r", "q"]
    menu = "[s]ave results, [r]ate again, [q]uit without saving"
    if session.element_count:
        choices.insert(2, "b")
        menu = "[s]ave results, [r]ate again, [b]ack to last question, [q]uit without saving"

    rate = True
    while True:
        items = session.review_items()
        display_review(items, session.score_summary(), session.elapsed.format_long())

        if rate:
            for item in items:
                value = await asyncio.to_thread(ask_level, f"#{item.position}", int(item.level))
                session.set_level(item.question_id, value)
            display_score_summary(session.score_summary())

        choice = await asyncio.to_thread(Prompt.ask, menu, choices=choices, default="s")
        if choice == "s":
            return "save"
        if choice == "b":
            return "reopen"
        if choice == "q":
            return "quit"
        rate = True


async def save(session: PracticeSession) -> bool:
    """Save results, offering retries.

    Returns:
        True once the record is saved (even if experience is still pending)
    """
    try:
        result = await session.save_results()
    except SessionSubmissionError as e:
        console.print(f"[red]Could not save results:[/red] {e.message}")
        return False
    except ExperienceUpdateError as e:
        console.print(f"[yellow]{e.message}[/yellow]")
        result = await _retry_experience(session)
        if result is None:
            return True

    display_result(result)
    return True


async def _retry_experience(session: PracticeSession) -> Optional[FinalizationResult]:
    while await asyncio.to_thread(confirm_action, "Retry the experience update?"):
        try:
            return await session.retry_experience()
        except ExperienceUpdateError as e:
            console.print(f"[yellow]{e.message}[/yellow]")
    console.print("[dim]Experience was not applied for this session.[/dim]")
    return None


async def run_session(loader: IExamLoader, learner_id: UUID, exam_id: str) -> None:
    """Take one exam interactively from intro to saved results."""
    registry = get_service_registry()
    service = PracticeService(
        loader,
        registry.get_session_record_sink(),
        registry.get_experience_store(),
        AsyncioTickSource(),
    )

    def back_to_library(result: FinalizationResult) -> None:
        console.print("[dim]Back to the exam library.[/dim]")

    session = await service.create_session(learner_id, exam_id, on_return_to_library=back_to_library)
    try:
        display_exam_intro(session.exam)
        if not await asyncio.to_thread(confirm_action, "Start the exam?"):
            service.abandon_session(session.id)
            return

        session.start()
        while True:
            if session.phase == SessionPhase.IN_QUESTION and not await answer_questions(session):
                service.abandon_session(session.id)
                console.print("[yellow]Exam abandoned.[/yellow]")
                return

            action = await review(session)
            if action == "quit":
                service.abandon_session(session.id)
                console.print("[yellow]Results discarded.[/yellow]")
                return
            if action == "reopen":
                session.reopen_last_question()
                continue
            if await save(session):
                return
    finally:
        session.close()
        if is_database_persistence_enabled():
            await close_db()


async def load_exam(loader: IExamLoader, exam_id: str):
    try:
        return await loader.load_exam(exam_id)
    finally:
        if is_database_persistence_enabled():
            await close_db()


# =============================================================================
# Commands
# =============================================================================


def run(
    exam_id: str = typer.Argument(..., help="Exam to take"),
    learner: Optional[str] = typer.Option(
        None,
        "--learner",
        "-l",
        help="Learner UUID (defaults to one derived from your OS user)",
    ),
    library: Optional[Path] = typer.Option(
        None,
        "--library",
        help="Directory of <exam_id>.json files (overrides configured storage)",
    ),
) -> None:
    """Take an exam: timed questions, self-assessment, saved results."""
    try:
        learner_id = UUID(learner) if learner else default_learner_id()
    except ValueError:
        console.print(f"[red]Invalid learner id: {learner}[/red]")
        raise typer.Exit(1)

    try:
        run_async(run_session(_exam_loader(library), learner_id, exam_id))
    except PracticeError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)


def show(
    exam_id: str = typer.Argument(..., help="Exam to show"),
    library: Optional[Path] = typer.Option(
        None,
        "--library",
        help="Directory of <exam_id>.json files (overrides configured storage)",
    ),
) -> None:
    """Show the outline of an exam without starting it."""
    try:
        exam = run_async(load_exam(_exam_loader(library), exam_id))
    except PracticeError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    display_exam_outline(exam)
