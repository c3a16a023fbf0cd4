"""Display Utilities - Rich output for exams, questions and results."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from src.modules.exam.interface import Exam, QuestionKind
from src.modules.practice.answers import QuestionView
from src.modules.practice.interface import FinalizationResult
from src.modules.practice.scoring import ReviewItem, ScoreSummary
from src.modules.practice.timers import QuestionCountdown, format_duration
from src.shared.models import TimerUrgency

console = Console()

URGENCY_STYLES = {
    TimerUrgency.CALM: "green",
    TimerUrgency.WARNING: "yellow",
    TimerUrgency.CRITICAL: "red",
}


def display_exam_intro(exam: Exam) -> None:
    """Show the exam landing panel."""
    body = f"[bold cyan]{escape(exam.title)}[/bold cyan]"
    if exam.description:
        body += f"\n{escape(exam.description)}"
    body += (
        f"\n\n[dim]{len(exam.scorable_questions)} questions, "
        f"{exam.element_count} elements[/dim]"
    )
    console.print(Panel.fit(body, border_style="cyan"))

    if exam.introduction_text:
        console.print(Panel(
            escape(exam.introduction_text),
            title="[bold]Introduction[/bold]",
            border_style="dim",
            padding=(1, 2),
        ))


def display_exam_outline(exam: Exam) -> None:
    """Table of all elements of an exam."""
    display_exam_intro(exam)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=3)
    table.add_column("Type", min_width=14)
    table.add_column("Prompt", min_width=30)
    table.add_column("Limit", width=7)

    for i, element in enumerate(exam.elements, 1):
        text = element.prompt or getattr(element, "front", "") or getattr(element, "title", "")
        if len(text) > 50:
            text = text[:50] + "..."
        kind = element.kind.value
        if element.kind.is_filler:
            kind = f"[dim]{kind}[/dim]"
        limit = f"{element.time_limit_seconds}s" if element.time_limit_seconds else "-"
        table.add_row(str(i), kind, escape(text), limit)

    console.print(table)


def display_question(
    view: QuestionView,
    elapsed: str,
    countdown: QuestionCountdown | None = None,
) -> None:
    """Render one exam element with its current answer."""
    timer = f"[dim]{elapsed}[/dim]"
    if countdown is not None:
        style = URGENCY_STYLES[countdown.urgency]
        timer += f"  [{style}]{countdown.remaining}s left[/{style}]"

    lines: list[str] = []
    if view.prompt and view.kind != QuestionKind.CLOZE:
        lines.append(f"[bold]{escape(view.prompt)}[/bold]")

    if view.kind == QuestionKind.FLASHCARD:
        lines.append(f"[bold]{escape(view.front)}[/bold]")
    elif view.kind in (QuestionKind.SINGLE_CHOICE, QuestionKind.MULTIPLE_CHOICE):
        marker = "( )" if view.kind == QuestionKind.SINGLE_CHOICE else "[ ]"
        for option in view.options:
            box = marker.replace(" ", "*") if option.selected else marker
            lines.append(f"  [cyan]{option.index + 1}[/cyan] {escape(box)} {escape(option.label)}")
    elif view.kind == QuestionKind.TRUE_FALSE:
        current = {True: "True", False: "False"}.get(view.truth_value, "unanswered")
        lines.append(f"Your answer: [cyan]{current}[/cyan]")
    elif view.kind == QuestionKind.CLOZE:
        rendered = ""
        for part in view.cloze_parts:
            if part.gap is None:
                rendered += escape(part.text)
            else:
                rendered += f"[cyan]\\[{escape(part.value or part.placeholder)}][/cyan]"
        lines.append(rendered)
    elif view.kind == QuestionKind.STEPS:
        for slot in view.step_slots:
            lines.append(f"  {slot.position + 1}. {escape(slot.value) if slot.value else f'[dim]{slot.placeholder}[/dim]'}")
    elif view.kind == QuestionKind.INFO_BLOCK:
        if view.title:
            lines.append(f"[bold]{escape(view.title)}[/bold]")
        lines.append(escape(view.content))
    elif view.kind == QuestionKind.VIDEO_EMBED:
        if view.title:
            lines.append(f"[bold]{escape(view.title)}[/bold]")
        if view.description:
            lines.append(escape(view.description))
        lines.append(f"[blue]{view.embed_url or 'No video'}[/blue]")

    if view.text_value:
        lines.append(f"\nYour answer: [cyan]{escape(view.text_value)}[/cyan]")
    if view.hint:
        lines.append(f"\n[dim]Hint: {escape(view.hint)}[/dim]")

    console.print()
    console.print(Panel(
        "\n".join(lines) or " ",
        title=f"[bold blue]{view.heading}[/bold blue]",
        subtitle=timer,
        border_style="dim" if not view.accepts_input else "blue",
        padding=(1, 2),
    ))


def display_review(items: list[ReviewItem], summary: ScoreSummary, duration: str) -> None:
    """Review table with learner and model answers side by side."""
    console.print()
    console.print(Panel.fit(
        f"[bold magenta]Self-assessment[/bold magenta]\nYou took {duration}.",
        border_style="magenta",
    ))

    if not items:
        console.print("[dim]This exam has no questions to rate.[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=3)
    table.add_column("Question", min_width=20)
    table.add_column("Your answer", min_width=15)
    table.add_column("Model answer", min_width=15)
    table.add_column("Level", width=5)
    table.add_column("Points", width=9)

    for item in items:
        table.add_row(
            str(item.position),
            escape(item.prompt),
            escape(item.learner_answer),
            escape(item.model_answer),
            item.level.label,
            f"{item.points}/{item.max_points}",
        )

    console.print(table)
    display_score_summary(summary)


def display_score_summary(summary: ScoreSummary) -> None:
    score_color = "green" if summary.total_score >= 70 else "yellow" if summary.total_score >= 50 else "red"
    console.print(
        f"\nScore: [{score_color}]{summary.total_score}[/{score_color}] / 100   "
        f"[green]{summary.breakdown.fully_correct} correct[/green]  "
        f"[yellow]{summary.breakdown.partially_correct} partial[/yellow]  "
        f"[red]{summary.breakdown.needs_improvement} to improve[/red]"
    )


def display_result(result: FinalizationResult) -> None:
    """Panel shown after a successful save."""
    record = result.record
    table = Table(show_header=False, box=None)
    table.add_column("Stat", style="bold")
    table.add_column("Value")

    table.add_row("Score", f"{record.total_score} / 100")
    table.add_row("Correct", f"{record.correct_questions} / {record.total_questions}")
    table.add_row("Duration", format_duration(record.duration_seconds))
    table.add_row("Experience", f"[bold]{result.experience_total}[/bold] XP")

    console.print()
    console.print(Panel(
        table,
        title="[bold green]Results saved[/bold green]",
        border_style="green",
    ))
