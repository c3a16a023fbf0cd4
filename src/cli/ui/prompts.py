"""Prompt Utilities - Parsing learner input for each question kind."""

from typing import Any

from rich.console import Console
from rich.prompt import Confirm, Prompt

from src.modules.exam.interface import QuestionKind
from src.modules.practice.answers import QuestionView

console = Console()

# Line commands accepted while answering
NAVIGATION_COMMANDS = {
    "": "next",
    ":n": "next",
    ":b": "back",
    ":f": "finish",
    ":i": "intro",
    ":q": "quit",
}

_TRUE_WORDS = {"t", "true", "y", "yes", "1"}
_FALSE_WORDS = {"f", "false", "n", "no", "0"}


def input_help(view: QuestionView) -> str:
    """One-line hint on how to answer the given element."""
    if not view.accepts_input:
        return "Enter to continue"
    hints = {
        QuestionKind.SINGLE_CHOICE: "number of your choice",
        QuestionKind.MULTIPLE_CHOICE: "number to toggle, or a list like 1,3",
        QuestionKind.TRUE_FALSE: "t or f",
        QuestionKind.CLOZE: "gap=text, e.g. 1=mitochondria",
        QuestionKind.STEPS: "step=text, e.g. 2=heat the sample",
    }
    how = hints.get(view.kind, "your answer")
    return f"Type {how}; Enter for next, :b back, :i intro, :q quit"


def parse_answer(view: QuestionView, raw: str) -> Any:
    """Turn a typed line into the input value for the element's kind.

    Raises:
        ValueError: If the line cannot be understood for this kind
    """
    text = raw.strip()

    if view.kind in (QuestionKind.SHORT_TEXT, QuestionKind.LONG_TEXT, QuestionKind.FLASHCARD):
        return raw

    if view.kind == QuestionKind.SINGLE_CHOICE:
        return _choice_number(text, len(view.options))

    if view.kind == QuestionKind.MULTIPLE_CHOICE:
        if "," in text:
            return [_choice_number(part, len(view.options)) for part in text.split(",") if part.strip()]
        return _choice_number(text, len(view.options))

    if view.kind == QuestionKind.TRUE_FALSE:
        word = text.lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        raise ValueError("Answer t (true) or f (false)")

    if view.kind in (QuestionKind.CLOZE, QuestionKind.STEPS):
        key, sep, value = text.partition("=")
        if not sep or not key.strip():
            raise ValueError("Use the form key=text")
        if view.kind == QuestionKind.STEPS:
            return _choice_number(key, len(view.step_slots)), value.strip()
        return key.strip(), value.strip()

    raise ValueError(f"{view.kind.value} elements take no answer")


def _choice_number(text: str, count: int) -> int:
    try:
        number = int(text.strip())
    except ValueError:
        raise ValueError(f"Enter a number between 1 and {count}") from None
    if not 1 <= number <= count:
        raise ValueError(f"Enter a number between 1 and {count}")
    return number - 1


def ask_line(prompt_text: str) -> str:
    """Blocking single-line prompt; run it off the event loop."""
    return Prompt.ask(prompt_text, default="", show_default=False)


def ask_level(question_label: str, current: int) -> float:
    """Ask for a 0-4 mastery level; out-of-range values are clamped later."""
    while True:
        raw = Prompt.ask(f"{question_label} level (0-4)", default=str(current))
        try:
            return float(raw.replace(",", "."))
        except ValueError:
            console.print("[red]Please enter a number between 0 and 4[/red]")


def confirm_action(
    message: str,
    default: bool = True,
) -> bool:
    """Simple confirmation prompt.

    Args:
        message: Confirmation message
        default: Default value if user presses Enter

    Returns:
        True if confirmed, False otherwise
    """
    return Confirm.ask(message, default=default)
