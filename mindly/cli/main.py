"""
Typer CLI for the Mindly tutor.

Commands:
    mindly chat --user ID         - Interactive tutoring session
    mindly state show --user ID   - Show a student's knowledge state
    mindly state reset --user ID  - Delete a student's state and transcript
    mindly prompt --user ID -a X  - Print the compiled system prompt for an action

Usage:
    mindly chat --user asha --exam "UPSC Prelims" --days-to-exam 40
    mindly state show --user asha
    mindly prompt --user asha --action give_hint
"""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from mindly import __version__
from mindly.config import get_settings
from mindly.exceptions import MindlyError
from mindly.logging_setup import configure_logging
from mindly.service import TutorChatService
from mindly.store import SqlStudentStateStore
from mindly.tutor.mastery import level_color, level_emoji
from mindly.tutor.prompt_compiler import PromptCompiler
from mindly.tutor.types import SessionPhase, StudentContext, StudentState, TutorAction

QUIT_COMMANDS = ("/quit", "/exit")

app = typer.Typer(
    name="mindly",
    help="Mindly adaptive tutor: mastery-aware exam coaching in the terminal",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

state_app = typer.Typer(help="Inspect or reset stored tutor state")
app.add_typer(state_app, name="state")

console = Console()


@app.callback()
def main_callback() -> None:
    """Configure logging from settings before any command runs."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_file)


def _open_store() -> SqlStudentStateStore:
    store = SqlStudentStateStore(get_settings().database_url)
    store.init_db()
    return store


# ========================================
# Chat
# ========================================


@app.command("chat")
def chat(
    user: Annotated[str, typer.Option("--user", "-u", help="Student id")],
    exam: Annotated[str | None, typer.Option("--exam", "-e", help="Exam the student prepares for")] = None,
    name: Annotated[str | None, typer.Option("--name", "-n", help="Student's name")] = None,
    days_to_exam: Annotated[
        int | None, typer.Option("--days-to-exam", "-d", help="Days left until the exam")
    ] = None,
) -> None:
    """
    Start an interactive tutoring session.

    Type /quit to leave. Each reply shows the current session phase.
    """
    settings = get_settings()
    exam = exam or settings.default_exam_domain

    try:
        service = TutorChatService.from_settings(settings)
    except MindlyError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    context = StudentContext(exam_name=exam, student_name=name, days_to_exam=days_to_exam)
    console.print(
        Panel(
            f"[bold cyan]MINDLY TUTOR[/]\nStudent: {escape(name or user)}\nExam: {escape(exam)}",
            border_style="cyan",
        )
    )
    asyncio.run(_chat_loop(service, user, exam, context))


async def _chat_loop(
    service: TutorChatService,
    user_id: str,
    exam: str,
    context: StudentContext,
) -> None:
    try:
        while True:
            message = (await asyncio.to_thread(console.input, "[bold green]you>[/] ")).strip()
            if not message:
                continue
            if message.lower() in QUIT_COMMANDS:
                break
            await _run_chat_turn(service, user_id, message, exam, context)
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await service.close()
    rprint("[dim]Session ended.[/dim]")


async def _run_chat_turn(
    service: TutorChatService,
    user_id: str,
    message: str,
    exam: str,
    context: StudentContext,
) -> None:
    awaiting_rating = False
    try:
        async for event in service.stream_turn(user_id, message, context, exam_domain=exam):
            if isinstance(event, dict):
                awaiting_rating = event["awaitingRating"]
                badge = SessionPhase(event["phase"]).badge
                console.print(f"[magenta]{escape(f'[{badge}]')}[/] ", end="")
            else:
                console.print(event, end="", markup=False, highlight=False)
        console.print()
        if awaiting_rating:
            console.print("[dim]Rate your confidence 1-5.[/dim]")
    except MindlyError as e:
        logger.error(f"Turn failed: {e}")
        rprint(f"\n[red]✗[/red] {e}")


# ========================================
# State
# ========================================


def _state_table(state: StudentState) -> Table:
    table = Table(title=f"Concept mastery: {escape(state.user_id)}")
    table.add_column("Concept", style="cyan")
    table.add_column("Level")
    table.add_column("Correct", justify="right")
    table.add_column("Wrong", justify="right")
    table.add_column("Hints", justify="right")
    table.add_column("Last tested", style="dim")

    for concept, entry in sorted(state.concept_mastery.items()):
        color = level_color(entry.level)
        table.add_row(
            escape(concept),
            f"[{color}]{level_emoji(entry.level)} {entry.level.value}[/{color}]",
            str(entry.success_count),
            str(entry.failure_count),
            str(entry.hints_used),
            entry.last_tested.strftime("%Y-%m-%d %H:%M"),
        )
    return table


@state_app.command("show")
def state_show(
    user: Annotated[str, typer.Option("--user", "-u", help="Student id")],
) -> None:
    """Show mastery, streaks and calibration for a student."""
    state = _open_store().load(user)

    summary = Table(show_header=False, box=None)
    summary.add_column("Field", style="cyan")
    summary.add_column("Value", style="green")
    summary.add_row("Exam", escape(state.exam_domain))
    summary.add_row("Phase", state.session_phase.badge)
    summary.add_row("Messages", str(state.messages_in_session))
    summary.add_row("Streak", f"+{state.consecutive_successes} / -{state.consecutive_failures}")
    summary.add_row("Calibration", state.confidence_calibration.value)
    summary.add_row("Pending", escape(state.pending_question or "-"))
    summary.add_row("Hints given", str(state.hints_given))
    console.print(Panel(summary, title=escape(state.user_id), border_style="cyan"))

    if state.concept_mastery:
        console.print(_state_table(state))
    else:
        rprint("[yellow]⚠[/yellow] No concepts assessed yet")

    if state.misconceptions:
        rprint("[bold]Misconceptions[/bold]")
        for m in state.misconceptions[-5:]:
            rprint(f"  • [cyan]{escape(m.concept)}[/cyan]: {escape(m.misconception)}")


@state_app.command("reset")
def state_reset(
    user: Annotated[str, typer.Option("--user", "-u", help="Student id")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a student's stored state and transcript."""
    if not yes and not typer.confirm(f"Reset all tutor state for {user}?"):
        raise typer.Abort()

    if _open_store().delete(user):
        rprint(f"[green]✓[/green] Reset state for {escape(user)}")
    else:
        rprint(f"[yellow]⚠[/yellow] No stored state for {escape(user)}")


# ========================================
# Prompt (debug)
# ========================================


@app.command("prompt")
def show_prompt(
    user: Annotated[str, typer.Option("--user", "-u", help="Student id")],
    action: Annotated[TutorAction, typer.Option("--action", "-a", help="Pedagogical action")],
    exam: Annotated[str | None, typer.Option("--exam", "-e", help="Exam name for the context block")] = None,
) -> None:
    """Print the system prompt the tutor would send for the stored state."""
    state = _open_store().load(user)
    context = StudentContext(exam_name=exam) if exam else None
    console.print(PromptCompiler().compile(state, action, context), markup=False, highlight=False)


@app.command("version")
def show_version() -> None:
    """Show version information."""
    rprint(f"[bold]mindly[/bold] v{__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
