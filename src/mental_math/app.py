"""Interactive CLI application."""
import argparse
import logging
import tempfile
import time
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from mental_math.assessment import (
    TOTAL_QUESTIONS, build_result, create_assessment_state, get_next_question, process_answer,
)
from mental_math.config import (
    Config, ConfigError, get_preferred_difficulty, get_preferred_operations, get_setting, load_config,
    save_preferences,
)
from mental_math.dashboard import (
    OPERATION_LABELS, get_accuracy_color, get_operation_performance, get_overall_stats,
    get_rating_color, suggest_practice_difficulty,
)
from mental_math.db import init_db
from mental_math.models import ALL_OPERATIONS, AssessmentRecord, Difficulty, Operation, Problem
from mental_math.practice import (
    LIVES_OPTIONS, MODES, TIMED_OPTIONS, end_session, get_recent_problems, record_attempt, start_session,
)
from mental_math.problems import check_answer, format_problem, generate_problem, parse_answer
from mental_math.results import (
    GUEST_USER, get_latest_assessment, guest_assessment_record, list_assessments,
    save_assessment_result,
)

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """Raised when the user types q/menu inside a session."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome(guest: bool = False):
    body = "[bold]Mental Math Trainer[/bold]\n[dim]Adaptive arithmetic practice[/dim]"
    if guest:
        body += "\n[yellow]Guest mode: nothing will be saved.[/yellow]"
    console.print(Panel(body, title="Welcome", border_style="blue"))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("practice", "Solve problems at a chosen difficulty"),
        ("assess", f"{TOTAL_QUESTIONS}-question adaptive skill assessment"),
        ("dashboard", "Accuracy and speed by operation"),
        ("history", "Past assessment results"),
        ("settings", "Default operations and difficulty"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def ask_for_answer(problem: Problem, label: str) -> tuple[float, int]:
    """Prompt until a number is entered. Returns (answer, response time in ms)."""
    console.print(Panel(f"[bold]{problem.display_text}[/bold]", title=label, border_style="cyan"))
    started = time.monotonic()
    while True:
        answer = parse_answer(session_prompt("Your answer"))
        if answer is not None:
            return answer, int((time.monotonic() - started) * 1000)
        console.print("[red]Please enter a number.[/red]")


def show_feedback(problem: Problem, is_correct: bool) -> None:
    if is_correct:
        console.print("[green]Correct![/green]")
    else:
        console.print(f"[red]Incorrect.[/red] Answer: [green]{problem.correct_answer}[/green]")


def choose_operations(default: list) -> list:
    names = ", ".join(op.value for op in ALL_OPERATIONS)
    console.print(f"[dim]Operations: {names} (or 'all')[/dim]")
    raw = Prompt.ask("Operations", default=",".join(op.value for op in default))
    if raw.strip().lower() == "all":
        return list(ALL_OPERATIONS)
    chosen = []
    for part in raw.split(","):
        part = part.strip().lower()
        if not part:
            continue
        try:
            op = Operation(part)
        except ValueError:
            console.print(f"[yellow]Skipping unknown operation: {part}[/yellow]")
            continue
        if op not in chosen:
            chosen.append(op)
    return chosen or list(default)


def choose_difficulty(default: Difficulty) -> Difficulty:
    return Difficulty(Prompt.ask(
        "Difficulty", choices=[d.value for d in Difficulty], default=default.value,
    ))


def choose_mode() -> tuple[str, Optional[int]]:
    """Returns (mode, limit); limit is seconds for timed and lives for lives."""
    mode = Prompt.ask("Mode", choices=list(MODES), default="unlimited")
    if mode == "timed":
        return mode, int(Prompt.ask(
            "Seconds", choices=[str(s) for s in TIMED_OPTIONS], default=str(TIMED_OPTIONS[0]),
        ))
    if mode == "lives":
        return mode, int(Prompt.ask(
            "Lives", choices=[str(n) for n in LIVES_OPTIONS], default=str(LIVES_OPTIONS[0]),
        ))
    return mode, None


def default_practice_difficulty(db_path: str, config: Config, operation: Operation) -> Difficulty:
    """Saved preference, else the level reached in the latest assessment."""
    stored = get_setting(db_path, "difficulty")
    if stored:
        return Difficulty(stored)
    latest = get_latest_assessment(db_path, config.user)
    return suggest_practice_difficulty(latest, operation, config.default_difficulty)


def run_practice_session(
    db_path: str,
    user_id: str,
    operations: list,
    difficulty: Difficulty,
    save: bool = True,
    mode: str = "unlimited",
    limit: Optional[int] = None,
    clock: Callable[[], float] = time.monotonic,
) -> tuple[int, int]:
    """Serve problems until the user types q, time runs out or lives are gone.

    Returns (correct, answered). In timed mode an answer submitted after the
    deadline is not counted.
    """
    session_id = start_session(db_path, user_id, operations, difficulty, mode) if save else None
    correct = answered = 0
    deadline = clock() + limit if mode == "timed" else None
    lives = limit if mode == "lives" else None
    rules = {"timed": f"{limit}s on the clock", "lives": f"{limit} lives"}.get(mode, "no limit")
    console.print(f"\n[bold]Practice[/bold]: {difficulty.value} "
                  f"({', '.join(OPERATION_LABELS[op] for op in operations)}), {rules}. Type q to stop.\n")
    try:
        while True:
            problem = generate_problem(operations, difficulty)
            answer, elapsed_ms = ask_for_answer(problem, f"Problem {answered + 1}")
            if deadline is not None and clock() >= deadline:
                console.print("[yellow]Time's up![/yellow]")
                break
            if save:
                is_correct = record_attempt(db_path, user_id, problem, answer, elapsed_ms, session_id)
            else:
                is_correct = check_answer(problem, answer)
            answered += 1
            correct += int(is_correct)
            show_feedback(problem, is_correct)
            status = f"Answered: {answered}  |  Correct: {correct}/{answered} ({correct / answered * 100:.0f}%)"
            if deadline is not None:
                status += f"  |  {max(0, int(deadline - clock()))}s left"
            if lives is not None:
                lives -= 0 if is_correct else 1
                status += f"  |  Lives: {lives}"
            console.print(f"[dim]{status}[/dim]\n")
            if lives == 0:
                console.print("[yellow]Out of lives![/yellow]")
                break
    except SessionExitRequested:
        pass
    finally:
        if session_id:
            end_session(db_path, session_id)
    if answered:
        console.print(f"[bold]Session: {correct}/{answered} ({correct / answered * 100:.0f}%)[/bold]\n")
    return correct, answered


def run_assessment(db_path: str, user_id: str, save: bool = True) -> AssessmentRecord:
    """Drive the adaptive assessment to completion and store the result."""
    state = create_assessment_state()
    question = get_next_question(state)
    while question is not None:
        problem = generate_problem([question.operation], question.difficulty)
        answer, _ = ask_for_answer(
            problem, f"Question {state.current_index + 1}/{TOTAL_QUESTIONS}",
        )
        is_correct = check_answer(problem, answer)
        show_feedback(problem, is_correct)
        state = process_answer(state, is_correct)
        question = get_next_question(state)
    result = build_result(state)
    if save:
        return save_assessment_result(db_path, user_id, result)
    return guest_assessment_record(result)


def show_assessment_results(record: AssessmentRecord) -> None:
    color = get_rating_color(record.overall_rating)
    console.print(Panel(
        f"Overall rating: [bold {color}]{record.overall_rating}[/bold {color}]\n"
        f"Correct: {record.total_correct}/{record.total_questions}",
        title="Assessment Results", border_style=color,
    ))
    table = Table(title="Skill Level by Operation")
    table.add_column("Operation", style="cyan")
    table.add_column("Level")
    for op in ALL_OPERATIONS:
        table.add_row(OPERATION_LABELS[op], record.level_for(op).value.title())
    console.print(table)


def cmd_practice(db_path: str, config: Config, guest: bool = False):
    console.print("\n[bold]Practice Session Setup[/bold]")
    operations = choose_operations(get_preferred_operations(db_path, config))
    difficulty = choose_difficulty(default_practice_difficulty(db_path, config, operations[0]))
    mode, limit = choose_mode()
    run_practice_session(db_path, config.user, operations, difficulty, save=not guest, mode=mode, limit=limit)


def cmd_assess(db_path: str, config: Config, guest: bool = False):
    console.print(Panel(
        f"Answer {TOTAL_QUESTIONS} adaptive questions across all 5 operations.\n"
        "Difficulty goes up after a correct answer and down after a wrong one.",
        title="Skill Assessment",
    ))
    Prompt.ask("[dim]Press Enter to begin[/dim]", default="")
    record = run_assessment(db_path, config.user, save=not guest)
    show_assessment_results(record)


def cmd_dashboard(db_path: str, config: Config):
    stats = get_overall_stats(db_path, config.user)
    console.print(Panel(
        f"Problems Solved: [bold]{stats['total_problems']}[/bold]  |  "
        f"Accuracy: [bold]{stats['accuracy']}%[/bold]  |  "
        f"Avg. Time: [bold]{stats['avg_response_time_ms'] / 1000:.1f}s[/bold]  |  "
        f"Sessions: [bold]{stats['sessions_count']}[/bold]",
        title="Dashboard", border_style="blue",
    ))
    performance = get_operation_performance(db_path, config.user)
    table = Table(title="Performance by Operation")
    table.add_column("Operation", style="cyan")
    table.add_column("Attempts", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Avg. Time", justify="right")
    table.add_column("Status")
    for p in performance:
        color = get_accuracy_color(p["accuracy"])
        table.add_row(
            p["name"],
            str(p["attempts"]),
            f"{p['accuracy']}%" if p["attempts"] else "-",
            f"{p['avg_response_time_ms'] / 1000:.1f}s" if p["attempts"] else "-",
            f"[{color}]{p['label']}[/{color}]" if p["attempts"] else "[dim]not practiced[/dim]",
        )
    console.print(table)

    latest = get_latest_assessment(db_path, config.user)
    if latest:
        color = get_rating_color(latest.overall_rating)
        console.print(f"\n  Latest assessment: [{color}]{latest.overall_rating}[/{color}] "
                      f"({latest.total_correct}/{latest.total_questions})")
    practiced = [p for p in performance if p["attempts"]]
    if practiced:
        weakest = min(practiced, key=lambda p: p["accuracy"])
        if weakest["accuracy"] < 75:
            console.print(f"\n  [yellow]Recommendation: Focus on {weakest['name']}[/yellow]")

    mistakes = get_recent_problems(db_path, config.user, limit=5, incorrect_only=True)
    if mistakes:
        table = Table(title="Recent Mistakes")
        table.add_column("Problem", style="cyan")
        table.add_column("Your Answer", justify="right")
        table.add_column("Answer", justify="right")
        for m in mistakes:
            table.add_row(
                format_problem(m.operation, m.operand1, m.operand2),
                f"{m.user_answer:g}" if m.user_answer is not None else "-",
                f"[green]{m.correct_answer}[/green]",
            )
        console.print(table)


def cmd_history(db_path: str, config: Config):
    records = list_assessments(db_path, config.user)
    if not records:
        console.print("[yellow]No assessments yet. Try 'assess'.[/yellow]")
        return
    table = Table(title="Assessment History")
    table.add_column("Date")
    for op in ALL_OPERATIONS:
        table.add_column(OPERATION_LABELS[op])
    table.add_column("Score", justify="right")
    table.add_column("Rating")
    for r in records:
        color = get_rating_color(r.overall_rating)
        table.add_row(
            r.completed_at[:10],
            *(r.level_for(op).value for op in ALL_OPERATIONS),
            f"{r.total_correct}/{r.total_questions}",
            f"[{color}]{r.overall_rating}[/{color}]",
        )
    console.print(table)


def cmd_settings(db_path: str, config: Config, guest: bool = False):
    if guest:
        console.print("[yellow]Settings can't be changed in guest mode.[/yellow]")
        return
    console.print("\n[bold]Practice Defaults[/bold]")
    operations = choose_operations(get_preferred_operations(db_path, config))
    difficulty = choose_difficulty(get_preferred_difficulty(db_path, config))
    save_preferences(db_path, operations, difficulty)
    console.print("[green]Saved.[/green]")


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mental-math", description="Mental arithmetic trainer")
    parser.add_argument("--db", help="SQLite database path")
    parser.add_argument("--config", help="YAML config file path")
    parser.add_argument("--guest", action="store_true", help="Practice without saving anything")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def run_menu(db_path: str, config: Config, guest: bool = False):
    init_db(db_path)
    logger.debug("Using database %s as %s", db_path, config.user)

    show_welcome(guest=guest)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="practice").strip().lower()
        try:
            if choice == "practice":
                cmd_practice(db_path, config, guest=guest)
            elif choice == "assess":
                cmd_assess(db_path, config, guest=guest)
            elif choice == "dashboard":
                cmd_dashboard(db_path, config)
            elif choice == "history":
                cmd_history(db_path, config)
            elif choice == "settings":
                cmd_settings(db_path, config, guest=guest)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Keep practicing![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Back to menu.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.debug("Command %s failed", choice, exc_info=True)
            console.print(f"[red]Error: {e}[/red]")


def main(argv: Optional[list] = None):
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigError as e:
        console.print(f"[red]Config error: {e}[/red]")
        return
    configure_logging("DEBUG" if args.verbose else config.log_level)
    if args.guest:
        # Guests get a throwaway database; the real one is never opened.
        config.user = GUEST_USER
        with tempfile.TemporaryDirectory(prefix="mental_math_guest_") as tmp_dir:
            run_menu(str(Path(tmp_dir) / "guest.db"), config, guest=True)
        return
    run_menu(args.db or config.db_path, config)


if __name__ == "__main__":
    main()
