"""Interactive CLI application."""
import logging

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from progress_tracker.dashboard import (
    get_progress_color, get_progress_label, item_summary, subject_progress,
)
from progress_tracker.db import DEFAULT_DB_PATH, DEFAULT_HOME
from progress_tracker.errors import ValidationError
from progress_tracker.logging_setup import setup_logging
from progress_tracker.models import ItemType, Status
from progress_tracker.storage import SqliteStorage, Storage, clear_all_data
from progress_tracker.subjects import SYNC_FAILED, SubjectStore
from progress_tracker.theme import PreferenceStore, ThemePreference

logger = logging.getLogger(__name__)

console = Console()

MIN_ITEMS = 1
MAX_ITEMS = 20


class BackRequested(Exception):
    """User typed 'b' at a choice prompt to leave the current screen."""


def ask(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer is not None and answer.strip().lower() == "b":
        raise BackRequested()
    return answer


def ask_int(prompt: str, default: int, low: int = MIN_ITEMS, high: int = MAX_ITEMS) -> int:
    answer = ask(
        f"{prompt} [dim]({low}-{high})[/dim]",
        choices=[str(n) for n in range(low, high + 1)] + ["b"],
        show_choices=False,
        default=str(default),
    )
    return int(answer)


def confirm(prompt: str) -> bool:
    return Prompt.ask(prompt, choices=["y", "n"], default="n") == "y"


def status_markup(status: Status, prefs: PreferenceStore) -> str:
    color = prefs.palette["status"][status]
    return f"[{color}]● {status.label}[/{color}]"


def progress_bar(pct: int, width: int = 20) -> str:
    color = get_progress_color(pct)
    filled = round(pct * width / 100)
    return f"[{color}]{'█' * filled}{'░' * (width - filled)}[/{color}]"


def warn_if_unsaved(store: SubjectStore) -> None:
    if store.sync_status == SYNC_FAILED:
        console.print("[yellow]Saved in memory only. Use 'settings' > 'sync' to retry saving.[/yellow]")


def show_welcome(prefs: PreferenceStore):
    console.print(Panel(
        "[bold]Progress Tracker[/bold]\n[dim]Assignments & experiments, subject by subject[/dim]",
        title="Welcome", border_style=prefs.palette["primary"],
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("dashboard", "Overall progress"),
        ("subjects", "List subjects"),
        ("add", "Add a subject"),
        ("open", "Open a subject"),
        ("settings", "Theme and data"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def cmd_dashboard(store: SubjectStore, prefs: PreferenceStore):
    stats = store.stats
    pct = stats.completion_percentage
    color = get_progress_color(pct)
    console.print(Panel(
        f"[bold]{pct}%[/bold] complete {progress_bar(pct)} [{color}]{get_progress_label(pct)}[/{color}]\n\n"
        f"  {stats.completed_items} Completed  |  {stats.checked_items} Checked  |  "
        f"{stats.remaining_items} Remaining",
        title="Dashboard", border_style=prefs.palette["primary"],
    ))
    console.print(f"  Subjects: [bold]{stats.total_subjects}[/bold]  |  "
                  f"Assignments: [bold]{stats.completed_assignments}/{stats.total_assignments}[/bold]  |  "
                  f"Experiments: [bold]{stats.completed_experiments}/{stats.total_experiments}[/bold]")

    recent = store.recent_subjects()
    if not recent:
        console.print("\n[dim]No subjects yet. Use 'add' to add your first subject.[/dim]")
        return
    table = Table(title="Recent Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Code")
    table.add_column("Progress")
    for subject in recent:
        sp = subject_progress(subject)
        table.add_row(subject.name, subject.code, f"{progress_bar(sp.percentage, 10)} {sp.percentage}%")
    console.print(table)


def cmd_subjects(store: SubjectStore, prefs: PreferenceStore):
    subjects = store.sorted_subjects()
    count = len(subjects)
    console.print(f"\n[bold {prefs.palette['primary']}]Subjects[/] [dim]{count} {'subject' if count == 1 else 'subjects'}[/dim]")
    if not subjects:
        console.print("[dim]Use 'add' to add your first subject.[/dim]")
        return
    table = Table()
    table.add_column("#", justify="right")
    table.add_column("Subject", style="cyan")
    table.add_column("Code")
    table.add_column("Assignments", justify="right")
    table.add_column("Experiments", justify="right")
    table.add_column("Progress", justify="right")
    for i, subject in enumerate(subjects, 1):
        sp = subject_progress(subject)
        table.add_row(
            str(i), subject.name, subject.code,
            f"{sp.assignments_done}/{sp.assignments_total}",
            f"{sp.experiments_done}/{sp.experiments_total}",
            f"[{get_progress_color(sp.percentage)}]{sp.percentage}%[/]",
        )
    console.print(table)


def cmd_add(store: SubjectStore):
    console.print("\n[bold]Add Subject[/bold] [dim](b at a count prompt = back)[/dim]")
    try:
        name = Prompt.ask("Subject name [dim](e.g. Data Structures)[/dim]").strip()
        code = Prompt.ask("Subject code [dim](e.g. CS201)[/dim]").strip()
        if code and store.is_duplicate_code(code):
            console.print("[red]A subject with this code already exists.[/red]")
            return None
        assignments = ask_int("Number of assignments", default=5)
        experiments = ask_int("Number of experiments", default=5)
    except BackRequested:
        return None
    try:
        subject = store.add_subject(name, code, assignments, experiments)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        return None
    console.print(f"[green]Added {subject.name} ({subject.code}).[/green]")
    warn_if_unsaved(store)
    return subject


def pick_subject(store: SubjectStore):
    subjects = store.sorted_subjects()
    if not subjects:
        console.print("[yellow]No subjects yet.[/yellow]")
        return None
    for i, subject in enumerate(subjects, 1):
        console.print(f"  [cyan]{i}[/cyan]) {subject.name} [dim]{subject.code}[/dim]")
    try:
        choice = ask(
            "Select subject [dim](b = back)[/dim]",
            choices=[str(i) for i in range(1, len(subjects) + 1)] + ["b"],
            show_choices=False,
        )
    except BackRequested:
        return None
    return subjects[int(choice) - 1]


def render_subject(store: SubjectStore, prefs: PreferenceStore, subject_id: str, item_type: ItemType) -> bool:
    subject = store.get_subject(subject_id)
    if subject is None:
        console.print("[red]Subject not found[/red]")
        return False
    summary = item_summary(subject, item_type)
    console.print(Panel(
        f"[bold]{subject.name}[/bold]  [dim]{subject.code}[/dim]\n"
        f"Total {summary['total']}  |  Done {summary['done']}  |  "
        f"Checked {summary['checked']}  |  Pending {summary['pending']}",
        border_style=prefs.palette["primary"],
    ))
    table = Table(title=f"Assignments ({subject.total_assignments})  ·  Experiments ({subject.total_experiments})")
    table.add_column("#", justify="right")
    table.add_column(item_type.kind + "s")
    table.add_column("Status")
    for i, item in enumerate(subject.items(item_type), 1):
        table.add_row(str(i), item.label, status_markup(item.status, prefs))
    console.print(table)
    console.print("[dim]Number = cycle status, t = switch tab, e = edit, d = delete, b = back[/dim]")
    return True


def cmd_open(store: SubjectStore, prefs: PreferenceStore, subject_id: str | None = None):
    if subject_id is None:
        subject = pick_subject(store)
        if subject is None:
            return
        subject_id = subject.id
    item_type = ItemType.ASSIGNMENT
    while render_subject(store, prefs, subject_id, item_type):
        choice = Prompt.ask("[bold]>[/bold]", default="b").strip().lower()
        subject = store.get_subject(subject_id)
        if choice == "b":
            return
        elif choice == "t":
            item_type = ItemType.EXPERIMENT if item_type == ItemType.ASSIGNMENT else ItemType.ASSIGNMENT
        elif choice == "e":
            cmd_edit(store, subject)
        elif choice == "d":
            if cmd_delete(store, subject):
                return
        elif choice.isdigit() and 1 <= int(choice) <= len(subject.items(item_type)):
            item = subject.items(item_type)[int(choice) - 1]
            store.cycle_item_status(subject_id, item.id, item_type)
            warn_if_unsaved(store)
        else:
            console.print("[red]Unknown command. Try again.[/red]")


def cmd_edit(store: SubjectStore, subject):
    console.print(f"\n[bold]Edit Subject[/bold] [dim]{subject.name} (b at a count prompt = back)[/dim]")
    try:
        code = Prompt.ask("Subject code", default=subject.code)
        assignments = ask_int("Assignments", default=max(subject.total_assignments, MIN_ITEMS))
        experiments = ask_int("Experiments", default=max(subject.total_experiments, MIN_ITEMS))
    except BackRequested:
        return None
    if assignments < subject.total_assignments or experiments < subject.total_experiments:
        if not confirm("[yellow]Shrinking discards the removed items and their statuses. Continue?[/yellow]"):
            return None
    try:
        updated = store.update_subject(
            subject.id, code=code, total_assignments=assignments, total_experiments=experiments,
        )
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        return None
    console.print("[green]Saved.[/green]")
    warn_if_unsaved(store)
    return updated


def cmd_delete(store: SubjectStore, subject) -> bool:
    if not confirm(f'Delete "{subject.name}"? This cannot be undone.'):
        return False
    store.delete_subject(subject.id)
    console.print(f"[green]Deleted {subject.name}.[/green]")
    warn_if_unsaved(store)
    return True


def cmd_settings(store: SubjectStore, prefs: PreferenceStore, storage: Storage):
    stats = store.stats
    mode = "dark" if prefs.effective_is_dark else "light"
    console.print(Panel(
        f"Theme: [bold]{prefs.preference.value}[/bold] [dim](showing {mode})[/dim]\n"
        f"Data: {stats.total_subjects} subjects, {stats.total_items} items  |  Sync: {store.sync_status}",
        title="Settings", border_style=prefs.palette["primary"],
    ))
    choice = Prompt.ask("Setting", choices=["theme", "reset", "wipe", "sync", "back"], default="back")
    if choice == "theme":
        pref = Prompt.ask("Theme", choices=[p.value for p in ThemePreference], default=prefs.preference.value)
        prefs.set_preference(pref)
        console.print(f"[green]Theme set to {pref}.[/green]")
    elif choice == "reset":
        if confirm("[red]This will permanently delete all your subjects, assignments, and experiments. Continue?[/red]"):
            store.reset_all_data()
            console.print("[green]All data has been reset.[/green]")
            warn_if_unsaved(store)
    elif choice == "wipe":
        if confirm("[red]Erase every stored record, including the theme preference?[/red]"):
            clear_all_data(storage)
            prefs.load()
            store.load()
            console.print("[green]Stored data erased.[/green]")
    elif choice == "sync":
        if store.flush():
            console.print("[green]All changes saved.[/green]")
        else:
            console.print("[red]Saving failed again. See the log for details.[/red]")


def main():
    log_file = setup_logging(DEFAULT_HOME, console=console)
    storage = SqliteStorage(DEFAULT_DB_PATH)
    if not storage.init():
        console.print(f"[red]Could not open {DEFAULT_DB_PATH}; changes will not be saved. See {log_file}.[/red]")
    prefs = PreferenceStore(storage)
    prefs.load()
    store = SubjectStore(storage)
    store.subscribe(lambda s: logger.debug("subjects changed: %d", len(s.subjects)))
    store.load()

    show_welcome(prefs)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
        try:
            if choice == "dashboard":
                cmd_dashboard(store, prefs)
            elif choice == "subjects":
                cmd_subjects(store, prefs)
            elif choice == "add":
                cmd_add(store)
            elif choice == "open":
                cmd_open(store, prefs)
            elif choice == "settings":
                cmd_settings(store, prefs, storage)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Keep it up![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command %r failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
