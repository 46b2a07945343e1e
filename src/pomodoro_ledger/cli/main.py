"""CLI commands for Pomodoro Ledger using Typer."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pomodoro_ledger import __version__
from pomodoro_ledger.core.clock import SystemClock
from pomodoro_ledger.core.config import Config, get_config
from pomodoro_ledger.focus.durations import (
    DEFAULT_LONG_BREAK_MINUTES,
    DEFAULT_SHORT_BREAK_MINUTES,
    DEFAULT_WORK_MINUTES,
    coerce_minutes,
)
from pomodoro_ledger.focus.models import Mode, TimerState
from pomodoro_ledger.focus.pomodoro import progress_percent
from pomodoro_ledger.focus.reports import (
    all_time_stats,
    format_time,
    next_long_break_in,
    today_stats,
    weekly_breakdown,
)
from pomodoro_ledger.focus.service import COMMANDS, PomodoroService
from pomodoro_ledger.storage.database import Database
from pomodoro_ledger.storage.state_store import StateStore

# Initialize Typer app
app = typer.Typer(
    name="pomodoro-ledger",
    help="Pomodoro timer with per-task countdowns and a session history.",
    add_completion=False,
)

console = Console()


def setup_logging(log_level: str, log_file: Path | None = None) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    # Reduce noise from external libraries
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _get_run_pid(config: Config) -> int | None:
    """PID of an active ``run`` session, cleaning up a stale pid file."""
    pid_file = config.pid_file
    if not pid_file.exists():
        return None
    try:
        pid = int(pid_file.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, OSError):
        pid_file.unlink(missing_ok=True)
        return None


def write_control(config: Config, action: str, value: str | None = None) -> None:
    """Write a control command for the running ``run`` session."""
    config.control_file.parent.mkdir(parents=True, exist_ok=True)
    config.control_file.write_text(
        json.dumps({"action": action, "value": value, "timestamp": datetime.now().isoformat()})
    )


def read_control(config: Config) -> dict | None:
    """Read and clear the control command."""
    if not config.control_file.exists():
        return None
    try:
        data = json.loads(config.control_file.read_text())
    except (OSError, ValueError):
        data = None
    config.control_file.unlink(missing_ok=True)
    return data if isinstance(data, dict) else None


@asynccontextmanager
async def open_service(config: Config) -> AsyncIterator[PomodoroService]:
    """Load the persisted state into a service and save it back on exit."""
    db = Database(config.db_path)
    await db.connect()

    try:
        store = StateStore(db, config.storage.state_key, config.timer.default_durations())
        service = await PomodoroService.load(
            store, SystemClock(), config.timer.tick_interval_seconds
        )
        try:
            yield service
        finally:
            await service.flush()
    finally:
        await db.close()


def _load_state(config: Config) -> TimerState:
    async def load() -> TimerState:
        async with open_service(config) as service:
            return service.state

    return asyncio.run(load())


def _apply(config: Config, command: Callable[[PomodoroService], TimerState], hint: str) -> TimerState:
    """Run one mutating command against the stored state."""
    if _get_run_pid(config) is not None:
        console.print("[red]A 'pomodoro-ledger run' session is active.[/red]")
        console.print(hint)
        raise typer.Exit(1)

    async def apply() -> TimerState:
        async with open_service(config) as service:
            return command(service)

    try:
        return asyncio.run(apply())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _require_task(state: TimerState, task_id: str) -> None:
    if state.find_task(task_id) is None:
        raise LookupError(f"Unknown task: {task_id}")


def _status_line(state: TimerState) -> str:
    task = state.active_task
    return (
        f"\r🍅 {format_time(state.seconds_left)} | {state.mode.label} | "
        f"{task.name if task else 'No task'} | "
        f"long break in {next_long_break_in(state.completed_work_sessions)}    "
    )


@app.command()
def run(
    task: str = typer.Option(None, "--task", "-t", help="Task ID to activate first"),
    start_timer: bool = typer.Option(False, "--start", "-s", help="Start the countdown immediately"),
) -> None:
    """Run the timer in the foreground.

    Control it from another terminal with 'pomodoro-ledger timer ACTION'.
    """
    config = get_config()
    config.ensure_directories()
    setup_logging(config.log_level, config.log_dir / "pomodoro-ledger.log")

    pid = _get_run_pid(config)
    if pid is not None:
        console.print(f"[yellow]Timer is already running (PID: {pid})[/yellow]")
        raise typer.Exit(1)

    async def run_timer() -> None:
        async with open_service(config) as service:
            config.pid_file.write_text(str(os.getpid()))
            config.control_file.unlink(missing_ok=True)

            try:
                if task:
                    service.set_active_task(task)
                if start_timer:
                    service.start()
                service.start_ticker()

                console.print("[green]Timer ready.[/green] Press Ctrl+C to stop\n")

                while True:
                    ctrl = read_control(config)
                    if ctrl:
                        action = str(ctrl.get("action") or "")
                        if action == "stop":
                            break
                        service.handle_command(action, ctrl.get("value"))

                    sys.stdout.write(_status_line(service.state))
                    sys.stdout.flush()
                    await asyncio.sleep(0.5)
            finally:
                await service.stop_ticker()
                # Keep the countdown: a stored snapshot always comes back stopped
                service.pause()
                config.pid_file.unlink(missing_ok=True)

    try:
        asyncio.run(run_timer())
    except KeyboardInterrupt:
        pass
    console.print("\n[yellow]Timer stopped[/yellow]")


@app.command()
def timer(
    action: str = typer.Argument(..., help="Action: start, pause, reset, mode, activate, stop"),
    value: str = typer.Argument(None, help="Mode name or task ID"),
) -> None:
    """Send a command to the running timer."""
    config = get_config()

    if action not in COMMANDS and action != "stop":
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print(f"Valid actions: {', '.join(COMMANDS)}, stop")
        raise typer.Exit(1)

    if action == "mode":
        try:
            value = Mode(value).value
        except ValueError:
            console.print(f"[red]Unknown mode: {value}[/red]")
            console.print(f"Valid modes: {', '.join(m.value for m in Mode)}")
            raise typer.Exit(1)

    if action == "activate" and not value:
        console.print("[red]Please give the task ID to activate[/red]")
        raise typer.Exit(1)

    if _get_run_pid(config) is None:
        console.print("[yellow]No timer is running. Start one with 'pomodoro-ledger run'.[/yellow]")
        raise typer.Exit(1)

    write_control(config, action, value)
    console.print(f"[green]Sent {action} command[/green]")


@app.command()
def status() -> None:
    """Show the timer, active task and progress."""
    config = get_config()

    try:
        state = _load_state(config)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    pid = _get_run_pid(config)
    task = state.active_task

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    table.add_row("Mode", state.mode.label)
    table.add_row("Time Left", format_time(state.seconds_left))
    table.add_row("Progress", f"{progress_percent(state):.0f}%")
    table.add_row("Active Task", task.name if task else "[dim]None[/dim]")
    table.add_row("Completed", f"🍅 {state.completed_work_sessions}")
    table.add_row("Long Break In", str(next_long_break_in(state.completed_work_sessions)))
    table.add_row(
        "Session",
        f"[green bold]RUNNING[/green bold] (PID {pid})" if pid else "[dim]not running[/dim]",
    )

    console.print(Panel(table, title="Pomodoro Ledger", border_style="green" if pid else "blue"))
    if pid:
        console.print("[dim]Stored snapshot; the running session may be ahead of it[/dim]")


@app.command(name="task-add")
def task_add(
    name: str = typer.Argument(..., help="Task name"),
    category: str = typer.Option(None, "--category", "-c", help="Optional category"),
) -> None:
    """Add a task. The first task becomes the active one."""
    config = get_config()

    if not name.strip():
        console.print("[red]Task name cannot be empty[/red]")
        raise typer.Exit(1)

    state = _apply(
        config,
        lambda service: service.add_task(name, category),
        "Stop it before adding tasks.",
    )
    task = state.tasks[0]
    console.print(f"[green]Added task {task.name}[/green] [dim]({task.id})[/dim]")


@app.command(name="tasks")
def tasks_cmd() -> None:
    """List tasks with their saved countdowns."""
    config = get_config()

    try:
        state = _load_state(config)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not state.tasks:
        console.print("[dim]No tasks. Add one with: pomodoro-ledger task-add \"Task name\"[/dim]")
        return

    table = Table(title="Tasks", show_header=True, header_style="bold cyan")
    table.add_column("")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Work Left")

    for task in state.tasks:
        timers = state.timers_for(task.id)
        work_left = timers.work_seconds if timers.work_seconds is not None else state.durations.work
        table.add_row(
            "[green]●[/green]" if task.id == state.active_task_id else "○",
            task.id,
            task.name,
            task.category or "",
            format_time(work_left),
        )

    console.print(table)


@app.command(name="task-remove")
def task_remove(
    task_id: str = typer.Argument(..., help="Task ID"),
) -> None:
    """Remove a task and its saved countdowns."""
    config = get_config()

    def remove(service: PomodoroService) -> TimerState:
        _require_task(service.state, task_id)
        return service.remove_task(task_id)

    _apply(config, remove, "Stop it before removing tasks.")
    console.print(f"[yellow]Removed task {task_id}[/yellow]")


@app.command(name="task-activate")
def task_activate(
    task_id: str = typer.Argument(..., help="Task ID"),
) -> None:
    """Make a task the active one."""
    config = get_config()

    def activate(service: PomodoroService) -> TimerState:
        _require_task(service.state, task_id)
        return service.set_active_task(task_id)

    state = _apply(config, activate, f"Use: pomodoro-ledger timer activate {task_id}")
    console.print(f"[green]Active task: {state.active_task.name}[/green]")


@app.command()
def durations(
    work: str = typer.Option(None, "--work", "-w", help="Work minutes (1-60)"),
    short_break: str = typer.Option(None, "--short", "-s", help="Short break minutes (1-60)"),
    long_break: str = typer.Option(None, "--long", "-l", help="Long break minutes (1-60)"),
) -> None:
    """Show or change the interval lengths. Changing them stops the timer."""
    config = get_config()

    if work is None and short_break is None and long_break is None:
        try:
            state = _load_state(config)
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)
    else:
        def change(service: PomodoroService) -> TimerState:
            current = service.state.durations
            return service.set_durations(
                coerce_minutes(work if work is not None else current.minutes_for(Mode.WORK),
                               DEFAULT_WORK_MINUTES),
                coerce_minutes(short_break if short_break is not None
                               else current.minutes_for(Mode.SHORT_BREAK),
                               DEFAULT_SHORT_BREAK_MINUTES),
                coerce_minutes(long_break if long_break is not None
                               else current.minutes_for(Mode.LONG_BREAK),
                               DEFAULT_LONG_BREAK_MINUTES),
            )

        state = _apply(config, change, "Stop it before changing durations.")

    table = Table(title="Durations", show_header=True, header_style="bold cyan")
    table.add_column("Interval")
    table.add_column("Minutes")

    for mode in Mode:
        table.add_row(mode.label, str(state.durations.minutes_for(mode)))

    console.print(table)


@app.command()
def stats() -> None:
    """Show today's work minutes and pomodoros per task."""
    config = get_config()

    try:
        state = _load_state(config)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    today = today_stats(state)
    console.print(Panel(
        f"[bold]{today.total_work_minutes}[/bold] min focused, "
        f"[bold]{today.pomodoro_count}[/bold] pomodoros",
        title=f"Today ({today.date})",
        border_style="blue",
    ))

    if not today.per_task:
        console.print("[dim]No sessions linked to tasks today[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Task")
    table.add_column("Minutes", justify="right")
    table.add_column("Pomodoros", justify="right")

    for entry in today.per_task:
        table.add_row(entry.task_name, str(entry.total_minutes), f"🍅 {entry.pomodoros}")

    console.print(table)


@app.command()
def report(
    days: int = typer.Option(7, "--days", "-d", min=1, max=90, help="Days in the breakdown"),
) -> None:
    """Show all-time totals and work minutes per day."""
    config = get_config()

    try:
        state = _load_state(config)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    totals = all_time_stats(state)

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Focus Time", f"{totals.total_work_minutes} min")
    table.add_row("Pomodoros", str(totals.pomodoro_count))
    table.add_row("Tasks", f"{totals.tasks_with_pomodoros} of {totals.total_tasks} worked on")
    console.print(Panel(table, title="All Time", border_style="green"))

    week = Table(title=f"Last {days} days", show_header=True, header_style="bold cyan")
    week.add_column("Day")
    week.add_column("Date")
    week.add_column("Minutes", justify="right")

    for day in weekly_breakdown(state, days=days):
        week.add_row(day.weekday, day.date, str(day.work_minutes))

    console.print(week)


@app.command(name="reset-data")
def reset_data(
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
) -> None:
    """Delete every task, session and saved countdown."""
    config = get_config()

    if _get_run_pid(config) is not None:
        console.print("[red]A 'pomodoro-ledger run' session is active.[/red]")
        console.print("Stop it before resetting data.")
        raise typer.Exit(1)

    if not yes and not typer.confirm("Delete all tasks and history?"):
        raise typer.Exit(0)

    async def clear() -> None:
        db = Database(config.db_path)
        await db.connect()
        try:
            await StateStore(db, config.storage.state_key).clear()
        finally:
            await db.close()

    try:
        asyncio.run(clear())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print("[yellow]All data deleted[/yellow]")


@app.command()
def config_show() -> None:
    """Show current configuration."""
    config = get_config()

    table = Table(title="Pomodoro Ledger Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value")

    # Paths
    table.add_row("[bold]Paths[/bold]", "")
    table.add_row("  Data Directory", str(config.data_dir))
    table.add_row("  Log Directory", str(config.log_dir))
    table.add_row("  Config File", str(config.config_file))
    table.add_row("  Database", str(config.db_path))

    # Timer
    table.add_row("[bold]Timer Defaults[/bold]", "")
    table.add_row("  Work", f"{config.timer.work_minutes} min")
    table.add_row("  Short Break", f"{config.timer.short_break_minutes} min")
    table.add_row("  Long Break", f"{config.timer.long_break_minutes} min")
    table.add_row("  Tick Interval", f"{config.timer.tick_interval_seconds}s")

    # Web
    table.add_row("[bold]HTTP API[/bold]", "")
    table.add_row("  URL", f"http://{config.web.host}:{config.web.port}/api")

    table.add_row("[bold]Log Level[/bold]", config.log_level)

    console.print(table)


@app.command()
def serve(
    host: str = typer.Option(None, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(None, "--port", "-p", help="Port to bind to"),
) -> None:
    """Serve the timer over a local HTTP API."""
    config = get_config()
    setup_logging(config.log_level, config.log_dir / "pomodoro-ledger.log")

    pid = _get_run_pid(config)
    if pid is not None:
        console.print(f"[red]A 'pomodoro-ledger run' session is active (PID: {pid})[/red]")
        raise typer.Exit(1)

    # Use config values if not overridden
    host = host or config.web.host
    port = port or config.web.port

    console.print("[green]Starting Pomodoro Ledger API...[/green]")
    console.print(f"Open [blue]http://{host}:{port}/api/state[/blue]")
    console.print("Press Ctrl+C to stop\n")

    try:
        import uvicorn
        uvicorn.run(
            "pomodoro_ledger.web.app:create_app",
            host=host,
            port=port,
            factory=True,
            log_level="info",
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"Pomodoro Ledger v{__version__}")


@app.callback()
def main_callback() -> None:
    """Pomodoro Ledger - pomodoro timer with per-task countdowns."""
    pass


if __name__ == "__main__":
    app()
