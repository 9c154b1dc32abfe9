"""Terminal progress for concurrently running units, rendered with Rich."""

from __future__ import annotations

from threading import Lock

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


class UnitProgress:
    """One progress row per work unit, safe to update from worker threads.

    Falls back to a silent no-op when stdout is not a terminal.
    """

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self.console = console or Console()
        if enabled and not self.console.is_terminal:
            self.enabled = False
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[unit]:<24}", justify="left"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TextColumn("[dim]{task.fields[current]}", justify="left"),
            console=self.console,
            transient=True,
            refresh_per_second=8,
            expand=True,
            disable=not self.enabled,
        )
        self._lock = Lock()
        self._entered = False

    def __enter__(self) -> "UnitProgress":
        if self.enabled and not self._entered:
            try:
                self._progress.__enter__()
                self._entered = True
            except LiveError:
                self.enabled = False
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._entered:
            self._progress.__exit__(exc_type, exc, tb)
            self._entered = False

    def create_reporter(self, unit_name: str, total: int) -> "UnitProgressReporter":
        with self._lock:
            task_id = self._progress.add_task(unit_name, total=total, unit=unit_name, current="")
        return UnitProgressReporter(self, task_id)

    def update(self, task_id: TaskID, **fields) -> None:
        with self._lock:
            self._progress.update(task_id, **fields)


class UnitProgressReporter:
    """Progress handle given to a single unit task."""

    def __init__(self, owner: UnitProgress, task_id: TaskID) -> None:
        self._owner = owner
        self._task_id = task_id

    def advance(self, current: str) -> None:
        display = current if len(current) <= 60 else current[:57] + "..."
        self._owner.update(self._task_id, advance=1, current=display)

    def finish(self, ok: bool) -> None:
        label = "[green]done" if ok else "[red]failed"
        self._owner.update(self._task_id, current=label)


__all__ = ["UnitProgress", "UnitProgressReporter"]
