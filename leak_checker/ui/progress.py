"""Terminal progress helpers with Rich-based rendering."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
    SpinnerColumn,
)
from rich.text import Text


@dataclass
class ProgressState:
    total: int
    ingested: int = 0
    failed: int = 0
    current_prefix: str | None = None

    @property
    def completed(self) -> int:
        return self.ingested + self.failed


class RateColumn(ProgressColumn):
    """Render ranges processed per second."""

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text("", style="progress.percentage")
        return Text(f"{speed:.1f} range/s", style="progress.percentage")


class ProgressReporter:
    """Render download progress and keep counters; safe to call from workers."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self._lock = Lock()
        self.state: ProgressState | None = None

    def start(self, total: int) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        if self._console is None:
            self._console = Console()
        if not self._console.is_terminal:
            # Non-interactive output: keep counters only
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]ranges", justify="left"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            RateColumn(),
            TextColumn("[green]✓{task.fields[ingested]:>7}", justify="right"),
            TextColumn("[red]✗{task.fields[failed]:>5}", justify="right"),
            TextColumn("[dim]{task.fields[prefix]}", justify="left"),
            refresh_per_second=8,
            expand=True,
            transient=True,
            console=self._console,
        )
        try:
            self._progress.__enter__()
        except LiveError:
            # Another live display owns the console
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "download", total=total, ingested=0, failed=0, prefix="-"
        )

    def advance(self, ingested: bool = False, failed: bool = False, prefix: str | None = None) -> None:
        if not self.state:
            raise RuntimeError("ProgressReporter.start must be called before advance")
        with self._lock:
            if prefix:
                self.state.current_prefix = prefix
            if ingested:
                self.state.ingested += 1
            if failed:
                self.state.failed += 1
            if self._progress is not None and self._task_id is not None:
                self._progress.update(
                    self._task_id,
                    advance=1,
                    ingested=self.state.ingested,
                    failed=self.state.failed,
                    prefix=self.state.current_prefix or "-",
                )

    def close(self) -> None:
        with self._lock:
            if self._progress is not None:
                self._progress.__exit__(None, None, None)
                self._progress = None
            self._task_id = None

    def summary(self) -> dict[str, int]:
        if not self.state:
            return {"ingested": 0, "failed": 0}
        return {"ingested": self.state.ingested, "failed": self.state.failed}


__all__ = ["ProgressReporter", "ProgressState", "RateColumn"]
