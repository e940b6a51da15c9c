"""Progress display for the branch analysis."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


class AnalysisProgress:
    """Rich progress bar driven by the pipeline's progress observer.

    Usable as the ``progress`` callback of :func:`bramble.api.analyze`.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None

    def start(self) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40, complete_style="cyan", finished_style="green"),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
        )
        self._progress.start()
        self._task_id = self._progress.add_task("Collecting branches...", total=None)

    def __call__(self, completed: int, total: int, message: str) -> None:
        if not self._progress or self._task_id is None:
            return
        self._progress.update(
            self._task_id,
            completed=completed,
            total=total,
            description=self._clean_message(message),
        )

    def _clean_message(self, message: str) -> str:
        if len(message) > 50:
            message = message[:47] + "..."
        return escape(message)

    def finish(self, branch_count: int) -> None:
        if self._progress and self._task_id is not None:
            self._progress.update(
                self._task_id,
                description=f"[green]Done![/] {branch_count} branches analyzed",
            )
        self.stop()

    def stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
        self._task_id = None

    def __enter__(self) -> "AnalysisProgress":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
