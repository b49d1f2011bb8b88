from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table


def _format_region_counts(counts: Dict[str, int], *, max_regions: int = 4) -> str:
    if not counts:
        return ""
    items = list(counts.items())[-max_regions:]
    tail = len(counts) - len(items)
    rendered = ", ".join([f"{name}={count}" for name, count in items])
    if tail > 0:
        rendered = f"(+{tail} more) {rendered}"
    return rendered


class RunProgress:
    """
    Region-level progress bar. Every method is a no-op when disabled.
    """

    def __init__(self, *, enabled: bool, console: Optional[Console] = None) -> None:
        self._console = console or Console(stderr=True)
        self._progress: Optional[Progress] = None
        self._task: Optional[int] = None
        self._region_counts: Dict[str, int] = {}
        self._started = False
        if enabled:
            self._progress = Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TextColumn("{task.fields[regions]}", justify="left"),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )

    def __enter__(self) -> RunProgress:
        if self._progress and not self._started:
            self._progress.start()
            self._started = True
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        if self._progress and self._started:
            self._progress.stop()
            self._started = False

    def start_collection(self, regions: Sequence[str]) -> None:
        self._region_counts = {}
        if not self._progress:
            return
        self._task = self._progress.add_task("Regions", total=len(regions), regions="")

    def region_done(self, region: str, count: int) -> None:
        self._region_counts[region] = count
        if not self._progress or self._task is None:
            return
        self._progress.update(
            self._task,
            advance=1,
            regions=_format_region_counts(self._region_counts),
        )


def render_run_summary_table(
    *,
    enabled: bool,
    status: str,
    regions: Sequence[str],
    total_instances: int,
    output_path: str,
    console: Optional[Console] = None,
) -> None:
    if not enabled:
        return
    table = Table(title="Run Summary", show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Status", status)
    table.add_row("Regions in scope", ", ".join(regions))
    table.add_row("Instances collected", str(total_instances))
    table.add_row("Output file", output_path)
    (console or Console(stderr=True)).print(table)
