"""Console rendering and progress helpers for multiup CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
)
from rich.table import Table

from .models import FileItem, Notification, UploadLogEntry
from .orchestrator.models import BatchResult
from .orchestrator.task import TaskView
from .services.history import HistoryTotals

console = Console()

_NOTE_STYLES = {
    "success": "green",
    "error": "red",
    "warning": "yellow",
    "info": "blue",
}


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]multiup[/bold green]",
        subtitle="[dim]multi-destination upload[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_notification(note: Notification) -> None:
    color = _NOTE_STYLES.get(note.level, "white")
    console.print(f"[{color}]{note.level.upper():<7}[/{color}] {note.message}")


def render_destinations(rows: Sequence[Dict[str, Any]]) -> None:
    table = Table(title="Destinations", header_style="bold cyan")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Endpoint")
    table.add_column("Bucket")
    table.add_column("Active", justify="center")
    for row in rows:
        table.add_row(
            str(row.get("id", "")),
            str(row.get("name", "")),
            str(row.get("kind", "")),
            str(row.get("endpoint") or "-"),
            str(row.get("bucket") or "-"),
            "yes" if row.get("is_active", True) else "no",
        )
    console.print(table)


def render_upload_logs(records: Sequence[Dict[str, Any]]) -> None:
    table = Table(title="Upload history", header_style="bold cyan")
    table.add_column("Date")
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Results")
    table.add_column("Duration", justify="right")
    for record in records:
        results: List[str] = []
        for outcome in record.get("upload_results") or []:
            ok = outcome.get("status") == "success"
            label = outcome.get("destination_name") or outcome.get("destination", "?")
            results.append(f"[green]{label}[/green]" if ok else f"[red]{label}[/red]")
        table.add_row(
            str(record.get("created_date", ""))[:19],
            str(record.get("file_name", "")),
            _human_size(int(record.get("file_size") or 0)),
            ", ".join(results) or "-",
            f"{int(record.get('upload_duration_ms') or 0)} ms",
        )
    console.print(table)


def render_history_totals(totals: HistoryTotals, shown: int) -> None:
    console.print(
        f"Showing {shown} of {totals.files} upload(s): "
        f"[green]{totals.succeeded} successful[/green] transfer(s), "
        f"[red]{totals.failed} failed[/red]"
    )


class BatchProgressDisplay:
    """Event-based console display for a batch run: one bar per destination."""

    def __init__(self, file_count: int):
        self._file_count = file_count
        self._tasks: Dict[str, TaskID] = {}
        self._overall_task_id: Optional[TaskID] = None
        self._live: Optional[Live] = None

        self._meta_progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=28),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            expand=False,
            console=console,
        )
        self._dest_progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold green]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=42),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("{task.fields[status]}", justify="left"),
            expand=False,
            console=console,
        )

    def _start_live(self) -> None:
        if self._live is not None:
            return
        self._live = Live(
            Group(self._meta_progress, self._dest_progress),
            console=console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()
        self._overall_task_id = self._meta_progress.add_task(
            "overall",
            label="Files",
            total=max(self._file_count, 1),
            completed=0,
            detail="waiting...",
        )

    def _stop_live(self) -> None:
        if self._live is None:
            return
        self._live.stop()
        self._live = None

    def _emit_timeline(self, status: str, name: str, detail: str = "") -> None:
        stamp = time.strftime("%H:%M:%S")
        palette = {"DONE": "green", "FAIL": "red", "INFO": "blue", "PART": "yellow"}
        color = palette.get(status, "white")
        suffix = f" {detail}" if detail else ""
        console.print(f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {name}{suffix}")

    @staticmethod
    def _status_label(view: TaskView) -> str:
        if view.error:
            return f"[red]{view.error}[/red]"
        return view.status.value.replace("_", " ")

    def _update(self, view: TaskView) -> None:
        task_id = self._tasks.get(view.destination_id)
        if task_id is None:
            return
        self._dest_progress.update(task_id, completed=view.progress, status=self._status_label(view))

    def on_file_start(self, file: FileItem, views: List[TaskView]) -> None:
        self._start_live()
        for task_id in self._tasks.values():
            self._dest_progress.remove_task(task_id)
        self._tasks.clear()

        for view in views:
            self._tasks[view.destination_id] = self._dest_progress.add_task(
                "upload",
                label=view.display_name[:40],
                total=100,
                status=self._status_label(view),
            )
        if self._overall_task_id is not None:
            self._meta_progress.update(self._overall_task_id, detail=f"{file.name} ({_human_size(file.size)})")

    def on_task_progress(self, view: TaskView) -> None:
        self._update(view)

    def on_task_complete(self, view: TaskView) -> None:
        self._update(view)

    def on_task_fail(self, view: TaskView) -> None:
        self._update(view)

    def on_file_complete(self, entry: UploadLogEntry) -> None:
        if self._overall_task_id is not None:
            self._meta_progress.advance(self._overall_task_id)

        ok = len(entry.succeeded)
        total = len(entry.outcomes)
        status = "DONE" if ok == total else "FAIL" if ok == 0 else "PART"
        self._emit_timeline(status, entry.file_name, f"{ok}/{total} destination(s) {entry.duration_ms} ms")

    def on_notify(self, note: Notification) -> None:
        render_notification(note)

    def on_pause(self, cancelled: int) -> None:
        self._emit_timeline("INFO", "paused", f"{cancelled} transfer(s) cancelled")

    def on_resume(self) -> None:
        self._emit_timeline("INFO", "resumed")

    def on_error(self, error: Exception) -> None:
        self._stop_live()
        self._emit_timeline("FAIL", "batch", type(error).__name__)

    def on_finish(self, result: BatchResult) -> None:
        self._stop_live()
        console.print(
            f"[bold]Finished[/bold] files={result.processed_files}/{result.total_files} "
            f"ok={result.succeeded_transfers} failed={result.failed_transfers}"
            + (" [yellow](stopped)[/yellow]" if result.stopped else "")
        )
