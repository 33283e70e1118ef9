"""Terminal output for the processing and report commands."""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TaskProgressColumn, TextColumn
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from .dataset import Dataset
    from .orchestrator import RunReport


class FriendlyUI:
    """Readable progress and summaries in place of raw log lines."""

    def __init__(self, verbose: bool = False, console: Console | None = None):
        self.verbose = verbose
        self.start_time = time.time()
        self.console = console or Console()

    def _message(self, label: str, style: str, message: str) -> None:
        styled_message = Text()
        styled_message.append("▸ ", style=f"bold {style}")
        styled_message.append(label, style=f"bold {style}")
        styled_message.append(" ", style=style)
        styled_message.append(message, style=style)
        self.console.print(styled_message)

    def info(self, message: str):
        self._message("INFO", "cyan", message)

    def success(self, message: str):
        self._message("OK", "green", message)

    def warning(self, message: str):
        self._message("WARNING", "yellow", message)

    def error(self, message: str):
        self._message("ERROR", "red", message)

    def verbose_log(self, message: str):
        """Show a message only in verbose mode."""
        if self.verbose:
            self.console.print(Text(f"   ◦ {message}", style="dim cyan"))

    @contextmanager
    def stage(self, name: str) -> Iterator[tuple[Progress, TaskID]]:
        """Progress display for one pipeline stage."""
        stage_start = time.time()

        with Progress(
            SpinnerColumn("dots", style="bold green"),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(style="cyan", complete_style="green"),
            TaskProgressColumn(),
            console=self.console,
            transient=True,
        ) as progress:
            task = progress.add_task(name, total=None)
            try:
                yield progress, task
            except Exception as e:
                self.error(f"{name} failed: {e}")
                raise

        duration = time.time() - stage_start
        self.console.print(f"   [dim]{name} completed in {duration:.1f}s[/dim]")

    def update_progress(self, progress: Progress | None, task: TaskID | None, current: int, total: int):
        if progress is not None and task is not None:
            progress.update(task, completed=current, total=total)

    def show_run_summary(self, report: "RunReport", output_file: str):
        """Counts for a finished processing run."""
        duration = time.time() - self.start_time

        summary_table = Table(show_header=False, box=box.SIMPLE, padding=(0, 2))
        summary_table.add_column("Metric", style="dim blue")
        summary_table.add_column("Value", style="bold bright_blue", justify="right")

        summary_table.add_row("Raw items", str(report.fetched))
        summary_table.add_row("Already published", str(report.skipped_existing))
        summary_table.add_row("Not relevant", str(report.irrelevant))
        summary_table.add_row("Duplicates", str(report.duplicates))
        summary_table.add_row("Non-English", str(report.non_english))
        summary_table.add_row("Processed", str(report.processed))
        summary_table.add_row("Accepted", str(report.accepted))
        summary_table.add_row("Below threshold", str(report.rejected))
        summary_table.add_row("Expired", str(report.expired))
        summary_table.add_row("Near-duplicates", str(report.near_duplicates))
        summary_table.add_row("Degraded items", str(report.degraded))
        summary_table.add_row("Dataset size", str(report.merged))
        summary_table.add_row("Method", report.processing_method)
        summary_table.add_row("Output file", output_file)
        summary_table.add_row("Total time", f"{duration:.1f}s")

        self.console.print()
        self.console.print(Panel(
            summary_table,
            title="[bold cyan]Dataset updated[/bold cyan]",
            title_align="center",
            box=box.ROUNDED,
            border_style="bright_blue",
        ))

    def show_dataset_report(self, dataset: "Dataset", path: str, top: int = 10):
        """Category breakdown and newest items of a persisted dataset."""
        header = Table(show_header=False, box=box.SIMPLE, padding=(0, 2))
        header.add_column("Field", style="dim blue")
        header.add_column("Value", style="bold")
        header.add_row("File", path)
        header.add_row("Processed at", dataset.processed_at.isoformat())
        header.add_row("Method", dataset.processing_method)
        header.add_row("Articles", str(dataset.total_articles))
        self.console.print(header)

        categories = Table(title="Categories", box=box.SIMPLE, header_style="bold cyan")
        categories.add_column("Category")
        categories.add_column("Articles", justify="right")
        for category, count in dataset.category_counts.items():
            categories.add_row(category, str(count))
        self.console.print(categories)

        if not dataset.articles or top < 1:
            return

        articles = Table(title=f"Top {min(top, dataset.total_articles)} articles", box=box.SIMPLE, header_style="bold cyan")
        articles.add_column("Published", style="dim")
        articles.add_column("Category")
        articles.add_column("Conf.", justify="right")
        articles.add_column("Diff.", justify="right")
        articles.add_column("Title", overflow="fold")
        for item in dataset.articles[:top]:
            title = Text(item.title)
            if item.duplicate_of is not None:
                title.append(" (dup)", style="dim")
            articles.add_row(
                item.pub_date.strftime("%Y-%m-%d %H:%M"),
                item.category.value,
                f"{item.confidence:.2f}",
                str(item.difficulty),
                title,
            )
        self.console.print(articles)


# Global UI instance
_ui_instance: FriendlyUI | None = None


def init_ui(verbose: bool = False) -> FriendlyUI:
    """Initialize UI for the session."""
    global _ui_instance
    _ui_instance = FriendlyUI(verbose=verbose)
    return _ui_instance
