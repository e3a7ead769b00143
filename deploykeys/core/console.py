import logging
from contextlib import contextmanager
from typing import Any, Generator, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from deploykeys.core.config import running_in_actions

console = Console()


def info(msg: str) -> None:
    console.print(f"[bold blue]ℹ[/] {msg}")


def success(msg: str) -> None:
    console.print(f"[bold green]✓[/] {msg}")


def warning(msg: str) -> None:
    console.print(f"[bold yellow]⚠[/] {msg}")


def error(msg: str) -> None:
    console.print(f"[bold red]✗[/] {msg}")


@contextmanager
def group(title: str) -> Generator[None, None, None]:
    """Bracket output under a heading; folds into a log group on GitHub Actions."""
    if running_in_actions():
        console.print(f"::group::{title}", markup=False, highlight=False)
        try:
            yield
        finally:
            console.print("::endgroup::", markup=False, highlight=False)
    else:
        console.rule(f"[bold cyan]{title}", align="left")
        yield


def print_table(title: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
    table = Table(title=title, show_lines=False)
    for col in columns:
        table.add_column(col, style="cyan")
    for row in rows:
        table.add_row(*(str(v) for v in row))
    console.print(table)


def setup_logging(verbose: bool = False) -> None:
    """Route the deploykeys loggers through rich."""
    logger = logging.getLogger("deploykeys")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=console, show_path=False, show_time=False))
