"""Output formatters for dispatch reports and workspace listings."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from .core import Config, ExecutionResult

SEPARATOR_WIDTH = 80
SEPARATOR = "-" * SEPARATOR_WIDTH


def render_block(result: ExecutionResult) -> str:
    """Format one result as a bordered report block.

    The block is a separator line, a ``# NAME -- command`` header, the body
    and a closing separator. Skipped and unstarted repositories get a one
    line explanation in place of command output.
    """
    lines = [SEPARATOR, f"# {result.repository_name.upper()} -- {result.command_line}"]
    if not result.reachable:
        lines.append(f"Can't find repository: {result.path}")
    elif result.spawn_error:
        lines.append(f"Could not run command: {result.spawn_error}")
    elif result.combined_output:
        lines.append(result.combined_output.rstrip("\n"))
    lines.append(SEPARATOR)
    return "\n".join(lines) + "\n"


def render(results: Iterable[ExecutionResult]) -> list[str]:
    """Render results into blocks, keeping their order."""
    return [render_block(result) for result in results]


class OutputFormatter:
    """Format output for the console."""

    def __init__(self, console: Console):
        self.console = console

    def print_results(self, results: Iterable[ExecutionResult]) -> list[ExecutionResult]:
        """Print a block per result as results arrive; return them all."""
        printed = []
        for result in results:
            # git output may contain brackets, so no markup or highlighting
            self.console.print(render_block(result), markup=False, highlight=False, soft_wrap=True)
            printed.append(result)
        return printed

    def print_config(self, config: Config, reachable: Sequence[bool]):
        """Print the workspace root and its repositories as a table."""
        self.console.print(f"[bold]Root:[/] {escape(config.root)}")
        self.console.print(f"[bold]Include root:[/] {'yes' if config.include_root else 'no'}\n")

        if not config.targets:
            self.console.print("[dim]No repositories configured[/]")
            return

        table = Table(title="Repositories")
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Path")
        table.add_column("Found", justify="center")

        for record, found in zip(config.targets, reachable):
            status = "[green]✓[/]" if found else "[red]✗[/]"
            table.add_row(escape(record.name), escape(record.path), status)

        self.console.print(table)
        self.console.print(f"\n[bold]Total:[/] {len(config.targets)}")

    def print_history(self, history: str):
        """Print the raw history log."""
        if not history:
            self.console.print("[dim]No history recorded[/]")
            return
        self.console.print(history.rstrip("\n"), markup=False, highlight=False, soft_wrap=True)
