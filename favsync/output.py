"""Console and JSON output for the command line."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Formats user-facing messages.

    Informational output is suppressed when ``quiet`` is set; errors are
    always shown. With ``json_output`` only ``output_json`` writes to
    stdout, so the result can be piped.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress everything but errors
            console: Console to write to (stdout by default)
        """
        self.json_output = json_output
        self.quiet = quiet or json_output
        self.console = console or Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if not self.quiet:
            self.console.print(message)

    def info(self, message: str) -> None:
        if not self.quiet:
            self.console.print(message)

    def success(self, message: str) -> None:
        if not self.quiet:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        if not self.quiet:
            self.console.print(f"[yellow]⚠[/yellow] {message}")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]✗ Error:[/red] {message}")

    def output_json(self, data: Any) -> None:
        """Write data as indented JSON."""
        self.console.print_json(json.dumps(data, default=str, ensure_ascii=False))

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a titled two-column summary."""
        if self.quiet:
            return
        table = Table(title=title, show_header=False, title_justify="left")
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for field, value in items:
            table.add_row(field, str(value))
        self.console.print(table)

    def output_table(
        self,
        data: list[dict[str, Any]],
        columns: list[str],
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """Print rows as a table, or as JSON in JSON mode."""
        if self.json_output:
            self.output_json([{c: row.get(c) for c in columns} for row in data])
            return
        if self.quiet:
            return
        headers = headers or {}
        table = Table()
        for column in columns:
            table.add_column(headers.get(column, column))
        for row in data:
            table.add_row(*(str(row.get(c, "")) for c in columns))
        self.console.print(table)
