"""Console output for the CLI.

Status lines go to stdout, errors to stderr, both through rich.
"""

from rich.console import Console as RichConsole
from rich.table import Table


class Console:
    def __init__(self, *, force_terminal: bool | None = None) -> None:
        self._out = RichConsole(force_terminal=force_terminal)
        self._err = RichConsole(force_terminal=force_terminal, stderr=True)

    def success(self, message: str) -> None:
        self._out.print(f"[green]✓[/green] {message}")

    def error(self, message: str, *, hint: str | None = None) -> None:
        self._err.print(f"[red]✗[/red] {message}")
        if hint:
            self._err.print(f"  [dim]{hint}[/dim]")

    def fields(self, title: str, rows: dict[str, str]) -> None:
        """Print labelled values as a borderless two-column table."""
        table = Table(title=title, show_header=False, box=None)
        table.add_column(style="dim")
        table.add_column()
        for label, value in rows.items():
            table.add_row(label, value)
        self._out.print(table)


_console: Console | None = None


def get_console() -> Console:
    global _console
    if _console is None:
        _console = Console()
    return _console
