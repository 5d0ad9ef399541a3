"""Console output for the CLI.

Errors go through rich on stderr. The describe report itself is written
verbatim to stdout (no markup, no wrapping) by the command.
"""

from rich.console import Console as RichConsole
from rich.markup import escape


class Console:
    """CLI output manager wrapping rich."""

    def __init__(self, *, force_terminal: bool | None = None) -> None:
        """Initialize the console.

        Args:
            force_terminal: Force terminal mode (True/False) or auto-detect (None).
        """
        self._err_console = RichConsole(
            force_terminal=force_terminal,
            stderr=True,
        )

    def error(self, message: str, *, hint: str | None = None) -> None:
        """Print an error message to stderr."""
        self._err_console.print(f"[red]✗[/red] {escape(message)}", soft_wrap=True)
        if hint:
            self._err_console.print(f"  [dim]{escape(hint)}[/dim]", soft_wrap=True)


# Module-level default instance for convenience
_default: Console | None = None


def get_console() -> Console:
    """Get the default console instance."""
    global _default
    if _default is None:
        _default = Console()
    return _default
