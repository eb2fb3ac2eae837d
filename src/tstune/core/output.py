"""Output utilities using Rich for console output.

Provides:
- Colored or plain-prefixed status lines on stderr
- Raw config lines on stdout, so recommendations can be piped
- Verbosity level control
- Prompts and summaries
"""

from enum import IntEnum
from typing import Any

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax


class Verbosity(IntEnum):
    """Output verbosity levels."""
    QUIET = 0    # Errors, prompts and recommendations only
    NORMAL = 1   # Standard output
    VERBOSE = 2  # Additional details
    DEBUG = 3    # Everything


NO_COLOR_STATEMENT_PREFIX = "== "
NO_COLOR_PROMPT_PREFIX = "-- "
SUCCESS_LABEL = "success"


class Console:
    """Centralized console output with Rich integration.

    Status messages (statements, prompts, successes, errors) go to stderr.
    Config lines go to stdout without markup processing.
    """

    def __init__(self) -> None:
        self._console = RichConsole(highlight=False, soft_wrap=True)
        self._err_console = RichConsole(stderr=True, highlight=False, soft_wrap=True)
        self.verbosity = Verbosity.NORMAL
        self.dry_run = False
        self.no_color = False

    def configure(
        self,
        verbosity: int = 1,
        dry_run: bool = False,
        no_color: bool = False,
    ) -> None:
        """Configure console output settings."""
        self.verbosity = Verbosity(max(min(verbosity, Verbosity.DEBUG), Verbosity.QUIET))
        self.dry_run = dry_run
        self.no_color = no_color
        self._console = RichConsole(highlight=False, soft_wrap=True, no_color=no_color)
        self._err_console = RichConsole(
            stderr=True, highlight=False, soft_wrap=True, no_color=no_color
        )

    # Status output
    def statement(self, message: str) -> None:
        """Print a directional statement (bold)."""
        if self.verbosity < Verbosity.NORMAL:
            return
        if self.no_color:
            self._err_console.print(NO_COLOR_STATEMENT_PREFIX + message, markup=False)
        else:
            self._err_console.print(f"[bold]{escape(message)}[/bold]")

    def success(self, message: str) -> None:
        """Print a success message (green label)."""
        if self.verbosity < Verbosity.NORMAL:
            return
        self._labelled(SUCCESS_LABEL, message, "green")

    def error(self, label: str, message: str) -> None:
        """Print an error-style message with a label (red), e.g. "missing"."""
        self._labelled(label, message, "red")

    def warn(self, message: str) -> None:
        """Print a warning (red "warning" label)."""
        self._labelled("warning", message, "red")

    def _labelled(self, label: str, message: str, color: str) -> None:
        if self.no_color:
            self._err_console.print(f"{label.upper()}: {message}", markup=False)
        else:
            self._err_console.print(
                f"[bold {color}]{escape(label)}:[/bold {color}] {escape(message)}"
            )

    def hint(self, message: str) -> None:
        """Print a helpful hint (cyan)."""
        if self.no_color:
            self._err_console.print(f"Hint: {message}", markup=False)
        else:
            self._err_console.print(f"[cyan]Hint:[/cyan] {escape(message)}")

    def debug(self, message: str) -> None:
        """Print debug message (cyan) - only in debug mode."""
        if self.verbosity >= Verbosity.DEBUG:
            self._err_console.print(f"[cyan][DEBUG][/cyan] {escape(message)}")

    def verbose(self, message: str) -> None:
        """Print verbose message (dim) - only in verbose mode."""
        if self.verbosity >= Verbosity.VERBOSE:
            self._err_console.print(f"[dim]{escape(message)}[/dim]")

    # Structured output
    def line(self, text: str) -> None:
        """Print a line (e.g. a config setting) to stdout as-is.

        Undecodable bytes carried through from the config file are shown
        as replacement characters.
        """
        printable = text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
        self._console.print(printable, markup=False)

    def blank(self) -> None:
        """Print an empty separator line."""
        if self.verbosity >= Verbosity.NORMAL:
            self._err_console.print()

    def print(self, message: Any = "", **kwargs: Any) -> None:
        """Print raw message or Rich renderable with formatting."""
        self._console.print(message, **kwargs)

    def yaml(self, yaml_text: str, title: str = "Configuration") -> None:
        """Print formatted YAML."""
        syntax = Syntax(yaml_text, "yaml", theme="monokai", line_numbers=False)
        self._console.print(Panel(syntax, title=title, border_style="cyan"))

    def summary(self, title: str, items: dict[str, Any]) -> None:
        """Print a summary panel with key-value pairs."""
        if self.verbosity < Verbosity.NORMAL:
            return
        content_lines = []
        for key, value in items.items():
            if isinstance(value, bool):
                value_str = "[green]Yes[/green]" if value else "[red]No[/red]"
            else:
                value_str = escape(str(value))
            content_lines.append(f"[bold]{key}:[/bold] {value_str}")

        content = "\n".join(content_lines)
        self._err_console.print(Panel(content, title=title, border_style="blue"))

    # User input
    def prompt(self, message: str) -> str:
        """Ask a question on stderr and read one line of input.

        Raises:
            EOFError: If input stream is closed
            KeyboardInterrupt: If user presses Ctrl+C
        """
        if self.no_color:
            return self._err_console.input(NO_COLOR_PROMPT_PREFIX + escape(message))
        return self._err_console.input(f"[bold magenta]{escape(message)}[/bold magenta]")


# Global console instance
console = Console()
