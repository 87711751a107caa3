"""User-facing notification channel for run summaries."""

import logging
from typing import Optional, Protocol

from rich.console import Console

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Best-effort, non-blocking summary channel."""

    def info(self, message: str) -> None:
        """Report a successful outcome."""
        ...

    def warning(self, message: str) -> None:
        """Report a recovered per-file problem."""
        ...

    def error(self, message: str) -> None:
        """Report an aborted run."""
        ...


class LoggingNotifier:
    """Routes notifications to the ``vault_state.notify`` logger."""

    def info(self, message: str) -> None:
        logger.info(message)

    def warning(self, message: str) -> None:
        logger.warning(message)

    def error(self, message: str) -> None:
        logger.error(message)


class ConsoleNotifier:
    """Prints notifications with Rich markup, for the CLI."""

    def __init__(self, console: Optional[Console] = None, quiet: bool = False):
        self.console = console or Console()
        self.quiet = quiet

    def info(self, message: str) -> None:
        if not self.quiet:
            self.console.print(f"[green]✓[/green] {message}", highlight=False)

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}", highlight=False)

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}", highlight=False)
