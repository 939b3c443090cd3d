"""Notification sinks for change events"""
from abc import ABC, abstractmethod
from typing import Optional

from rich.console import Console

from git_peek.logging_config import get_logger

logger = get_logger(__name__)


class Notifier(ABC):
    """Receives user-facing notifications. Subclasses decide where they go."""

    @abstractmethod
    def notify(self, title: str, body: str) -> None:
        """Deliver one notification."""


class NullNotifier(Notifier):
    """Drops every notification."""

    def notify(self, title: str, body: str) -> None:
        logger.debug(f"Notification suppressed: {title}: {body}")


class ConsoleNotifier(Notifier):
    """Prints notifications to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def notify(self, title: str, body: str) -> None:
        self.console.print(f"[bold yellow]🔔 {title}[/bold yellow] {body}")
