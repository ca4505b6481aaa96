"""
logger.py

Responsibility: colored console output with a `[name]` prefix.

The logger is passed to whatever needs it instead of living in module state,
so tests can capture output with a recording console.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markup import escape


class Logger:
    def __init__(self, name: str, console: Console | None = None) -> None:
        self.name = name
        self.console = console or Console(highlight=False)

    def _emit(self, message: str, args: tuple[Any, ...], style: str | None) -> None:
        if args:
            message = message % args
        text = escape(message)
        if style:
            text = f"[{style}]{text}[/{style}]"
        self.console.print(f"[blue]{escape(f'[{self.name}]')}[/blue] {text}")

    def log(self, message: str, *args: Any) -> None:
        self._emit(message, args, None)

    def warn(self, message: str, *args: Any) -> None:
        self._emit(message, args, "yellow")

    def error(self, message: str, *args: Any) -> None:
        self._emit(message, args, "red")

    def success(self, message: str, *args: Any) -> None:
        self._emit(message, args, "green")
