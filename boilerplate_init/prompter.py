"""
prompter.py

Responsibility: ask the user one question at a time on the terminal.

Supported question types: `input`, `password`, `confirm`, `list` (pick one of
`choices`). Choices are plain values or `{"name": label, "value": value}`
mappings; `None` entries render as separators.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, IntPrompt, Prompt

from boilerplate_init.questions import QuestionDefinition

SEPARATOR = None


class Prompter(Protocol):
    def ask(self, question: QuestionDefinition, answers: Mapping[str, Any]) -> Any: ...


def _choice_label(choice: Any) -> str:
    if isinstance(choice, Mapping):
        return str(choice.get("name", choice.get("value")))
    return str(choice)


def _choice_value(choice: Any) -> Any:
    if isinstance(choice, Mapping):
        return choice.get("value", choice.get("name"))
    return choice


class RichPrompter:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)

    def _ask_raw(self, question: QuestionDefinition, default: Any) -> Any:
        message = question.message or question.name
        if question.type == "confirm":
            return Confirm.ask(message, default=bool(default), console=self.console)

        if question.type == "list" and question.choices:
            selectable = [c for c in question.choices if c is not SEPARATOR]
            self.console.print(f"[bold]{escape(message)}[/bold]")
            default_index = 1
            for i, choice in enumerate(selectable, start=1):
                if default is not None and _choice_value(choice) == default:
                    default_index = i
                self.console.print(f"  {i}) {escape(_choice_label(choice))}")
            picked = IntPrompt.ask(
                "Answer",
                choices=[str(i) for i in range(1, len(selectable) + 1)],
                default=default_index,
                show_choices=False,
                console=self.console,
            )
            return _choice_value(selectable[picked - 1])

        kwargs: dict[str, Any] = {"console": self.console, "password": question.type == "password"}
        if default is not None and default != "":
            kwargs["default"] = str(default)
        else:
            kwargs["default"] = ""
            kwargs["show_default"] = False
        return Prompt.ask(message, **kwargs)

    def ask(self, question: QuestionDefinition, answers: Mapping[str, Any]) -> Any:
        default = question.default.evaluate(answers) if question.default is not None else None
        while True:
            answer = self._ask_raw(question, default)
            if question.filter is not None:
                answer = question.filter(answer)
            if question.validate is None:
                return answer
            try:
                question.validate(answer)
            except ValueError as e:
                self.console.print(f"[red]>> {escape(str(e))}[/red]")
                continue
            return answer
