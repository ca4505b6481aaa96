"""Shared pytest fixtures for the boilerplate-init test suite.

Provides:
- A logger writing to an in-memory console
- A scripted prompter standing in for the terminal
- A small boilerplate template directory on disk
"""

from __future__ import annotations

import argparse
import io
from pathlib import Path
from typing import Any, Mapping

import pytest
from rich.console import Console

from boilerplate_init.logger import Logger
from boilerplate_init.questions import QuestionDefinition

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"

USE_DEFAULT = object()


class ScriptedPrompter:
    """Answers questions from a list, the way a user at the terminal would.

    `USE_DEFAULT` accepts the question's default. Answers rejected by
    `validate` are recorded and the next scripted answer is tried.
    """

    def __init__(self, answers: list[Any] | None = None) -> None:
        self.answers = list(answers or [])
        self.asked: list[QuestionDefinition] = []
        self.rejected: list[str] = []

    def ask(self, question: QuestionDefinition, answers: Mapping[str, Any]) -> Any:
        self.asked.append(question)
        while True:
            if not self.answers:
                raise AssertionError(f"unexpected question: {question.name}")
            answer = self.answers.pop(0)
            if answer is USE_DEFAULT:
                answer = question.default.evaluate(answers) if question.default is not None else ""
            if question.filter is not None:
                answer = question.filter(answer)
            if question.validate is None:
                return answer
            try:
                question.validate(answer)
            except ValueError as e:
                self.rejected.append(str(e))
                continue
            return answer


def console_output(logger: Logger) -> str:
    return logger.console.file.getvalue()


@pytest.fixture
def logger() -> Logger:
    console = Console(file=io.StringIO(), force_terminal=False, width=300, highlight=False)
    return Logger("boilerplate-init", console)


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Template directory with a text file, a binary file, a dotfile alias and a nested path."""
    root = tmp_path / "template"
    src = root / "boilerplate"
    (src / "src" / "{{ name }}").mkdir(parents=True)
    (src / "one.txt").write_text("Hello {{ name }}\n", encoding="utf-8")
    (src / "logo.png").write_bytes(PNG_BYTES)
    (src / "_gitignore").write_text("node_modules\n", encoding="utf-8")
    (src / "src" / "{{ name }}" / "index.js").write_text(
        "module.exports = '{{ name }}'; // \\{{ name }}\n", encoding="utf-8"
    )
    return root


def make_args(**overrides: Any) -> argparse.Namespace:
    values: dict[str, Any] = {
        "target": None,
        "dir": None,
        "type": None,
        "force": False,
        "template": None,
        "package": None,
        "registry": "npm",
        "silent": True,
    }
    values.update(overrides)
    return argparse.Namespace(**values)
