"""
questions.py

Responsibility: load a boilerplate's variable questions and resolve them into a
flat variable scope.

A boilerplate may describe its questions in one of two places, inside the
template directory (next to the `boilerplate/` folder):
- `questions.py`: a module-level `questions`, either a mapping or a callable that
  receives the invoking command and returns a mapping.
- `questions.yml` / `questions.yaml`: a static mapping.

Each mapping entry looks like:

    name:
      type: input            # optional, defaults to `input`
      description: project name
      default: my-app        # value, or (in Python) a callable taking the scope so far
      filter: str.lower      # Python only, applied to the answer
      choices: [a, b]        # for `list` questions
"""

from __future__ import annotations

import importlib.util
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping

import yaml

from boilerplate_init.logger import Logger

if TYPE_CHECKING:
    from boilerplate_init.prompter import Prompter

Scope = dict[str, Any]

QUESTIONS_MODULE = "questions.py"
QUESTIONS_FILES = ("questions.yml", "questions.yaml")


class QuestionError(ValueError):
    pass


class QuestionsNotFound(QuestionError):
    pass


@dataclass(frozen=True)
class Constant:
    """A default that is a plain value."""

    value: Any

    def evaluate(self, scope: Mapping[str, Any]) -> Any:
        return self.value


@dataclass(frozen=True)
class Derived:
    """A default computed from the answers collected so far."""

    fn: Callable[[Mapping[str, Any]], Any]

    def evaluate(self, scope: Mapping[str, Any]) -> Any:
        return self.fn(scope)


Default = Constant | Derived


@dataclass(frozen=True)
class QuestionDefinition:
    name: str
    type: str = "input"
    message: str = ""
    default: Default | None = None
    filter: Callable[[Any], Any] | None = None
    choices: list[Any] | None = None
    # Raise ValueError with a user-facing message to reject an answer.
    validate: Callable[[Any], None] | None = None


@dataclass(frozen=True)
class StaticQuestions:
    mapping: Mapping[str, Any]

    def load(self, context: Any) -> Mapping[str, Any]:
        return self.mapping


@dataclass(frozen=True)
class ComputedQuestions:
    fn: Callable[[Any], Mapping[str, Any]]

    def load(self, context: Any) -> Mapping[str, Any]:
        return self.fn(context)


QuestionSource = StaticQuestions | ComputedQuestions


@dataclass
class QuestionSet:
    """Ordered question definitions, ready to be asked or defaulted."""

    questions: list[QuestionDefinition] = field(default_factory=list)

    def names(self) -> list[str]:
        return [q.name for q in self.questions]


def _load_module(path: Path) -> Any:
    spec = importlib.util.spec_from_file_location(f"_boilerplate_questions_{abs(hash(path))}", path)
    if spec is None or spec.loader is None:
        raise QuestionError(f"Cannot import questions module: {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def find_question_source(template_dir: str | Path) -> QuestionSource:
    """
    Locate the question definitions of a template directory.

    Raises QuestionsNotFound when the template ships none.
    """
    base = Path(template_dir)
    module_path = base / QUESTIONS_MODULE
    if module_path.is_file():
        module = _load_module(module_path)
        questions = getattr(module, "questions", None)
        if questions is None:
            raise QuestionError(f"{module_path} does not define `questions`")
        if callable(questions):
            return ComputedQuestions(questions)
        return StaticQuestions(questions)

    for filename in QUESTIONS_FILES:
        path = base / filename
        if path.is_file():
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            return StaticQuestions(data)

    raise QuestionsNotFound(f"No question definitions in {base}")


def _as_default(raw: Any) -> Default | None:
    if raw is None:
        return None
    if isinstance(raw, (Constant, Derived)):
        return raw
    if callable(raw):
        return Derived(raw)
    return Constant(raw)


def parse_questions(mapping: Mapping[str, Any]) -> QuestionSet:
    """
    Normalise a raw `{name: {...}}` mapping into QuestionDefinitions, preserving order.
    """
    if not isinstance(mapping, Mapping):
        raise QuestionError("Questions must be a mapping of name -> definition.")

    out: list[QuestionDefinition] = []
    for name, raw in mapping.items():
        if isinstance(raw, QuestionDefinition):
            out.append(raw)
            continue
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise QuestionError(f"Question `{name}` must be a mapping.")
        filter_fn = raw.get("filter")
        if filter_fn is not None and not callable(filter_fn):
            raise QuestionError(f"Question `{name}` has a non-callable filter.")
        validate_fn = raw.get("validate")
        if validate_fn is not None and not callable(validate_fn):
            raise QuestionError(f"Question `{name}` has a non-callable validate.")
        choices = raw.get("choices")
        out.append(
            QuestionDefinition(
                name=str(name),
                type=str(raw.get("type") or "input"),
                message=str(raw.get("description") or raw.get("desc") or ""),
                default=_as_default(raw.get("default")),
                filter=filter_fn,
                choices=list(choices) if choices is not None else None,
                validate=validate_fn,
            )
        )
    return QuestionSet(out)


def _is_blank(default: Default | None) -> bool:
    return default is None or (isinstance(default, Constant) and not default.value)


def with_name_default(question_set: QuestionSet, target_dir: str | Path, prefix: str) -> QuestionSet:
    """
    Default the `name` question to the target folder name, minus `prefix`,
    unless it already has a non-empty default.
    """
    folder = Path(target_dir).name
    if prefix and folder.startswith(prefix):
        folder = folder[len(prefix):]

    out: list[QuestionDefinition] = []
    for q in question_set.questions:
        if q.name == "name" and _is_blank(q.default):
            q = replace(q, default=Constant(folder))
        out.append(q)
    return QuestionSet(out)


def resolve_silent(question_set: QuestionSet) -> Scope:
    """
    Compute every answer from defaults and filters, in declaration order.
    """
    result: Scope = {}
    for q in question_set.questions:
        value = q.default.evaluate(result) if q.default is not None else ""
        result[q.name] = value or ""
        if q.filter is not None:
            result[q.name] = q.filter(result[q.name]) or ""
    return result


def resolve_interactive(question_set: QuestionSet, prompter: Prompter) -> Scope:
    """
    Ask every question in order; derived defaults see the answers given so far.
    """
    answers: Scope = {}
    for q in question_set.questions:
        answers[q.name] = prompter.ask(q, answers)
    return answers


def ask_for_variables(
    *,
    target_dir: str | Path,
    template_dir: str | Path,
    context: Any,
    prompter: Prompter,
    logger: Logger,
    silent: bool,
    name_prefix: str = "egg-",
) -> Scope:
    """
    Build the variable scope for a template directory.

    A template without questions yields an empty scope. Any other failure while
    loading the questions is reported as a warning and also yields an empty scope.
    """
    try:
        source = find_question_source(template_dir)
        question_set = parse_questions(source.load(context))
        question_set = with_name_default(question_set, target_dir, name_prefix)
    except QuestionsNotFound:
        return {}
    except Exception as e:  # noqa: BLE001 - broken question files must not abort the run
        logger.warn(f"load boilerplate config got trouble, skip and use defaults, {e}")
        return {}

    logger.log("collecting boilerplate config...")
    if silent:
        result = resolve_silent(question_set)
        logger.log("use default due to --silent, %s", result)
        return result
    return resolve_interactive(question_set, prompter)
