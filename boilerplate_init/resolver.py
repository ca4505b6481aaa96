"""
resolver.py

Responsibility: turn "which boilerplate" into a local template directory.

A template directory must contain a `boilerplate/` folder holding the files to copy.
Sources, in the order the CLI tries them:
- a local path (`--template`)
- a package name (`--package`), downloaded from the registry
- an entry of the boilerplate mapping published by the config package, picked
  by `--type` or interactively
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from boilerplate_init.config import Settings
from boilerplate_init.logger import Logger
from boilerplate_init.questions import Constant, QuestionDefinition
from boilerplate_init.registry import RegistryClient, get_package_info

if TYPE_CHECKING:
    from boilerplate_init.prompter import Prompter


class TemplateNotFound(FileNotFoundError):
    pass


class InvalidTemplate(ValueError):
    pass


@dataclass(frozen=True)
class BoilerplateInfo:
    """One entry of the config package's boilerplate mapping."""

    name: str
    package: str
    description: str = ""
    category: str | None = None
    deprecate: str | None = None

    @classmethod
    def from_config(cls, key: str, raw: Mapping[str, Any]) -> BoilerplateInfo:
        return cls(
            name=str(raw.get("name") or key),
            package=str(raw.get("package") or ""),
            description=str(raw.get("description") or ""),
            category=raw.get("category"),
            deprecate=raw.get("deprecate"),
        )


def resolve_local(path: str | Path, *, cwd: Path, settings: Settings) -> Path:
    template_dir = (cwd / path).resolve()
    if not template_dir.exists():
        raise TemplateNotFound(f"{template_dir} is not exists")
    if not (template_dir / settings.template_subdir).exists():
        raise InvalidTemplate(f"{template_dir} should contain {settings.template_subdir} folder")
    return template_dir


def fetch_boilerplate_mapping(
    client: RegistryClient,
    *,
    settings: Settings,
    logger: Logger,
    cwd: Path | None = None,
) -> dict[str, BoilerplateInfo]:
    """
    Read `config.boilerplate` from the config package, falling back to a local copy.
    """
    info = get_package_info(
        client,
        settings.config_name,
        settings=settings,
        logger=logger,
        with_fallback=True,
        cwd=cwd,
    )
    raw_mapping = info.config.get("boilerplate") or {}
    return {k: BoilerplateInfo.from_config(k, v) for k, v in raw_mapping.items()}


def group_by(
    mapping: Mapping[str, BoilerplateInfo],
    key: str,
    other_key: str,
) -> dict[str, dict[str, BoilerplateInfo]]:
    """
    Group entries by the value of attribute `key`; entries without it go under `other_key`.
    """
    result: dict[str, dict[str, BoilerplateInfo]] = {}
    for name, item in mapping.items():
        group = getattr(item, key, None) or other_key
        result.setdefault(group, {})[name] = item
    return result


def ask_for_boilerplate_type(
    mapping: Mapping[str, BoilerplateInfo],
    *,
    prompter: Prompter,
    logger: Logger,
) -> BoilerplateInfo | None:
    """
    Let the user pick a boilerplate, by category first when there is more than one.

    Returns None when the user declines a deprecated boilerplate.
    """
    groups = group_by(mapping, "category", "other")
    group_names = list(groups)

    if len(group_names) > 1:
        picked = prompter.ask(
            QuestionDefinition(
                name="group",
                type="list",
                message="Please select a boilerplate category",
                choices=group_names,
            ),
            {},
        )
        group = groups[picked]
    else:
        group = groups[group_names[0]]

    choices = [{"name": f"{key} - {item.description}", "value": item} for key, item in group.items()]
    info: BoilerplateInfo = prompter.ask(
        QuestionDefinition(
            name="boilerplateInfo",
            type="list",
            message="Please select a boilerplate type",
            choices=choices,
        ),
        {},
    )
    if not info.deprecate:
        return info

    should_install = prompter.ask(
        QuestionDefinition(
            name="shouldInstall",
            type="list",
            message="It's deprecated",
            choices=[
                {"name": f"1. {info.deprecate}", "value": False},
                {"name": "2. I still want to continue installing", "value": True},
            ],
            default=Constant(False),
        ),
        {},
    )
    if should_install:
        return info
    logger.log(f"Exit due to: {info.deprecate}")
    return None
