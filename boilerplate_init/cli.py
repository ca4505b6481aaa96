"""
cli.py

Responsibility: CLI entrypoint for boilerplate-init.

High-level flow:
1) Validate (or ask for) the target directory
2) Resolve the template directory: --template -> --package -> boilerplate mapping
3) Ask for template variables -> copy `boilerplate/` with substitution
4) Print usage

This module should orchestrate behavior but keep concerns isolated:
- Rendering: `renderer.py`
- Questions: `questions.py`
- Template sources: `resolver.py`
- Registry access: `registry.py`
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path

from jinja2 import Environment

from boilerplate_init import __version__
from boilerplate_init.config import Settings
from boilerplate_init.logger import Logger
from boilerplate_init.prompter import Prompter, RichPrompter
from boilerplate_init.questions import Constant, QuestionDefinition, Scope, ask_for_variables
from boilerplate_init.registry import DownloadError, RegistryClient, RegistryError, download_boilerplate, get_registry_by_type
from boilerplate_init.renderer import RenderError, render_boilerplate
from boilerplate_init.resolver import (
    InvalidTemplate,
    TemplateNotFound,
    ask_for_boilerplate_type,
    fetch_boilerplate_mapping,
    resolve_local,
)

_usage_env = Environment(autoescape=False, keep_trailing_newline=True, trim_blocks=True, lstrip_blocks=True)

USAGE_TEMPLATE = _usage_env.from_string(
    """usage:
  - cd {{ target_dir }}
{% for step in steps %}
  - {{ step }}
{% endfor %}
"""
)

USAGE_STEPS = ["npm install", "npm start / npm run dev / npm test"]


class CLIError(RuntimeError):
    pass


class TargetDirError(ValueError):
    pass


def check_target_dir(path: Path, *, force: bool, logger: Logger) -> None:
    """
    Accept a missing directory (created here), an empty one, or a non-empty one with force.
    Hidden entries do not count.
    """
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)
        return
    if not path.is_dir():
        raise TargetDirError(f"{path} already exists as a file")
    files = sorted(name for name in os.listdir(path) if not name.startswith("."))
    if files:
        if force:
            logger.error(f"{path} already exists and will be override due to --force")
            return
        raise TargetDirError(f"{path} already exists and not empty: {files}")


class Command:
    def __init__(
        self,
        args: argparse.Namespace,
        *,
        settings: Settings | None = None,
        logger: Logger | None = None,
        prompter: Prompter | None = None,
        client: RegistryClient | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.args = args
        self.settings = settings or Settings()
        self.logger = logger or Logger(self.settings.name)
        self.prompter = prompter or RichPrompter(self.logger.console)
        self.cwd = (cwd or Path.cwd()).resolve()
        self.client = client or RegistryClient(get_registry_by_type(getattr(args, "registry", None)))
        self.target_dir: Path | None = None

    def log(self, message: str, *args: object) -> None:
        self.logger.log(message, *args)

    def get_target_directory(self) -> Path:
        """
        Validate the requested target dir; ask for another one until it is valid.
        """
        raw = str(self.args.target or self.args.dir or "")
        target = (self.cwd / raw).resolve()
        force = bool(self.args.force)

        def validate(path: Path) -> None:
            check_target_dir(path, force=force, logger=self.logger)

        try:
            validate(target)
        except TargetDirError as e:
            self.logger.error(str(e))
            target = self.prompter.ask(
                QuestionDefinition(
                    name="dir",
                    message="Please enter target dir: ",
                    default=Constant(raw or "."),
                    filter=lambda answer: (self.cwd / str(answer)).resolve(),
                    validate=validate,
                ),
                {},
            )
        self.log(f"target dir is {target}")
        return target

    def get_template_dir(self) -> Path | None:
        """
        Local template from `--template`, when it exists and is valid.
        """
        if not self.args.template:
            return None
        try:
            template_dir = resolve_local(self.args.template, cwd=self.cwd, settings=self.settings)
        except (TemplateNotFound, InvalidTemplate) as e:
            self.logger.error(str(e))
            return None
        self.log(f"local template dir is {template_dir}")
        return template_dir

    def resolve_template_dir(self) -> Path | None:
        template_dir = self.get_template_dir()
        if template_dir is not None:
            return template_dir

        pkg_name = self.args.package
        if not pkg_name:
            mapping = fetch_boilerplate_mapping(self.client, settings=self.settings, logger=self.logger, cwd=self.cwd)
            if not mapping:
                raise CLIError(f"No boilerplate listed by {self.settings.config_name}")
            info = mapping.get(self.args.type) if self.args.type else None
            if info is None:
                info = ask_for_boilerplate_type(mapping, prompter=self.prompter, logger=self.logger)
            if info is None:
                return None
            pkg_name = info.package

        return download_boilerplate(self.client, pkg_name, settings=self.settings, logger=self.logger)

    def ask_for_variables(self, target_dir: Path, template_dir: Path) -> Scope:
        return ask_for_variables(
            target_dir=target_dir,
            template_dir=template_dir,
            context=self,
            prompter=self.prompter,
            logger=self.logger,
            silent=bool(self.args.silent),
            name_prefix=self.settings.name_prefix,
        )

    def process_files(self, target_dir: Path, template_dir: Path) -> list[str]:
        """
        Copy `<template_dir>/boilerplate` into target_dir with the collected variables.
        """
        scope = self.ask_for_variables(target_dir, template_dir)
        return render_boilerplate(
            source_dir=template_dir / self.settings.template_subdir,
            destination_dir=target_dir,
            scope=scope,
            file_mapping=self.settings.file_mapping,
            on_write=lambda dst: self.log(f"write to {dst}"),
        )

    def print_usage(self) -> None:
        self.log(USAGE_TEMPLATE.render(target_dir=self.target_dir, steps=USAGE_STEPS))

    def run(self) -> int:
        self.target_dir = self.get_target_directory()
        template_dir = self.resolve_template_dir()
        if template_dir is None:
            return 1
        files = self.process_files(self.target_dir, template_dir)
        self.logger.success(f"{len(files)} files written to {self.target_dir}")
        self.print_usage()
        return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="boilerplate-init",
        description="init project from boilerplate.",
        usage="%(prog)s [dir] --type=simple",
    )
    p.add_argument("target", nargs="?", default=None, help="Target directory")
    p.add_argument("--type", default=None, help="Boilerplate type")
    p.add_argument("--dir", default=None, help="Target directory")
    p.add_argument("-f", "--force", action="store_true", help="Force to override directory")
    p.add_argument("--template", default=None, help="Local path to boilerplate")
    p.add_argument("--package", default=None, help="Boilerplate package name")
    p.add_argument(
        "-r",
        "--registry",
        default=None,
        help="npm registry, support china/npm/netease/custom URL, default to auto detect",
    )
    p.add_argument("--silent", action="store_true", help="Don't ask, just use default values")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    command = Command(args)
    try:
        return command.run()
    except (CLIError, RegistryError, DownloadError, RenderError) as e:
        command.logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
