"""
config.py

Responsibility: static knobs of the tool, kept in one immutable object so the
CLI, resolver and registry code read the same values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

DEFAULT_FILE_MAPPING: Mapping[str, str] = MappingProxyType(
    {
        "gitignore": ".gitignore",
        "_gitignore": ".gitignore",
        "_.gitignore": ".gitignore",
        "_package.json": "package.json",
        "_.eslintignore": ".eslintignore",
        "_.npmignore": ".npmignore",
    }
)


@dataclass(frozen=True)
class Settings:
    """Tool-wide settings. Override fields in tests or wrapping tools."""

    name: str = "boilerplate-init"
    # Registry package whose `config.boilerplate` lists the available boilerplates.
    config_name: str = "akos-boilerplate-init-config"
    # Stripped from the target folder name when defaulting the `name` question.
    name_prefix: str = "egg-"
    template_subdir: str = "boilerplate"
    metadata_timeout: float = 5.0
    download_timeout: float = 60.0
    max_redirects: int = 5
    file_mapping: Mapping[str, str] = field(default_factory=lambda: DEFAULT_FILE_MAPPING)
