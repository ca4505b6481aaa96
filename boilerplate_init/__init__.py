"""
boilerplate_init package

This package implements boilerplate-init, a CLI that scaffolds a project from a
packaged boilerplate.

Key responsibilities are split across modules:
- `renderer.py`: placeholder substitution, text/binary detection, file tree copy
- `questions.py`: load template questions and resolve them into a variable scope
- `resolver.py`: find the template directory (local path, package, boilerplate mapping)
- `registry.py`: isolated npm registry interactions (metadata lookup / tarball download)
- `prompter.py` / `logger.py`: terminal input and colored output
- `cli.py`: CLI entrypoint and orchestration (target dir -> template -> questions -> copy)
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
