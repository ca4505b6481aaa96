"""
renderer.py

Responsibility: copy a boilerplate file tree into a destination directory.

Rules:
- Walk template files in sorted order (dotfiles included) to ensure deterministic output.
- Destination paths go through the alias table, then through placeholder substitution.
- Text files get `{{ name }}` placeholders replaced from the variable scope.
- Binary files are copied byte-for-byte.

This module intentionally does NOT know about registries, prompting, or CLI parsing.
"""

from __future__ import annotations

import codecs
import os
import re
import shutil
from pathlib import Path
from typing import Any, Callable, Mapping

PLACEHOLDER_RE = re.compile(r"(\\)?\{\{ *(\w+) *\}\}")

BINARY_EXTENSIONS = frozenset(
    {
        "png", "jpg", "jpeg", "gif", "bmp", "ico", "icns", "webp", "tif", "tiff", "psd",
        "woff", "woff2", "ttf", "otf", "eot",
        "zip", "gz", "tgz", "bz2", "xz", "7z", "rar", "tar", "jar",
        "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
        "mp3", "mp4", "wav", "ogg", "webm", "mov", "avi", "flac",
        "exe", "dll", "so", "dylib", "class", "pyc", "wasm", "node", "db", "sqlite",
    }
)

TEXT_EXTENSIONS = frozenset(
    {
        "txt", "md", "markdown", "rst", "json", "yml", "yaml", "toml", "ini", "cfg", "conf",
        "js", "jsx", "mjs", "cjs", "ts", "tsx", "vue", "css", "less", "scss", "sass",
        "html", "htm", "xml", "svg", "tpl", "nj", "ejs",
        "py", "sh", "bat", "sql", "lock", "editorconfig", "gitignore", "npmignore", "eslintignore",
    }
)

SNIFF_BYTES = 1024
HIGH_BIT_RATIO = 0.3


class RenderError(RuntimeError):
    pass


def replace_template(content: str, scope: Mapping[str, Any]) -> str:
    """
    Replace `{{ key }}` placeholders with values from scope.

    - `\\{{ key }}` is kept as the literal `{{ key }}` (the backslash is dropped).
    - Unknown keys are left untouched.
    - Substituted values are not scanned again.
    """

    def _sub(match: re.Match[str]) -> str:
        block, skip, key = match.group(0), match.group(1), match.group(2)
        if skip:
            return block[len(skip):]
        if key in scope:
            return str(scope[key])
        return block

    return PLACEHOLDER_RE.sub(_sub, content)


def _extension(path: str | Path) -> str:
    name = Path(path).name.lower()
    if "." not in name.lstrip("."):
        # dotfiles such as `.gitignore`
        return name.lstrip(".")
    return name.rsplit(".", 1)[1]


def _looks_like_text(chunk: bytes) -> bool:
    if not chunk:
        return True
    if b"\x00" in chunk:
        return False
    # The chunk may end in the middle of a multi-byte sequence.
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoder.decode(chunk, final=False)
        return True
    except UnicodeDecodeError:
        pass
    high = sum(1 for b in chunk if b > 0x7F)
    return high / len(chunk) <= HIGH_BIT_RATIO


def is_text(path: str | Path, content: bytes) -> bool:
    """
    Best-effort text/binary guess from the file extension, then from the leading bytes.
    """
    ext = _extension(path)
    if ext in BINARY_EXTENSIONS:
        return False
    if ext in TEXT_EXTENSIONS:
        return True
    return _looks_like_text(content[:SNIFF_BYTES])


def map_path(relative_path: str, scope: Mapping[str, Any], file_mapping: Mapping[str, str]) -> str:
    """
    Map a source-relative posix path to its destination-relative path.
    """
    return replace_template(file_mapping.get(relative_path, relative_path), scope)


def iter_template_files(template_dir: Path) -> list[str]:
    """
    Return posix relative paths of all files under template_dir, in deterministic
    lexicographic order. Hidden files and directories are included.
    """
    files: list[str] = []
    for root, _dirs, filenames in os.walk(template_dir):
        root_path = Path(root)
        for name in filenames:
            files.append((root_path / name).relative_to(template_dir).as_posix())
    files.sort()
    return files


def render_boilerplate(
    *,
    source_dir: str | Path,
    destination_dir: str | Path,
    scope: Mapping[str, Any],
    file_mapping: Mapping[str, str],
    on_write: Callable[[Path], None] | None = None,
) -> list[str]:
    """
    Copy every file of source_dir into destination_dir.

    - Creates destination directories as needed and overwrites existing files.
    - Copies file permissions from template files.
    - Returns the processed source-relative paths.
    """
    src_dir = Path(source_dir).resolve()
    dst_dir = Path(destination_dir).resolve()

    if not src_dir.is_dir():
        raise RenderError(f"Boilerplate directory not found: {src_dir}")

    files = iter_template_files(src_dir)
    for rel in files:
        src_path = src_dir / rel
        dst_path = dst_dir / map_path(rel, scope, file_mapping)
        content = src_path.read_bytes()
        if on_write is not None:
            on_write(dst_path)

        if is_text(src_path, content):
            text = content.decode("utf-8", errors="replace")
            content = replace_template(text, scope).encode("utf-8")

        dst_path.parent.mkdir(parents=True, exist_ok=True)
        dst_path.write_bytes(content)
        shutil.copymode(src_path, dst_path)

    return files
