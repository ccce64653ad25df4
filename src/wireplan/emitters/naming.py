from __future__ import annotations

import builtins
import re
from collections.abc import Iterable
from pathlib import PurePosixPath

_MAX_IMPORT_LINE_LENGTH = 88
_CAMEL_BOUNDARY_PATTERN = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_NON_IDENTIFIER_PATTERN = re.compile(r"[^0-9a-zA-Z]+")


def to_snake_case(name: str) -> str:
    """Convert ``UserService`` / ``user-service`` style names to ``user_service``."""
    spaced = _CAMEL_BOUNDARY_PATTERN.sub("_", name)
    snake = _NON_IDENTIFIER_PATTERN.sub("_", spaced).strip("_").lower()
    if not snake:
        return "default"
    if snake[0].isdigit():
        return f"_{snake}"
    return snake


def module_path_for(file_path: str) -> str:
    """Map a source-root-relative file path to its dotted import path."""
    path = PurePosixPath(file_path)
    parts = list(path.with_suffix("").parts)
    if parts and parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


def is_builtin_name(name: str) -> bool:
    return hasattr(builtins, name)


def format_import(module: str, names: Iterable[str]) -> str:
    """Render a ``from module import ...`` statement, wrapped when too long."""
    ordered = sorted(set(names))
    line = f"from {module} import {', '.join(ordered)}"
    if len(line) <= _MAX_IMPORT_LINE_LENGTH:
        return line
    body = "\n".join(f"    {name}," for name in ordered)
    return f"from {module} import (\n{body}\n)"
