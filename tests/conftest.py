"""Shared pytest fixtures for wireplan tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from wireplan.annotations import parse_tag_lines
from wireplan.context import ResolutionContext
from wireplan.declarations import CallSignature, Declaration, Parameter, TypeRef
from wireplan.types import DeclarationKind

DeclareFn = Callable[..., Declaration]
ContextFn = Callable[..., ResolutionContext]


@pytest.fixture()
def declare() -> DeclareFn:
    """Build a declaration from a name, a kind and ``@Tag payload`` strings."""

    def _declare(
        name: str,
        kind: DeclarationKind = DeclarationKind.CLASS,
        *tags: str,
        file_path: str = "app/services.py",
        **fields: Any,
    ) -> Declaration:
        return Declaration(
            name=name,
            kind=kind,
            file_path=file_path,
            tags=parse_tag_lines("\n".join(f"@{tag}" for tag in tags)),
            **fields,
        )

    return _declare


@pytest.fixture()
def make_context() -> ContextFn:
    """Build a resolution context over the given declarations."""

    def _make_context(*declarations: Declaration, default_module: str = "default") -> ResolutionContext:
        return ResolutionContext.from_declarations(declarations, default_module=default_module)

    return _make_context


@pytest.fixture()
def returning() -> Callable[..., tuple[CallSignature, ...]]:
    """Build a single call signature from a return type and annotated parameters."""

    def _returning(returns: TypeRef, **parameters: TypeRef | None) -> tuple[CallSignature, ...]:
        return (
            CallSignature(
                parameters=tuple(
                    Parameter(name=name, annotation=annotation)
                    for name, annotation in parameters.items()
                ),
                returns=returns,
            ),
        )

    return _returning


@pytest.fixture()
def source_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write ``{relative path: source}`` files below a fresh ``src`` directory."""

    def _source_tree(files: dict[str, str]) -> Path:
        root = tmp_path / "src"
        for relative_path, text in files.items():
            path = root / relative_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return root

    return _source_tree
