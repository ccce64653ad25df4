from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

from wireplan.types import DeclarationKind

_GENERIC_ARGUMENTS_PATTERN = re.compile(r"\[.*\]")


@dataclass(frozen=True, slots=True)
class TypeRef:
    """A type as written at a use site (annotation, base list or alias target)."""

    text: str
    """Textual representation, e.g. ``IHandler[UserCreated]``."""
    symbol: str | None = None
    """Symbolic name of the referenced declaration, ``None`` for anonymous types."""
    arguments: tuple[TypeRef, ...] = ()
    """Generic type arguments in declaration order."""
    is_type_parameter: bool = False
    """True for ``TypeVar`` / PEP 695 parameters, which never become tokens."""
    is_structural: bool = False
    """True for inline anonymous types without a stable cross-file identity."""

    @classmethod
    def named(cls, symbol: str, *arguments: TypeRef) -> TypeRef:
        """Build a reference to a named type, optionally parametrized."""
        if not arguments:
            return cls(text=symbol, symbol=symbol)
        rendered = ", ".join(argument.text for argument in arguments)
        return cls(text=f"{symbol}[{rendered}]", symbol=symbol, arguments=arguments)

    @classmethod
    def structural(cls, text: str) -> TypeRef:
        """Build a reference to an inline anonymous type."""
        return cls(text=text, is_structural=True)

    @classmethod
    def type_parameter(cls, name: str) -> TypeRef:
        """Build a reference to a generic type parameter."""
        return cls(text=name, symbol=name, is_type_parameter=True)


@dataclass(frozen=True, slots=True)
class AnnotationTag:
    """A raw ``@Tag payload`` annotation attached to a declaration."""

    name: str
    payload: str | None = None


@dataclass(frozen=True, slots=True)
class Parameter:
    """A callable or constructor parameter."""

    name: str
    annotation: TypeRef | None = None
    """Declared type; ``None`` when the parameter is unannotated."""


@dataclass(frozen=True, slots=True)
class CallSignature:
    """A call signature of a function or variable declaration."""

    parameters: tuple[Parameter, ...]
    returns: TypeRef


@dataclass(frozen=True, slots=True, kw_only=True)
class Declaration:
    """An exported declaration in the immutable semantic snapshot."""

    name: str
    kind: DeclarationKind
    file_path: str
    exported: bool = True
    namespace: str | None = None
    """Name of the enclosing namespace, ``None`` for top-level declarations."""
    tags: tuple[AnnotationTag, ...] = ()
    type_parameters: tuple[str, ...] = ()
    aliased: TypeRef | None = None
    """Aliased type of a type alias."""
    extends: tuple[TypeRef, ...] = ()
    """Declared base types of an interface or class."""
    parameters: tuple[Parameter, ...] = ()
    """Constructor parameters of a class, ``self`` excluded."""
    signatures: tuple[CallSignature, ...] = ()
    """Call signatures of a function or variable declaration."""

    @property
    def qualified_name(self) -> str:
        if self.namespace is None:
            return self.name
        return f"{self.namespace}.{self.name}"

    @property
    def import_name(self) -> str:
        """Return the top-level name to import, the namespace for namespaced members."""
        return self.namespace if self.namespace is not None else self.name


class SemanticOracle(Protocol):
    """Query surface the resolution core needs from a type-checking engine."""

    def find_tags(self, declaration: Declaration) -> tuple[AnnotationTag, ...]:
        """Return the annotation tags carried by a declaration."""
        ...

    def type_name(self, type_ref: TypeRef) -> str:
        """Return the symbolic name of a type, or its text without generic arguments."""
        ...

    def type_arguments(self, type_ref: TypeRef) -> tuple[TypeRef, ...]:
        """Return the generic type arguments of a type."""
        ...

    def base_types(self, type_ref: TypeRef) -> tuple[TypeRef, ...]:
        """Return the base types of a type with its type arguments substituted."""
        ...

    def structural_bases(self, declaration: Declaration) -> tuple[TypeRef, ...]:
        """Return the aliased type of an alias or the extended types of an interface."""
        ...

    def call_signatures(self, declaration: Declaration) -> tuple[CallSignature, ...]:
        """Return the call signatures of a callable declaration."""
        ...

    def instance_type(self, declaration: Declaration) -> TypeRef:
        """Return the instance type produced by a class declaration."""
        ...

    def declaring_path(self, type_ref: TypeRef) -> str | None:
        """Return the file path declaring the type's symbol, if the snapshot has it."""
        ...

    def symbol_declarations(self, type_ref: TypeRef) -> tuple[Declaration, ...]:
        """Return the declarations of the type's symbol."""
        ...


class SnapshotOracle(SemanticOracle):
    """Answer oracle queries from an immutable tuple of declarations."""

    def __init__(self, declarations: Iterable[Declaration]) -> None:
        self._declarations = tuple(declarations)
        by_symbol: dict[str, list[Declaration]] = {}
        for declaration in self._declarations:
            by_symbol.setdefault(declaration.name, []).append(declaration)
        self._by_symbol = {name: tuple(items) for name, items in by_symbol.items()}

    @property
    def declarations(self) -> tuple[Declaration, ...]:
        """Declarations the oracle answers from, in input order."""
        return self._declarations

    def find_tags(self, declaration: Declaration) -> tuple[AnnotationTag, ...]:
        return declaration.tags

    def type_name(self, type_ref: TypeRef) -> str:
        if type_ref.symbol:
            return type_ref.symbol
        return _GENERIC_ARGUMENTS_PATTERN.sub("", type_ref.text).strip()

    def type_arguments(self, type_ref: TypeRef) -> tuple[TypeRef, ...]:
        return type_ref.arguments

    def base_types(self, type_ref: TypeRef) -> tuple[TypeRef, ...]:
        for declaration in self.symbol_declarations(type_ref):
            if declaration.kind in {DeclarationKind.FUNCTION, DeclarationKind.VARIABLE}:
                continue
            mapping = dict(zip(declaration.type_parameters, type_ref.arguments, strict=False))
            return tuple(
                substitute_type_parameters(base, mapping=mapping)
                for base in self.structural_bases(declaration)
            )
        return ()

    def structural_bases(self, declaration: Declaration) -> tuple[TypeRef, ...]:
        if declaration.kind is DeclarationKind.TYPE_ALIAS:
            return () if declaration.aliased is None else (declaration.aliased,)
        if declaration.kind in {DeclarationKind.INTERFACE, DeclarationKind.CLASS}:
            return declaration.extends
        return ()

    def call_signatures(self, declaration: Declaration) -> tuple[CallSignature, ...]:
        if declaration.kind in {DeclarationKind.FUNCTION, DeclarationKind.VARIABLE}:
            return declaration.signatures
        return ()

    def instance_type(self, declaration: Declaration) -> TypeRef:
        return TypeRef.named(declaration.name)

    def declaring_path(self, type_ref: TypeRef) -> str | None:
        declarations = self.symbol_declarations(type_ref)
        if not declarations:
            return None
        return declarations[0].file_path

    def symbol_declarations(self, type_ref: TypeRef) -> tuple[Declaration, ...]:
        if type_ref.symbol is None or type_ref.is_type_parameter:
            return ()
        return self._by_symbol.get(type_ref.symbol, ())


def substitute_type_parameters(type_ref: TypeRef, *, mapping: Mapping[str, TypeRef]) -> TypeRef:
    """Substitute type parameters in a type reference using a resolved mapping.

    Args:
        type_ref: Reference that may mention the declaration's type parameters.
        mapping: Type parameter name to the argument supplied at the use site.

    Returns:
        The reference with every mapped parameter replaced, rebuilt bottom-up.

    """
    if type_ref.is_type_parameter:
        return mapping.get(type_ref.text, type_ref)
    if not type_ref.arguments or type_ref.symbol is None:
        return type_ref
    arguments = tuple(
        substitute_type_parameters(argument, mapping=mapping) for argument in type_ref.arguments
    )
    return TypeRef.named(type_ref.symbol, *arguments)
