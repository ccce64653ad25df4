from __future__ import annotations

from dataclasses import dataclass

from wireplan.declarations import TypeRef
from wireplan.tokens import Token
from wireplan.types import FactoryKind, Lifecycle


@dataclass(frozen=True, slots=True)
class BindingMetadata:
    """Reflective ``implements`` / ``generics`` relations of a token or factory."""

    implements: tuple[Token, ...] = ()
    """Tokens of the interfaces realized, in order of first discovery."""
    generics: tuple[Token, ...] = ()
    """Tokens of the generic arguments, in order of first discovery."""

    @property
    def is_empty(self) -> bool:
        return not self.implements and not self.generics

    def is_trivial_for(self, token: Token | None) -> bool:
        """Return true when the metadata says nothing beyond ``token`` itself.

        A factory producing a service type trivially implements that service;
        such metadata does not require a per-factory token.
        """
        if self.generics:
            return False
        return all(item == token for item in self.implements)

    def without(self, token: Token | None) -> BindingMetadata:
        """Return a copy that does not list ``token`` in ``implements``."""
        return BindingMetadata(
            implements=tuple(item for item in self.implements if item != token),
            generics=self.generics,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class Factory:
    """A declaration that produces an instance of a token's type."""

    name: str
    namespace: str | None = None
    """Enclosing namespace of the declaration, ``None`` for top-level factories."""
    kind: FactoryKind
    declaring_module_path: str
    deps: tuple[Token, ...]
    """Dependency tokens in parameter order, primitives excluded."""
    produced_type: TypeRef
    """Produced type as written, e.g. ``IHandler[UserCreated]``."""
    produced_type_name: str
    """Symbolic name of the produced type, generic arguments stripped."""
    produced_token: Token | None
    """Token of the produced type; ``None`` when the produced type is primitive."""
    lifecycle: Lifecycle = Lifecycle.TRANSIENT
    module: str
    is_multi_implementation: bool = False

    @property
    def qualified_name(self) -> str:
        """Return the expression referencing the factory in generated code."""
        if self.namespace is None:
            return self.name
        return f"{self.namespace}.{self.name}"
