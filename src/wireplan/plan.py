from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from wireplan.context import Diagnostic, ResolutionContext
from wireplan.factories import BindingMetadata, Factory
from wireplan.passes.registration import binding_target
from wireplan.tokens import Token


@dataclass(frozen=True, slots=True)
class PlannedToken:
    """A token in emission order with its reflective metadata."""

    token: Token
    implements: tuple[Token, ...] = ()
    generics: tuple[Token, ...] = ()
    factory: Factory | None = None
    """Factory owning a per-factory token; ``None`` for type tokens."""


@dataclass(frozen=True, slots=True)
class PlannedFactory:
    """A factory with its metadata and the token it is registered under."""

    factory: Factory
    metadata: BindingMetadata
    target: Token


@dataclass(frozen=True, slots=True)
class Binding:
    """A factory registered under a token inside a module."""

    token: Token
    factory: Factory


@dataclass(frozen=True, slots=True)
class ModulePlan:
    """Ordered bindings of one module partition."""

    name: str
    bindings: tuple[Binding, ...]


@dataclass(frozen=True, slots=True)
class ResolutionPlan:
    """Complete output artifact consumed by emitters."""

    tokens: tuple[PlannedToken, ...]
    factories: tuple[PlannedFactory, ...]
    modules: tuple[ModulePlan, ...]
    token_imports: dict[str, list[str]]
    factory_imports: dict[str, list[str]]
    diagnostics: tuple[Diagnostic, ...] = ()

    def module(self, name: str) -> ModulePlan:
        """Get a module partition by name."""
        for module in self.modules:
            if module.name == name:
                return module
        raise KeyError(name)

    def find_token(self, token_id: str) -> PlannedToken | None:
        """Get a planned token by id, if the plan has it."""
        for planned in self.tokens:
            if planned.token.id == token_id:
                return planned
        return None

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-ready, deterministic view of the plan."""
        return {
            "tokens": [
                {
                    "id": planned.token.id,
                    "name": planned.token.display_name,
                    "cardinality": planned.token.cardinality.value,
                    "implements": [token.id for token in planned.implements],
                    "generics": [token.id for token in planned.generics],
                    "factory": planned.factory.name if planned.factory else None,
                }
                for planned in self.tokens
            ],
            "factories": [
                {
                    "name": planned.factory.name,
                    "kind": planned.factory.kind.value,
                    "path": planned.factory.declaring_module_path,
                    "deps": [token.id for token in planned.factory.deps],
                    "produced_type": planned.factory.produced_type.text,
                    "lifecycle": planned.factory.lifecycle.value,
                    "module": planned.factory.module,
                    "multi_implementation": planned.factory.is_multi_implementation,
                    "target": planned.target.id,
                    "implements": [token.id for token in planned.metadata.implements],
                    "generics": [token.id for token in planned.metadata.generics],
                }
                for planned in self.factories
            ],
            "modules": {
                module.name: [[binding.token.id, binding.factory.name] for binding in module.bindings]
                for module in self.modules
            },
            "imports": {
                "tokens": self.token_imports,
                "factories": self.factory_imports,
            },
            "diagnostics": [
                {
                    "severity": diagnostic.severity.value,
                    "code": diagnostic.code,
                    "message": diagnostic.message,
                }
                for diagnostic in self.diagnostics
            ],
        }


def build_plan(context: ResolutionContext) -> ResolutionPlan:
    """Freeze a fully resolved context into a ``ResolutionPlan``."""
    factory_by_name = {factory.name: factory for factory in context.factories}
    owners: dict[str, Factory] = {}
    for name, token in context.factory_tokens.items():
        factory = factory_by_name[name]
        if token.display_name != factory.produced_type_name:
            owners[token.id] = factory

    tokens = []
    for token in context.ordered_tokens:
        metadata = context.token_metadata.get(token.id, BindingMetadata())
        tokens.append(
            PlannedToken(
                token=token,
                implements=metadata.implements,
                generics=metadata.generics,
                factory=owners.get(token.id),
            ),
        )

    factories = tuple(
        PlannedFactory(
            factory=factory,
            metadata=context.factory_metadata.get(factory.name, BindingMetadata()),
            target=binding_target(context, factory),
        )
        for factory in context.factories
    )

    modules = tuple(
        ModulePlan(
            name=name,
            bindings=tuple(Binding(token=token, factory=factory) for token, factory in bindings),
        )
        for name, bindings in context.bindings_by_module.items()
    )

    return ResolutionPlan(
        tokens=tuple(tokens),
        factories=factories,
        modules=modules,
        token_imports=context.token_imports.as_dict(),
        factory_imports=context.factory_imports.as_dict(),
        diagnostics=tuple(context.diagnostics),
    )
