from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from pathlib import PurePosixPath

from jinja2 import Environment, Template

from wireplan.config import WirePlanSettings
from wireplan.declarations import TypeRef
from wireplan.emitters.naming import (
    format_import,
    is_builtin_name,
    module_path_for,
    to_snake_case,
)
from wireplan.emitters.templates import (
    CONTAINER_MODULE_TEMPLATE,
    CONTAINERS_PACKAGE_TEMPLATE,
    FACTORIES_MODULE_TEMPLATE,
    MODULE_DOCSTRING_TEMPLATE,
    PACKAGE_INIT_TEMPLATE,
    REGISTRATION_TEMPLATE,
    TOKENS_MODULE_TEMPLATE,
)
from wireplan.plan import ModulePlan, PlannedFactory, PlannedToken, ResolutionPlan
from wireplan.tokens import Token
from wireplan.types import FactoryKind, Lifecycle

_GENERATOR_SOURCE = "wireplan.emitters.renderer.WiringRenderer.render"
_TOKENS_MODULE = "tokens"
_FACTORIES_MODULE = "factories"
_CONTAINERS_PACKAGE = "containers"
logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FactoryEntry:
    """Pre-rendered fields of one ``FACTORIES`` manifest entry."""

    name: str
    reference: str
    """Expression naming the factory, ``Namespace.member`` for namespaced members."""
    target: str
    deps: str
    lifecycle: str
    module: str
    implements: str
    generics: str


@dataclass(frozen=True, slots=True)
class AliasProvider:
    """Provider forwarding an implemented token to the binding that realizes it."""

    function_name: str
    source: str
    target: str


@dataclass(frozen=True, slots=True)
class ContainerModule:
    """Naming of one generated container module."""

    module_name: str
    file_stem: str
    function_name: str


class WiringRenderer:
    """Render a ``ResolutionPlan`` into diwire wiring modules."""

    def __init__(self, settings: WirePlanSettings | None = None) -> None:
        self._settings = settings if settings is not None else WirePlanSettings()
        self._env = Environment(autoescape=False, trim_blocks=True, lstrip_blocks=True)
        self._docstring_template = self._template(MODULE_DOCSTRING_TEMPLATE)
        self._tokens_template = self._template(TOKENS_MODULE_TEMPLATE)
        self._factories_template = self._template(FACTORIES_MODULE_TEMPLATE)
        self._container_template = self._template(CONTAINER_MODULE_TEMPLATE)
        self._registration_template = self._template(REGISTRATION_TEMPLATE)
        self._containers_package_template = self._template(CONTAINERS_PACKAGE_TEMPLATE)
        self._package_init_template = self._template(PACKAGE_INIT_TEMPLATE)

    @property
    def output_package(self) -> str:
        """Return the dotted import path of the output directory."""
        output_dir = self._settings.output_dir
        try:
            relative = output_dir.resolve().relative_to(self._settings.source_dir.resolve())
        except ValueError:
            return output_dir.name
        return ".".join(relative.parts) or output_dir.name

    def render(self, plan: ResolutionPlan) -> dict[str, str]:
        """Render every generated module.

        Args:
            plan: Resolved wiring plan.

        Returns:
            Mapping of output-relative POSIX paths to module source text, in a
            stable order.

        """
        containers = [self._container_module(module) for module in plan.modules]
        files = {
            "__init__.py": self._finish(self._package_init_template.render()),
            f"{_TOKENS_MODULE}.py": self.render_tokens(plan),
            f"{_FACTORIES_MODULE}.py": self.render_factories(plan),
            f"{_CONTAINERS_PACKAGE}/__init__.py": self._render_containers_package(containers),
        }
        for module, naming in zip(plan.modules, containers, strict=True):
            path = PurePosixPath(_CONTAINERS_PACKAGE, f"{naming.file_stem}.py").as_posix()
            files[path] = self.render_container(plan, module)

        logger.info(
            "Rendered %d file(s): tokens=%d factories=%d modules=%s",
            len(files),
            len(plan.tokens),
            len(plan.factories),
            ",".join(module.name for module in plan.modules) or "none",
        )
        return files

    def render_tokens(self, plan: ResolutionPlan) -> str:
        """Render ``tokens.py`` with token aliases in dependency order."""
        references = {
            planned.token.display_name: planned.token.qualified_name for planned in plan.tokens
        }
        aliases = [self._render_token_alias(planned, references) for planned in plan.tokens]
        uses_component = any(planned.factory is not None for planned in plan.tokens)
        uses_new_type = any(
            planned.factory is None and self._is_placeholder(planned.token)
            for planned in plan.tokens
        )
        typing_names = ["Any", "TypeAlias"]
        if uses_component:
            typing_names.append("Annotated")
        if uses_new_type:
            typing_names.append("NewType")

        imports = [
            format_import(module_path_for(path), names)
            for path, names in plan.token_imports.items()
        ]
        metadata_entries = [
            f'{planned.token.id}: {{"implements": {_tuple(planned.implements)}, '
            f'"generics": {_tuple(planned.generics)}}}'
            for planned in plan.tokens
            if planned.implements or planned.generics
        ]
        return self._finish(
            self._tokens_template.render(
                docstring_block=self._render_docstring("Dependency-injection tokens."),
                typing_names=", ".join(sorted(typing_names)),
                uses_component=uses_component,
                runtime=self._settings.container_runtime,
                imports_block="\n".join(imports),
                aliases_block="\n".join(aliases),
                metadata_entries=metadata_entries,
            ),
        )

    def render_factories(self, plan: ResolutionPlan) -> str:
        """Render ``factories.py``, the manifest of every factory and its metadata."""
        token_ids = sorted(
            {
                token.id
                for planned in plan.factories
                for token in (
                    planned.target,
                    *planned.factory.deps,
                    *planned.metadata.implements,
                    *planned.metadata.generics,
                )
            },
        )
        imports = [
            format_import(module_path_for(path), names)
            for path, names in plan.factory_imports.items()
        ]
        if token_ids:
            imports.append(format_import(self._tokens_module, token_ids))
        entries = [self._factory_entry(planned) for planned in plan.factories]
        return self._finish(
            self._factories_template.render(
                docstring_block=self._render_docstring("Factory manifest."),
                imports_block="\n".join(imports),
                entries=entries,
            ),
        )

    def render_container(self, plan: ResolutionPlan, module: ModulePlan) -> str:
        """Render the container builder of one module partition.

        Every binding is registered under its target token. A single-cardinality
        token the factory implements, and that no binding of the module targets,
        is forwarded to the first implementing binding through a small alias
        provider.
        """
        naming = self._container_module(module)
        metadata_by_name = {planned.factory.name: planned.metadata for planned in plan.factories}
        bound_ids = {binding.token.id for binding in module.bindings}

        provider_imports: dict[str, set[str]] = {}
        token_ids: set[str] = set()
        registrations: list[str] = []
        aliases: list[AliasProvider] = []
        aliased_ids: set[str] = set()
        uses_scope = False
        for binding in module.bindings:
            factory = binding.factory
            provider_imports.setdefault(module_path_for(factory.declaring_module_path), set()).add(
                factory.namespace or factory.name,
            )
            token_ids.add(binding.token.id)
            scope = "REQUEST" if factory.lifecycle is Lifecycle.SCOPED else None
            uses_scope = uses_scope or scope is not None
            registrations.append(
                self._registration_template.render(
                    method="add_concrete" if factory.kind is FactoryKind.CLASS else "add_factory",
                    provider=factory.qualified_name,
                    target=binding.token.id,
                    lifetime=_LIFETIMES[factory.lifecycle],
                    scope=scope,
                ),
            )

            for implemented in metadata_by_name[factory.name].implements:
                if implemented.is_multi or implemented.id in bound_ids | aliased_ids:
                    continue
                aliased_ids.add(implemented.id)
                token_ids.add(implemented.id)
                alias = AliasProvider(
                    function_name=(
                        f"_provide_{to_snake_case(implemented.display_name)}"
                        f"_from_{to_snake_case(factory.name)}"
                    ),
                    source=binding.token.id,
                    target=implemented.id,
                )
                aliases.append(alias)

        registrations.extend(
            self._registration_template.render(
                method="add_factory",
                provider=alias.function_name,
                target=alias.target,
                lifetime=_LIFETIMES[Lifecycle.TRANSIENT],
                scope=None,
            )
            for alias in aliases
        )

        imports = [
            format_import(path, names) for path, names in sorted(provider_imports.items())
        ]
        if token_ids:
            imports.append(format_import(self._tokens_module, token_ids))
        runtime_names = ["Container", "Lifetime"]
        if uses_scope:
            runtime_names.append("Scope")

        return self._finish(
            self._container_template.render(
                docstring_block=self._render_docstring(
                    f"Container builder for the ``{module.name}`` module.",
                ),
                runtime=self._settings.container_runtime,
                runtime_names=", ".join(runtime_names),
                imports_block="\n".join(imports),
                function_name=naming.function_name,
                module_name=module.name,
                registrations=registrations,
                aliases=aliases,
            ),
        )

    @property
    def _tokens_module(self) -> str:
        return f"{self.output_package}.{_TOKENS_MODULE}"

    def _render_containers_package(self, containers: list[ContainerModule]) -> str:
        return self._finish(
            self._containers_package_template.render(
                docstring_block=self._render_docstring("Container builders for every module."),
                runtime=self._settings.container_runtime,
                package=f"{self.output_package}.{_CONTAINERS_PACKAGE}",
                modules=containers,
            ),
        )

    def _render_token_alias(self, planned: PlannedToken, references: dict[str, str]) -> str:
        token = planned.token
        if planned.factory is not None:
            produced = _type_expression(planned.factory.produced_type, references)
            return (
                f"{token.id}: TypeAlias = "
                f'Annotated[{produced}, Component("{planned.factory.name}")]'
            )
        if self._is_placeholder(token):
            logger.debug("Token %s has no declaring module, emitting a placeholder", token.id)
            return f'{token.id} = NewType("{token.id}", object)'
        return f"{token.id}: TypeAlias = {token.qualified_name}"

    def _is_placeholder(self, token: Token) -> bool:
        return token.declaring_path is None and not is_builtin_name(token.display_name)

    def _factory_entry(self, planned: PlannedFactory) -> FactoryEntry:
        factory = planned.factory
        return FactoryEntry(
            name=factory.name,
            reference=factory.qualified_name,
            target=planned.target.id,
            deps=_tuple_items(factory.deps),
            lifecycle=factory.lifecycle.value,
            module=factory.module,
            implements=_tuple_items(planned.metadata.implements),
            generics=_tuple_items(planned.metadata.generics),
        )

    def _container_module(self, module: ModulePlan) -> ContainerModule:
        stem = to_snake_case(module.name)
        return ContainerModule(
            module_name=module.name,
            file_stem=stem,
            function_name=f"build_{stem}_container",
        )

    def _render_docstring(self, title: str) -> str:
        return self._docstring_template.render(
            title=title,
            generator=_GENERATOR_SOURCE,
            version=self._resolve_wireplan_version(),
        )

    def _resolve_wireplan_version(self) -> str:
        try:
            return version("wireplan")
        except PackageNotFoundError:
            return "unknown"

    def _finish(self, text: str) -> str:
        return f"{text.rstrip()}\n"

    def _template(self, text: str) -> Template:
        return self._env.from_string(text)


_LIFETIMES = {
    Lifecycle.TRANSIENT: "TRANSIENT",
    Lifecycle.SINGLETON: "SCOPED",
    Lifecycle.SCOPED: "SCOPED",
}


def _type_expression(type_ref: TypeRef, references: dict[str, str]) -> str:
    if type_ref.is_type_parameter or type_ref.symbol is None:
        return "object"
    symbol = references.get(type_ref.symbol, type_ref.symbol)
    if not type_ref.arguments:
        return symbol
    rendered = ", ".join(_type_expression(argument, references) for argument in type_ref.arguments)
    return f"{symbol}[{rendered}]"


def _tuple(tokens: tuple[Token, ...]) -> str:
    return f"({_tuple_items(tokens)})"


def _tuple_items(tokens: tuple[Token, ...]) -> str:
    if not tokens:
        return ""
    return ", ".join(token.id for token in tokens) + ","
