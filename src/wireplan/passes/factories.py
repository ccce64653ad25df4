from __future__ import annotations

from wireplan.annotations import DeclarationAnnotations
from wireplan.context import ResolutionContext
from wireplan.declarations import Declaration, Parameter, TypeRef
from wireplan.exceptions import (
    WirePlanStructuralTypeError,
    WirePlanUnresolvableCallableError,
)
from wireplan.factories import Factory
from wireplan.passes._common import ensure_token
from wireplan.tokens import Token
from wireplan.types import DEFAULT_MODULE, DeclarationKind, FactoryKind, Lifecycle

FACTORY_DECLARATION_KINDS = frozenset(
    {DeclarationKind.CLASS, DeclarationKind.FUNCTION, DeclarationKind.VARIABLE},
)


def collect_factories(context: ResolutionContext) -> ResolutionContext:
    """Resolve every exported ``@Injectable`` declaration into a ``Factory``.

    Callables without a resolvable call signature are reported as warnings and
    skipped. Structural types at token-key sites abort the run.
    """
    for declaration in context.declarations:
        if not declaration.exported or declaration.kind not in FACTORY_DECLARATION_KINDS:
            continue
        annotations = context.annotations_of(declaration)
        if not annotations.is_injectable:
            continue

        try:
            factory = resolve_factory(context, declaration, annotations)
        except WirePlanUnresolvableCallableError as error:
            context.diagnostics.warning(
                "unresolvable-callable",
                str(error),
                declaration=error.declaration,
            )
            continue

        context.factories.append(factory)
        context.factory_imports.add(declaration.file_path, declaration.import_name)
        context.diagnostics.info(
            "factory",
            describe_factory(factory, default_module=context.default_module),
            declaration=declaration.qualified_name,
        )
    return context


def resolve_factory(
    context: ResolutionContext,
    declaration: Declaration,
    annotations: DeclarationAnnotations,
) -> Factory:
    """Build the factory record of one injectable declaration.

    Args:
        context: Resolution context; tokens are minted on demand.
        declaration: Injectable class, function or variable declaration.
        annotations: Normalized annotations of ``declaration``.

    Raises:
        WirePlanUnresolvableCallableError: A callable has no call signature.
        WirePlanStructuralTypeError: A parameter or the produced type is anonymous.

    """
    site = declaration.qualified_name
    if declaration.kind is DeclarationKind.CLASS:
        kind = FactoryKind.CLASS
        parameters = declaration.parameters
        produced = context.oracle.instance_type(declaration)
    else:
        kind = FactoryKind.FUNCTION
        signatures = context.oracle.call_signatures(declaration)
        if not signatures:
            raise WirePlanUnresolvableCallableError(site)
        parameters = signatures[0].parameters
        produced = signatures[0].returns

    deps = resolve_dependencies(context, parameters, site=f"{site} parameter")
    if produced.is_structural:
        raise WirePlanStructuralTypeError(f"{site} return type", produced.text)

    produced_name = context.oracle.type_name(produced)
    is_multi_implementation = context.registry.is_multi(produced_name)
    if is_multi_implementation:
        produced_token: Token | None = context.registry.get(produced_name)
        _mint_factory_token(context, declaration)
    else:
        produced_token = ensure_token(context, produced, site=f"{site} return type")
        if produced_token is None:
            _mint_factory_token(context, declaration)

    return Factory(
        name=declaration.name,
        namespace=declaration.namespace,
        kind=kind,
        declaring_module_path=declaration.file_path,
        deps=deps,
        produced_type=produced,
        produced_type_name=produced_name,
        produced_token=produced_token,
        lifecycle=annotations.lifecycle,
        module=annotations.module,
        is_multi_implementation=is_multi_implementation,
    )


def resolve_dependencies(
    context: ResolutionContext,
    parameters: tuple[Parameter, ...],
    *,
    site: str,
) -> tuple[Token, ...]:
    """Resolve parameters to dependency tokens, skipping primitives and untyped ones."""
    deps: list[Token] = []
    for parameter in parameters:
        annotation: TypeRef | None = parameter.annotation
        if annotation is None:
            continue
        token = ensure_token(context, annotation, site=f"{site} '{parameter.name}'")
        if token is not None:
            deps.append(token)
    return tuple(deps)


def describe_factory(factory: Factory, *, default_module: str = DEFAULT_MODULE) -> str:
    """Render a one-line summary such as ``Repo(DbToken) -> IRepo [singleton]``."""
    deps = ", ".join(token.id for token in factory.deps)
    parts = [f"{factory.name}({deps}) -> {factory.produced_type.text}"]
    if factory.module != default_module:
        parts.append(f"[module {factory.module}]")
    if factory.is_multi_implementation:
        parts.append("[multi-impl]")
    if factory.lifecycle is not Lifecycle.TRANSIENT:
        parts.append(f"[{factory.lifecycle.value}]")
    return " ".join(parts)


def _mint_factory_token(context: ResolutionContext, declaration: Declaration) -> Token:
    token = context.registry.register_or_get(
        declaration.name,
        declaring_path=declaration.file_path,
    )
    context.factory_tokens[declaration.name] = token
    return token
