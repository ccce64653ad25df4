from __future__ import annotations

from wireplan.context import ResolutionContext
from wireplan.types import DeclarationKind

TOKEN_DECLARATION_KINDS = frozenset(
    {DeclarationKind.TYPE_ALIAS, DeclarationKind.INTERFACE, DeclarationKind.CLASS},
)


def collect_tokens(context: ResolutionContext) -> ResolutionContext:
    """Mint a token for every exported ``@Service`` / ``@MultiService`` type."""
    for declaration in context.declarations:
        if not declaration.exported or declaration.kind not in TOKEN_DECLARATION_KINDS:
            continue
        annotations = context.annotations_of(declaration)
        if annotations.cardinality is None:
            continue

        token = context.registry.register_or_get(
            declaration.name,
            annotations.cardinality,
            declaring_path=declaration.file_path,
            namespace=declaration.namespace,
        )
        context.token_imports.add(declaration.file_path, declaration.import_name)

        suffix = " (multi)" if token.is_multi else ""
        context.diagnostics.info(
            "token",
            f"{declaration.name} -> {token.id}{suffix}",
            declaration=declaration.qualified_name,
        )
    return context
