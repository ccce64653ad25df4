from __future__ import annotations

from wireplan.context import ResolutionContext, TokenRelation
from wireplan.passes._common import collect_generic_tokens, find_tokenized_base
from wireplan.types import Cardinality, DeclarationKind

AUTO_DETECT_KINDS = frozenset({DeclarationKind.TYPE_ALIAS, DeclarationKind.INTERFACE})


def auto_detect_tokens(context: ResolutionContext) -> ResolutionContext:
    """Tokenize aliases and interfaces that alias or extend an already tokenized type.

    Declarations are visited in snapshot order and the first tokenized base wins.
    Generic arguments of that base are resolved through the registry right away,
    so their tokens are discovered after the derived token.
    """
    for declaration in context.declarations:
        if not declaration.exported or declaration.kind not in AUTO_DETECT_KINDS:
            continue
        if context.annotations_of(declaration).is_explicit_token:
            continue
        if declaration.name in context.registry:
            continue

        match = find_tokenized_base(context, declaration)
        if match is None:
            continue
        base, base_token = match

        token = context.registry.register_or_get(
            declaration.name,
            Cardinality.SINGLE,
            declaring_path=declaration.file_path,
            namespace=declaration.namespace,
        )
        context.token_imports.add(declaration.file_path, declaration.import_name)
        context.relations[token.id] = TokenRelation(
            token=token,
            base=base,
            base_token=base_token,
        )
        collect_generic_tokens(
            context,
            base,
            site=f"{declaration.qualified_name} generic argument",
        )

        context.diagnostics.info(
            "auto-detect",
            f"{declaration.name} -> {token.id} (auto-detected from {base_token.display_name})",
            declaration=declaration.qualified_name,
        )
    return context
