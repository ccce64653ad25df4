from __future__ import annotations

from dataclasses import dataclass, field

from wireplan.context import ResolutionContext, TokenRelation
from wireplan.declarations import Declaration, TypeRef
from wireplan.factories import BindingMetadata, Factory
from wireplan.passes._common import (
    collect_generic_tokens,
    find_token,
    find_tokenized_base,
    unique,
)
from wireplan.tokens import Token
from wireplan.types import DeclarationKind

_SIGNATURE_KINDS = frozenset(
    {DeclarationKind.CLASS, DeclarationKind.FUNCTION, DeclarationKind.VARIABLE},
)


def extract_metadata(context: ResolutionContext) -> ResolutionContext:
    """Attach ``implements`` / ``generics`` metadata to tokens and factories."""
    for factory in context.factories:
        _extract_factory_metadata(context, factory)
    _extract_token_metadata(context)
    return context


@dataclass
class _MetadataWalk:
    context: ResolutionContext
    site: str
    implements: list[Token] = field(default_factory=list)
    generics: list[Token] = field(default_factory=list)
    visited: set[str] = field(default_factory=set)
    arguments_seen: set[str] = field(default_factory=set)

    def visit(self, type_ref: TypeRef, *, follow_signatures: bool) -> None:
        if type_ref.text in self.visited:
            return
        self.visited.add(type_ref.text)

        own_token = find_token(self.context, type_ref)
        if own_token is not None:
            self._add(own_token, type_ref)

        for base in self.context.oracle.base_types(type_ref):
            base_token = find_token(self.context, base)
            if base_token is not None:
                self._add(base_token, base)

        if not follow_signatures:
            return
        for declaration in self.context.oracle.symbol_declarations(type_ref):
            if declaration.kind not in _SIGNATURE_KINDS:
                continue
            signatures = self.context.oracle.call_signatures(declaration)
            if signatures:
                self.visit(signatures[0].returns, follow_signatures=False)

    def result(self) -> BindingMetadata:
        return BindingMetadata(implements=unique(self.implements), generics=unique(self.generics))

    def _add(self, token: Token, type_ref: TypeRef) -> None:
        self.implements.append(token)
        self.generics.extend(
            collect_generic_tokens(
                self.context,
                type_ref,
                site=f"{self.site} generic argument",
                visited=self.arguments_seen,
            ),
        )


def metadata_for_type(context: ResolutionContext, type_ref: TypeRef, *, site: str) -> BindingMetadata:
    """Compute the interfaces a type realizes and the tokens of its generic arguments.

    The type's own token, the tokens of its declared base types and, for callable
    symbols, the same for the first call signature's return type. Results are
    de-duplicated in order of first discovery; the walk is bounded by a visited set
    keyed on type text.

    Args:
        context: Resolution context; generic argument tokens are minted on demand.
        type_ref: The resolved type to describe.
        site: Declaration name used in diagnostics.

    Returns:
        The collected metadata, possibly empty.

    """
    walk = _MetadataWalk(context=context, site=site)
    walk.visit(type_ref, follow_signatures=True)
    return walk.result()


def _extract_token_metadata(context: ResolutionContext) -> None:
    declarations_by_name: dict[str, Declaration] = {}
    for declaration in context.declarations:
        if declaration.exported:
            declarations_by_name.setdefault(declaration.name, declaration)

    processed: set[str] = set()
    while True:
        pending = [token for token in context.registry.values() if token.id not in processed]
        if not pending:
            return
        for token in pending:
            processed.add(token.id)
            relation = context.relations.get(token.id)
            if relation is None:
                relation = _declared_relation(context, token, declarations_by_name)
            if relation is None:
                continue

            generics = collect_generic_tokens(
                context,
                relation.base,
                site=f"{token.display_name} generic argument",
            )
            if generics and token.id not in context.token_metadata:
                context.token_metadata[token.id] = BindingMetadata(
                    implements=(relation.base_token,),
                    generics=unique(generics),
                )


def _declared_relation(
    context: ResolutionContext,
    token: Token,
    declarations_by_name: dict[str, Declaration],
) -> TokenRelation | None:
    declaration = declarations_by_name.get(token.display_name)
    if declaration is None:
        return None
    match = find_tokenized_base(context, declaration)
    if match is None or match[1] == token:
        return None
    relation = TokenRelation(token=token, base=match[0], base_token=match[1])
    context.relations[token.id] = relation
    return relation


def _extract_factory_metadata(context: ResolutionContext, factory: Factory) -> None:
    metadata = metadata_for_type(context, factory.produced_type, site=factory.name)

    target = context.factory_tokens.get(factory.name)
    if target is None and not metadata.is_trivial_for(factory.produced_token):
        target = context.registry.register_or_get(
            factory.name,
            declaring_path=factory.declaring_module_path,
        )
        context.factory_tokens[factory.name] = target

    if target is None:
        context.factory_metadata[factory.name] = metadata.without(factory.produced_token)
        return

    metadata = metadata.without(target)
    context.factory_metadata[factory.name] = metadata
    if not metadata.is_empty and target.id not in context.token_metadata:
        context.token_metadata[target.id] = metadata
