from __future__ import annotations

from collections.abc import Iterable

from wireplan.context import ResolutionContext
from wireplan.declarations import Declaration, TypeRef
from wireplan.exceptions import WirePlanStructuralTypeError
from wireplan.tokens import Token
from wireplan.types import DeclarationKind, is_primitive

_STRUCTURAL_NAME_MARKERS = ("{", "}", "(", ")", "|")


def ensure_token(context: ResolutionContext, type_ref: TypeRef, *, site: str) -> Token | None:
    """Return the token for a named type, minting it on first request.

    Primitive types and type parameters yield ``None``. Anonymous structural types
    raise ``WirePlanStructuralTypeError`` because they have no stable identity.

    Args:
        context: Resolution context holding the registry and import ledger.
        type_ref: Type found at a token-key site.
        site: Human readable site used in the fatal diagnostic.

    """
    if type_ref.is_structural:
        raise WirePlanStructuralTypeError(site, type_ref.text)
    if type_ref.is_type_parameter:
        return None

    name = context.oracle.type_name(type_ref)
    if not name or is_primitive(name):
        return None
    if any(marker in name for marker in _STRUCTURAL_NAME_MARKERS):
        raise WirePlanStructuralTypeError(site, name)

    declarations = context.oracle.symbol_declarations(type_ref)
    namespace = declarations[0].namespace if declarations else None
    declaring_path = context.oracle.declaring_path(type_ref)
    token = context.registry.register_or_get(
        name,
        declaring_path=declaring_path,
        namespace=namespace,
    )
    if declaring_path is not None:
        context.token_imports.add(declaring_path, namespace or name)
    return token


def find_token(context: ResolutionContext, type_ref: TypeRef) -> Token | None:
    """Return the existing token of a type without minting one."""
    if type_ref.is_structural or type_ref.is_type_parameter:
        return None
    return context.registry.find(context.oracle.type_name(type_ref))


def collect_generic_tokens(
    context: ResolutionContext,
    type_ref: TypeRef,
    *,
    site: str,
    visited: set[str] | None = None,
) -> list[Token]:
    """Resolve the generic arguments of a type to tokens, nested arguments included.

    Recursion is bounded by ``visited``, keyed on the argument's text identity.
    """
    seen = visited if visited is not None else set()
    tokens: list[Token] = []
    for argument in context.oracle.type_arguments(type_ref):
        token = ensure_token(context, argument, site=site)
        if token is not None:
            tokens.append(token)
        if argument.text in seen:
            continue
        seen.add(argument.text)
        tokens.extend(collect_generic_tokens(context, argument, site=site, visited=seen))
    return tokens


def find_tokenized_base(
    context: ResolutionContext,
    declaration: Declaration,
) -> tuple[TypeRef, Token] | None:
    """Return the first aliased or extended type that already carries a token."""
    if declaration.kind not in {DeclarationKind.TYPE_ALIAS, DeclarationKind.INTERFACE}:
        return None
    for base in context.oracle.structural_bases(declaration):
        base_token = find_token(context, base)
        if base_token is not None:
            return base, base_token
    return None


def unique(tokens: Iterable[Token]) -> tuple[Token, ...]:
    """De-duplicate tokens, keeping the order of first discovery."""
    return tuple(dict.fromkeys(tokens))
