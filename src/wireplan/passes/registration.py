from __future__ import annotations

from wireplan.context import ResolutionContext
from wireplan.exceptions import WirePlanError
from wireplan.factories import Factory
from wireplan.tokens import Token


def binding_target(context: ResolutionContext, factory: Factory) -> Token:
    """Return the token a factory is registered under.

    Per-factory tokens (multi-implementations, non-trivial metadata, primitive
    produced types) take precedence over the produced type's token.
    """
    token = context.factory_tokens.get(factory.name, factory.produced_token)
    if token is None:
        msg = f"Factory '{factory.name}' has neither a per-factory token nor a produced token."
        raise WirePlanError(msg)
    return token


def plan_registrations(context: ResolutionContext) -> ResolutionContext:
    """Partition factories by module into ordered ``(token, factory)`` bindings.

    Two factories binding the same single-cardinality token inside one module are
    both kept; the later one overrides the earlier at container build time and a
    ``duplicate-binding`` warning is recorded.
    """
    claimed: dict[tuple[str, str], Factory] = {}
    for factory in context.factories:
        target = binding_target(context, factory)
        bindings = context.bindings_by_module.setdefault(factory.module, [])

        previous = claimed.get((factory.module, target.id))
        if previous is not None and not target.is_multi:
            context.diagnostics.warning(
                "duplicate-binding",
                f"{factory.name} overrides {previous.name} for {target.id} "
                f"in module '{factory.module}'",
                declaration=factory.name,
            )
        claimed[(factory.module, target.id)] = factory

        bindings.append((target, factory))
        context.diagnostics.info(
            "binding",
            f"[{factory.module}] {target.id} <- {factory.name}",
            declaration=factory.name,
        )
    return context
