from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from wireplan.context import Diagnostic, ResolutionContext
from wireplan.declarations import Declaration, SemanticOracle
from wireplan.exceptions import WirePlanError
from wireplan.passes import (
    auto_detect_tokens,
    collect_factories,
    collect_tokens,
    extract_metadata,
    order_tokens,
    plan_registrations,
)
from wireplan.plan import ResolutionPlan, build_plan
from wireplan.types import DEFAULT_MODULE, Severity

logger = logging.getLogger(__name__)

ResolutionPass = Callable[[ResolutionContext], ResolutionContext]

PIPELINE: tuple[tuple[str, ResolutionPass], ...] = (
    ("tokens", collect_tokens),
    ("auto-detect", auto_detect_tokens),
    ("factories", collect_factories),
    ("metadata", extract_metadata),
    ("ordering", order_tokens),
    ("registration", plan_registrations),
)
"""Resolution passes in their fixed execution order."""

_LOG_LEVELS = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
}


def resolve(
    declarations: Iterable[Declaration],
    *,
    oracle: SemanticOracle | None = None,
    default_module: str = DEFAULT_MODULE,
) -> ResolutionPlan:
    """Resolve a semantic snapshot into a dependency-injection wiring plan.

    The run is all-or-nothing: fatal errors propagate to the caller and no plan
    is returned. Non-fatal diagnostics are logged after each pass and kept on the
    returned plan.

    Args:
        declarations: Exported declarations of the analysed codebase.
        oracle: Semantic oracle answering type queries; defaults to a
            ``SnapshotOracle`` over ``declarations``.
        default_module: Module used for factories without ``@Module``.

    Returns:
        The ordered tokens, factories and per-module bindings.

    Raises:
        WirePlanStructuralTypeError: An anonymous type is used as a token key.
        WirePlanCycleError: The token dependency graph contains a cycle.

    """
    context = ResolutionContext.from_declarations(
        tuple(declarations),
        oracle=oracle,
        default_module=default_module,
    )
    for pass_name, run_pass in PIPELINE:
        try:
            context = run_pass(context)
        except WirePlanError as error:
            _report(pass_name, context.diagnostics.drain())
            logger.error("Resolution aborted during %s pass: %s", pass_name, error)
            raise
        _report(pass_name, context.diagnostics.drain())

    plan = build_plan(context)
    logger.info(
        "Resolved %d tokens, %d factories, %d module(s)",
        len(plan.tokens),
        len(plan.factories),
        len(plan.modules),
    )
    return plan


def _report(pass_name: str, diagnostics: list[Diagnostic]) -> None:
    for diagnostic in diagnostics:
        logger.log(
            _LOG_LEVELS[diagnostic.severity],
            "[%s] %s",
            pass_name,
            diagnostic.message,
        )
