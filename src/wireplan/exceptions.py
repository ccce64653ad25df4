from __future__ import annotations

from collections.abc import Sequence


class WirePlanError(Exception):
    """Represent a base class for all wireplan-specific failures.

    Catch this type when you want to handle any wireplan error path without
    matching each concrete exception class individually.
    """


class WirePlanStructuralTypeError(WirePlanError):
    """Signal an anonymous type used where a named token identity is required.

    Raised by the factory resolver and the metadata extractor when a parameter,
    return type or generic argument is an inline structure (dict display, inline
    ``TypedDict(...)`` call, multi-member union, lambda). Such types have no
    stable cross-file identity and cannot serve as dependency keys.

    The error is fatal: the whole resolution run is aborted and no plan is
    produced. Typical fix is declaring a named type (class, Protocol or type
    alias) and annotating with it instead.
    """

    def __init__(self, declaration: str, type_text: str) -> None:
        self.declaration = declaration
        self.type_text = type_text
        super().__init__(
            f"Inline structural type detected in {declaration}: {type_text}. "
            "Inline types cannot be used as DI tokens; declare a named type instead.",
        )


class WirePlanUnresolvableCallableError(WirePlanError):
    """Signal an injectable callable without a resolvable call signature.

    Raised by the factory resolver when a function has no return annotation (or
    the oracle reports no call signature). The factory pass reports it as a
    warning diagnostic and skips the declaration; the run continues.

    Typical fix is adding a return annotation to the factory.
    """

    def __init__(self, declaration: str) -> None:
        self.declaration = declaration
        super().__init__(f"No call signature for {declaration}, skipping.")


class WirePlanCycleError(WirePlanError):
    """Signal a cycle in the token dependency graph.

    Raised by the graph orderer when a token requires itself through generic
    arguments or base relationships, for example ``A`` extends ``H[B]`` while
    ``B`` extends ``H[A]``. Tokens must be emitted in dependency order, so a
    cycle makes the plan impossible.

    ``chain`` holds the token ids forming the cycle, starting and ending with the
    same token.
    """

    def __init__(self, chain: Sequence[str]) -> None:
        self.chain = tuple(chain)
        super().__init__(f"Circular dependency detected between tokens: {' -> '.join(chain)}.")


class WirePlanSourceError(WirePlanError):
    """Signal a source file that cannot be read or parsed by the frontend.

    Raised by ``wireplan.frontends.python_source`` for syntax errors and
    unreadable files. Typical fix is correcting the file or excluding it from
    discovery.
    """


class WirePlanConfigurationError(WirePlanError):
    """Signal invalid generator settings.

    Raised by ``WirePlanSettings`` validators and the CLI when values cannot be
    used, for example a default module that is not an identifier or a missing
    source directory.
    """
