from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from wireplan.annotations import DeclarationAnnotations, normalize_annotations
from wireplan.declarations import Declaration, SemanticOracle, SnapshotOracle, TypeRef
from wireplan.factories import BindingMetadata, Factory
from wireplan.tokens import Token, TokenRegistry
from wireplan.types import DEFAULT_MODULE, Severity


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A non-fatal message produced by a resolution pass."""

    severity: Severity
    code: str
    message: str
    declaration: str | None = None


class DiagnosticSink:
    """Collects diagnostics so passes stay free of reporting concerns."""

    def __init__(self) -> None:
        self._diagnostics: list[Diagnostic] = []
        self._reported = 0

    def emit(
        self,
        severity: Severity,
        code: str,
        message: str,
        *,
        declaration: str | None = None,
    ) -> Diagnostic:
        """Record a diagnostic of any severity and return it."""
        diagnostic = Diagnostic(
            severity=severity,
            code=code,
            message=message,
            declaration=declaration,
        )
        self._diagnostics.append(diagnostic)
        return diagnostic

    def info(self, code: str, message: str, *, declaration: str | None = None) -> Diagnostic:
        """Record an informational diagnostic."""
        return self.emit(Severity.INFO, code, message, declaration=declaration)

    def warning(self, code: str, message: str, *, declaration: str | None = None) -> Diagnostic:
        """Record a warning diagnostic."""
        return self.emit(Severity.WARNING, code, message, declaration=declaration)

    def drain(self) -> list[Diagnostic]:
        """Return diagnostics emitted since the previous drain."""
        pending = self._diagnostics[self._reported :]
        self._reported = len(self._diagnostics)
        return pending

    @property
    def warnings(self) -> list[Diagnostic]:
        """Return every warning recorded so far."""
        return [item for item in self._diagnostics if item.severity is Severity.WARNING]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._diagnostics))

    def __len__(self) -> int:
        return len(self._diagnostics)


class ImportLedger:
    """Declaring path to imported names bookkeeping, in first-use order."""

    def __init__(self) -> None:
        self._names_by_path: dict[str, list[str]] = {}

    def add(self, path: str, name: str) -> None:
        """Record that ``name`` is imported from the module at ``path``, once."""
        names = self._names_by_path.setdefault(path, [])
        if name not in names:
            names.append(name)

    def names(self, path: str) -> tuple[str, ...]:
        """Return the names imported from ``path`` in insertion order."""
        return tuple(self._names_by_path.get(path, ()))

    def as_dict(self) -> dict[str, list[str]]:
        """Return a deterministic view: paths and names sorted."""
        return {path: sorted(self._names_by_path[path]) for path in sorted(self._names_by_path)}

    def __len__(self) -> int:
        return len(self._names_by_path)


@dataclass(frozen=True, slots=True)
class TokenRelation:
    """A structural relationship found by the auto-detector."""

    token: Token
    base: TypeRef
    """The aliased or extended type, with its generic arguments."""
    base_token: Token


@dataclass(kw_only=True)
class ResolutionContext:
    """Single mutable state threaded through the resolution passes in fixed order.

    Each pass appends to its own fields and returns the context; no pass rewrites
    what an earlier pass produced.
    """

    declarations: tuple[Declaration, ...]
    oracle: SemanticOracle
    default_module: str = DEFAULT_MODULE
    annotations: dict[Declaration, DeclarationAnnotations] = field(default_factory=dict)
    registry: TokenRegistry = field(default_factory=TokenRegistry)
    relations: dict[str, TokenRelation] = field(default_factory=dict)
    """Auto-detected alias / extension relations keyed by token id."""
    factories: list[Factory] = field(default_factory=list)
    factory_tokens: dict[str, Token] = field(default_factory=dict)
    """Per-factory tokens keyed by factory name."""
    token_metadata: dict[str, BindingMetadata] = field(default_factory=dict)
    factory_metadata: dict[str, BindingMetadata] = field(default_factory=dict)
    ordered_tokens: tuple[Token, ...] = ()
    bindings_by_module: dict[str, list[tuple[Token, Factory]]] = field(default_factory=dict)
    token_imports: ImportLedger = field(default_factory=ImportLedger)
    factory_imports: ImportLedger = field(default_factory=ImportLedger)
    diagnostics: DiagnosticSink = field(default_factory=DiagnosticSink)

    @classmethod
    def from_declarations(
        cls,
        declarations: tuple[Declaration, ...] | list[Declaration],
        *,
        oracle: SemanticOracle | None = None,
        default_module: str = DEFAULT_MODULE,
    ) -> ResolutionContext:
        """Create a context and front-load annotation normalization."""
        snapshot = tuple(declarations)
        context = cls(
            declarations=snapshot,
            oracle=oracle if oracle is not None else SnapshotOracle(snapshot),
            default_module=default_module,
        )
        for declaration in snapshot:
            context.annotations[declaration] = normalize_annotations(
                context.oracle.find_tags(declaration),
                default_module=default_module,
            )
        return context

    def annotations_of(self, declaration: Declaration) -> DeclarationAnnotations:
        return self.annotations[declaration]
