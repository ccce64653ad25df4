from wireplan.config import WirePlanSettings
from wireplan.context import Diagnostic
from wireplan.declarations import (
    AnnotationTag,
    CallSignature,
    Declaration,
    Parameter,
    SemanticOracle,
    SnapshotOracle,
    TypeRef,
)
from wireplan.exceptions import (
    WirePlanConfigurationError,
    WirePlanCycleError,
    WirePlanError,
    WirePlanSourceError,
    WirePlanStructuralTypeError,
    WirePlanUnresolvableCallableError,
)
from wireplan.factories import BindingMetadata, Factory
from wireplan.plan import Binding, ModulePlan, PlannedFactory, PlannedToken, ResolutionPlan
from wireplan.resolve import resolve
from wireplan.tokens import Token, TokenRegistry
from wireplan.types import Cardinality, DeclarationKind, FactoryKind, Lifecycle, Severity

__all__ = [
    "AnnotationTag",
    "Binding",
    "BindingMetadata",
    "CallSignature",
    "Cardinality",
    "Declaration",
    "DeclarationKind",
    "Diagnostic",
    "Factory",
    "FactoryKind",
    "Lifecycle",
    "ModulePlan",
    "Parameter",
    "PlannedFactory",
    "PlannedToken",
    "ResolutionPlan",
    "SemanticOracle",
    "Severity",
    "SnapshotOracle",
    "Token",
    "TokenRegistry",
    "TypeRef",
    "WirePlanConfigurationError",
    "WirePlanCycleError",
    "WirePlanError",
    "WirePlanSettings",
    "WirePlanSourceError",
    "WirePlanStructuralTypeError",
    "WirePlanUnresolvableCallableError",
    "resolve",
]
