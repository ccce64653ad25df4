from __future__ import annotations

from enum import Enum

DEFAULT_MODULE = "default"
"""Module name used for factories without a ``@Module`` annotation."""

PRIMITIVE_TYPE_NAMES = frozenset(
    {
        # Python builtins
        "str",
        "int",
        "float",
        "complex",
        "bool",
        "bytes",
        "object",
        "Any",
        "None",
        "NoneType",
        # TypeScript-flavoured spellings accepted from foreign oracles
        "string",
        "number",
        "boolean",
        "any",
        "void",
        "unknown",
    },
)
"""Type names that never become tokens or dependencies."""


def is_primitive(name: str) -> bool:
    """Return true when ``name`` is a primitive type name."""
    return name in PRIMITIVE_TYPE_NAMES


class Cardinality(str, Enum):
    """Number of implementations a token admits."""

    SINGLE = "single"
    """Exactly one factory binds to the token."""

    MULTI = "multi"
    """Many factories implement the token, each under its own per-factory token."""


class Lifecycle(str, Enum):
    """Defines the instantiation policy of a planned factory."""

    TRANSIENT = "transient"
    """A new instance is created every time the service is requested."""

    SINGLETON = "singleton"
    """A single instance is created and shared for the lifetime of the container."""

    SCOPED = "scoped"
    """Instance is shared within a scope, different instances across scopes."""


class DeclarationKind(str, Enum):
    """Kind of an exported declaration reported by the semantic oracle."""

    TYPE_ALIAS = "type_alias"
    INTERFACE = "interface"
    CLASS = "class"
    FUNCTION = "function"
    VARIABLE = "variable"


class FactoryKind(str, Enum):
    """How a factory produces its value."""

    CLASS = "class"
    """The factory is a class; its instance type is the produced type."""

    FUNCTION = "function"
    """The factory is a callable; its return type is the produced type."""


class Severity(str, Enum):
    """Severity of a non-fatal resolution diagnostic."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
