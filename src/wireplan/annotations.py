from __future__ import annotations

import re
from dataclasses import dataclass

from wireplan.declarations import AnnotationTag
from wireplan.types import DEFAULT_MODULE, Cardinality, Lifecycle

_TAG_LINE_PATTERN = re.compile(r"^\s*\*?\s*@(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?P<payload>.*)$")

SERVICE_TAG = "service"
MULTI_SERVICE_TAG = "multiservice"
INJECTABLE_TAG = "injectable"
TOKEN_TAG = "token"
MODULE_TAG = "module"
SINGLETON_TAG = "singleton"
SCOPED_TAG = "scoped"


@dataclass(frozen=True, slots=True)
class DeclarationAnnotations:
    """Structured form of the annotation tags attached to one declaration."""

    tags: tuple[AnnotationTag, ...]
    cardinality: Cardinality | None
    """Service cardinality, ``None`` when the declaration is not a service."""
    is_injectable: bool
    is_explicit_token: bool
    """True when ``@Token`` opts the declaration out of auto-detection."""
    lifecycle: Lifecycle
    module: str

    @property
    def is_service(self) -> bool:
        return self.cardinality is not None


def parse_tag_lines(text: str | None) -> tuple[AnnotationTag, ...]:
    """Extract ``@Tag payload`` lines from a docstring or comment block.

    Args:
        text: Docstring text; ``None`` yields no tags.

    Returns:
        Tags in order of appearance with stripped payloads, ``None`` for empty ones.

    """
    if not text:
        return ()
    tags: list[AnnotationTag] = []
    for line in text.splitlines():
        match = _TAG_LINE_PATTERN.match(line)
        if match is None:
            continue
        payload = match.group("payload").strip()
        tags.append(AnnotationTag(name=match.group("name"), payload=payload or None))
    return tuple(tags)


def normalize_annotations(
    tags: tuple[AnnotationTag, ...],
    *,
    default_module: str = DEFAULT_MODULE,
) -> DeclarationAnnotations:
    """Turn raw annotation tags into a ``DeclarationAnnotations`` record.

    ``@MultiService`` wins over ``@Service`` and ``@Singleton`` wins over
    ``@Scoped``. A ``@Module`` tag without payload keeps the default module.
    """
    names = {tag.name.lower() for tag in tags}

    cardinality: Cardinality | None = None
    if MULTI_SERVICE_TAG in names:
        cardinality = Cardinality.MULTI
    elif SERVICE_TAG in names:
        cardinality = Cardinality.SINGLE

    if SINGLETON_TAG in names:
        lifecycle = Lifecycle.SINGLETON
    elif SCOPED_TAG in names:
        lifecycle = Lifecycle.SCOPED
    else:
        lifecycle = Lifecycle.TRANSIENT

    module = default_module
    for tag in tags:
        if tag.name.lower() == MODULE_TAG and tag.payload:
            module = tag.payload.split()[0]
            break

    return DeclarationAnnotations(
        tags=tags,
        cardinality=cardinality,
        is_injectable=INJECTABLE_TAG in names,
        is_explicit_token=TOKEN_TAG in names,
        lifecycle=lifecycle,
        module=module,
    )
