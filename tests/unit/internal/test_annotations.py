from __future__ import annotations

from wireplan.annotations import normalize_annotations, parse_tag_lines
from wireplan.declarations import AnnotationTag
from wireplan.types import Cardinality, Lifecycle


def test_parse_tag_lines_reads_tags_and_payloads_from_docstring() -> None:
    docstring = """Send notifications.

    @Injectable
    @Module billing extra words
    """

    tags = parse_tag_lines(docstring)

    assert tags == (
        AnnotationTag(name="Injectable"),
        AnnotationTag(name="Module", payload="billing extra words"),
    )


def test_parse_tag_lines_accepts_comment_block_stars() -> None:
    tags = parse_tag_lines(" * @Service\n * @Singleton")

    assert [tag.name for tag in tags] == ["Service", "Singleton"]


def test_parse_tag_lines_ignores_text_and_empty_input() -> None:
    assert parse_tag_lines(None) == ()
    assert parse_tag_lines("") == ()
    assert parse_tag_lines("mail me at someone@example.com") == ()


def test_normalize_annotations_defaults_to_transient_default_module() -> None:
    annotations = normalize_annotations((AnnotationTag(name="Injectable"),))

    assert annotations.is_injectable is True
    assert annotations.is_service is False
    assert annotations.cardinality is None
    assert annotations.lifecycle is Lifecycle.TRANSIENT
    assert annotations.module == "default"


def test_normalize_annotations_multi_service_wins_over_service() -> None:
    annotations = normalize_annotations(
        (AnnotationTag(name="Service"), AnnotationTag(name="MultiService")),
    )

    assert annotations.cardinality is Cardinality.MULTI


def test_normalize_annotations_singleton_wins_over_scoped() -> None:
    annotations = normalize_annotations(
        (AnnotationTag(name="Scoped"), AnnotationTag(name="Singleton")),
    )

    assert annotations.lifecycle is Lifecycle.SINGLETON


def test_normalize_annotations_is_case_insensitive() -> None:
    annotations = normalize_annotations(
        (
            AnnotationTag(name="injectable"),
            AnnotationTag(name="SCOPED"),
            AnnotationTag(name="token"),
        ),
    )

    assert annotations.is_injectable is True
    assert annotations.is_explicit_token is True
    assert annotations.lifecycle is Lifecycle.SCOPED


def test_normalize_annotations_takes_first_word_of_module_payload() -> None:
    annotations = normalize_annotations(
        (AnnotationTag(name="Module", payload="billing extra"),),
        default_module="core",
    )

    assert annotations.module == "billing"
    assert annotations.tags[0].payload == "billing extra"


def test_normalize_annotations_keeps_default_module_for_empty_module_tag() -> None:
    annotations = normalize_annotations((AnnotationTag(name="Module"),), default_module="core")

    assert annotations.module == "core"
