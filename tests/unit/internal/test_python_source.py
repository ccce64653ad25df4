from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from textwrap import dedent

import pytest

from wireplan.declarations import Declaration, Parameter, TypeRef
from wireplan.exceptions import WirePlanSourceError
from wireplan.frontends import discover_sources, load_declarations, parse_module
from wireplan.types import DeclarationKind

SERVICES_SOURCE = dedent(
    '''
    from dataclasses import dataclass
    from typing import Callable, ClassVar, Optional, Protocol, TypeAlias, TypeVar

    T = TypeVar("T")


    class Logger(Protocol):
        """Write log lines.

        @Service
        """

        def log(self, message: str) -> None: ...


    class Handler(Protocol[T]):
        """@Service"""


    class Event: ...


    UserHandler: TypeAlias = Handler[Event]
    """@Token"""

    EventHandler = Handler[Event]


    class ConsoleLogger(Logger):
        """@Injectable
        @Singleton
        """

        def __init__(self, clock: "Clock", prefix: str = "", *, sink: Optional[Event] = None) -> None:
            self.clock = clock


    def make_logger(level: int) -> Logger:
        """@Injectable"""
        return ConsoleLogger(None)


    async def make_event(event: Event | None) -> Event:
        """@Injectable
        @Scoped
        """
        return Event()


    def no_return():
        """@Injectable"""


    def first(items: list[T]) -> T:
        return items[0]


    @dataclass(frozen=True)
    class Settings:
        """@Injectable"""

        url: str
        clock: "Clock"
        instances: ClassVar[int] = 0


    make_clock: Callable[[Settings], "Clock"] = lambda settings: None
    """@Injectable"""


    def _private() -> Logger: ...
    ''',
)


@pytest.fixture()
def declarations() -> dict[str, Declaration]:
    return {
        declaration.name: declaration
        for declaration in parse_module(SERVICES_SOURCE, file_path="app/services.py")
    }


def test_protocol_classes_are_interfaces_with_tags(declarations: dict[str, Declaration]) -> None:
    logger = declarations["Logger"]

    assert logger.kind is DeclarationKind.INTERFACE
    assert [tag.name for tag in logger.tags] == ["Service"]
    assert logger.extends == ()
    assert logger.file_path == "app/services.py"


def test_generic_protocol_records_type_parameters(declarations: dict[str, Declaration]) -> None:
    handler = declarations["Handler"]

    assert handler.kind is DeclarationKind.INTERFACE
    assert handler.type_parameters == ("T",)


def test_type_aliases_read_tags_from_attribute_docstring(
    declarations: dict[str, Declaration],
) -> None:
    explicit = declarations["UserHandler"]
    implicit = declarations["EventHandler"]

    assert explicit.kind is DeclarationKind.TYPE_ALIAS
    assert [tag.name for tag in explicit.tags] == ["Token"]
    assert explicit.aliased == TypeRef.named("Handler", TypeRef.named("Event"))
    assert implicit.kind is DeclarationKind.TYPE_ALIAS
    assert implicit.tags == ()


def test_class_constructor_parameters_skip_self_and_unwrap_optional(
    declarations: dict[str, Declaration],
) -> None:
    console = declarations["ConsoleLogger"]

    assert console.kind is DeclarationKind.CLASS
    assert console.extends == (TypeRef.named("Logger"),)
    assert [tag.name for tag in console.tags] == ["Injectable", "Singleton"]
    assert console.parameters == (
        Parameter(name="clock", annotation=TypeRef.named("Clock")),
        Parameter(name="prefix", annotation=TypeRef.named("str")),
        Parameter(name="sink", annotation=TypeRef.named("Event")),
    )


def test_functions_expose_one_call_signature(declarations: dict[str, Declaration]) -> None:
    make_logger = declarations["make_logger"]
    make_event = declarations["make_event"]

    assert make_logger.kind is DeclarationKind.FUNCTION
    (signature,) = make_logger.signatures
    assert signature.returns == TypeRef.named("Logger")
    assert signature.parameters == (Parameter(name="level", annotation=TypeRef.named("int")),)
    assert make_event.signatures[0].parameters[0].annotation == TypeRef.named("Event")


def test_function_without_return_annotation_has_no_signature(
    declarations: dict[str, Declaration],
) -> None:
    assert declarations["no_return"].signatures == ()


def test_type_variables_become_type_parameters(declarations: dict[str, Declaration]) -> None:
    first = declarations["first"]

    assert first.type_parameters == ("T",)
    assert first.signatures[0].returns == TypeRef.type_parameter("T")
    assert declarations["make_logger"].type_parameters == ()
    assert "T" not in declarations


def test_dataclass_fields_are_constructor_parameters(declarations: dict[str, Declaration]) -> None:
    settings = declarations["Settings"]

    assert [parameter.name for parameter in settings.parameters] == ["url", "clock"]


def test_lambda_variable_uses_callable_annotation(declarations: dict[str, Declaration]) -> None:
    make_clock = declarations["make_clock"]

    assert make_clock.kind is DeclarationKind.VARIABLE
    assert [tag.name for tag in make_clock.tags] == ["Injectable"]
    (signature,) = make_clock.signatures
    assert signature.parameters == (Parameter(name="arg0", annotation=TypeRef.named("Settings")),)
    assert signature.returns == TypeRef.named("Clock")


def test_underscore_names_are_not_exported(declarations: dict[str, Declaration]) -> None:
    assert declarations["_private"].exported is False
    assert declarations["make_logger"].exported is True


def test_dunder_all_controls_exports() -> None:
    source = dedent(
        """
        __all__ = ["Public"]


        class Public: ...


        class Internal: ...
        """,
    )

    exported = {item.name: item.exported for item in parse_module(source, file_path="m.py")}

    assert exported == {"Public": True, "Internal": False}


def test_untagged_class_with_tagged_members_is_a_namespace() -> None:
    source = dedent(
        '''
        class Mail:
            class Sender:
                """@Injectable"""

            def build_sender() -> "Mail.Sender":
                """@Injectable"""
        ''',
    )

    declarations = parse_module(source, file_path="app/mail.py")

    assert [item.qualified_name for item in declarations] == ["Mail.Sender", "Mail.build_sender"]
    assert all(item.namespace == "Mail" for item in declarations)


@pytest.mark.parametrize(
    ("annotation", "text"),
    [
        ("dict[str, int] | list[int]", "dict[str, int] | list[int]"),
        ("Callable[[int], str]", "Callable[[int], str]"),
        ("TypedDict('Options', {'a': int})", "TypedDict('Options', {'a': int})"),
        ("Union[A, B]", "Union[A, B]"),
    ],
)
def test_anonymous_annotations_are_structural(annotation: str, text: str) -> None:
    source = f"def make(options: {annotation}) -> int: ...\n"

    (declaration,) = parse_module(source, file_path="m.py")

    parameter_type = declaration.signatures[0].parameters[0].annotation
    assert parameter_type is not None
    assert parameter_type.is_structural is True
    assert parameter_type.text == text


def test_annotated_and_optional_wrappers_are_unwrapped() -> None:
    source = "def make(a: Annotated[Clock, 'x'], b: Optional[Clock], c: None | Clock) -> int: ...\n"

    (declaration,) = parse_module(source, file_path="m.py")

    assert [parameter.annotation for parameter in declaration.signatures[0].parameters] == [
        TypeRef.named("Clock"),
        TypeRef.named("Clock"),
        TypeRef.named("Clock"),
    ]


@pytest.mark.skipif(sys.version_info < (3, 12), reason="PEP 695 syntax")
def test_type_statement_declares_generic_alias() -> None:
    source = 'type Lookup[K] = Mapping[K, "User"]\n"""@Service"""\n'

    (declaration,) = parse_module(source, file_path="m.py")

    assert declaration.kind is DeclarationKind.TYPE_ALIAS
    assert declaration.type_parameters == ("K",)
    assert declaration.aliased == TypeRef.named(
        "Mapping",
        TypeRef.type_parameter("K"),
        TypeRef.named("User"),
    )
    assert [tag.name for tag in declaration.tags] == ["Service"]


def test_syntax_error_raises_source_error() -> None:
    with pytest.raises(WirePlanSourceError, match="Cannot parse app/broken.py"):
        parse_module("def broken(:\n", file_path="app/broken.py")


def test_discover_and_load_use_root_relative_paths(
    source_tree: Callable[[dict[str, str]], Path],
) -> None:
    root = source_tree(
        {
            "app/__init__.py": "",
            "app/clock.py": 'class Clock:\n    """@Service"""\n',
            "ioc/tokens.py": "class Generated: ...\n",
        },
    )

    paths = discover_sources(root, exclude=["ioc/*"])
    declarations = load_declarations(paths, root=root)

    assert [path.relative_to(root).as_posix() for path in paths] == [
        "app/__init__.py",
        "app/clock.py",
    ]
    assert [(item.name, item.file_path) for item in declarations] == [("Clock", "app/clock.py")]
