from __future__ import annotations

import pytest

from wireplan.context import ResolutionContext
from wireplan.declarations import TypeRef
from wireplan.exceptions import WirePlanError
from wireplan.factories import Factory
from wireplan.passes import (
    auto_detect_tokens,
    collect_factories,
    collect_tokens,
    extract_metadata,
    order_tokens,
    plan_registrations,
)
from wireplan.passes.registration import binding_target
from wireplan.types import DeclarationKind, FactoryKind

CLASS = DeclarationKind.CLASS
FUNCTION = DeclarationKind.FUNCTION
INTERFACE = DeclarationKind.INTERFACE


def _run(context: ResolutionContext) -> ResolutionContext:
    context = extract_metadata(collect_factories(auto_detect_tokens(collect_tokens(context))))
    return plan_registrations(order_tokens(context))


def _bindings(context: ResolutionContext, module: str) -> list[tuple[str, str]]:
    return [(token.id, factory.name) for token, factory in context.bindings_by_module[module]]


def test_bindings_are_partitioned_by_module(declare, make_context, returning) -> None:
    context = make_context(
        declare("Clock", INTERFACE, "Service"),
        declare("Mailer", INTERFACE, "Service"),
        declare("make_clock", FUNCTION, "Injectable", signatures=returning(TypeRef.named("Clock"))),
        declare(
            "make_mailer",
            FUNCTION,
            "Injectable",
            "Module notifications",
            signatures=returning(TypeRef.named("Mailer")),
        ),
        declare("Worker", CLASS, "Injectable", "Module notifications"),
    )

    _run(context)

    assert list(context.bindings_by_module) == ["default", "notifications"]
    assert _bindings(context, "default") == [("ClockToken", "make_clock")]
    assert _bindings(context, "notifications") == [
        ("MailerToken", "make_mailer"),
        ("WorkerToken", "Worker"),
    ]
    planned = [factory for bindings in context.bindings_by_module.values() for _, factory in bindings]
    assert sorted(factory.name for factory in planned) == sorted(
        factory.name for factory in context.factories
    )


def test_multi_token_is_never_a_binding_target(declare, make_context, returning) -> None:
    context = make_context(
        declare("Plugin", INTERFACE, "MultiService"),
        declare("X", FUNCTION, "Injectable", signatures=returning(TypeRef.named("Plugin"))),
        declare("Y", FUNCTION, "Injectable", signatures=returning(TypeRef.named("Plugin"))),
    )

    _run(context)

    assert _bindings(context, "default") == [("XToken", "X"), ("YToken", "Y")]
    assert context.diagnostics.warnings == []


def test_duplicate_single_binding_keeps_both_and_warns(declare, make_context, returning) -> None:
    context = make_context(
        declare("Clock", INTERFACE, "Service"),
        declare("system_clock", FUNCTION, "Injectable", signatures=returning(TypeRef.named("Clock"))),
        declare("fake_clock", FUNCTION, "Injectable", signatures=returning(TypeRef.named("Clock"))),
    )

    _run(context)

    assert _bindings(context, "default") == [
        ("ClockToken", "system_clock"),
        ("ClockToken", "fake_clock"),
    ]
    (warning,) = context.diagnostics.warnings
    assert warning.code == "duplicate-binding"
    assert warning.message == (
        "fake_clock overrides system_clock for ClockToken in module 'default'"
    )


def test_same_token_in_different_modules_is_not_a_duplicate(declare, make_context, returning) -> None:
    context = make_context(
        declare("Clock", INTERFACE, "Service"),
        declare("system_clock", FUNCTION, "Injectable", signatures=returning(TypeRef.named("Clock"))),
        declare(
            "fake_clock",
            FUNCTION,
            "Injectable",
            "Module testing",
            signatures=returning(TypeRef.named("Clock")),
        ),
    )

    _run(context)

    assert context.diagnostics.warnings == []


def test_binding_target_requires_a_token(make_context) -> None:
    context = make_context()
    factory = Factory(
        name="orphan",
        kind=FactoryKind.FUNCTION,
        declaring_module_path="app/orphan.py",
        deps=(),
        produced_type=TypeRef.named("str"),
        produced_type_name="str",
        produced_token=None,
        module="default",
    )

    with pytest.raises(WirePlanError, match="orphan"):
        binding_target(context, factory)
