from __future__ import annotations

import logging
from textwrap import dedent

import pytest

from wireplan import (
    DeclarationKind,
    Parameter,
    ResolutionPlan,
    TypeRef,
    WirePlanCycleError,
    WirePlanStructuralTypeError,
    resolve,
)
from wireplan.declarations import CallSignature
from wireplan.frontends import parse_module

INTERFACE = DeclarationKind.INTERFACE
FUNCTION = DeclarationKind.FUNCTION
ALIAS = DeclarationKind.TYPE_ALIAS


def _bindings(plan: ResolutionPlan, module: str = "default") -> list[tuple[str, str]]:
    return [(binding.token.id, binding.factory.name) for binding in plan.module(module).bindings]


def test_single_service_with_factory(declare, returning) -> None:
    plan = resolve(
        [
            declare("A", INTERFACE, "Service"),
            declare("F", FUNCTION, "Injectable", signatures=returning(TypeRef.named("A"))),
        ],
    )

    assert [planned.token.id for planned in plan.tokens] == ["AToken"]
    (planned_factory,) = plan.factories
    assert planned_factory.factory.deps == ()
    assert planned_factory.target.id == "AToken"
    assert _bindings(plan) == [("AToken", "F")]


def test_multi_service_implementations_are_isolated(declare, returning) -> None:
    plan = resolve(
        [
            declare("P", INTERFACE, "MultiService"),
            declare("X", FUNCTION, "Injectable", signatures=returning(TypeRef.named("P"))),
            declare("Y", FUNCTION, "Injectable", signatures=returning(TypeRef.named("P"))),
        ],
    )

    x_token = plan.find_token("XToken")
    y_token = plan.find_token("YToken")
    assert x_token is not None
    assert y_token is not None
    assert len({"PToken", x_token.token.id, y_token.token.id}) == 3
    assert [token.id for token in x_token.implements] == ["PToken"]
    assert [token.id for token in y_token.implements] == ["PToken"]
    assert _bindings(plan) == [("XToken", "X"), ("YToken", "Y")]
    assert all(binding.token.id != "PToken" for binding in plan.module("default").bindings)


def test_auto_detected_alias_follows_its_generic_argument(declare) -> None:
    plan = resolve(
        [
            declare("H", INTERFACE, "Service", type_parameters=("T",)),
            declare("U", ALIAS, aliased=TypeRef.named("H", TypeRef.named("V"))),
            declare("V"),
        ],
    )

    order = [planned.token.id for planned in plan.tokens]
    assert order.index("VToken") < order.index("UToken")
    alias = plan.find_token("UToken")
    assert alias is not None
    assert [token.id for token in alias.implements] == ["HToken"]
    assert [token.id for token in alias.generics] == ["VToken"]


def test_mutually_generic_tokens_fail_with_cycle(declare) -> None:
    with pytest.raises(WirePlanCycleError) as exc_info:
        resolve(
            [
                declare("H", INTERFACE, "Service", type_parameters=("T",)),
                declare("A", INTERFACE, extends=(TypeRef.named("H", TypeRef.named("B")),)),
                declare("B", INTERFACE, extends=(TypeRef.named("H", TypeRef.named("A")),)),
            ],
        )

    assert set(exc_info.value.chain) == {"AToken", "BToken"}


def test_class_naming_itself_as_generic_argument_of_its_base_resolves(declare) -> None:
    plan = resolve(
        [
            declare("Comparable", INTERFACE, "Service", type_parameters=("T",)),
            declare(
                "Version",
                DeclarationKind.CLASS,
                "Injectable",
                extends=(TypeRef.named("Comparable", TypeRef.named("Version")),),
            ),
        ],
    )

    assert [planned.token.id for planned in plan.tokens] == ["ComparableToken", "VersionToken"]
    version = plan.find_token("VersionToken")
    assert version is not None
    assert [token.id for token in version.implements] == ["ComparableToken"]
    assert [token.id for token in version.generics] == ["VersionToken"]
    (planned_factory,) = plan.factories
    assert planned_factory.target.id == "VersionToken"
    assert _bindings(plan) == [("VersionToken", "Version")]


def test_self_referential_base_parsed_from_source_resolves() -> None:
    source = dedent(
        '''
        from typing import Protocol, TypeVar

        T = TypeVar("T")


        class Comparable(Protocol[T]):
            """@Service"""


        class Version(Comparable["Version"]):
            """@Injectable"""
        ''',
    )

    plan = resolve(parse_module(source, file_path="app/versions.py"))

    assert [planned.token.id for planned in plan.tokens] == ["ComparableToken", "VersionToken"]
    assert _bindings(plan) == [("VersionToken", "Version")]


def test_mutual_generic_bases_of_services_still_fail_with_cycle(declare) -> None:
    a_base = TypeRef.named("H", TypeRef.named("B"))
    b_base = TypeRef.named("H", TypeRef.named("A"))

    with pytest.raises(WirePlanCycleError) as exc_info:
        resolve(
            [
                declare("H", INTERFACE, "Service", type_parameters=("T",)),
                declare("A", INTERFACE, "Service", extends=(a_base,)),
                declare("B", INTERFACE, "Service", extends=(b_base,)),
            ],
        )

    assert set(exc_info.value.chain) == {"AToken", "BToken"}


def test_inline_parameter_type_fails_with_structural_error(declare, caplog) -> None:
    reporter = declare(
        "Reporter",
        DeclarationKind.CLASS,
        "Injectable",
        parameters=(Parameter(name="options", annotation=TypeRef.structural("{'verbose': bool}")),),
    )

    with caplog.at_level(logging.ERROR, logger="wireplan.resolve"):
        with pytest.raises(WirePlanStructuralTypeError):
            resolve([reporter])

    assert "Resolution aborted during factories pass" in caplog.text


def test_resolution_is_deterministic(declare, returning) -> None:
    declarations = [
        declare("Plugin", INTERFACE, "MultiService"),
        declare("H", INTERFACE, "Service", type_parameters=("T",)),
        declare("U", ALIAS, aliased=TypeRef.named("H", TypeRef.named("V"))),
        declare("audit", FUNCTION, "Injectable", signatures=returning(TypeRef.named("Plugin"))),
        declare(
            "make_u",
            FUNCTION,
            "Injectable",
            "Singleton",
            "Module extra",
            signatures=returning(TypeRef.named("U"), plugin=TypeRef.named("Plugin")),
        ),
    ]

    first = resolve(declarations).as_dict()
    second = resolve(list(declarations)).as_dict()

    assert first == second


def test_partition_covers_every_factory_once(declare, returning) -> None:
    declarations = [
        declare("Clock", INTERFACE, "Service"),
        declare("system_clock", FUNCTION, "Injectable", signatures=returning(TypeRef.named("Clock"))),
        declare("Mailer", DeclarationKind.CLASS, "Injectable", "Module mail"),
        declare("Queue", DeclarationKind.CLASS, "Injectable", "Module jobs"),
    ]

    plan = resolve(declarations)

    bound = [binding.factory.name for module in plan.modules for binding in module.bindings]
    assert sorted(bound) == sorted(planned.factory.name for planned in plan.factories)
    assert len(bound) == len(set(bound))


def test_resolution_reports_diagnostics_through_logging(declare, caplog) -> None:
    declarations = [
        declare("Clock", INTERFACE, "Service"),
        declare("make_clock", FUNCTION, "Injectable", file_path="app/clock.py"),
    ]

    with caplog.at_level(logging.INFO, logger="wireplan.resolve"):
        plan = resolve(declarations)

    assert "[tokens] Clock -> ClockToken" in caplog.text
    assert "[factories] No call signature for make_clock, skipping." in caplog.text
    assert [diagnostic.code for diagnostic in plan.diagnostics] == [
        "token",
        "unresolvable-callable",
    ]


def test_default_module_is_configurable(declare) -> None:
    signature = CallSignature(parameters=(), returns=TypeRef.named("Clock"))
    plan = resolve(
        [
            declare("Clock", INTERFACE, "Service"),
            declare("make_clock", FUNCTION, "Injectable", signatures=(signature,)),
        ],
        default_module="core",
    )

    assert [module.name for module in plan.modules] == ["core"]
    assert plan.factories[0].factory.module == "core"
