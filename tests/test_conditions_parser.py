"""
tests.test_conditions_parser

Condition parsing and evaluation.
"""

from __future__ import annotations

import pytest

from tenant_guard.errors import ConditionSyntaxError
from tenant_guard.policy.conditions import (
    And,
    Attr,
    Compare,
    Const,
    EvaluationContext,
    Exists,
    In,
    Not,
    Or,
    from_json,
    matches,
    to_json,
)
from tenant_guard.policy.parser import parse_condition


def _ctx(**resource) -> EvaluationContext:
    return EvaluationContext(
        subject={"id": "u1", "role": "PARTNER", "attributes": {"senior": True, "level": 3}},
        resource=resource,
        environment={"hour": 10},
    )


def test_parses_legacy_expression_into_tree() -> None:
    expr = parse_condition("resource.riskLevel === 'HIGH' && !('senior' in user.attributes)")
    assert expr == And(
        (
            Compare("==", Attr("resource", ("riskLevel",)), Const("HIGH")),
            Not(In(Const("senior"), Attr("subject", ("attributes",)))),
        )
    )


def test_keyword_operators_and_precedence() -> None:
    expr = parse_condition("resource.a == 1 or resource.b == 2 and not resource.c")
    ctx = _ctx(a=0, b=2, c=False)
    assert matches(expr, ctx) is True
    assert matches(expr, _ctx(a=0, b=2, c=True)) is False


def test_not_in_and_list_literals() -> None:
    expr = parse_condition("resource.region not in ['NG_LOS_1', 'KE_NBO_1']")
    assert matches(expr, _ctx(region="GH_ACC_1"))
    assert not matches(expr, _ctx(region="NG_LOS_1"))


def test_numeric_comparison_and_environment() -> None:
    expr = parse_condition("user.attributes.level >= 3 && env.hour < 18")
    assert matches(expr, _ctx())


@pytest.mark.parametrize(
    "source",
    [
        "",
        "resource.riskLevel ==",
        "(resource.a == 1",
        "resource.a == 1 resource.b",
        "secrets.token == 'x'",
        "resource.a = 1",
        "__import__('os')",
    ],
)
def test_rejects_malformed_source(source: str) -> None:
    with pytest.raises(ConditionSyntaxError):
        parse_condition(source)


def test_json_form_matches_parsed_form() -> None:
    source = "resource.riskLevel == 'HIGH' && !('senior' in user.attributes)"
    expr = parse_condition(source)
    data = to_json(expr)
    assert data["op"] == "and"
    assert from_json(data) == expr


@pytest.mark.parametrize(
    "data",
    [
        {"op": "between", "args": []},
        {"op": "and", "args": []},
        {"attr": "nowhere.x"},
        {"value": {"nested": "object"}},
        "resource.a == 1",
    ],
)
def test_from_json_rejects_unknown_shapes(data) -> None:
    with pytest.raises(ConditionSyntaxError):
        from_json(data)


def test_evaluation_failures_are_non_matches() -> None:
    # Missing attribute, type mismatch, non-boolean operand: all false, never raised.
    assert matches(parse_condition("resource.missing == 'x'"), _ctx()) is False
    assert matches(parse_condition("resource.n > 'x'"), _ctx(n=1)) is False
    assert matches(parse_condition("resource.n && true"), _ctx(n=1)) is False
    assert matches(parse_condition("!resource.missing"), _ctx()) is False


def test_exists_node() -> None:
    expr = from_json({"op": "exists", "attr": "resource.weight"})
    assert matches(expr, _ctx(weight=None))
    assert not matches(expr, _ctx())
    assert to_json(expr) == {"op": "exists", "attr": "resource.weight"}


@pytest.mark.parametrize(
    "expr",
    [
        Attr("subject", ("clearance",)),
        Const("HIGH"),
        Const(("NG_LOS_1", "KE_NBO_1")),
        Compare(">=", Attr("subject", ("level",)), Const(3)),
        And((Const(True), Exists(Attr("resource", ("weight",))))),
        Or((Const(False), Compare("==", Attr("environment", ("hour",)), Const(9)))),
        Not(Exists(Attr("subject", ("clearance",)))),
        In(Const("senior"), Attr("subject", ("attributes",))),
        Exists(Attr("subject", ("clearance",))),
    ],
    ids=lambda e: type(e).__name__,
)
def test_every_node_kind_survives_storage(expr) -> None:
    assert from_json(to_json(expr)) == expr
