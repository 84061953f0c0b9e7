"""
tenant_guard.policy.conditions

Policy condition expression tree and its evaluator.

Responsibilities:
- Define the closed set of condition node kinds (attribute, constant, comparison,
  boolean combinators, membership, presence).
- Convert between the tree and its JSON storage form.
- Evaluate a tree against read-only subject/resource/environment namespaces.

Evaluation is pure: no I/O, no mutation. Any failure while evaluating (unresolved
attribute, incomparable types, non-boolean operand) makes the condition false.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Mapping, Set
from dataclasses import dataclass, field
from typing import Any, Union

from tenant_guard.errors import ConditionSyntaxError
from tenant_guard.observability.logging import get_logger

log = get_logger(__name__)

# Namespace aliases accepted in attribute paths.
NAMESPACES: Mapping[str, str] = {
    "user": "subject",
    "subject": "subject",
    "resource": "resource",
    "env": "environment",
    "environment": "environment",
}

COMPARATORS: Mapping[str, Callable[[Any, Any], Any]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

MAX_DEPTH = 64


class ConditionError(Exception):
    """
    Raised while evaluating; always converted to "condition false".
    """


@dataclass(frozen=True, slots=True)
class Attr:
    namespace: str
    path: tuple[str, ...]

    @classmethod
    def parse(cls, dotted: str) -> Attr:
        head, _, rest = dotted.partition(".")
        namespace = NAMESPACES.get(head)
        if namespace is None:
            raise ConditionSyntaxError(
                f"Unknown attribute namespace '{head}' (expected one of {sorted(NAMESPACES)})"
            )
        path = tuple(rest.split(".")) if rest else ()
        if any(not part for part in path):
            raise ConditionSyntaxError(f"Malformed attribute path '{dotted}'")
        return cls(namespace=namespace, path=path)

    @property
    def dotted(self) -> str:
        return ".".join((self.namespace, *self.path))


@dataclass(frozen=True, slots=True)
class Const:
    value: Any


@dataclass(frozen=True, slots=True)
class Compare:
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class And:
    args: tuple[Expr, ...]


@dataclass(frozen=True, slots=True)
class Or:
    args: tuple[Expr, ...]


@dataclass(frozen=True, slots=True)
class Not:
    arg: Expr


@dataclass(frozen=True, slots=True)
class In:
    item: Expr
    container: Expr


@dataclass(frozen=True, slots=True)
class Exists:
    attr: Attr


Expr = Union[Attr, Const, Compare, And, Or, Not, In, Exists]


@dataclass(frozen=True, slots=True)
class EvaluationContext:
    """
    Read-only attribute namespaces for one evaluation.
    """

    subject: Mapping[str, Any] = field(default_factory=dict)
    resource: Mapping[str, Any] = field(default_factory=dict)
    environment: Mapping[str, Any] = field(default_factory=dict)

    def namespace(self, name: str) -> Mapping[str, Any]:
        return getattr(self, name)


# --- JSON form ---------------------------------------------------------------


def from_json(data: Any, *, _depth: int = 0) -> Expr:
    if _depth > MAX_DEPTH:
        raise ConditionSyntaxError("Condition is nested too deeply")
    if not isinstance(data, Mapping):
        raise ConditionSyntaxError(f"Condition node must be an object, got {type(data).__name__}")

    # Operator nodes first: `exists` carries an "attr" key of its own.
    op = data.get("op")
    if op is None:
        if "attr" in data:
            return Attr.parse(_require_str(data, "attr"))
        if "value" in data:
            return Const(_require_scalar(data["value"]))
    if not isinstance(op, str):
        raise ConditionSyntaxError("Condition node needs one of 'attr', 'value' or 'op'")
    op = op.lower()
    depth = _depth + 1

    if op in COMPARATORS:
        return Compare(
            op=op,
            left=from_json(data.get("left"), _depth=depth),
            right=from_json(data.get("right"), _depth=depth),
        )
    if op in ("and", "or"):
        raw_args = data.get("args")
        if not isinstance(raw_args, list) or not raw_args:
            raise ConditionSyntaxError(f"'{op}' needs a non-empty 'args' list")
        args = tuple(from_json(a, _depth=depth) for a in raw_args)
        return And(args) if op == "and" else Or(args)
    if op == "not":
        return Not(from_json(data.get("arg"), _depth=depth))
    if op == "in":
        return In(
            item=from_json(data.get("item"), _depth=depth),
            container=from_json(data.get("container"), _depth=depth),
        )
    if op == "exists":
        return Exists(Attr.parse(_require_str(data, "attr")))
    raise ConditionSyntaxError(f"Unknown condition operator '{op}'")


def to_json(expr: Expr) -> dict[str, Any]:
    match expr:
        case Attr():
            return {"attr": expr.dotted}
        case Const(value=value):
            return {"value": list(value) if isinstance(value, tuple) else value}
        case Compare(op=op, left=left, right=right):
            return {"op": op, "left": to_json(left), "right": to_json(right)}
        case And(args=args):
            return {"op": "and", "args": [to_json(a) for a in args]}
        case Or(args=args):
            return {"op": "or", "args": [to_json(a) for a in args]}
        case Not(arg=arg):
            return {"op": "not", "arg": to_json(arg)}
        case In(item=item, container=container):
            return {"op": "in", "item": to_json(item), "container": to_json(container)}
        case Exists(attr=attr):
            return {"op": "exists", "attr": attr.dotted}
    raise ConditionSyntaxError(f"Not a condition node: {expr!r}")


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ConditionSyntaxError(f"'{key}' must be a non-empty string")
    return value


def _require_scalar(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return tuple(_require_scalar(v) for v in value)
    raise ConditionSyntaxError(f"Unsupported constant of type {type(value).__name__}")


# --- Evaluation --------------------------------------------------------------


def matches(expr: Expr, ctx: EvaluationContext) -> bool:
    """
    True only if the condition evaluates to boolean True.
    """

    try:
        return _eval(expr, ctx) is True
    except Exception as e:
        # Any evaluation failure is a non-match; it must never reach the caller.
        log.warning("policy_condition_error", error=str(e), error_type=type(e).__name__)
        return False


def _eval(expr: Expr, ctx: EvaluationContext) -> Any:
    match expr:
        case Const(value=value):
            return value
        case Attr():
            return _resolve(expr, ctx)
        case Compare(op=op, left=left, right=right):
            try:
                return COMPARATORS[op](_eval(left, ctx), _eval(right, ctx))
            except TypeError as e:
                raise ConditionError(f"cannot compare with '{op}': {e}") from e
        case And(args=args):
            return all(_truth(_eval(a, ctx)) for a in args)
        case Or(args=args):
            return any(_truth(_eval(a, ctx)) for a in args)
        case Not(arg=arg):
            return not _truth(_eval(arg, ctx))
        case In(item=item, container=container):
            return _contains(_eval(container, ctx), _eval(item, ctx))
        case Exists(attr=attr):
            try:
                _resolve(attr, ctx)
            except ConditionError:
                return False
            return True
    raise ConditionError(f"unknown node {type(expr).__name__}")


def _resolve(attr: Attr, ctx: EvaluationContext) -> Any:
    value: Any = ctx.namespace(attr.namespace)
    for part in attr.path:
        if not isinstance(value, Mapping) or part not in value:
            raise ConditionError(f"unresolved attribute '{attr.dotted}'")
        value = value[part]
    return value


def _truth(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConditionError(f"expected boolean operand, got {type(value).__name__}")
    return value


def _contains(container: Any, item: Any) -> bool:
    if isinstance(container, Mapping):
        return item in container
    if isinstance(container, str):
        if not isinstance(item, str):
            raise ConditionError("substring test needs a string operand")
        return item in container
    if isinstance(container, (list, tuple, Set)):
        return item in container
    raise ConditionError(f"'in' needs a collection, got {type(container).__name__}")


# --- Module Notes -----------------------------------------------------------
# Conditions are data, never code: there is deliberately no node kind that calls
# functions or reaches outside the three namespaces.
