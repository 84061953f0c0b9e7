"""
tenant_guard.policy.parser

Parser for human-authored policy condition strings.

Responsibilities:
- Tokenize and parse expressions such as
  `resource.riskLevel == 'HIGH' && !('senior' in user.attributes)` into the
  condition tree from `policy.conditions`.
- Reject anything outside the grammar with `ConditionSyntaxError`.

Grammar (lowest to highest precedence):
    expr       := or_expr
    or_expr    := and_expr (("||" | "or") and_expr)*
    and_expr   := not_expr (("&&" | "and") not_expr)*
    not_expr   := ("!" | "not") not_expr | comparison
    comparison := operand ((CMP | "in" | "not" "in") operand)?
    operand    := STRING | NUMBER | "true" | "false" | "null" | PATH
                | "(" expr ")" | "[" (literal ("," literal)*)? "]"
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from tenant_guard.errors import ConditionSyntaxError
from tenant_guard.policy.conditions import MAX_DEPTH, And, Attr, Compare, Const, Expr, In, Not, Or

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>-?\d+(?:\.\d+)?)
  | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
  | (?P<op>===|!==|==|!=|<=|>=|&&|\|\||[<>!()\[\],])
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
    """,
    re.VERBOSE,
)

_CMP_ALIASES = {
    "===": "==",
    "!==": "!=",
    "==": "==",
    "!=": "!=",
    "<": "<",
    "<=": "<=",
    ">": ">",
    ">=": ">=",
}
_KEYWORDS = frozenset(("and", "or", "not", "in", "true", "false", "null"))
_ESCAPE_RE = re.compile(r"\\(.)")


@dataclass(frozen=True, slots=True)
class Token:
    kind: str
    text: str
    pos: int


def tokenize(source: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    while pos < len(source):
        m = _TOKEN_RE.match(source, pos)
        if m is None:
            raise ConditionSyntaxError(f"Unexpected character {source[pos]!r} at position {pos}")
        kind = m.lastgroup or ""
        text = m.group()
        if kind == "name" and text.lower() in _KEYWORDS:
            kind, text = "keyword", text.lower()
        if kind != "ws":
            tokens.append(Token(kind, text, pos))
        pos = m.end()
    return tokens


def parse_condition(source: str) -> Expr:
    if not source or not source.strip():
        raise ConditionSyntaxError("Condition is empty")
    parser = _Parser(tokenize(source))
    expr = parser.expr()
    if not parser.at_end():
        tok = parser.peek()
        raise ConditionSyntaxError(f"Unexpected '{tok.text}' at position {tok.pos}")
    return expr


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._i = 0
        self._depth = 0

    def at_end(self) -> bool:
        return self._i >= len(self._tokens)

    def peek(self) -> Token:
        if self.at_end():
            raise ConditionSyntaxError("Unexpected end of condition")
        return self._tokens[self._i]

    def _accept(self, *texts: str) -> Token | None:
        if not self.at_end() and self._tokens[self._i].text in texts:
            tok = self._tokens[self._i]
            self._i += 1
            return tok
        return None

    def _expect(self, text: str) -> None:
        tok = self.peek()
        if tok.text != text:
            raise ConditionSyntaxError(f"Expected '{text}' at position {tok.pos}, got '{tok.text}'")
        self._i += 1

    def expr(self) -> Expr:
        self._depth += 1
        if self._depth > MAX_DEPTH:
            raise ConditionSyntaxError("Condition is nested too deeply")
        try:
            return self._or()
        finally:
            self._depth -= 1

    def _or(self) -> Expr:
        args = [self._and()]
        while self._accept("||", "or"):
            args.append(self._and())
        return args[0] if len(args) == 1 else Or(tuple(args))

    def _and(self) -> Expr:
        args = [self._not()]
        while self._accept("&&", "and"):
            args.append(self._not())
        return args[0] if len(args) == 1 else And(tuple(args))

    def _not(self) -> Expr:
        if self._accept("!", "not"):
            return Not(self._not())
        return self._comparison()

    def _comparison(self) -> Expr:
        left = self._operand()
        if self.at_end():
            return left
        tok = self._tokens[self._i]
        if tok.kind == "op" and tok.text in _CMP_ALIASES:
            self._i += 1
            return Compare(op=_CMP_ALIASES[tok.text], left=left, right=self._operand())
        if self._accept("in"):
            return In(item=left, container=self._operand())
        if tok.text == "not" and self._peek_text(1) == "in":
            self._i += 2
            return Not(In(item=left, container=self._operand()))
        return left

    def _peek_text(self, offset: int) -> str | None:
        j = self._i + offset
        return self._tokens[j].text if j < len(self._tokens) else None

    def _operand(self) -> Expr:
        tok = self.peek()
        if tok.text == "(":
            self._i += 1
            inner = self.expr()
            self._expect(")")
            return inner
        if tok.text == "[":
            self._i += 1
            items: list[Any] = []
            if not self._accept("]"):
                items.append(self._literal(self.peek()))
                while self._accept(","):
                    items.append(self._literal(self.peek()))
                self._expect("]")
            return Const(tuple(items))
        if tok.kind == "name":
            self._i += 1
            return Attr.parse(tok.text)
        return Const(self._literal(tok))

    def _literal(self, tok: Token) -> Any:
        self._i += 1
        if tok.kind == "number":
            return float(tok.text) if "." in tok.text else int(tok.text)
        if tok.kind == "string":
            return _ESCAPE_RE.sub(r"\1", tok.text[1:-1])
        if tok.kind == "keyword" and tok.text in ("true", "false", "null"):
            return {"true": True, "false": False, "null": None}[tok.text]
        raise ConditionSyntaxError(f"Expected a value at position {tok.pos}, got '{tok.text}'")


# --- Module Notes -----------------------------------------------------------
# `===`/`!==` are accepted so conditions written in the legacy JavaScript style keep
# parsing; both map to plain equality.
