"""A small expression language for transition conditions, e.g. ``output.score > 80``."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

Evaluator = Callable[[Mapping[str, Any]], Any]


class ExpressionError(Exception):
    """An expression failed to parse or evaluate."""


@dataclass(frozen=True)
class _Token:
    kind: str
    value: Any
    pos: int


_TOKEN_RE = re.compile(
    r"""
    (?P<number>\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)
    |(?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    |(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>==|!=|>=|<=|&&|\|\||[-+*/%<>!()\[\],.])
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}
_KEYWORDS = {"true": True, "false": False, "null": None}


def _unescape(body: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ExpressionError(f"unexpected character {text[pos]!r} at {pos}")
        kind = match.lastgroup or ""
        raw = match.group(kind)
        if kind == "number":
            value: Any = float(raw) if any(c in raw for c in ".eE") else int(raw)
        elif kind == "string":
            value = _unescape(raw[1:-1])
        else:
            value = raw
        tokens.append(_Token(kind, value, pos))
        pos = match.end()
    tokens.append(_Token("end", None, len(text)))
    return tokens


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_bool(value: Any, op: str) -> bool:
    if not isinstance(value, bool):
        raise ExpressionError(f"operator {op!r} expects a boolean, got {value!r}")
    return value


def _equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def _compare(op: str, left: Any, right: Any) -> bool:
    if not (
        (_is_number(left) and _is_number(right))
        or (isinstance(left, str) and isinstance(right, str))
    ):
        raise ExpressionError(f"cannot compare {left!r} {op} {right!r}")
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


def _arith(op: str, left: Any, right: Any) -> Any:
    if op == "+" and isinstance(left, str) and isinstance(right, str):
        return left + right
    if not (_is_number(left) and _is_number(right)):
        raise ExpressionError(f"cannot apply {op!r} to {left!r} and {right!r}")
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if right == 0:
        raise ExpressionError("division by zero")
    if op == "/":
        result = left / right
        return int(result) if isinstance(left, int) and isinstance(right, int) and result.is_integer() else result
    return left % right


def _field(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    raise ExpressionError(f"cannot read field {name!r} of {value!r}")


def _index(value: Any, key: Any) -> Any:
    if isinstance(value, Mapping):
        if not isinstance(key, str):
            raise ExpressionError(f"object key must be a string, got {key!r}")
        return value.get(key)
    if isinstance(value, (list, tuple)):
        if not isinstance(key, int) or isinstance(key, bool):
            raise ExpressionError(f"array index must be an integer, got {key!r}")
        return value[key] if 0 <= key < len(value) else None
    raise ExpressionError(f"cannot index {value!r}")


def _fn_len(args: list[Any]) -> Any:
    if len(args) != 1 or not isinstance(args[0], (str, list, tuple, Mapping)):
        raise ExpressionError("len() takes one string, array or object")
    return len(args[0])


def _fn_is_empty(args: list[Any]) -> Any:
    return _fn_len(args) == 0


def _extreme(name: str, pick: Callable[..., Any]) -> Callable[[list[Any]], Any]:
    def run(args: list[Any]) -> Any:
        values = list(args[0]) if len(args) == 1 and isinstance(args[0], (list, tuple)) else args
        if not values or not all(_is_number(v) for v in values):
            raise ExpressionError(f"{name}() takes one or more numbers")
        return pick(values)

    return run


_FUNCTIONS: dict[str, Callable[[list[Any]], Any]] = {
    "len": _fn_len,
    "is_empty": _fn_is_empty,
    "min": _extreme("min", min),
    "max": _extreme("max", max),
    "array": list,
}


class _Parser:
    def __init__(self, text: str) -> None:
        self._tokens = _tokenize(text)
        self._pos = 0

    def _peek(self) -> _Token:
        return self._tokens[self._pos]

    def _next(self) -> _Token:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _accept(self, *ops: str) -> str | None:
        token = self._peek()
        if token.kind == "op" and token.value in ops:
            self._pos += 1
            return token.value
        return None

    def _expect(self, op: str) -> None:
        if self._accept(op) is None:
            token = self._peek()
            raise ExpressionError(f"expected {op!r} at {token.pos}")

    def parse(self) -> Evaluator:
        node = self._or()
        token = self._peek()
        if token.kind != "end":
            raise ExpressionError(f"unexpected {token.value!r} at {token.pos}")
        return node

    def _or(self) -> Evaluator:
        left = self._and()
        while self._accept("||"):
            right = self._and()
            left = (
                lambda env, lhs=left, rhs=right: _require_bool(lhs(env), "||")
                or _require_bool(rhs(env), "||")
            )
        return left

    def _and(self) -> Evaluator:
        left = self._equality()
        while self._accept("&&"):
            right = self._equality()
            left = (
                lambda env, lhs=left, rhs=right: _require_bool(lhs(env), "&&")
                and _require_bool(rhs(env), "&&")
            )
        return left

    def _equality(self) -> Evaluator:
        left = self._comparison()
        while (op := self._accept("==", "!=")) is not None:
            right = self._comparison()
            negate = op == "!="
            left = lambda env, lhs=left, rhs=right, neg=negate: _equal(lhs(env), rhs(env)) != neg
        return left

    def _comparison(self) -> Evaluator:
        left = self._additive()
        while (op := self._accept("<", "<=", ">", ">=")) is not None:
            right = self._additive()
            left = lambda env, lhs=left, rhs=right, o=op: _compare(o, lhs(env), rhs(env))
        return left

    def _additive(self) -> Evaluator:
        left = self._multiplicative()
        while (op := self._accept("+", "-")) is not None:
            right = self._multiplicative()
            left = lambda env, lhs=left, rhs=right, o=op: _arith(o, lhs(env), rhs(env))
        return left

    def _multiplicative(self) -> Evaluator:
        left = self._unary()
        while (op := self._accept("*", "/", "%")) is not None:
            right = self._unary()
            left = lambda env, lhs=left, rhs=right, o=op: _arith(o, lhs(env), rhs(env))
        return left

    def _unary(self) -> Evaluator:
        if self._accept("!"):
            operand = self._unary()
            return lambda env: not _require_bool(operand(env), "!")
        if self._accept("-"):
            operand = self._unary()

            def negate(env: Mapping[str, Any]) -> Any:
                value = operand(env)
                if not _is_number(value):
                    raise ExpressionError(f"cannot negate {value!r}")
                return -value

            return negate
        return self._postfix()

    def _postfix(self) -> Evaluator:
        node = self._primary()
        while True:
            if self._accept("."):
                token = self._next()
                if token.kind != "name":
                    raise ExpressionError(f"expected a field name at {token.pos}")
                node = lambda env, base=node, name=token.value: _field(base(env), name)
            elif self._accept("["):
                key = self._or()
                self._expect("]")
                node = lambda env, base=node, k=key: _index(base(env), k(env))
            else:
                return node

    def _arguments(self, closing: str) -> list[Evaluator]:
        args: list[Evaluator] = []
        if self._accept(closing):
            return args
        while True:
            args.append(self._or())
            if self._accept(closing):
                return args
            self._expect(",")

    def _primary(self) -> Evaluator:
        token = self._next()
        if token.kind in ("number", "string"):
            return lambda env, v=token.value: v
        if token.kind == "name":
            name = token.value
            if name in _KEYWORDS:
                return lambda env, v=_KEYWORDS[name]: v
            if self._accept("("):
                func = _FUNCTIONS.get(name)
                if func is None:
                    raise ExpressionError(f"unknown function {name!r}")
                args = self._arguments(")")
                return lambda env, f=func, a=args: f([arg(env) for arg in a])

            def lookup(env: Mapping[str, Any], n: str = name) -> Any:
                if n not in env:
                    raise ExpressionError(f"unknown variable {n!r}")
                return env[n]

            return lookup
        if token.kind == "op" and token.value == "(":
            inner = self._or()
            self._expect(")")
            return inner
        if token.kind == "op" and token.value == "[":
            items = self._arguments("]")
            return lambda env, a=items: [item(env) for item in a]
        if token.kind == "end":
            raise ExpressionError("unexpected end of expression")
        raise ExpressionError(f"unexpected {token.value!r} at {token.pos}")


def evaluate(expression: str, variables: Mapping[str, Any]) -> Any:
    """Evaluate `expression` with the given variables bound; raise ExpressionError on failure."""
    evaluator = _Parser(expression).parse()
    return evaluator(variables)