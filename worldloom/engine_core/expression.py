"""
Expression Evaluator for condition strings.

Evaluates the free-form expressions carried by `expression` conditions,
e.g. "flag.met == true && stat.str >= 10".

Supports:
- Literals: numbers, quoted strings (single or double), true/false
- Namespaced identifiers: flag.<key>, stat.<key>, var.<key>, rep.<key>
- Comparisons: ==, !=, <, >, <=, >=
- Boolean operators: &&, ||, !
- Functions: hasItem(id), itemCount(id)

Grammar (low to high precedence):
    or         := and ("||" and)*
    and        := equality ("&&" equality)*
    equality   := comparison (("==" | "!=") comparison)*
    comparison := unary ((">" | ">=" | "<" | "<=") unary)*
    unary      := "!" unary | primary
    primary    := NUMBER | STRING | BOOLEAN | IDENT | IDENT "(" args ")" | "(" or ")"

Equality is strict (no type coercion); ordering comparisons coerce both
sides to numbers. Evaluation never raises: errors come back on the result
with value False.
"""

from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, TYPE_CHECKING
import logging
import math
import re

if TYPE_CHECKING:
    from .state import GameState

logger = logging.getLogger(__name__)


class ExpressionError(ValueError):
    """Raised by the tokenizer and parser; never escapes evaluate()."""


# ============================================================================
# Tokens
# ============================================================================

OPERATORS = ("==", "!=", ">=", "<=", "&&", "||", ">", "<", "!")
NAMESPACES = ("flag.", "stat.", "var.", "rep.")
MAX_NESTING_DEPTH = 64

_DIGITS = frozenset("0123456789")

_NUMBER_RE = re.compile(r"[0-9.]+")
_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")
_JS_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


@dataclass(frozen=True)
class Token:
    kind: str  # number | string | boolean | identifier | operator | paren | comma
    value: str


def tokenize(expr: str) -> list[Token]:
    tokens: list[Token] = []
    i = 0
    length = len(expr)

    while i < length:
        char = expr[i]

        if char in " \t\r\n":
            i += 1
            continue

        if char in "()":
            tokens.append(Token("paren", char))
            i += 1
            continue

        if char == ",":
            tokens.append(Token("comma", char))
            i += 1
            continue

        two = expr[i:i + 2]
        if two in OPERATORS:
            tokens.append(Token("operator", two))
            i += 2
            continue
        if char in OPERATORS:
            tokens.append(Token("operator", char))
            i += 1
            continue

        if char in "\"'":
            quote = char
            i += 1
            chars = []
            while i < length and expr[i] != quote:
                if expr[i] == "\\" and i + 1 < length:
                    chars.append(expr[i + 1])
                    i += 2
                else:
                    chars.append(expr[i])
                    i += 1
            if i >= length:
                raise ExpressionError("Unterminated string literal")
            i += 1
            tokens.append(Token("string", "".join(chars)))
            continue

        if char in _DIGITS or (char == "." and expr[i + 1:i + 2] in _DIGITS):
            match = _NUMBER_RE.match(expr, i)
            tokens.append(Token("number", match.group()))
            i = match.end()
            continue

        match = _IDENT_RE.match(expr, i)
        if match:
            word = match.group()
            kind = "boolean" if word in ("true", "false") else "identifier"
            tokens.append(Token(kind, word))
            i = match.end()
            continue

        raise ExpressionError(f"Unexpected token: {char}")

    return tokens


# ============================================================================
# AST
# ============================================================================

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Identifier:
    name: str


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Any


@dataclass(frozen=True)
class Binary:
    op: str
    left: Any
    right: Any


Node = Literal | Identifier | Call | Unary | Binary


class _Parser:
    """Recursive-descent parser over one token list."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.position = 0
        self.depth = 0

    def parse(self) -> Node:
        node = self._parse_or()
        if self.position < len(self.tokens):
            raise ExpressionError(f"Unexpected token: {self.tokens[self.position].value}")
        return node

    def _parse_or(self) -> Node:
        node = self._parse_and()
        while self._match("operator", "||"):
            node = Binary("||", node, self._parse_and())
        return node

    def _parse_and(self) -> Node:
        node = self._parse_equality()
        while self._match("operator", "&&"):
            node = Binary("&&", node, self._parse_equality())
        return node

    def _parse_equality(self) -> Node:
        node = self._parse_comparison()
        while self._match("operator", "==") or self._match("operator", "!="):
            node = Binary(self._previous().value, node, self._parse_comparison())
        return node

    def _parse_comparison(self) -> Node:
        node = self._parse_unary()
        while any(self._match("operator", op) for op in (">", ">=", "<", "<=")):
            node = Binary(self._previous().value, node, self._parse_unary())
        return node

    def _parse_unary(self) -> Node:
        self._descend()
        try:
            if self._match("operator", "!"):
                return Unary("!", self._parse_unary())
            return self._parse_primary()
        finally:
            self.depth -= 1

    def _descend(self):
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise ExpressionError("Expression nested too deeply")

    def _parse_primary(self) -> Node:
        if self._match("number"):
            return Literal(_parse_number(self._previous().value))
        if self._match("string"):
            return Literal(self._previous().value)
        if self._match("boolean"):
            return Literal(self._previous().value == "true")
        if self._match("identifier"):
            name = self._previous().value
            if self._match("paren", "("):
                args = []
                if not self._check("paren", ")"):
                    args.append(self._parse_or())
                    while self._match("comma"):
                        args.append(self._parse_or())
                self._expect("paren", ")", "Expected closing parenthesis for function call")
                return Call(name, tuple(args))
            _check_identifier(name)
            return Identifier(name)
        if self._match("paren", "("):
            node = self._parse_or()
            self._expect("paren", ")", "Expected closing parenthesis")
            return node
        raise ExpressionError("Unexpected expression token")

    def _check(self, kind: str, value: str | None = None) -> bool:
        if self.position >= len(self.tokens):
            return False
        token = self.tokens[self.position]
        return token.kind == kind and (value is None or token.value == value)

    def _match(self, kind: str, value: str | None = None) -> bool:
        if self._check(kind, value):
            self.position += 1
            return True
        return False

    def _expect(self, kind: str, value: str, message: str):
        if not self._match(kind, value):
            raise ExpressionError(message)

    def _previous(self) -> Token:
        return self.tokens[self.position - 1]


def _parse_number(text: str) -> int | float:
    if text.count(".") > 1:
        raise ExpressionError(f"Invalid number literal: {text}")
    try:
        return float(text) if "." in text else int(text)
    except ValueError:
        raise ExpressionError(f"Invalid number literal: {text}") from None


def _check_identifier(name: str):
    for prefix in NAMESPACES:
        if name.startswith(prefix) and not name[len(prefix):]:
            raise ExpressionError(f"Invalid {prefix[:-1]} identifier")


@lru_cache(maxsize=512)
def parse_expression(expr: str) -> Node:
    """Parse an expression into an AST. Raises ExpressionError."""
    tokens = tokenize(expr)
    if not tokens:
        raise ExpressionError("Empty expression")
    return _Parser(tokens).parse()


# ============================================================================
# Value semantics
# ============================================================================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """Numeric coercion used by ordering comparisons. Unconvertible -> NaN."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        if _JS_NUMBER_RE.match(text):
            return float(text)
        return math.nan
    if isinstance(value, list):
        if not value:
            return 0.0
        if len(value) == 1:
            return to_number(value[0])
    return math.nan


def truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (list, dict)):
        return True
    return bool(value)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without coercion: 1 == true is false, 1 == 1.0 is true."""
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, (list, dict)) or isinstance(right, (list, dict)):
        return left is right
    if type(left) is not type(right):
        return False
    return left == right


# ============================================================================
# Evaluation
# ============================================================================

@dataclass(frozen=True)
class ExpressionResult:
    value: bool
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ExpressionEvaluator:
    """Evaluates parsed expressions against a GameState."""

    def evaluate(self, expr: str, state: GameState) -> ExpressionResult:
        try:
            node = parse_expression(expr)
            return ExpressionResult(value=truthy(self._eval(node, state)))
        except ExpressionError as e:
            logger.debug("Expression %r failed: %s", expr, e)
            return ExpressionResult(value=False, error=str(e))
        except RecursionError:
            logger.debug("Expression %r is too deep to evaluate", expr)
            return ExpressionResult(value=False, error="Expression nested too deeply")

    def _eval(self, node: Node, state: GameState) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Identifier):
            return self._resolve(node.name, state)
        if isinstance(node, Call):
            args = [self._eval(arg, state) for arg in node.args]
            return self._call(node.name, args, state)
        if isinstance(node, Unary):
            return not truthy(self._eval(node.operand, state))

        if node.op == "&&":
            return truthy(self._eval(node.left, state)) and truthy(self._eval(node.right, state))
        if node.op == "||":
            return truthy(self._eval(node.left, state)) or truthy(self._eval(node.right, state))

        left = self._eval(node.left, state)
        right = self._eval(node.right, state)
        if node.op == "==":
            return strict_equals(left, right)
        if node.op == "!=":
            return not strict_equals(left, right)
        left_num, right_num = to_number(left), to_number(right)
        if node.op == ">":
            return left_num > right_num
        if node.op == ">=":
            return left_num >= right_num
        if node.op == "<":
            return left_num < right_num
        if node.op == "<=":
            return left_num <= right_num
        return False

    def _resolve(self, name: str, state: GameState) -> Any:
        if name.startswith("flag."):
            return state.flags.get(name[5:], False)
        if name.startswith("stat."):
            return state.character.stats.get(name[5:], 0)
        if name.startswith("var."):
            return state.vars.get(name[4:])
        if name.startswith("rep."):
            return (state.reputation or {}).get(name[4:], 0)
        return None

    def _call(self, name: str, args: list[Any], state: GameState) -> Any:
        item_id = args[0] if args and isinstance(args[0], str) else ""
        if name == "hasItem":
            return state.character.item_count(item_id) > 0
        if name == "itemCount":
            return state.character.item_count(item_id)
        return None


_evaluator = ExpressionEvaluator()


def evaluate_expression(expr: str, state: GameState) -> ExpressionResult:
    """Convenience function to evaluate an expression against a state."""
    return _evaluator.evaluate(expr, state)


def validate_expression(expr: str) -> str | None:
    """Return the parse error for expr, or None when it parses."""
    try:
        parse_expression(expr)
    except ExpressionError as e:
        return str(e)
    return None
