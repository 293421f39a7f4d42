"""Recursive descent parser for filter expressions.

Grammar, loosest binding first::

    expression ::= and_expr ("|" and_expr)*
    and_expr   ::= unary ("&" unary)*
    unary      ::= "!" unary | primary
    primary    ::= "(" expression ")" | predicate

``&`` and ``|`` are left-associative.
"""

from todoist_cache.errors import (
    EmptyExpressionError,
    UnclosedParenthesisError,
    UnexpectedEndOfInputError,
    UnexpectedTokenError,
)
from todoist_cache.filter import ast
from todoist_cache.filter.lexer import Token, TokenKind, tokenize

# Open parentheses plus "!" prefixes allowed around any one operand.
MAX_NESTING_DEPTH = 100

_PREDICATE_EXPECTED = "a filter such as today, p1, @label, #project or '('"

_SIMPLE_PREDICATES: dict[TokenKind, type] = {
    TokenKind.TODAY: ast.Today,
    TokenKind.TOMORROW: ast.Tomorrow,
    TokenKind.OVERDUE: ast.Overdue,
    TokenKind.NO_DATE: ast.NoDate,
    TokenKind.NO_LABELS: ast.NoLabels,
    TokenKind.ASSIGNED: ast.Assigned,
    TokenKind.NO_ASSIGNEE: ast.NoAssignee,
}


class FilterParser:
    def __init__(self, tokens: list[Token], input_len: int) -> None:
        self.tokens = tokens
        self.index = 0
        self.input_len = input_len
        self.depth = 0

    def _peek(self) -> Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _check(self, kind: TokenKind) -> bool:
        token = self._peek()
        return token is not None and token.kind == kind

    def _advance(self) -> Token | None:
        token = self._peek()
        if token is not None:
            self.index += 1
        return token

    def parse(self) -> ast.Filter:
        node = self._expression()
        leftover = self._peek()
        if leftover is not None:
            raise UnexpectedTokenError(leftover.text, leftover.position, expected="'&', '|' or end")
        return node

    def _expression(self) -> ast.Filter:
        left = self._and_expr()
        while self._check(TokenKind.OR):
            self._advance()
            left = ast.Or(left, self._and_expr())
        return left

    def _and_expr(self) -> ast.Filter:
        left = self._unary()
        while self._check(TokenKind.AND):
            self._advance()
            left = ast.And(left, self._unary())
        return left

    def _enter(self, token: Token) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise UnexpectedTokenError(
                token.text,
                token.position,
                expected=f"at most {MAX_NESTING_DEPTH} levels of nesting",
            )

    def _unary(self) -> ast.Filter:
        token = self._peek()
        if token is not None and token.kind == TokenKind.NOT:
            self._advance()
            self._enter(token)
            operand = self._unary()
            self.depth -= 1
            return ast.Not(operand)
        return self._primary()

    def _primary(self) -> ast.Filter:
        token = self._advance()
        if token is None:
            raise UnexpectedEndOfInputError(self.input_len, expected=_PREDICATE_EXPECTED)

        kind = token.kind
        if kind == TokenKind.LPAREN:
            self._enter(token)
            inner = self._expression()
            if not self._check(TokenKind.RPAREN):
                raise UnclosedParenthesisError(token.position)
            self._advance()
            self.depth -= 1
            return inner

        if kind in _SIMPLE_PREDICATES:
            return _SIMPLE_PREDICATES[kind]()  # type: ignore[no-any-return]
        if kind == TokenKind.WITHIN_DAYS:
            return ast.WithinDays(token.value)
        if kind == TokenKind.ON_DATE:
            month, day = token.value
            return ast.OnDate(month, day)
        if kind == TokenKind.PRIORITY:
            return ast.Priority(token.value)
        if kind == TokenKind.LABEL:
            return ast.Label(token.value)
        if kind == TokenKind.PROJECT:
            return ast.Project(token.value)
        if kind == TokenKind.PROJECT_ALL:
            return ast.ProjectWithSubprojects(token.value)
        if kind == TokenKind.SECTION:
            return ast.Section(token.value)
        if kind == TokenKind.ASSIGNED_TO:
            return ast.AssignedTo(token.value)
        if kind == TokenKind.ASSIGNED_BY:
            return ast.AssignedBy(token.value)

        # "&", "|" or ")" where an operand belongs.
        raise UnexpectedTokenError(token.text, token.position, expected=_PREDICATE_EXPECTED)


def parse(expression: str) -> ast.Filter:
    """Parse a filter expression into a syntax tree.

    Raises:
        FilterError: With the offending position (0-based, in the trimmed
            expression) for anything that is not a complete expression.
    """
    text = expression.strip()
    if not text:
        raise EmptyExpressionError()
    tokens = tokenize(text)
    if not tokens:
        raise EmptyExpressionError()
    return FilterParser(tokens, len(text)).parse()
