"""Tokenizer for filter expressions.

Every token carries the 0-based offset of its first character so parse errors
can point at the offending spot. Keywords are case-insensitive; names after
``@``, ``#``, ``##`` and ``/`` keep their case and may be quoted to include
spaces or operator characters.
"""

import enum
from dataclasses import dataclass
from typing import Any, NoReturn

from todoist_cache.errors import (
    InvalidPriorityError,
    UnexpectedEndOfInputError,
    UnexpectedTokenError,
    UnknownCharactersError,
    UnknownKeywordError,
)
from todoist_cache.filter import ast

# Characters that end an unquoted name.
_NAME_TERMINATORS = frozenset("&|()")
# Characters that end a free-text collaborator name.
_ASSIGNEE_TERMINATORS = frozenset("&|)")

MONTHS: dict[str, int] = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}  # fmt: skip

_DAYS_IN_MONTH = (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


class TokenKind(enum.Enum):
    TODAY = "today"
    TOMORROW = "tomorrow"
    OVERDUE = "overdue"
    NO_DATE = "no date"
    WITHIN_DAYS = "N days"
    ON_DATE = "month day"
    PRIORITY = "priority"
    LABEL = "@label"
    NO_LABELS = "no labels"
    PROJECT = "#project"
    PROJECT_ALL = "##project"
    SECTION = "/section"
    ASSIGNED = "assigned"
    ASSIGNED_TO = "assigned to:"
    ASSIGNED_BY = "assigned by:"
    NO_ASSIGNEE = "no assignee"
    AND = "&"
    OR = "|"
    NOT = "!"
    LPAREN = "("
    RPAREN = ")"


_OPERATORS = {
    "&": TokenKind.AND,
    "|": TokenKind.OR,
    "!": TokenKind.NOT,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
}

_FIXED_KEYWORDS = {
    "today": TokenKind.TODAY,
    "tomorrow": TokenKind.TOMORROW,
    "overdue": TokenKind.OVERDUE,
}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    position: int
    text: str
    value: Any = None


def _is_number(text: str) -> bool:
    # str.isdigit also accepts superscripts and other scripts that int() rejects.
    return text.isascii() and text.isdecimal()


class Lexer:
    """Single-pass tokenizer over one (already trimmed) expression."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.unknown: list[tuple[str, int]] = []

    def tokenize(self) -> list[Token]:
        """Return all tokens.

        Raises:
            UnknownCharactersError: Listing every character that cannot start
                a token, with its position.
            FilterError: For malformed keywords, priorities, dates or names.
        """
        tokens: list[Token] = []
        while True:
            self._skip_whitespace()
            if self.pos >= len(self.text):
                break
            token = self._next_token()
            if token is not None:
                tokens.append(token)
        if self.unknown:
            raise UnknownCharactersError(self.unknown)
        return tokens

    # --- character helpers ---

    def _peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.text[i] if i < len(self.text) else ""

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _read_word(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and (
            self.text[self.pos].isalnum() or self.text[self.pos] in "_-"
        ):
            self.pos += 1
        return self.text[start : self.pos]

    def _read_quoted(self) -> str:
        quote = self.text[self.pos]
        start = self.pos
        self.pos += 1
        out: list[str] = []
        while self.pos < len(self.text):
            c = self.text[self.pos]
            self.pos += 1
            if c == quote:
                return "".join(out)
            if c == "\\" and self.pos < len(self.text):
                out.append(self.text[self.pos])
                self.pos += 1
            else:
                out.append(c)
        raise UnexpectedEndOfInputError(
            len(self.text), expected=f"closing {quote} for quote at {start}"
        )

    def _read_name(self, what: str) -> str:
        if self._peek() in ("'", '"'):
            name = self._read_quoted()
        else:
            start = self.pos
            while self.pos < len(self.text):
                c = self.text[self.pos]
                if c.isspace() or c in _NAME_TERMINATORS:
                    break
                self.pos += 1
            name = self.text[start : self.pos]
        if not name:
            self._missing(what)
        return name

    def _missing(self, what: str) -> NoReturn:
        if self.pos >= len(self.text):
            raise UnexpectedEndOfInputError(len(self.text), expected=what)
        raise UnexpectedTokenError(self.text[self.pos], self.pos, expected=what)

    def _lookahead_word(self) -> tuple[str, int]:
        """Return the next word (lowercased) and the position after it, without consuming."""
        saved = self.pos
        self._skip_whitespace()
        word = self._read_word().lower()
        end = self.pos
        self.pos = saved
        return word, end

    # --- tokens ---

    def _next_token(self) -> Token | None:
        start = self.pos
        c = self.text[start]

        if c in _OPERATORS:
            self.pos += 1
            return Token(_OPERATORS[c], start, c)

        if c == "@":
            self.pos += 1
            return self._named(TokenKind.LABEL, start, "a label name")
        if c == "#":
            self.pos += 1
            if self._peek() == "#":
                self.pos += 1
                return self._named(TokenKind.PROJECT_ALL, start, "a project name")
            return self._named(TokenKind.PROJECT, start, "a project name")
        if c == "/":
            self.pos += 1
            return self._named(TokenKind.SECTION, start, "a section name")

        if _is_number(c):
            return self._days(start)
        if c.isalpha():
            return self._keyword(start)

        self.unknown.append((c, start))
        self.pos += 1
        return None

    def _named(self, kind: TokenKind, start: int, what: str) -> Token:
        name = self._read_name(what)
        return Token(kind, start, self.text[start : self.pos], name)

    def _days(self, start: int) -> Token:
        digits = self._read_word()
        if not _is_number(digits):
            raise UnknownKeywordError(digits, start)
        word, end = self._lookahead_word()
        if word not in ("day", "days"):
            raise UnexpectedTokenError(word or digits, start, expected="'days' after a number")
        self.pos = end
        return Token(TokenKind.WITHIN_DAYS, start, self.text[start:end], int(digits))

    def _keyword(self, start: int) -> Token:
        word = self._read_word()
        lower = word.lower()

        if lower in _FIXED_KEYWORDS:
            return Token(_FIXED_KEYWORDS[lower], start, word)

        if len(lower) >= 2 and lower[0] == "p" and _is_number(lower[1:]):
            level = int(lower[1:])
            if not 1 <= level <= 4:
                raise InvalidPriorityError(lower[1:], start)
            return Token(TokenKind.PRIORITY, start, word, level)

        if lower == "no":
            return self._no(start)
        if lower == "next":
            return self._next_days(start)
        if lower == "assigned":
            return self._assigned(start)
        if lower in MONTHS:
            return self._month_day(start, MONTHS[lower])

        raise UnknownKeywordError(word, start)

    def _no(self, start: int) -> Token:
        kinds = {
            "date": TokenKind.NO_DATE,
            "dates": TokenKind.NO_DATE,
            "labels": TokenKind.NO_LABELS,
            "label": TokenKind.NO_LABELS,
            "assignee": TokenKind.NO_ASSIGNEE,
        }
        word, end = self._lookahead_word()
        if word not in kinds:
            raise UnknownKeywordError(f"no {word}".strip(), start)
        self.pos = end
        return Token(kinds[word], start, self.text[start:end])

    def _next_days(self, start: int) -> Token:
        self._skip_whitespace()
        if not _is_number(self._peek()):
            self._missing("a number of days after 'next'")
        token = self._days(self.pos)
        return Token(TokenKind.WITHIN_DAYS, start, self.text[start : self.pos], token.value)

    def _month_day(self, start: int, month: int) -> Token:
        self._skip_whitespace()
        day_pos = self.pos
        digits = self._read_word()
        if not _is_number(digits):
            self.pos = day_pos
            self._missing("a day of the month")
        day = int(digits)
        if not 1 <= day <= _DAYS_IN_MONTH[month - 1]:
            raise UnexpectedTokenError(digits, day_pos, expected="a valid day of the month")
        return Token(TokenKind.ON_DATE, start, self.text[start : self.pos], (month, day))

    def _assigned(self, start: int) -> Token:
        saved = self.pos
        word, end = self._lookahead_word()
        if word in ("to", "by"):
            self.pos = end
            self._skip_whitespace()
            if self._peek() == ":":
                self.pos += 1
                kind = TokenKind.ASSIGNED_TO if word == "to" else TokenKind.ASSIGNED_BY
                target = self._assign_target()
                return Token(kind, start, self.text[start : self.pos], target)
            self._missing(f"':' after 'assigned {word}'")
        self.pos = saved
        return Token(TokenKind.ASSIGNED, start, self.text[start:saved])

    def _assign_target(self) -> ast.AssignTarget:
        self._skip_whitespace()
        if self._peek() in ("'", '"'):
            name = self._read_quoted()
        else:
            begin = self.pos
            while self.pos < len(self.text) and self.text[self.pos] not in _ASSIGNEE_TERMINATORS:
                self.pos += 1
            name = self.text[begin : self.pos].strip()
            # Leave trailing whitespace for the next token's position.
            self.pos = begin + len(self.text[begin : self.pos].rstrip())
        if not name:
            self._missing("'me', 'others' or a collaborator name")
        lowered = name.lower()
        if lowered == "me":
            return ast.Me()
        if lowered == "others":
            return ast.Others()
        return ast.User(name)


def tokenize(text: str) -> list[Token]:
    return Lexer(text).tokenize()
