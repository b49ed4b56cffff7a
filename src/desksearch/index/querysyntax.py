"""Parsing and escaping for the search query language.

The language is deliberately small and close to what people type into web
search boxes:

* ``word other`` - both words must occur (AND)
* ``word OR other`` - either word
* ``-word`` - must not occur, ``+word`` is accepted and means the default
* ``"two words"`` - phrase
* ``field:value`` / ``field:"some value"`` - exact value of a stored field
* ``field:*`` - field is present, ``*`` or ``*:*`` - every document

A backslash makes the following character literal, which is what
:func:`escape_query_chars` relies on to embed arbitrary values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from desksearch.index.fields import CONTENT

_RESERVED = frozenset('\\+-!():^[]"{}~*?|&;/')
_FIELD_NAME = re.compile(r"^[A-Za-z_][\w.\-]*$")
WORD_PATTERN = re.compile(r"[^\W_]+")


def escape_query_chars(value: str) -> str:
    """Escape every reserved character and whitespace so ``value`` parses as one literal token."""
    return "".join("\\" + char if char in _RESERVED or char.isspace() else char for char in value)


def field_clause(field: str, value: str) -> str:
    return f"{field}:{escape_query_chars(value)}"


def words(text: str) -> List[str]:
    """Lower-cased words of ``text`` as the index tokenises them."""
    return [match.group(0).lower() for match in WORD_PATTERN.finditer(text)]


@dataclass(frozen=True, slots=True)
class Clause:
    text: str
    field: Optional[str] = None
    phrase: bool = False
    negated: bool = False
    wildcard: bool = False

    @property
    def is_content(self) -> bool:
        return self.field is None or self.field == CONTENT

    @property
    def matches_all(self) -> bool:
        return self.wildcard and self.field is None

    @property
    def words(self) -> List[str]:
        return words(self.text)


@dataclass(frozen=True, slots=True)
class ParsedQuery:
    """A conjunction of groups; each group is a disjunction of clauses."""

    groups: Tuple[Tuple[Clause, ...], ...] = ()

    def content_terms(self) -> List[List[str]]:
        """Word sequences of the positive full-text clauses, used for scoring and highlighting."""
        terms = []
        for group in self.groups:
            for clause in group:
                if clause.is_content and not clause.negated and not clause.wildcard:
                    sequence = clause.words
                    if sequence:
                        terms.append(sequence)
        return terms


@dataclass(slots=True)
class _Token:
    text: str = ""
    field: Optional[str] = None
    prefix: str = ""
    phrase: bool = False
    literal: bool = False

    @property
    def is_or(self) -> bool:
        return self.text == "OR" and not self.literal and not self.prefix and self.field is None

    def to_clause(self) -> Clause:
        wildcard = self.text == "*" and not self.literal and not self.phrase
        field = None if self.field == "*" else self.field
        return Clause(
            text="" if wildcard else self.text,
            field=field,
            phrase=self.phrase,
            negated=self.prefix == "-",
            wildcard=wildcard,
        )


def _tokenize(query: str) -> List[_Token]:
    tokens: List[_Token] = []
    length = len(query)
    i = 0
    while i < length:
        if query[i].isspace():
            i += 1
            continue

        token = _Token()
        if query[i] in "+-" and i + 1 < length and not query[i + 1].isspace():
            token.prefix = query[i]
            i += 1

        buffer: List[str] = []
        while i < length and not query[i].isspace():
            char = query[i]
            if char == "\\" and i + 1 < length:
                buffer.append(query[i + 1])
                token.literal = True
                i += 2
            elif char == '"' and not buffer:
                i += 1
                while i < length and query[i] != '"':
                    if query[i] == "\\" and i + 1 < length:
                        i += 1
                    buffer.append(query[i])
                    i += 1
                i += 1
                token.phrase = True
            elif (
                char == ":"
                and token.field is None
                and not token.literal
                and not token.phrase
                and (_FIELD_NAME.match("".join(buffer)) or buffer == ["*"])
            ):
                token.field = "".join(buffer)
                buffer = []
                i += 1
            else:
                buffer.append(char)
                i += 1

        token.text = "".join(buffer)
        if token.text or token.phrase or token.field:
            tokens.append(token)
    return tokens


def parse_query(query: str) -> ParsedQuery:
    """Parse a query string into clause groups."""
    groups: List[List[Clause]] = []
    join_with_previous = False
    for token in _tokenize(query):
        if token.is_or:
            join_with_previous = bool(groups)
            continue
        clause = token.to_clause()
        if join_with_previous:
            groups[-1].append(clause)
        else:
            groups.append([clause])
        join_with_previous = False
    return ParsedQuery(tuple(tuple(group) for group in groups))
