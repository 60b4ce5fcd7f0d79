"""S-expression tokenizer and tree parser.

KiCad boards, footprints and netlists as well as Specctra DSN/SES files all
use the same Lisp-like syntax. ``tokenize`` is shared by the ``SExp`` tree
parser here and by the typed-value parser in :mod:`.values`.

- ``(`` and ``)`` are always standalone tokens
- whitespace separates tokens
- ``"..."`` strings honour backslash escapes and may contain whitespace
- everything else is an atom
- the character after a ``string_quote`` keyword is an atom of its own
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import NamedTuple


class SExpSyntaxError(ValueError):
    """Malformed S-expression text (unbalanced parentheses, open string)."""


class Token(NamedTuple):
    """A lexical token.

    ``kind`` is one of ``OPEN``, ``CLOSE``, ``STRING``, ``ATOM``. ``value`` is
    the decoded text (quotes and escapes removed), ``raw`` the source slice.
    """

    kind: str
    value: str
    raw: str


_TOKEN_RE = re.compile(r'\s*(?:(\()|(\))|("(?:[^"\\]|\\.)*")|([^\s()"]+))', re.S)
_ESCAPE_RE = re.compile(r"\\(.)", re.S)
_NEEDS_QUOTING = frozenset(' \t\n\r"()\\')


def tokenize(text: str) -> list[Token]:
    """Split S-expression text into tokens.

    Raises:
        SExpSyntaxError: On an unterminated quoted string.
    """
    tokens: list[Token] = []
    pos = 0
    length = len(text)
    match = _TOKEN_RE.match
    while pos < length:
        if tokens and tokens[-1].kind == "ATOM" and tokens[-1].value == "string_quote":
            # Specctra "(string_quote ")" names the quote character itself
            while pos < length and text[pos].isspace():
                pos += 1
            if pos < length and text[pos] not in "()":
                tokens.append(Token("ATOM", text[pos], text[pos]))
                pos += 1
                continue
        m = match(text, pos)
        if m is None:
            if text[pos:].strip() == "":
                break
            raise SExpSyntaxError(f"Unterminated quoted string at offset {pos}")
        pos = m.end()
        if m.group(1):
            tokens.append(Token("OPEN", "(", "("))
        elif m.group(2):
            tokens.append(Token("CLOSE", ")", ")"))
        elif m.group(3) is not None:
            raw = m.group(3)
            tokens.append(Token("STRING", _ESCAPE_RE.sub(r"\1", raw[1:-1]), raw))
        else:
            tokens.append(Token("ATOM", m.group(4), m.group(4)))
    return tokens


class SExp:
    """A node in an S-expression tree.

    Either an atom (``value`` set, ``name`` None) or a list whose first atom
    is its ``name``::

        tree = parse('(kicad_pcb (version 20241229) (generator "pcbnew"))')
        tree.name                     # "kicad_pcb"
        tree["version"].first_value   # "20241229"
    """

    __slots__ = ("name", "value", "children", "_original_str")

    def __init__(
        self,
        name: str | None = None,
        value: str | None = None,
        children: list[SExp] | None = None,
        _original_str: str | None = None,
    ) -> None:
        self.name = name
        self.value = value
        self.children: list[SExp] = children if children is not None else []
        self._original_str = _original_str

    @classmethod
    def atom(cls, value: object) -> SExp:
        """Unquoted atom, e.g. a number."""
        text = str(value)
        return cls(value=text, _original_str=text)

    @classmethod
    def quoted(cls, value: str) -> SExp:
        """Atom that is always written in double quotes."""
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return cls(value=value, _original_str=f'"{escaped}"')

    @classmethod
    def node(cls, name: str, *children: SExp) -> SExp:
        return cls(name=name, children=list(children))

    @property
    def is_atom(self) -> bool:
        return self.name is None and self.value is not None

    @property
    def is_list(self) -> bool:
        return self.name is not None

    def __getitem__(self, key: str) -> SExp:
        """First child list with the given name; KeyError if absent."""
        for child in self.children:
            if child.name == key:
                return child
        raise KeyError(f"No child named {key!r}")

    def get(self, key: str, default: SExp | None = None) -> SExp | None:
        for child in self.children:
            if child.name == key:
                return child
        return default

    def find_all(self, name: str) -> list[SExp]:
        """All direct children with the given name."""
        return [child for child in self.children if child.name == name]

    def find_recursive(self, name: str) -> Iterator[SExp]:
        """All descendants with the given name, depth first."""
        for child in self.children:
            if child.name == name:
                yield child
            if child.children:
                yield from child.find_recursive(name)

    @property
    def first_value(self) -> str | None:
        """Value of the first atom child: ``(version 20241229)`` -> ``'20241229'``."""
        for child in self.children:
            if child.is_atom:
                return child.value
        return None

    @property
    def atom_values(self) -> list[str]:
        return [child.value for child in self.children if child.is_atom and child.value is not None]

    def set_atoms(self, *values: object) -> None:
        """Replace the leading atom children, keeping any nested lists."""
        nested = [child for child in self.children if child.is_list]
        self.children = [SExp.atom(v) for v in values] + nested

    def to_string(self, indent: int = 0) -> str:
        """Serialize back to S-expression text.

        Lists holding only atoms stay on one line; lists with nested lists
        put each nested list on its own indented line.
        """
        if self.is_atom:
            if self._original_str is not None:
                return self._original_str
            return quote_if_needed(self.value or "")

        head = "(" + (self.name or "")
        atoms = [c.to_string() for c in self.children if c.is_atom]
        if not any(c.is_list for c in self.children):
            return " ".join([head, *atoms]) + ")" if atoms else head + ")"

        pad = "  " * (indent + 1)
        lines = [head]
        seen_list = False
        for child in self.children:
            if child.is_list:
                seen_list = True
                lines.append(pad + child.to_string(indent + 1))
            elif seen_list:
                # Atoms after a nested list keep their position
                lines.append(pad + child.to_string())
            else:
                lines[0] += " " + child.to_string()
        lines[-1] += ")"
        return "\n".join(lines)

    def __repr__(self) -> str:
        if self.is_atom:
            return f"SExp(value={self.value!r})"
        return f"SExp(name={self.name!r}, children={len(self.children)})"

    def deep_copy(self) -> SExp:
        if self.is_atom:
            return SExp(value=self.value, _original_str=self._original_str)
        return SExp(name=self.name, children=[c.deep_copy() for c in self.children])


def quote_if_needed(s: str) -> str:
    """Quote a string if it contains whitespace, parentheses, quotes or backslashes."""
    if not s:
        return '""'
    if not any(ch in _NEEDS_QUOTING for ch in s):
        return s
    escaped = s.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse(text: str) -> SExp:
    """Parse text holding a single S-expression.

    Raises:
        SExpSyntaxError: If the input is malformed.
    """
    tokens = tokenize(text)
    node, pos = _parse_expr(tokens, 0)
    if pos != len(tokens):
        if tokens[pos].kind == "CLOSE":
            raise SExpSyntaxError("Unexpected ')'")
        raise SExpSyntaxError(f"Unexpected content after the expression: {tokens[pos].value!r}")
    return node


def parse_all(text: str) -> list[SExp]:
    """Parse text that may contain multiple top-level S-expressions."""
    tokens = tokenize(text)
    results: list[SExp] = []
    pos = 0
    while pos < len(tokens):
        node, pos = _parse_expr(tokens, pos)
        results.append(node)
    return results


def _parse_expr(tokens: list[Token], pos: int) -> tuple[SExp, int]:
    if pos >= len(tokens):
        raise SExpSyntaxError("Unexpected end of input")

    kind, value, raw = tokens[pos]
    if kind in ("ATOM", "STRING"):
        return SExp(value=value, _original_str=raw), pos + 1
    if kind == "CLOSE":
        raise SExpSyntaxError("Unexpected ')'")

    pos += 1
    if pos < len(tokens) and tokens[pos].kind == "CLOSE":
        return SExp(name="", children=[]), pos + 1

    first, pos = _parse_expr(tokens, pos)
    children: list[SExp] = []
    if first.is_atom:
        name = first.value
    else:
        name = first.name
        children.append(first)

    while True:
        if pos >= len(tokens):
            raise SExpSyntaxError("Unexpected end of input: unclosed '('")
        if tokens[pos].kind == "CLOSE":
            return SExp(name=name, children=children), pos + 1
        child, pos = _parse_expr(tokens, pos)
        children.append(child)
