"""Typed-value view of S-expressions, used to read Specctra session files.

Lists become Python lists, bare atoms are coerced to ``int`` then ``float``
and otherwise stay symbols (``str``); quoted atoms become :class:`Quoted`
so that ``"123"`` is never mistaken for a number.
"""

from __future__ import annotations

from typing import Any, Union

from .parser import SExpSyntaxError, Token, tokenize


class Quoted(str):
    """A string that appeared in double quotes in the source."""

    __slots__ = ()


Value = Union[int, float, str, list[Any]]


def coerce_atom(text: str) -> int | float | str:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def parse_tokens(tokens: list[Token], pos: int = 0) -> tuple[Value, int]:
    """Parse one value starting at ``tokens[pos]``; returns the value and next index.

    Raises:
        SExpSyntaxError: On a stray ``)`` or a list left open at end of input.
    """
    if pos >= len(tokens):
        raise SExpSyntaxError("Unexpected end of input")
    token = tokens[pos]
    if token.kind == "CLOSE":
        raise SExpSyntaxError("Unexpected ')'")
    if token.kind == "STRING":
        return Quoted(token.value), pos + 1
    if token.kind == "ATOM":
        return coerce_atom(token.value), pos + 1

    items: list[Any] = []
    pos += 1
    while True:
        if pos >= len(tokens):
            raise SExpSyntaxError("Unexpected end of input: unclosed '('")
        if tokens[pos].kind == "CLOSE":
            return items, pos + 1
        item, pos = parse_tokens(tokens, pos)
        items.append(item)


def read_value(text: str) -> Value:
    """Tokenize and parse the first value in ``text``."""
    tokens = tokenize(text)
    value, _ = parse_tokens(tokens)
    return value


def head(node: Any) -> Any:
    """Keyword of a list node, e.g. ``'wire'`` for ``['wire', [...]]``."""
    if isinstance(node, list) and node:
        return node[0]
    return None


def find_node(node: Any, name: str) -> list[Any] | None:
    """First direct child list whose keyword is ``name``."""
    if not isinstance(node, list):
        return None
    for child in node[1:]:
        if head(child) == name:
            return child  # type: ignore[no-any-return]
    return None


def find_all_nodes(node: Any, name: str) -> list[list[Any]]:
    if not isinstance(node, list):
        return []
    return [child for child in node[1:] if head(child) == name]


def find_node_recursive(node: Any, name: str) -> list[Any] | None:
    """Depth-first search for the first list (including ``node``) named ``name``."""
    if not isinstance(node, list):
        return None
    if head(node) == name:
        return node
    for child in node[1:]:
        found = find_node_recursive(child, name)
        if found is not None:
            return found
    return None
