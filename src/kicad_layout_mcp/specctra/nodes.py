"""Specctra DSN document nodes.

A DSN document is a tree of four node kinds. Whitespace is a node of its
own so the writer controls the exact layout of the output text, which keeps
generated files diffable against other exporters::

    doc = tup(label("rule"), newline(6), tup(label("width"), SPACE, um(250_000)))
    str(doc)  # '(rule\\n      (width 250))'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from ..sexp.values import Quoted, coerce_atom

_RESERVED = frozenset("() ;-{}:")


@dataclass(frozen=True)
class Label:
    """Bare token written as is."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class QuotedString:
    """Token written inside double quotes."""

    text: str

    def __str__(self) -> str:
        return f'"{self.text}"'


@dataclass(frozen=True)
class Whitespace:
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass
class Tuple:
    """Parenthesised list of nodes."""

    items: list[Node] = field(default_factory=list)

    def __str__(self) -> str:
        return "(" + "".join(str(item) for item in self.items) + ")"

    @property
    def keyword(self) -> str | None:
        for item in self.items:
            if isinstance(item, (Label, QuotedString)):
                return item.text
            if isinstance(item, Tuple):
                return None
        return None

    def children(self) -> list[Tuple]:
        return [item for item in self.items if isinstance(item, Tuple)]

    def find(self, keyword: str) -> Tuple | None:
        for child in self.children():
            if child.keyword == keyword:
                return child
        return None

    def find_all(self, keyword: str) -> list[Tuple]:
        return [child for child in self.children() if child.keyword == keyword]


Node = Union[Tuple, Label, QuotedString, Whitespace]

SPACE = Whitespace(" ")


def tup(*items: Node) -> Tuple:
    return Tuple(list(items))


def newline(indent: int = 0) -> Whitespace:
    return Whitespace("\n" + " " * indent)


def label(text: str) -> Label:
    return Label(text)


def quoted(text: str) -> QuotedString:
    return QuotedString(text)


def token(text: str) -> Label | QuotedString:
    """A name token, quoted when empty or when it holds a reserved character."""
    if not text or any(ch in _RESERVED for ch in text):
        return QuotedString(text)
    return Label(text)


def format_um(nm: float) -> str:
    """Nanometres as a micrometre string with up to six decimals, no trailing zeros."""
    text = f"{nm / 1000:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def um(nm: float) -> Label:
    return Label(format_um(nm))


def format_angle(angle: float) -> str:
    text = f"{angle % 360:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "", "360") else text


def keyed(keyword: str, *values: Node) -> Tuple:
    """``(keyword v1 v2 ...)`` on one line."""
    items: list[Node] = [label(keyword)]
    for value in values:
        items.extend((SPACE, value))
    return Tuple(items)


def block(keyword: str, children: list[Node], indent: int, head: list[Node] | None = None) -> Tuple:
    """``(keyword head...`` then each child on its own line at ``indent``, closing
    on a line indented two less."""
    items: list[Node] = [label(keyword)]
    for value in head or []:
        items.extend((SPACE, value))
    for child in children:
        items.extend((newline(indent), child))
    items.append(newline(indent - 2))
    return Tuple(items)


def add_coords(items: list[Node], coords: list[tuple[int, int]]) -> None:
    """Append ``x -y`` pairs, wrapping every four points.

    ``coords`` are board nanometres; DSN Y grows upwards, hence the flip.
    """
    for i, (x, y) in enumerate(coords):
        items.append(newline(12) if i > 0 and i % 4 == 0 else SPACE)
        items.extend((um(x), SPACE, um(-y)))


def make_path(layer: str, coords: list[tuple[int, int]], width: int) -> Tuple:
    items: list[Node] = [label("path"), SPACE, token(layer), SPACE, um(width)]
    add_coords(items, coords)
    return Tuple(items)


def make_polygon(layer: str, coords: list[tuple[int, int]], width: int = 0) -> Tuple:
    items: list[Node] = [label("polygon"), SPACE, token(layer), SPACE, um(width)]
    add_coords(items, coords)
    return Tuple(items)


# ── Reading ─────────────────────────────────────────────────────────


def read_tree(text: str) -> Tuple:
    """Parse DSN text into nodes, keeping every whitespace run.

    ``str(read_tree(text)) == text`` for any document the writer produces.
    """
    stack: list[Tuple] = [Tuple()]
    pos = 0
    length = len(text)
    previous = ""
    while pos < length:
        ch = text[pos]
        if ch.isspace():
            end = pos
            while end < length and text[end].isspace():
                end += 1
            stack[-1].items.append(Whitespace(text[pos:end]))
            pos = end
            continue
        if previous == "string_quote" and ch not in "()":
            stack[-1].items.append(Label(ch))
            previous = ch
            pos += 1
            continue
        if ch == "(":
            node = Tuple()
            stack[-1].items.append(node)
            stack.append(node)
            pos += 1
        elif ch == ")":
            if len(stack) == 1:
                raise ValueError(f"Unexpected ')' at offset {pos}")
            stack.pop()
            pos += 1
        elif ch == '"':
            end = text.find('"', pos + 1)
            if end < 0:
                raise ValueError(f"Unterminated quoted string at offset {pos}")
            stack[-1].items.append(QuotedString(text[pos + 1 : end]))
            pos = end + 1
        else:
            end = pos
            while end < length and not text[end].isspace() and text[end] not in '()"':
                end += 1
            stack[-1].items.append(Label(text[pos:end]))
            pos = end
        last = stack[-1].items[-1] if stack[-1].items else None
        previous = last.text if isinstance(last, Label) else ""
    if len(stack) != 1:
        raise ValueError("Unexpected end of input: unclosed '('")
    roots = stack[0].children()
    if len(roots) != 1:
        raise ValueError(f"Expected one top-level list, found {len(roots)}")
    return roots[0]


def to_values(node: Node) -> Any:
    """Structural view matching :func:`..sexp.values.read_value` (whitespace dropped)."""
    if isinstance(node, Tuple):
        return [to_values(item) for item in node.items if not isinstance(item, Whitespace)]
    if isinstance(node, QuotedString):
        return Quoted(node.text)
    if isinstance(node, Label):
        return coerce_atom(node.text)
    raise TypeError(f"Whitespace has no value: {node!r}")
