"""S-expression parsing for KiCad and Specctra file formats."""

from .document import Document
from .parser import SExp, SExpSyntaxError, Token, parse, parse_all, tokenize

__all__ = ["Document", "SExp", "SExpSyntaxError", "Token", "parse", "parse_all", "tokenize"]
