"""Specctra DSN writer and SES reader for the external autorouter."""

from .dsn import board_to_dsn, write_dsn
from .nodes import Label, QuotedString, Tuple, Whitespace, read_tree, to_values
from .ses import SesResult, parse_and_apply_ses

__all__ = [
    "Label",
    "QuotedString",
    "SesResult",
    "Tuple",
    "Whitespace",
    "board_to_dsn",
    "parse_and_apply_ses",
    "read_tree",
    "to_values",
    "write_dsn",
]
