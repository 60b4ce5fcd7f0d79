"""File wrapper for KiCad S-expression files (.kicad_pcb, .kicad_mod, .net)."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from .parser import SExp, SExpSyntaxError, parse


class Document:
    """A loaded KiCad S-expression file.

    Usage::

        doc = Document.load("board.kicad_pcb")
        doc.root.name                       # "kicad_pcb"
        doc.root["version"].first_value     # "20241229"
        doc.save()                          # writes back to the same path
    """

    __slots__ = ("path", "root")

    def __init__(self, path: Path, root: SExp) -> None:
        self.path = path
        self.root = root

    @classmethod
    def load(cls, path: str | Path) -> Document:
        """Load and parse a KiCad S-expression file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file cannot be decoded or parsed.
            IOError: If the file cannot be read.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        try:
            raw_text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ValueError(f"Invalid encoding in {path}: {e}") from e
        except OSError as e:
            raise IOError(f"Error reading {path}: {e}") from e
        return cls.from_text(raw_text, path)

    @classmethod
    def from_text(cls, text: str, path: str | Path) -> Document:
        try:
            root = parse(text)
        except SExpSyntaxError as e:
            raise ValueError(f"Failed to parse {path}: {e}") from e
        return cls(path=Path(path), root=root)

    def save(self, path: str | Path | None = None) -> Path:
        """Write the tree back to disk.

        The text goes to a temporary file in the target directory first and
        is then renamed over the target, so a failed write never leaves a
        truncated board behind.
        """
        target = Path(path) if path is not None else self.path
        text = self.root.to_string() + "\n"
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp_name, target)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise IOError(f"Error writing to {target}: {e}") from e
        return target

    def __repr__(self) -> str:
        return f"Document({self.path.name!r}, root={self.root.name!r})"
