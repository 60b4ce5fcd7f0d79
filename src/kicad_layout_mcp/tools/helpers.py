"""Shared helpers for command handlers."""

from __future__ import annotations

from ..config import ProjectPaths, get_settings
from ..exceptions import ResourceNotFoundError
from ..sexp import Document
from ..state import validate_project_name


def project_paths(project_name: str) -> ProjectPaths:
    return get_settings().project_paths(validate_project_name(project_name))


def load_board(project_name: str) -> tuple[ProjectPaths, Document]:
    """Load ``{project}.kicad_pcb``.

    Raises:
        ResourceNotFoundError: If the board has not been created yet.
    """
    paths = project_paths(project_name)
    if not paths.board.exists():
        raise ResourceNotFoundError(
            f"PCB file {paths.board.name} not found. Create the initial PCB first.", resource_type="board"
        )
    return paths, Document.load(paths.board)
