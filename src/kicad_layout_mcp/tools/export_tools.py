"""Export commands: fabrication package and 3D model via kicad-cli."""

from __future__ import annotations

import shutil
from typing import Any

from ..constants import FABRICATION_LAYERS
from ..logging_config import create_logger
from ..state import get_store
from .helpers import load_board
from .registry import register_tool

logger = create_logger(__name__)


def gerber_layers(copper_layers: list[str]) -> list[str]:
    """Fabrication layer set plus the board's inner copper layers."""
    inner = [name for name in copper_layers if name not in FABRICATION_LAYERS]
    return [*FABRICATION_LAYERS, *inner]


# ── Handlers ────────────────────────────────────────────────────────


def _export_fabrication_files_handler(project_name: str, include_glb: bool = True) -> dict[str, Any]:
    """Export Gerbers, drill and placement files as a zip, and optionally a GLB model.

    Args:
        project_name: Project name.
        include_glb: Also export the 3D GLB model. Default: true.
    """
    from ..backends.kicad_cli import get_cli
    from ..schema.extract import extract_board

    cli = get_cli()
    with get_store().lock(project_name):
        paths, doc = load_board(project_name)
        layers = gerber_layers([layer.name for layer in extract_board(doc).copper_layers])

        fab_dir = paths.fab_dir
        if fab_dir.exists():
            shutil.rmtree(fab_dir)
        try:
            cli.export_gerbers(paths.board, fab_dir, layers)
            cli.export_drill(paths.board, fab_dir)
            for side in ("front", "back"):
                cli.export_positions(paths.board, fab_dir / f"{paths.board.stem}-{side}-pos.csv", side)
            archive = shutil.make_archive(str(paths.fab_zip.with_suffix("")), "zip", root_dir=fab_dir)
        finally:
            shutil.rmtree(fab_dir, ignore_errors=True)
        logger.info(f"Fabrication files zipped to {archive}")

        glb_path = None
        if include_glb:
            glb_path = cli.export_glb(paths.board, paths.glb)

    return {
        "message": "Fabrication files exported successfully.",
        "boardName": paths.board.name,
        "fabZipPath": paths.fab_zip.name,
        "glbPath": glb_path.name if glb_path is not None else None,
        "layers": layers,
    }


# ── Registration ────────────────────────────────────────────────────

register_tool(
    name="export_fabrication_files",
    description="Export Gerbers, drill and pick-and-place files as a zip, plus an optional GLB 3D model.",
    parameters={
        "project_name": {"type": "string", "description": "Project name."},
        "include_glb": {"type": "boolean", "description": "Also export a GLB 3D model. Default: true."},
    },
    handler=_export_fabrication_files_handler,
    category="export",
    direct=True,
)
