"""Routing commands: DSN export, FreeRouting run and SES import."""

from __future__ import annotations

from typing import Any

from ..exceptions import AutorouterError
from ..logging_config import create_logger
from ..state import get_store
from .helpers import load_board
from .registry import register_tool

logger = create_logger(__name__)


# ── Handlers ────────────────────────────────────────────────────────


def _autoroute_pcb_handler(project_name: str, include_zones: bool = False) -> dict[str, Any]:
    """Autoroute the board with FreeRouting and apply the routed session.

    Existing tracks, arcs and vias are replaced by the router's result. The
    board file is only written once the session has been applied in full.

    Args:
        project_name: Project name.
        include_zones: Export copper pours as DSN planes. Default: false.
    """
    from ..backends.freerouting import run_freerouting
    from ..board.routing import clear_routing
    from ..schema.extract import extract_board
    from ..specctra import parse_and_apply_ses, write_dsn

    with get_store().lock(project_name):
        paths, doc = load_board(project_name)
        write_dsn(extract_board(doc), paths.dsn, include_zones=bool(include_zones))
        logger.info(f"Wrote {paths.dsn.name}")

        if paths.ses.exists():
            paths.ses.unlink()
        run = run_freerouting(paths.dsn, paths.ses)
        if not paths.ses.exists():
            raise AutorouterError(
                "FreeRouting finished without producing a session file."
                f" Last output: {' | '.join(run.output_tail)}",
                exit_code=run.exit_code,
            )

        removed = clear_routing(doc)
        applied = parse_and_apply_ses(doc, paths.ses)
        doc.save()

    stop_note = " (stopped early after routing stalled)" if run.stall_stopped else ""
    return {
        "message": (
            f"Autorouting completed{stop_note}: {applied.tracks} tracks and {applied.vias} vias"
            f" applied to {paths.board.name}."
        ),
        "dsn": paths.dsn.name,
        "ses": paths.ses.name,
        "stall_stopped": run.stall_stopped,
        "removed": removed,
        **applied.to_dict(),
    }


# ── Registration ────────────────────────────────────────────────────

register_tool(
    name="autoroute_pcb",
    description=(
        "Export the board to Specctra DSN, route it with FreeRouting (stopping when progress stalls)"
        " and replace the board's tracks and vias with the routed session."
    ),
    parameters={
        "project_name": {"type": "string", "description": "Project name."},
        "include_zones": {"type": "boolean", "description": "Include copper pours as planes. Default: false."},
    },
    handler=_autoroute_pcb_handler,
    category="routing",
    direct=True,
)
