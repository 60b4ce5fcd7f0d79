"""kinet2pcb backend: builds an unrouted board from a KiCad netlist."""

from __future__ import annotations

import subprocess
from pathlib import Path

from ..config import Settings, get_settings
from ..exceptions import NetlistToolError
from ..logging_config import create_logger

logger = create_logger(__name__)

DEFAULT_TIMEOUT = 300  # seconds


def library_dirs(settings: Settings) -> list[Path]:
    """Footprint search directories, system libraries first."""
    dirs = [settings.footprint_dir]
    if settings.custom_footprint_dir.is_dir():
        dirs.append(settings.custom_footprint_dir)
    return dirs


def netlist_to_board(netlist_path: str | Path, board_path: str | Path, settings: Settings | None = None) -> Path:
    """Run kinet2pcb, placing every netlist footprint on a new board.

    Raises:
        NetlistToolError: If kinet2pcb is missing, times out or fails.
    """
    settings = settings or get_settings()
    cmd = [settings.kinet2pcb_bin, "-i", str(netlist_path), "-o", str(board_path)]
    for lib_dir in library_dirs(settings):
        cmd += ["-l", str(lib_dir)]

    logger.info(f"Running {' '.join(cmd)}")
    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True, timeout=DEFAULT_TIMEOUT)
    except subprocess.CalledProcessError as e:
        raise NetlistToolError(
            f"kinet2pcb failed with exit code {e.returncode}: {(e.stderr or '').strip()}", stderr=e.stderr
        ) from e
    except subprocess.TimeoutExpired as e:
        raise NetlistToolError(f"kinet2pcb timed out after {DEFAULT_TIMEOUT}s") from e
    except FileNotFoundError as e:
        raise NetlistToolError(f"kinet2pcb not found ({settings.kinet2pcb_bin}). Install it with pip.") from e

    out = Path(board_path)
    if not out.exists():
        raise NetlistToolError(f"kinet2pcb did not create {out.name}")
    return out
