"""kicad-cli backend: fabrication and 3D exports via KiCad's CLI tool.

kicad-cli is the official command-line interface (KiCad 8+). Every export
here is a synchronous subprocess call; a failure raises
:class:`~kicad_layout_mcp.exceptions.KiCadCliError` carrying the tool's
stderr verbatim.
"""

from __future__ import annotations

import glob
import subprocess
import sys
import threading
from pathlib import Path

from ..config import get_settings
from ..exceptions import BackendError, KiCadCliError
from ..logging_config import create_logger

logger = create_logger(__name__)

# Common installation paths for kicad-cli
_SEARCH_PATHS = [
    r"C:\Program Files\KiCad\9.0\bin\kicad-cli.exe",
    r"C:\Program Files\KiCad\8.0\bin\kicad-cli.exe",
    "/usr/bin/kicad-cli",
    "/usr/local/bin/kicad-cli",
    "/Applications/KiCad/KiCad.app/Contents/MacOS/kicad-cli",
]

DEFAULT_TIMEOUT = 120  # seconds

GERBER_FLAGS = ("--subtract-soldermask", "--no-x2", "--use-drill-file-origin")
DRILL_FLAGS = ("--format", "excellon", "--excellon-units", "mm", "--excellon-separate-th")
GLB_FLAGS = ("--subst-models", "--include-tracks", "--include-pads", "--include-zones", "--force")


class KiCadCliNotFound(BackendError):
    """Raised when kicad-cli cannot be found."""

    def __init__(self, message: str) -> None:
        super().__init__(message, backend_name="kicad-cli")
        self.error_code = "KICAD_CLI_NOT_FOUND"


class KiCadCli:
    """Wrapper around the kicad-cli command-line tool."""

    def __init__(self, cli_path: str | None = None, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.cli_path = cli_path or self._find_cli()
        self.timeout = timeout

    @staticmethod
    def _find_cli() -> str:
        """Auto-detect kicad-cli path."""
        from shutil import which

        found = which("kicad-cli")
        if found:
            return found

        for path in _SEARCH_PATHS:
            if Path(path).is_file():
                return path

        # Versioned installations (e.g. 9.0.2, 9.1)
        patterns: list[str] = []
        if sys.platform == "win32":
            patterns.append(r"C:\Program Files\KiCad\*\bin\kicad-cli.exe")
        elif sys.platform == "darwin":
            patterns.append("/Applications/KiCad/KiCad*.app/Contents/MacOS/kicad-cli")
        else:
            patterns.append("/usr/lib/kicad/*/bin/kicad-cli")

        for pattern in patterns:
            matches = sorted(glob.glob(pattern), reverse=True)
            if matches:
                return matches[0]

        raise KiCadCliNotFound("kicad-cli not found. Install KiCad 8+ or set KICAD_CLI_PATH.")

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        """Run a kicad-cli command with timeout and error handling."""
        cmd = [self.cli_path] + args
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise KiCadCliError(f"kicad-cli timed out after {self.timeout}s") from e
        except FileNotFoundError as e:
            raise KiCadCliNotFound(f"kicad-cli not found at {self.cli_path}") from e

    def _check(self, result: subprocess.CompletedProcess[str]) -> None:
        """Raise KiCadCliError with the captured stderr when the command failed."""
        if result.returncode == 0:
            return
        cmd_str = " ".join(result.args) if isinstance(result.args, list) else str(result.args)
        stderr = result.stderr or ""
        raise KiCadCliError(
            f"kicad-cli failed. Command: '{cmd_str}'. Stderr: {stderr.strip() or result.stdout.strip()}",
            exit_code=result.returncode,
            stderr=stderr,
        )

    @staticmethod
    def is_available() -> bool:
        try:
            KiCadCli._find_cli()
            return True
        except KiCadCliNotFound:
            return False

    @staticmethod
    def _require_board(board_path: str | Path) -> None:
        if not Path(board_path).exists():
            raise FileNotFoundError(f"Board not found: {board_path}")

    def export_gerbers(self, board_path: str | Path, output_dir: str | Path, layers: list[str]) -> Path:
        """Plot the given layers to Gerber files in ``output_dir``."""
        self._require_board(board_path)
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        self._check(
            self._run(
                [
                    "pcb", "export", "gerbers", "--output", f"{out}/",
                    "--layers", ",".join(layers), *GERBER_FLAGS, str(board_path),
                ]
            )
        )
        return out

    def export_drill(self, board_path: str | Path, output_dir: str | Path) -> Path:
        """Write Excellon drill files to ``output_dir``."""
        self._require_board(board_path)
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        self._check(self._run(["pcb", "export", "drill", "--output", f"{out}/", *DRILL_FLAGS, str(board_path)]))
        return out

    def export_positions(self, board_path: str | Path, output_path: str | Path, side: str) -> Path:
        """Write a CSV pick-and-place file for one side (``front`` or ``back``)."""
        self._require_board(board_path)
        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self._check(
            self._run(
                [
                    "pcb", "export", "pos", "--output", str(out),
                    "--format", "csv", "--units", "mm", "--side", side, str(board_path),
                ]
            )
        )
        return out

    def export_glb(self, board_path: str | Path, output_path: str | Path) -> Path:
        """Export a binary glTF 3D model of the board."""
        self._require_board(board_path)
        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self._check(
            self._run(["pcb", "export", "glb", "--output", str(out), *GLB_FLAGS, str(board_path)])
        )
        return out


_cli: KiCadCli | None = None
_cli_lock = threading.Lock()


def get_cli() -> KiCadCli:
    """Lazily created process-wide kicad-cli wrapper."""
    global _cli
    with _cli_lock:
        if _cli is None:
            settings = get_settings()
            _cli = KiCadCli(settings.kicad_cli_path, settings.kicad_cli_timeout)
        return _cli


def reset_cli() -> None:
    global _cli
    with _cli_lock:
        _cli = None
