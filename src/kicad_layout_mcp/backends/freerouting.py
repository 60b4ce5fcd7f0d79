"""FreeRouting backend: runs the Java autorouter on a DSN file.

FreeRouting reports each optimisation pass on stderr. The runner streams
those lines into the log and terminates the process once
:class:`AutoStopper` sees too many consecutive passes with little progress;
the session file written so far is then used as the result.
"""

from __future__ import annotations

import re
import subprocess
from collections import deque
from dataclasses import dataclass
from pathlib import Path

from ..config import Settings, get_settings
from ..exceptions import AutorouterError, ResourceNotFoundError
from ..logging_config import create_logger

logger = create_logger(__name__)

_CHANGES_RE = re.compile(r"(?:making|There were only) (\d+\.?\d*) changes")

TERMINATE_GRACE = 10  # seconds
OUTPUT_TAIL_LINES = 20


class AutoStopper:
    """Decides when the autorouter has stopped making useful progress.

    A line reporting fewer than ``threshold`` changes counts as a
    low-progress round, any other change report resets the count. Lines
    without a change report leave it untouched.
    """

    def __init__(self, patience: int = 10, threshold: float = 5.0) -> None:
        self.patience = patience
        self.threshold = threshold
        self.low_progress_count = 0

    def __call__(self, line: str) -> bool:
        match = _CHANGES_RE.search(line)
        if match:
            if float(match.group(1)) < self.threshold:
                self.low_progress_count += 1
            else:
                self.low_progress_count = 0
        return self.low_progress_count >= self.patience


@dataclass
class RouterRun:
    exit_code: int | None
    stall_stopped: bool
    output_tail: list[str]


def build_command(settings: Settings, dsn_path: Path, ses_path: Path) -> list[str]:
    return [
        settings.java_bin,
        "-jar",
        str(settings.freerouting_jar),
        "-de",
        str(dsn_path),
        "-do",
        str(ses_path),
        *settings.freerouting_flags,
    ]


def run_freerouting(dsn_path: str | Path, ses_path: str | Path, settings: Settings | None = None) -> RouterRun:
    """Route ``dsn_path`` into ``ses_path``.

    Raises:
        ResourceNotFoundError: If the FreeRouting jar is missing.
        AutorouterError: If the process cannot start, or exits non-zero
            without having been stopped for stalling.
    """
    settings = settings or get_settings()
    if not settings.freerouting_jar.is_file():
        raise ResourceNotFoundError(
            f"FreeRouting JAR not found at {settings.freerouting_jar}", resource_type="freerouting_jar"
        )

    cmd = build_command(settings, Path(dsn_path), Path(ses_path))
    logger.info(f"Starting autorouter: {' '.join(cmd)}")
    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE, text=True)
    except OSError as e:
        raise AutorouterError(f"Could not start FreeRouting: {e}") from e

    stopper = AutoStopper(settings.autoroute_patience, settings.autoroute_progress_threshold)
    tail: deque[str] = deque(maxlen=OUTPUT_TAIL_LINES)
    stall_stopped = False

    for raw in proc.stderr or ():
        line = raw.strip()
        if not line:
            continue
        logger.info(f"FREEROUTING: {line}")
        tail.append(line)
        if stopper(line):
            logger.info(
                f"Stopping autorouter due to low progress ({stopper.low_progress_count} consecutive rounds "
                f"with < {stopper.threshold} changes)"
            )
            stall_stopped = True
            proc.terminate()
            break

    try:
        exit_code = proc.wait(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        proc.kill()
        exit_code = proc.wait()
    finally:
        proc.stderr.close()

    if exit_code != 0 and not stall_stopped:
        raise AutorouterError(
            f"FreeRouting failed with exit code {exit_code}. Last output: {' | '.join(tail)}",
            exit_code=exit_code,
        )
    return RouterRun(exit_code=exit_code, stall_stopped=stall_stopped, output_tail=list(tail))
