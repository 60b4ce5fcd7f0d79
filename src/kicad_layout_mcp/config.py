"""Environment-driven settings and per-project artifact paths."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path

_SYSTEM_FOOTPRINT_DIRS = (
    "/usr/share/kicad/footprints",
    "/usr/share/kicad/modules",
)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _default_footprint_dir() -> Path:
    for candidate in _SYSTEM_FOOTPRINT_DIRS:
        if Path(candidate).is_dir():
            return Path(candidate)
    return Path(_SYSTEM_FOOTPRINT_DIRS[0])


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once from the environment."""

    state_dir: Path
    footprint_dir: Path
    freerouting_jar: Path
    java_bin: str = "java"
    kinet2pcb_bin: str = "kinet2pcb"
    kicad_cli_path: str | None = None
    kicad_cli_timeout: int = 120
    autoroute_patience: int = 10
    autoroute_progress_threshold: float = 5.0
    freerouting_flags: tuple[str, ...] = field(default=("-mp", "10", "-ep", "10"))

    @classmethod
    def from_env(cls) -> Settings:
        state_dir = Path(os.environ.get("KICAD_LAYOUT_STATE_DIR", "assets")).resolve()
        footprint_env = os.environ.get("KICAD_FOOTPRINT_DIR")
        footprint_dir = Path(footprint_env) if footprint_env else _default_footprint_dir()
        jar_env = os.environ.get("FREEROUTING_JAR")
        return cls(
            state_dir=state_dir,
            footprint_dir=footprint_dir,
            freerouting_jar=Path(jar_env) if jar_env else state_dir / "freerouting.jar",
            java_bin=os.environ.get("JAVA_BIN", "java"),
            kinet2pcb_bin=os.environ.get("KINET2PCB_BIN", "kinet2pcb"),
            kicad_cli_path=os.environ.get("KICAD_CLI_PATH") or None,
            kicad_cli_timeout=_env_int("KICAD_CLI_TIMEOUT", 120),
            autoroute_patience=_env_int("AUTOROUTE_PATIENCE", 10),
            autoroute_progress_threshold=_env_float("AUTOROUTE_PROGRESS_THRESHOLD", 5.0),
        )

    @property
    def custom_footprint_dir(self) -> Path:
        """User footprint libraries (``<lib>.pretty``) searched before the system ones."""
        return self.state_dir / "footprints"

    def project_paths(self, project_name: str) -> ProjectPaths:
        return ProjectPaths(self.state_dir, project_name)


@dataclass(frozen=True)
class ProjectPaths:
    """Artifact locations of one project inside the state directory."""

    state_dir: Path
    project: str

    def _named(self, suffix: str) -> Path:
        return self.state_dir / f"{self.project}_{suffix}"

    @property
    def state(self) -> Path:
        return self._named("state.json")

    @property
    def lock(self) -> Path:
        return self._named("state.json.lock")

    @property
    def netlist(self) -> Path:
        return self._named("netlist.net")

    @property
    def board(self) -> Path:
        return self.state_dir / f"{self.project}.kicad_pcb"

    @property
    def dsn(self) -> Path:
        return self._named("design.dsn")

    @property
    def ses(self) -> Path:
        return self._named("routed.ses")

    @property
    def fab_dir(self) -> Path:
        return self._named("fab")

    @property
    def fab_zip(self) -> Path:
        return self._named("fab.zip")

    @property
    def glb(self) -> Path:
        return self._named("board.glb")


_settings: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Return the cached settings, reading the environment on first use."""
    global _settings
    with _settings_lock:
        if _settings is None:
            _settings = Settings.from_env()
        return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    with _settings_lock:
        _settings = None
