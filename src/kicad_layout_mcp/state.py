"""Per-project state store.

Each project keeps its components, nets, rules and board outline in
``{project}_state.json``. Every mutation is a read-modify-write under an
exclusive lock on ``{project}_state.json.lock``:

    store = get_store()
    with store.update("demo") as state:
        state.upsert_component(component)

The lock is an ``fcntl.flock`` on the lock file (cross-process) wrapped in a
per-project ``threading.Lock`` (cross-thread). The JSON is replaced
atomically, so readers never see a partial file.
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .config import Settings, get_settings
from .exceptions import StateLockError, ValidationError
from .logging_config import create_logger
from .schema.project import ProjectState

logger = create_logger(__name__)

LOCK_TIMEOUT = 30.0
"""Seconds to wait for a project lock before giving up."""


def validate_project_name(name: str) -> str:
    if not name or not isinstance(name, str):
        raise ValidationError("project_name must be a non-empty string", field="project_name")
    if any(ch in name for ch in "/\\\0") or name in (".", ".."):
        raise ValidationError(f"Invalid project name {name!r}", field="project_name")
    return name


class ProjectStore:
    """Lock-guarded JSON state files in one directory."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._guard = threading.Lock()
        self._thread_locks: dict[str, threading.Lock] = {}

    def _thread_lock(self, project: str) -> threading.Lock:
        with self._guard:
            return self._thread_locks.setdefault(project, threading.Lock())

    @contextmanager
    def lock(self, project: str, timeout: float = LOCK_TIMEOUT) -> Iterator[None]:
        """Hold the exclusive project lock for the duration of the block."""
        paths = self.settings.project_paths(validate_project_name(project))
        thread_lock = self._thread_lock(project)
        if not thread_lock.acquire(timeout=timeout):
            raise StateLockError(f"Timed out waiting for the lock of project {project!r}", lock_path=str(paths.lock))
        try:
            paths.lock.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(paths.lock), os.O_RDWR | os.O_CREAT)
            try:
                deadline = time.monotonic() + timeout
                while True:
                    try:
                        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                        break
                    except BlockingIOError:
                        if time.monotonic() >= deadline:
                            raise StateLockError(
                                f"Timed out waiting for the lock of project {project!r}",
                                lock_path=str(paths.lock),
                            ) from None
                        time.sleep(0.01)
                try:
                    yield
                finally:
                    fcntl.flock(fd, fcntl.LOCK_UN)
            finally:
                os.close(fd)
        finally:
            thread_lock.release()

    def _read(self, project: str) -> ProjectState:
        path = self.settings.project_paths(project).state
        if not path.exists():
            return ProjectState()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValidationError(f"State file {path.name} is not valid JSON: {e}", field="project_name") from e
        return ProjectState.from_dict(data)

    def _write(self, project: str, state: ProjectState) -> Path:
        path = self.settings.project_paths(project).state
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state.to_dict(), fh, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return path

    def load(self, project: str) -> ProjectState:
        """Snapshot of the project's state (empty when it has none yet)."""
        with self.lock(project):
            return self._read(project)

    @contextmanager
    def update(self, project: str) -> Iterator[ProjectState]:
        """Read-modify-write: the yielded state is saved only if the block succeeds."""
        with self.lock(project):
            state = self._read(project)
            yield state
            self._write(project, state)
            logger.debug(f"Saved state of project {project!r}")

    def exists(self, project: str) -> bool:
        return self.settings.project_paths(validate_project_name(project)).state.exists()


_store: ProjectStore | None = None
_store_lock = threading.Lock()


def get_store() -> ProjectStore:
    """Process-wide store bound to the current settings."""
    global _store
    settings = get_settings()
    with _store_lock:
        if _store is None or _store.settings is not settings:
            _store = ProjectStore(settings)
        return _store
