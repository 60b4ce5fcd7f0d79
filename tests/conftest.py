"""Shared fixtures: an isolated state directory and the synthetic board."""

from __future__ import annotations

import shutil
from collections.abc import Iterator
from pathlib import Path

import pytest

from kicad_layout_mcp.backends.kicad_cli import reset_cli
from kicad_layout_mcp.config import get_settings, reset_settings
from kicad_layout_mcp.sexp import Document

FIXTURES = Path(__file__).parent / "fixtures"
BOARD_FIXTURE = FIXTURES / "minimal_board.kicad_pcb"
SES_FIXTURE = FIXTURES / "routed.ses"
FOOTPRINT_FIXTURES = FIXTURES / "footprints"


@pytest.fixture(autouse=True)
def state_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point every artifact path at a fresh temporary directory."""
    monkeypatch.setenv("KICAD_LAYOUT_STATE_DIR", str(tmp_path))
    monkeypatch.setenv("KICAD_FOOTPRINT_DIR", str(FOOTPRINT_FIXTURES))
    monkeypatch.setenv("FREEROUTING_JAR", str(tmp_path / "freerouting.jar"))
    reset_settings()
    reset_cli()
    yield tmp_path
    reset_settings()
    reset_cli()


@pytest.fixture
def board_doc(tmp_path: Path) -> Document:
    """A writable copy of the synthetic board."""
    path = tmp_path / "fixture.kicad_pcb"
    shutil.copy(BOARD_FIXTURE, path)
    return Document.load(path)


@pytest.fixture
def project_board(state_dir: Path) -> Path:
    """The synthetic board installed as project ``demo``."""
    path = get_settings().project_paths("demo").board
    shutil.copy(BOARD_FIXTURE, path)
    return path
