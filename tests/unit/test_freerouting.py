"""Tests for the FreeRouting runner and its stall detection."""

from __future__ import annotations

import io
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from kicad_layout_mcp.backends.freerouting import AutoStopper, build_command, run_freerouting
from kicad_layout_mcp.config import get_settings
from kicad_layout_mcp.exceptions import AutorouterError, ResourceNotFoundError


def _process(lines: list[str], exit_code: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.stderr = io.StringIO("".join(f"{line}\n" for line in lines))
    proc.wait.return_value = exit_code
    return proc


@pytest.fixture()
def jar(state_dir: Path) -> Path:
    path = get_settings().freerouting_jar
    path.write_bytes(b"PK")
    return path


class TestAutoStopper:
    def test_stops_after_patience_rounds(self) -> None:
        stopper = AutoStopper(patience=3, threshold=5.0)
        results = [stopper("Auto-routing ... making 2 changes") for _ in range(3)]
        assert results == [False, False, True]

    def test_big_round_resets(self) -> None:
        stopper = AutoStopper(patience=2, threshold=5.0)
        stopper("making 1 changes")
        stopper("making 40 changes")
        assert stopper.low_progress_count == 0
        assert stopper("There were only 0.5 changes") is False

    def test_unrelated_lines_are_ignored(self) -> None:
        stopper = AutoStopper(patience=2)
        stopper("making 1 changes")
        stopper("Saving session file")
        assert stopper.low_progress_count == 1


class TestRunFreerouting:
    def test_command_line(self, tmp_path: Path) -> None:
        cmd = build_command(get_settings(), tmp_path / "a.dsn", tmp_path / "a.ses")
        assert cmd[:3] == ["java", "-jar", str(get_settings().freerouting_jar)]
        assert cmd[cmd.index("-de") + 1] == str(tmp_path / "a.dsn")
        assert cmd[cmd.index("-do") + 1] == str(tmp_path / "a.ses")
        assert cmd[-4:] == ["-mp", "10", "-ep", "10"]

    def test_missing_jar(self, tmp_path: Path) -> None:
        with pytest.raises(ResourceNotFoundError, match="FreeRouting JAR"):
            run_freerouting(tmp_path / "a.dsn", tmp_path / "a.ses")

    @patch("kicad_layout_mcp.backends.freerouting.subprocess.Popen")
    def test_clean_exit(self, mock_popen: MagicMock, jar: Path, tmp_path: Path) -> None:
        mock_popen.return_value = _process(["Auto-routing ... making 40 changes", "", "Done"])
        run = run_freerouting(tmp_path / "a.dsn", tmp_path / "a.ses")
        assert run.exit_code == 0
        assert run.stall_stopped is False
        assert run.output_tail == ["Auto-routing ... making 40 changes", "Done"]
        mock_popen.return_value.terminate.assert_not_called()

    @patch("kicad_layout_mcp.backends.freerouting.subprocess.Popen")
    def test_stall_terminates_without_error(self, mock_popen: MagicMock, jar: Path, tmp_path: Path) -> None:
        proc = _process(["Optimizing route pass, making 2 changes"] * 12, exit_code=143)
        mock_popen.return_value = proc
        run = run_freerouting(tmp_path / "a.dsn", tmp_path / "a.ses")
        assert run.stall_stopped is True
        assert run.exit_code == 143
        assert len(run.output_tail) == 10
        proc.terminate.assert_called_once()

    @patch("kicad_layout_mcp.backends.freerouting.subprocess.Popen")
    def test_failure_raises(self, mock_popen: MagicMock, jar: Path, tmp_path: Path) -> None:
        mock_popen.return_value = _process(["Exception in thread main"], exit_code=1)
        with pytest.raises(AutorouterError) as excinfo:
            run_freerouting(tmp_path / "a.dsn", tmp_path / "a.ses")
        assert excinfo.value.exit_code == 1
        assert "Exception in thread main" in str(excinfo.value)

    @patch("kicad_layout_mcp.backends.freerouting.subprocess.Popen")
    def test_hung_process_is_killed(self, mock_popen: MagicMock, jar: Path, tmp_path: Path) -> None:
        proc = _process(["making 1 changes"] * 10)
        proc.wait.side_effect = [subprocess.TimeoutExpired(cmd="java", timeout=10), -9]
        mock_popen.return_value = proc
        run = run_freerouting(tmp_path / "a.dsn", tmp_path / "a.ses")
        proc.kill.assert_called_once()
        assert run.exit_code == -9
        assert run.stall_stopped is True

    @patch("kicad_layout_mcp.backends.freerouting.subprocess.Popen", side_effect=FileNotFoundError("java"))
    def test_java_missing(self, mock_popen: MagicMock, jar: Path, tmp_path: Path) -> None:
        with pytest.raises(AutorouterError, match="Could not start"):
            run_freerouting(tmp_path / "a.dsn", tmp_path / "a.ses")
