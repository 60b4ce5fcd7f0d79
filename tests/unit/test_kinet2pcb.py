"""Tests for the kinet2pcb netlist-to-board backend."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from kicad_layout_mcp.backends.kinet2pcb import library_dirs, netlist_to_board
from kicad_layout_mcp.config import get_settings
from kicad_layout_mcp.exceptions import NetlistToolError


class TestLibraryDirs:
    def test_system_only(self) -> None:
        settings = get_settings()
        assert library_dirs(settings) == [settings.footprint_dir]

    def test_custom_dir_appended(self) -> None:
        settings = get_settings()
        settings.custom_footprint_dir.mkdir()
        assert library_dirs(settings) == [settings.footprint_dir, settings.custom_footprint_dir]


class TestNetlistToBoard:
    @patch("kicad_layout_mcp.backends.kinet2pcb.subprocess.run")
    def test_command_and_output(self, mock_run: MagicMock, tmp_path: Path) -> None:
        board = tmp_path / "demo.kicad_pcb"

        def fake_run(cmd, **kwargs):
            board.write_text("(kicad_pcb)")
            return subprocess.CompletedProcess(cmd, 0, "", "")

        mock_run.side_effect = fake_run
        assert netlist_to_board(tmp_path / "demo_netlist.net", board) == board
        cmd = mock_run.call_args.args[0]
        assert cmd[:5] == ["kinet2pcb", "-i", str(tmp_path / "demo_netlist.net"), "-o", str(board)]
        assert cmd[5:] == ["-l", str(get_settings().footprint_dir)]

    @patch("kicad_layout_mcp.backends.kinet2pcb.subprocess.run")
    def test_failure_keeps_stderr(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = subprocess.CalledProcessError(2, ["kinet2pcb"], stderr="Unknown footprint\n")
        with pytest.raises(NetlistToolError) as excinfo:
            netlist_to_board(tmp_path / "a.net", tmp_path / "a.kicad_pcb")
        assert excinfo.value.stderr == "Unknown footprint\n"
        assert "exit code 2" in str(excinfo.value)

    @patch("kicad_layout_mcp.backends.kinet2pcb.subprocess.run", side_effect=FileNotFoundError())
    def test_tool_missing(self, mock_run: MagicMock, tmp_path: Path) -> None:
        with pytest.raises(NetlistToolError, match="not found"):
            netlist_to_board(tmp_path / "a.net", tmp_path / "a.kicad_pcb")

    @patch("kicad_layout_mcp.backends.kinet2pcb.subprocess.run")
    def test_no_board_written(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = subprocess.CompletedProcess([], 0, "", "")
        with pytest.raises(NetlistToolError, match="did not create"):
            netlist_to_board(tmp_path / "a.net", tmp_path / "a.kicad_pcb")
