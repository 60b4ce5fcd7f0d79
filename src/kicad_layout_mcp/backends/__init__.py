"""External process backends: kicad-cli, FreeRouting and kinet2pcb."""

from .freerouting import AutoStopper, RouterRun, run_freerouting
from .kicad_cli import KiCadCli, KiCadCliNotFound, get_cli
from .kinet2pcb import netlist_to_board

__all__ = [
    "AutoStopper",
    "KiCadCli",
    "KiCadCliNotFound",
    "RouterRun",
    "get_cli",
    "netlist_to_board",
    "run_freerouting",
]
