"""
Console output for export runs.

Status messages can be left on an open line and overwritten later, which
is how progress percentages are shown. Errors always get their own line.
"""

from typing import Optional

from rich.console import Console
from rich.control import Control
from rich.segment import ControlType

console = Console(highlight=False)

_CLEAR_LINE = Control(ControlType.CARRIAGE_RETURN, (ControlType.ERASE_IN_LINE, 2))


class ExportUI:
    """Thin wrapper around a rich console."""

    def __init__(self, out: Optional[Console] = None):
        self.console = out or console
        self._line_open = False

    def _close_line(self) -> None:
        if self._line_open:
            self.console.print()
            self._line_open = False

    def info(self, message: str, new_line: bool = True) -> None:
        if new_line:
            self._close_line()
            self.console.print(message, markup=False)
        else:
            self.console.print(message, end="", markup=False)
            self._line_open = True

    def success(self, message: str) -> None:
        self._close_line()
        self.console.print(message, style="green", markup=False)

    def error(self, message: str) -> None:
        self._close_line()
        self.console.print(message, style="bold red", markup=False)

    def clear_line(self) -> None:
        """Erase the open status line, if any."""
        if self._line_open:
            if self.console.is_terminal:
                self.console.control(_CLEAR_LINE)
            else:
                self.console.print()
            self._line_open = False
