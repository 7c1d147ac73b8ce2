"""Percentage parsing and the overwriteable progress line."""

import re
from typing import Optional

from .ui import ExportUI

PERCENT_RE = re.compile(r"\d+%")
NUMBER_RE = re.compile(r"\d+")


def find_percent(text: str) -> Optional[str]:
    """First ``NN%`` token in *text*, or None."""
    match = PERCENT_RE.search(text)
    return match.group(0) if match else None


def first_number(text: str) -> Optional[str]:
    """First run of digits in *text*, or None."""
    match = NUMBER_RE.search(text)
    return match.group(0) if match else None


class ProgressReporter:
    """Renders a single progress line, redrawn only when the value changes."""

    def __init__(self, ui: ExportUI):
        self.ui = ui
        self.last: Optional[str] = None

    def show(self, token: str) -> None:
        if token == self.last:
            return
        self.ui.clear_line()
        self.ui.info(token, new_line=False)
        self.last = token

    def clear(self) -> None:
        self.ui.clear_line()
        self.last = None
