"""Console output that avoids running lines past a fixed width."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TextIO

LINE_WIDTH = 75


class FatalError(Exception):
    """An error after which the program cannot continue."""


@dataclass
class LineOutput:
    """Writes text, starting a new line when a piece would overrun the width."""

    stream: TextIO | None = None
    width: int = LINE_WIDTH
    column: int = 0

    def write(self, text: str) -> None:
        """Write ``text``, breaking the line first if it would not fit."""
        stream = self.stream if self.stream is not None else sys.stdout
        if self.column and self.column + len(text) > self.width:
            stream.write("\n")
            self.column = 0
        stream.write(text)
        stream.flush()
        last_newline = text.rfind("\n")
        if last_newline >= 0:
            self.column = len(text) - last_newline - 1
        else:
            self.column += len(text)