"""
Line Sources
============

A LineSource is a resumable, pull-based sequence of raw text lines.
The same type backs an open file, the captured body of a macro and the
captured branch of a conditional block.

Consumption is cursor-preserving: the driver and the directive handlers
pull from the same object, so when a ``#macro`` handler reads ahead to
capture its body, the driver continues after ``#endmacro`` instead of
restarting the enumeration.

Every source also knows where its lines came from, so errors raised
while replaying a macro body point at the body line in the file where
the macro was defined.
"""

from typing import Iterable, Iterator, Optional

from asmpp.errors import SourceLocation


class LineSource:
    """
    Resumable iterator over raw lines with position tracking.

    Attributes:
        name: Origin shown in diagnostics (filename or "<input>")
        line_number: Number of the line most recently returned
                     (0 before the first pull)
    """

    def __init__(self, lines: Iterable[str], name: str = "<input>", first_line: int = 1):
        """
        Args:
            lines: Any iterable of strings; a file object works directly
            name: Origin name for error messages
            first_line: Line number of the first line in ``lines``
        """
        self._lines: Iterator[str] = iter(lines)
        self.name = name
        self.line_number = first_line - 1
        self._current: Optional[str] = None

    @classmethod
    def from_string(cls, text: str, name: str = "<input>") -> "LineSource":
        """Create a source over the lines of ``text``."""
        return cls(text.splitlines(), name)

    def __iter__(self) -> "LineSource":
        return self

    def __next__(self) -> str:
        line = next(self._lines)
        self.line_number += 1
        self._current = line.rstrip()
        return line

    def next_line(self) -> Optional[str]:
        """Pull the next line, or None when the source is exhausted."""
        return next(self, None)

    @property
    def current_line(self) -> Optional[str]:
        """Text of the most recently returned line, trailing whitespace removed."""
        return self._current

    def location(self, column: int = 1) -> SourceLocation:
        """Location of the most recently returned line."""
        return SourceLocation(self.name, self.line_number, column)

    def __repr__(self) -> str:
        return f"LineSource({self.name!r}, line={self.line_number})"
