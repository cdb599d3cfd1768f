"""
Line Grammar
============

Parses one ordinary (non-directive) source line into its fields and
renders a parsed line back to canonical text.

Line Forms
----------
Every content line has one of two shapes:

1. **Label-only**: an optional label and an optional comment.
   Blank lines, comment-only lines and lines holding just a label
   all take this form.
   ```asm
   start
   start      ; entry point
              ; indented comment
   ```

2. **Full**: optional label, mandatory whitespace, a command, then a
   comma-separated parameter list and an optional comment.
   ```asm
   loop  ADD  R1, R1, SIZE   ; accumulate
         FCC  "a,b;c", 'x'
         RTS
   ```

| Field     | Syntax                                  |
|-----------|-----------------------------------------|
| label     | ``[A-Za-z_]\\w*`` at column 0            |
| command   | ``[A-Za-z_.]\\w*`` after whitespace      |
| parameter | quoted string or run of non-comma text  |
| comment   | ``;`` outside quotes to end of line     |

A comment keeps the whitespace that precedes its ``;`` so that plain
lines survive a parse/render cycle unchanged.

Anything else is a fatal syntax error; there is no recovery.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Optional

from asmpp.errors import PreprocessorSyntaxError, SourceLocation


LABEL_ONLY_PATTERN = re.compile(r'^(?P<label>[A-Za-z_]\w*)?(?P<comment>\s*;.*)?$')

# Label and command; the parameter region is handled by _scan_operands
HEAD_PATTERN = re.compile(r'^(?P<label>[A-Za-z_]\w*)?\s+(?P<command>[A-Za-z_.]\w*)')

QUOTE_CHARS = "'\""
COMMENT_CHAR = ";"
PARAMETER_SEPARATOR = ", "


@dataclass
class ParsedLine:
    """
    Fields of one content line.

    Attributes:
        label: Label at column 0 ("" when absent)
        command: Command token, or None for label-only lines
        parameters: Trimmed parameters in source order
        comment: Trailing comment including its leading whitespace ("" when absent)
    """
    label: str = ""
    command: Optional[str] = None
    parameters: list[str] = field(default_factory=list)
    comment: str = ""

    @property
    def is_label_only(self) -> bool:
        """Return True for blank, comment-only and label-only lines."""
        return self.command is None

    def with_parameters(self, parameters: list[str]) -> "ParsedLine":
        """Return a copy with the parameter list replaced."""
        return replace(self, parameters=list(parameters))

    def render(self) -> str:
        """
        Render the canonical text of this line.

        Full lines use fixed slots, ``LABEL COMMAND PARAMS COMMENT``, so an
        empty label still contributes its slot (``" RTS "``).
        """
        if self.is_label_only:
            return f"{self.label}{self.comment}"
        params = PARAMETER_SEPARATOR.join(self.parameters)
        return f"{self.label} {self.command} {params}{self.comment}"


def parse_line(text: str, location: Optional[SourceLocation] = None) -> ParsedLine:
    """
    Parse a content line.

    Args:
        text: Source line; trailing whitespace is ignored, leading is significant
        location: Where the line came from, for error messages

    Returns:
        The parsed fields

    Raises:
        PreprocessorSyntaxError: If the line matches neither line form
    """
    text = text.rstrip()

    match = LABEL_ONLY_PATTERN.match(text)
    if match:
        return ParsedLine(
            label=match.group("label") or "",
            comment=match.group("comment") or "",
        )

    match = HEAD_PATTERN.match(text)
    if not match:
        raise PreprocessorSyntaxError(
            "invalid line syntax",
            location=location,
            hint="labels start at column 0; commands must be preceded by whitespace",
            source_line=text,
        )

    try:
        parameters, comment = _scan_operands(text[match.end():])
    except ValueError as e:
        raise PreprocessorSyntaxError(str(e), location=location, source_line=text) from e

    return ParsedLine(
        label=match.group("label") or "",
        command=match.group("command"),
        parameters=parameters,
        comment=comment,
    )


def split_parameters(text: str) -> list[str]:
    """
    Split a parameter region on commas outside quotes.

    Unlike a full line, the text is not expected to carry a comment;
    a ``;`` outside quotes still ends the region.

        >>> split_parameters("R1, 'a,b', \\"x;y\\"")
        ['R1', "'a,b'", '"x;y"']

    Raises:
        ValueError: On an unterminated quoted string
    """
    parameters, _ = _scan_operands(text)
    return parameters


def _scan_operands(text: str) -> tuple[list[str], str]:
    """
    Scan the text after a command into parameters and a comment.

    Tracks quote state so commas and semicolons inside a quoted string
    neither split a parameter nor start a comment.

    Returns:
        (parameters, comment) where comment includes the whitespace before ``;``
    """
    parameters: list[str] = []
    current: list[str] = []
    quote: Optional[str] = None
    comment_start = len(text)

    for i, char in enumerate(text):
        if quote:
            current.append(char)
            if char == quote:
                quote = None
        elif char in QUOTE_CHARS and not "".join(current).strip():
            # Only a quote opening the parameter starts a string
            quote = char
            current.append(char)
        elif char == ",":
            parameters.append("".join(current).strip())
            current = []
        elif char == COMMENT_CHAR:
            comment_start = i
            break
        else:
            current.append(char)

    if quote:
        raise ValueError(f"unterminated string (missing closing {quote})")

    last = "".join(current).strip()
    if parameters or last:
        parameters.append(last)

    # The comment owns the whitespace run in front of its ';'
    while comment_start > 0 and comment_start < len(text) and text[comment_start - 1].isspace():
        comment_start -= 1

    return parameters, text[comment_start:]
