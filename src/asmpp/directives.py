"""
Directive Classification and Parsing
====================================

A line is a directive when it starts with ``#`` at column 0. Keywords
are case-insensitive.

Supported Directives
--------------------
#include PATH               - Process PATH's lines in place
#constant NAME VALUE        - Define NAME; VALUE is the rest of the line
#macro NAME [P1, P2, ...]   - Start a macro definition
#endmacro                   - End a macro definition
#ifc NAME / #ifnc NAME      - Block kept if NAME is / is not a constant
#ifm NAME / #ifnm NAME      - Block kept if NAME is / is not a macro
#endif                      - End a conditional block

PATH may be wrapped in ``"..."`` or ``<...>``; the delimiters are
dropped.
"""

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from asmpp.errors import DirectiveError, SourceLocation


DIRECTIVE_MARKER = "#"

NAME = r'[A-Za-z_]\w*'
NAME_PATTERN = re.compile(rf'^{NAME}$')

INCLUDE_PATTERN = re.compile(r'^#include\s+(?P<path>.+)$', re.IGNORECASE)
CONSTANT_PATTERN = re.compile(
    rf'^#constant\s+(?P<name>{NAME})(?:\s+(?P<value>.*))?$', re.IGNORECASE
)
MACRO_PATTERN = re.compile(
    rf'^#macro\s+(?P<name>{NAME})(?:\s+(?P<formals>.*))?$', re.IGNORECASE
)
CONDITIONAL_PATTERN = re.compile(
    rf'^#if(?P<negate>n?)(?P<kind>[cm])\s+(?P<name>{NAME})$', re.IGNORECASE
)

# Terminators are matched leniently: surrounding whitespace is ignored
END_MACRO_PATTERN = re.compile(r'^\s*#endmacro\s*$', re.IGNORECASE)
END_IF_PATTERN = re.compile(r'^\s*#endif\s*$', re.IGNORECASE)


class DirectiveKind(Enum):
    INCLUDE = auto()
    CONSTANT = auto()
    MACRO = auto()
    END_MACRO = auto()
    CONDITIONAL = auto()
    END_IF = auto()


class ConditionTarget(Enum):
    """What a conditional tests NAME against."""
    CONSTANT = "c"
    MACRO = "m"


@dataclass
class Directive:
    """
    A parsed directive line.

    Only the fields relevant to ``kind`` are filled in.

    Attributes:
        kind: Which directive this is
        name: Constant, macro or conditional NAME
        value: Constant value (#constant)
        formals: Formal parameter names (#macro)
        path: File to include (#include)
        target: Symbol kind tested (#if...)
        negate: True for the ``n`` variants of #if...
    """
    kind: DirectiveKind
    name: str = ""
    value: str = ""
    formals: list[str] = field(default_factory=list)
    path: str = ""
    target: Optional[ConditionTarget] = None
    negate: bool = False


def is_directive(line: str) -> bool:
    """Return True if ``line`` is a directive line."""
    return line.startswith(DIRECTIVE_MARKER)


def is_end_macro(line: str) -> bool:
    return END_MACRO_PATTERN.match(line) is not None


def is_end_if(line: str) -> bool:
    return END_IF_PATTERN.match(line) is not None


def parse_directive(line: str, location: Optional[SourceLocation] = None) -> Directive:
    """
    Parse a directive line.

    Args:
        line: Directive text with trailing whitespace removed
        location: Where the line came from, for error messages

    Raises:
        DirectiveError: If the line matches no known directive shape
    """
    line = line.rstrip()

    match = INCLUDE_PATTERN.match(line)
    if match:
        return Directive(DirectiveKind.INCLUDE, path=_strip_delimiters(match.group("path").strip()))

    match = CONSTANT_PATTERN.match(line)
    if match:
        return Directive(
            DirectiveKind.CONSTANT,
            name=match.group("name"),
            value=match.group("value") or "",
        )

    match = MACRO_PATTERN.match(line)
    if match:
        formals = _parse_formals(match.group("formals"), line, location)
        return Directive(DirectiveKind.MACRO, name=match.group("name"), formals=formals)

    match = CONDITIONAL_PATTERN.match(line)
    if match:
        return Directive(
            DirectiveKind.CONDITIONAL,
            name=match.group("name"),
            target=ConditionTarget(match.group("kind").lower()),
            negate=bool(match.group("negate")),
        )

    if is_end_macro(line):
        return Directive(DirectiveKind.END_MACRO)

    if is_end_if(line):
        return Directive(DirectiveKind.END_IF)

    keyword = line[1:].split(None, 1)[0] if len(line) > 1 and not line[1].isspace() else ""
    raise DirectiveError(
        f"unrecognized directive '#{keyword}'" if keyword else "empty directive",
        location=location,
        hint="expected #include, #constant, #macro, #endmacro, #if[n]c, #if[n]m or #endif",
        source_line=line,
    )


def _parse_formals(
    text: Optional[str],
    line: str,
    location: Optional[SourceLocation],
) -> list[str]:
    """Split and validate a #macro formal parameter list."""
    if text is None or not text.strip():
        return []

    formals = [p.strip() for p in text.split(",")]
    for formal in formals:
        if not NAME_PATTERN.match(formal):
            raise DirectiveError(
                f"invalid macro parameter name '{formal}'",
                location=location,
                source_line=line,
            )
    return formals


def _strip_delimiters(path: str) -> str:
    if len(path) >= 2 and (
        (path[0] == '"' and path[-1] == '"') or (path[0] == "<" and path[-1] == ">")
    ):
        return path[1:-1]
    return path
