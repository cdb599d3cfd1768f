"""
asmpp Error Hierarchy
=====================

This module defines the exception hierarchy for the preprocessor.
All exceptions inherit from PreprocessorError, allowing callers to catch
every preprocessing failure with a single except clause.

Exception Hierarchy
-------------------
PreprocessorError (base)
├── PreprocessorSyntaxError - content line matches no grammar form
├── RedefinitionError - constant or macro defined twice (strict mode)
├── MacroArgumentError - wrong number of arguments to a macro
├── UnclosedBlockError - #macro or #if without its terminator
├── DirectiveError - unrecognized or misplaced directive
├── ResourceError - input or output file cannot be opened
│   └── IncludeError - include file cannot be found or read
└── RecursionLimitError - configured nesting depth exceeded

All errors are fatal. There is no diagnostic-and-continue mode and no
warning severity: the first error aborts the whole run.

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source text for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int = 1

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Base Exception Class
# =============================================================================

class PreprocessorError(Exception):
    """
    Base exception for all preprocessor errors.

    Provides common formatting for error messages including source
    location tracking and optional hint messages.

        try:
            Preprocessor().process_file("main.asm")
        except PreprocessorError as e:
            print(e)

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            main.asm:12:1: error: macro 'push2' expects 2 arguments, got 1
                    push2 R1
                ^
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


# =============================================================================
# Specific Errors
# =============================================================================

class PreprocessorSyntaxError(PreprocessorError):
    """
    A content line matches neither the label-only nor the full grammar.

    Examples:
        - Label followed by a colon (``start: NOP``)
        - Command starting with a digit
        - Unterminated quoted parameter
    """
    pass


class RedefinitionError(PreprocessorError):
    """
    A constant or macro name is defined more than once in strict mode.

    Includes the location of the original definition as a hint when it
    is known.
    """

    def __init__(
        self,
        kind: str,
        name: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.kind = kind
        self.name = name
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{name}' was first defined at {original_location}"
        else:
            hint = "use --lazy to allow redefinition"

        super().__init__(
            f"{kind} '{name}' is already defined",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class MacroArgumentError(PreprocessorError):
    """
    Macro invoked with a parameter count different from its formal count.
    """

    def __init__(
        self,
        name: str,
        expected: int,
        actual: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"macro '{name}' expects {expected} argument"
            f"{'' if expected == 1 else 's'}, got {actual}",
            location=location,
            source_line=source_line,
        )


class UnclosedBlockError(PreprocessorError):
    """
    A ``#macro`` or ``#if...`` block reaches end of input without its
    ``#endmacro`` / ``#endif`` terminator.
    """

    def __init__(
        self,
        directive: str,
        terminator: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.directive = directive
        self.terminator = terminator
        super().__init__(
            f"'{directive}' block is not closed by '{terminator}'",
            location=location,
            hint="blocks are closed by the first terminator line; "
                 "nested blocks of the same kind are not supported",
            source_line=source_line,
        )


class DirectiveError(PreprocessorError):
    """
    A ``#`` line matches none of the known directive shapes.

    Also raised for a stray ``#endif`` or ``#endmacro`` and for a
    ``#macro`` whose formal parameters are not valid names.
    """
    pass


class ResourceError(PreprocessorError):
    """
    A named input or output file cannot be found or opened.
    """

    action = "open"

    def __init__(
        self,
        filename: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        search_paths: Optional[list[str]] = None,
    ):
        self.included_filename = filename
        self.reason = reason
        self.search_paths = search_paths or []

        hint = None
        if self.search_paths:
            paths_str = ", ".join(self.search_paths)
            hint = f"searched in: {paths_str}"

        super().__init__(
            f"cannot {self.action} '{filename}': {reason}",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class IncludeError(ResourceError):
    """
    An ``#include`` file cannot be found or read.
    """

    action = "include"


class RecursionLimitError(PreprocessorError):
    """
    Nesting of includes, macro bodies and conditional blocks exceeded
    the depth limit configured with ``max_depth``.

    Only raised when a limit is set; without one, runaway recursion is
    left to exhaust the interpreter stack.
    """

    def __init__(
        self,
        limit: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.limit = limit
        super().__init__(
            f"nesting depth limit of {limit} exceeded",
            location=location,
            hint="check for a macro that invokes itself or a file that includes itself",
            source_line=source_line,
        )
