"""
Macro Preprocessor
==================

This module implements the recursive engine that turns source text with
``#include``, ``#constant``, ``#macro`` and ``#if`` directives into a
flat stream of plain lines.

Processing Model
----------------
The driver pulls one line at a time from a LineSource:

1. Trailing whitespace is removed.
2. Lines starting with ``#`` are directives. Block directives read
   ahead from the *same* source to capture their bodies, so the driver
   resumes after the terminator.
3. Other lines are parsed by the line grammar. If the command names a
   macro the macro is expanded; otherwise the line is emitted with
   constants substituted in parameter position.

Included files, macro bodies and true conditional blocks are replayed
by calling the driver recursively. One SymbolTable is shared by every
level, so definitions made inside an include or a macro body remain
visible afterwards.

Macro parameters are bound as constants for the duration of the body
(dynamic scoping) and restored when the body finishes:

    #constant X 1
    #macro show X
        DB X
    #endmacro
        show 99         ; body emits " DB 99"
        DB X            ; emits " DB 1"

There is no cycle detection. A macro that invokes itself or a file that
includes itself recurses until the interpreter stack is exhausted,
unless ``max_depth`` is set.

Example
-------
>>> from asmpp import preprocess
>>> print(preprocess("#constant SIZE 10\\nloop ADD R1, R1, SIZE ; c"))
loop ADD R1, R1, 10 ; c
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from asmpp.directives import (
    ConditionTarget,
    Directive,
    DirectiveKind,
    is_directive,
    is_end_if,
    is_end_macro,
    parse_directive,
)
from asmpp.errors import (
    DirectiveError,
    IncludeError,
    MacroArgumentError,
    RecursionLimitError,
    ResourceError,
    SourceLocation,
    UnclosedBlockError,
)
from asmpp.grammar import ParsedLine, parse_line
from asmpp.source import LineSource
from asmpp.symbols import MacroDefinition, Mode, ScopeStack, SymbolTable

logger = logging.getLogger(__name__)

Sink = Callable[[str], None]

NOT_UTF8 = "not valid UTF-8 text"


@dataclass
class PreprocessorStats:
    """
    Counters collected during one run.

    Attributes:
        lines_read: Lines pulled from any source, replays included
        lines_emitted: Output lines produced
        constants_defined: #constant directives processed
        macros_defined: #macro directives processed
        macro_expansions: Macro invocations expanded
        files_included: #include directives processed
        max_depth_reached: Deepest nesting of sources during the run
    """
    lines_read: int = 0
    lines_emitted: int = 0
    constants_defined: int = 0
    macros_defined: int = 0
    macro_expansions: int = 0
    files_included: int = 0
    max_depth_reached: int = 0


class Preprocessor:
    """
    Directive processor for assembly-like source.

    Each ``process*`` call starts from a fresh symbol table holding only
    the predefined constants; the table is left in place afterwards for
    inspection.

    Attributes:
        mode: Redefinition policy (strict or lazy)
        include_paths: Extra directories searched by #include
        max_depth: Nesting limit for includes, macro bodies and
                   conditional blocks (None for unlimited)
        symbols: The live symbol table of the current or last run
        stats: Counters of the current or last run
    """

    def __init__(
        self,
        mode: Mode = Mode.STRICT,
        include_paths: Optional[list[Union[str, Path]]] = None,
        defines: Optional[dict[str, str]] = None,
        max_depth: Optional[int] = None,
    ):
        """
        Initialize the preprocessor.

        Args:
            mode: Redefinition policy, fixed for every run
            include_paths: Directories searched after the including file's own
            defines: Constants defined before processing starts
            max_depth: Optional nesting limit; must be at least 1
        """
        if max_depth is not None and max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")

        self.mode = mode
        self.include_paths: list[Path] = [Path(p) for p in include_paths or []]
        self.max_depth = max_depth
        self._defines: dict[str, str] = dict(defines or {})

        self.symbols = SymbolTable(mode)
        self.stats = PreprocessorStats()
        self._output: list[str] = []
        self._sink: Optional[Sink] = None
        self._depth = 0

    def add_include_path(self, path: Union[str, Path]) -> None:
        """Add a directory to the include search path."""
        self.include_paths.append(Path(path))

    def define(self, name: str, value: str = "1") -> None:
        """Add a constant defined before every run."""
        self._defines[name] = value

    # =========================================================================
    # Entry Points
    # =========================================================================

    def process(
        self,
        source: Union[LineSource, Iterable[str]],
        sink: Optional[Sink] = None,
    ) -> list[str]:
        """
        Process a sequence of lines.

        Args:
            source: A LineSource, or any iterable of lines
            sink: Optional callable receiving each output line as produced

        Returns:
            All output lines in order

        Raises:
            PreprocessorError: On the first error; processing stops immediately
        """
        if not isinstance(source, LineSource):
            source = LineSource(source)

        self._reset(sink)
        logger.debug(f"Processing {source.name} ({self.mode.value} mode)")
        self._drive(source)
        return self._output

    def process_string(
        self,
        text: str,
        filename: str = "<input>",
        sink: Optional[Sink] = None,
    ) -> list[str]:
        """Process source text held in memory."""
        return self.process(LineSource.from_string(text, filename), sink)

    def process_file(self, path: Union[str, Path], sink: Optional[Sink] = None) -> list[str]:
        """
        Process a source file.

        Raises:
            ResourceError: If the file cannot be opened or is not UTF-8 text
        """
        path = Path(path)
        try:
            handle = path.open("r", encoding="utf-8")
        except OSError as e:
            raise ResourceError(str(path), e.strerror or str(e)) from e

        with handle:
            try:
                return self.process(LineSource(handle, str(path)), sink)
            except UnicodeDecodeError as e:
                raise ResourceError(str(path), NOT_UTF8) from e

    def _reset(self, sink: Optional[Sink]) -> None:
        self.symbols = SymbolTable(self.mode)
        for name, value in self._defines.items():
            self.symbols.define_constant(name, value)
        self.stats = PreprocessorStats()
        self._output = []
        self._sink = sink
        self._depth = 0

    # =========================================================================
    # Driver
    # =========================================================================

    def _drive(
        self,
        source: LineSource,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ) -> None:
        """
        Process every remaining line of ``source``.

        Args:
            source: Lines to process
            location: Line that caused this descent (for the depth limit error)
            source_line: Text of that line
        """
        if self.max_depth is not None and self._depth >= self.max_depth:
            raise RecursionLimitError(self.max_depth, location=location, source_line=source_line)

        self._depth += 1
        self.stats.max_depth_reached = max(self.stats.max_depth_reached, self._depth)
        try:
            for raw in source:
                self.stats.lines_read += 1
                line = raw.rstrip()
                if is_directive(line):
                    self._process_directive(line, source)
                else:
                    self._process_content(line, source)
        finally:
            self._depth -= 1

    def _emit(self, line: str) -> None:
        self._output.append(line)
        self.stats.lines_emitted += 1
        if self._sink is not None:
            self._sink(line)

    def _process_content(self, line: str, source: LineSource) -> None:
        """Parse an ordinary line, then emit it or expand the macro it names."""
        parsed = parse_line(line, source.location())
        if parsed.is_label_only:
            self._emit(parsed.render())
            return

        # Substitution happens once, before any macro parameters are bound
        parameters = [self._resolve_parameter(p) for p in parsed.parameters]

        macro = self.symbols.lookup_macro(parsed.command)
        if macro is not None:
            self._expand_macro(macro, parsed, parameters, source)
        else:
            self._emit(parsed.with_parameters(parameters).render())

    def _resolve_parameter(self, parameter: str) -> str:
        value = self.symbols.lookup_constant(parameter)
        return parameter if value is None else value

    # =========================================================================
    # Directives
    # =========================================================================

    def _process_directive(self, line: str, source: LineSource) -> None:
        directive = parse_directive(line, source.location())

        if directive.kind is DirectiveKind.INCLUDE:
            self._process_include(directive, line, source)
        elif directive.kind is DirectiveKind.CONSTANT:
            self._process_constant(directive, line, source)
        elif directive.kind is DirectiveKind.MACRO:
            self._process_macro(directive, line, source)
        elif directive.kind is DirectiveKind.CONDITIONAL:
            self._process_conditional(directive, line, source)
        elif directive.kind is DirectiveKind.END_MACRO:
            raise DirectiveError(
                "'#endmacro' without matching '#macro'",
                location=source.location(),
                source_line=line,
            )
        else:
            raise DirectiveError(
                "'#endif' without matching '#if'",
                location=source.location(),
                source_line=line,
            )

    def _process_constant(self, directive: Directive, line: str, source: LineSource) -> None:
        self.symbols.define_constant(directive.name, directive.value, source.location(), line)
        self.stats.constants_defined += 1
        logger.debug(f"{source.location()}: constant {directive.name} = {directive.value!r}")

    def _process_macro(self, directive: Directive, line: str, source: LineSource) -> None:
        """Capture a macro body up to #endmacro and store the definition."""
        location = source.location()
        body = self._capture_block(source, is_end_macro, "#macro", "#endmacro")

        macro = MacroDefinition(
            name=directive.name,
            formals=directive.formals,
            body=body,
            location=location,
        )
        self.symbols.define_macro(macro, source_line=line)
        self.stats.macros_defined += 1
        logger.debug(
            f"{location}: macro {macro.name}({', '.join(macro.formals)}), "
            f"{len(body)} body lines"
        )

    def _process_conditional(self, directive: Directive, line: str, source: LineSource) -> None:
        """
        Capture a conditional block and replay it if its predicate holds.

        A false block is discarded unparsed, so nothing inside it takes effect.
        """
        location = source.location()
        keyword = line.split(None, 1)[0]
        body = self._capture_block(source, is_end_if, keyword, "#endif")

        if directive.target is ConditionTarget.CONSTANT:
            taken = self.symbols.has_constant(directive.name)
        else:
            taken = self.symbols.has_macro(directive.name)
        if directive.negate:
            taken = not taken

        logger.debug(f"{location}: {keyword} {directive.name} -> {'taken' if taken else 'skipped'}")
        if taken:
            branch = LineSource(body, location.filename, first_line=location.line + 1)
            self._drive(branch, location, line)

    def _capture_block(
        self,
        source: LineSource,
        is_terminator: Callable[[str], bool],
        opener: str,
        terminator: str,
    ) -> list[str]:
        """
        Consume raw lines up to and including the first terminator line.

        The scan is flat: a nested block of the same kind closes on the
        first terminator found.

        Raises:
            UnclosedBlockError: If the source ends before a terminator
        """
        location = source.location()
        opening_line = source.current_line
        body: list[str] = []

        for raw in source:
            self.stats.lines_read += 1
            if is_terminator(raw):
                return body
            body.append(raw.rstrip())

        raise UnclosedBlockError(opener, terminator, location=location, source_line=opening_line)

    def _process_include(self, directive: Directive, line: str, source: LineSource) -> None:
        location = source.location()
        path = self._resolve_include(directive.path, source, line)

        try:
            handle = path.open("r", encoding="utf-8")
        except OSError as e:
            raise IncludeError(
                directive.path,
                e.strerror or str(e),
                location=location,
                source_line=line,
            ) from e

        self.stats.files_included += 1
        logger.debug(f"{location}: including {path}")
        with handle:
            try:
                self._drive(LineSource(handle, str(path)), location, line)
            except UnicodeDecodeError as e:
                raise IncludeError(
                    directive.path,
                    NOT_UTF8,
                    location=location,
                    source_line=line,
                ) from e

    def _resolve_include(self, name: str, source: LineSource, line: str) -> Path:
        """
        Find an include file.

        Search order: the path as written, the including file's directory,
        then each include path.

        Raises:
            IncludeError: If no candidate exists
        """
        requested = Path(name)
        if requested.is_absolute():
            candidates = [requested]
        else:
            candidates = [requested, Path(source.name).parent / requested]
            candidates.extend(directory / requested for directory in self.include_paths)

        for candidate in candidates:
            if candidate.is_file():
                return candidate

        raise IncludeError(
            name,
            "file not found",
            location=source.location(),
            source_line=line,
            search_paths=[str(c.parent) for c in candidates[1:]],
        )

    # =========================================================================
    # Macro Expansion
    # =========================================================================

    def _expand_macro(
        self,
        macro: MacroDefinition,
        parsed: ParsedLine,
        parameters: list[str],
        source: LineSource,
    ) -> None:
        """
        Expand a macro invocation.

        The invocation line contributes only its comment. Formals are bound
        to the already-resolved parameters for the duration of the body and
        restored afterwards, even if the body raises.

        Raises:
            MacroArgumentError: If the parameter count differs from the formal count
        """
        location = source.location()
        line = source.current_line

        if len(parameters) != macro.arity:
            raise MacroArgumentError(
                macro.name,
                macro.arity,
                len(parameters),
                location=location,
                source_line=line,
            )

        self.stats.macro_expansions += 1
        logger.debug(f"{location}: expanding {macro.name}({', '.join(parameters)})")

        comment = parsed.comment.strip()
        if comment:
            self._emit(comment)

        scope = ScopeStack(self.symbols)
        try:
            for formal, value in zip(macro.formals, parameters):
                scope.push(formal, value)
            self._drive(self._macro_body(macro), location, line)
        finally:
            scope.unwind()

    @staticmethod
    def _macro_body(macro: MacroDefinition) -> LineSource:
        """Source over a macro body, numbered as in the defining file."""
        if macro.location is None:
            return LineSource(macro.body, f"<macro {macro.name}>")
        return LineSource(macro.body, macro.location.filename, first_line=macro.location.line + 1)


# =============================================================================
# Convenience Functions
# =============================================================================

def preprocess(
    source: str,
    filename: str = "<input>",
    mode: Mode = Mode.STRICT,
    include_paths: Optional[list[Union[str, Path]]] = None,
    defines: Optional[dict[str, str]] = None,
) -> str:
    """
    Preprocess source text.

    Returns:
        Output lines joined with newlines
    """
    pp = Preprocessor(mode=mode, include_paths=include_paths, defines=defines)
    return "\n".join(pp.process_string(source, filename))


def preprocess_file(
    path: Union[str, Path],
    mode: Mode = Mode.STRICT,
    include_paths: Optional[list[Union[str, Path]]] = None,
    defines: Optional[dict[str, str]] = None,
) -> str:
    """Preprocess a file and return the output text."""
    pp = Preprocessor(mode=mode, include_paths=include_paths, defines=defines)
    return "\n".join(pp.process_file(path))
