"""
asmpp - Line-Oriented Macro Preprocessor for Assembly Source
============================================================

asmpp resolves ``#include``, ``#constant``, ``#macro``/``#endmacro`` and
``#if``/``#endif`` directives into a flat stream of plain source lines,
substituting constants case-insensitively and expanding macros with
dynamically scoped parameters.

Main Components
---------------
- **preprocessor**: the recursive driver (Preprocessor, preprocess)
- **grammar**: label / command / parameters / comment line parser
- **symbols**: case-insensitive constants and macros with scope stack
- **directives**: directive classification and parsing
- **source**: resumable line sources
- **cli**: the ``asmpp`` command

Quick Start
-----------
    >>> from asmpp import preprocess
    >>> print(preprocess('''
    ... #constant SIZE 10
    ... #macro clear REG
    ...     LDI REG, 0
    ... #endmacro
    ... start clear R1
    ...       ADD R1, R1, SIZE
    ... '''.strip()))
     LDI R1, 0
     ADD R1, R1, 10

Or from the command line:
    $ asmpp main.asm -o main.out
"""

__version__ = "1.0.0"

from asmpp.errors import (
    PreprocessorError,
    PreprocessorSyntaxError,
    RedefinitionError,
    MacroArgumentError,
    UnclosedBlockError,
    DirectiveError,
    ResourceError,
    IncludeError,
    RecursionLimitError,
    SourceLocation,
)
from asmpp.grammar import ParsedLine, parse_line, split_parameters
from asmpp.source import LineSource
from asmpp.symbols import Binding, MacroDefinition, Mode, ScopeStack, SymbolTable
from asmpp.preprocessor import (
    Preprocessor,
    PreprocessorStats,
    preprocess,
    preprocess_file,
)

__all__ = [
    "__version__",
    # Preprocessor
    "Preprocessor",
    "PreprocessorStats",
    "preprocess",
    "preprocess_file",
    # Building blocks
    "LineSource",
    "ParsedLine",
    "parse_line",
    "split_parameters",
    "SymbolTable",
    "ScopeStack",
    "Binding",
    "MacroDefinition",
    "Mode",
    # Errors
    "PreprocessorError",
    "PreprocessorSyntaxError",
    "RedefinitionError",
    "MacroArgumentError",
    "UnclosedBlockError",
    "DirectiveError",
    "ResourceError",
    "IncludeError",
    "RecursionLimitError",
    "SourceLocation",
]
