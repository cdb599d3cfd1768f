"""
Symbol Table
============

Case-insensitive storage for constants and macros, plus the scope
stack that implements macro parameter binding.

Constants and macros live in two independent maps. A name may be both
a constant and a macro at the same time: constants are consulted for
parameters, macros for commands.

Scoping
-------
Macro parameters are bound as ordinary constants for the duration of a
macro body (dynamic scoping). Each temporary binding returns a Binding
token recording what the name meant before; a ScopeStack collects the
tokens of one invocation and restores them in reverse order:

    >>> table = SymbolTable()
    >>> table.define_constant("X", "1")
    >>> scope = ScopeStack(table)
    >>> scope.push("x", "99")
    >>> table.lookup_constant("X")
    '99'
    >>> scope.unwind()
    >>> table.lookup_constant("X")
    '1'
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from asmpp.errors import RedefinitionError, SourceLocation

logger = logging.getLogger(__name__)


class Mode(Enum):
    """Redefinition policy, fixed for the lifetime of a table."""
    STRICT = "strict"   # Redefining a constant or macro is an error
    LAZY = "lazy"       # Redefinition silently overwrites


@dataclass
class MacroDefinition:
    """
    A macro captured at definition time.

    The body is kept as raw, unexpanded lines and is re-parsed on every
    invocation.

    Attributes:
        name: Macro name as written
        formals: Formal parameter names in order
        body: Raw body lines (without the #macro/#endmacro lines)
        location: Location of the #macro line
    """
    name: str
    formals: list[str] = field(default_factory=list)
    body: list[str] = field(default_factory=list)
    location: Optional[SourceLocation] = None

    @property
    def arity(self) -> int:
        return len(self.formals)


@dataclass(frozen=True)
class Binding:
    """
    Undo token for a temporary constant binding.

    Attributes:
        key: Normalized (lowercase) constant name
        previous: Value bound before, or None
        was_bound: False if the name had no constant binding before
    """
    key: str
    previous: Optional[str]
    was_bound: bool


def normalize(name: str) -> str:
    """Normalize a symbol name for storage and lookup."""
    return name.lower()


class SymbolTable:
    """
    Case-insensitive constants and macros.

    Attributes:
        mode: Redefinition policy
    """

    def __init__(self, mode: Mode = Mode.STRICT):
        self.mode = mode
        self._constants: dict[str, str] = {}
        self._constant_locations: dict[str, SourceLocation] = {}
        self._macros: dict[str, MacroDefinition] = {}

    # -------------------------------------------------------------------------
    # Constants
    # -------------------------------------------------------------------------

    def define_constant(
        self,
        name: str,
        value: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ) -> None:
        """
        Define a constant.

        Raises:
            RedefinitionError: In strict mode, if the name is already a constant
        """
        key = normalize(name)
        if key in self._constants:
            if self.mode is Mode.STRICT:
                raise RedefinitionError(
                    "constant",
                    name,
                    location=location,
                    original_location=self._constant_locations.get(key),
                    source_line=source_line,
                )
            logger.debug(f"Redefining constant '{name}': {self._constants[key]!r} -> {value!r}")

        self._constants[key] = value
        if location is not None:
            self._constant_locations[key] = location
        else:
            self._constant_locations.pop(key, None)

    def lookup_constant(self, name: str) -> Optional[str]:
        """Return the value of a constant, or None if undefined."""
        return self._constants.get(normalize(name))

    def has_constant(self, name: str) -> bool:
        return normalize(name) in self._constants

    def constants(self) -> dict[str, str]:
        """Return a snapshot of all constants, keyed by lowercase name."""
        return dict(self._constants)

    # -------------------------------------------------------------------------
    # Macros
    # -------------------------------------------------------------------------

    def define_macro(self, macro: MacroDefinition, source_line: Optional[str] = None) -> None:
        """
        Define a macro.

        Raises:
            RedefinitionError: In strict mode, if the name is already a macro
        """
        key = normalize(macro.name)
        existing = self._macros.get(key)
        if existing is not None:
            if self.mode is Mode.STRICT:
                raise RedefinitionError(
                    "macro",
                    macro.name,
                    location=macro.location,
                    original_location=existing.location,
                    source_line=source_line,
                )
            logger.debug(f"Redefining macro '{macro.name}'")

        self._macros[key] = macro

    def lookup_macro(self, name: str) -> Optional[MacroDefinition]:
        """Return a macro definition, or None if undefined."""
        return self._macros.get(normalize(name))

    def has_macro(self, name: str) -> bool:
        return normalize(name) in self._macros

    def macros(self) -> dict[str, MacroDefinition]:
        """Return a snapshot of all macros, keyed by lowercase name."""
        return dict(self._macros)

    # -------------------------------------------------------------------------
    # Temporary bindings
    # -------------------------------------------------------------------------

    def bind_temporary(self, name: str, value: str) -> Binding:
        """
        Bind a constant regardless of mode and return its undo token.

        Used for macro parameters; never raises RedefinitionError.
        """
        key = normalize(name)
        binding = Binding(key, self._constants.get(key), key in self._constants)
        self._constants[key] = value
        return binding

    def unbind(self, binding: Binding) -> None:
        """Restore the constant binding recorded in ``binding``."""
        if binding.was_bound:
            self._constants[binding.key] = binding.previous
        else:
            self._constants.pop(binding.key, None)


class ScopeStack:
    """
    LIFO record of temporary bindings made for one macro invocation.

    Bindings are pushed in formal order and undone in reverse, so a
    formal list that repeats a name still restores the original value.
    """

    def __init__(self, table: SymbolTable):
        self._table = table
        self._bindings: list[Binding] = []

    def push(self, name: str, value: str) -> None:
        self._bindings.append(self._table.bind_temporary(name, value))

    def unwind(self) -> None:
        """Undo every binding, most recent first."""
        while self._bindings:
            self._table.unbind(self._bindings.pop())

    def __len__(self) -> int:
        return len(self._bindings)
