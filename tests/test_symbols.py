# =============================================================================
# test_symbols.py - Symbol Table Unit Tests
# =============================================================================
# Tests for constants, macros and temporary (macro parameter) bindings.
#
# Test coverage includes:
#   - Case-insensitive storage and lookup
#   - Strict vs lazy redefinition policy
#   - Independent constant and macro namespaces
#   - Binding undo tokens and the LIFO scope stack
# =============================================================================

import pytest

from asmpp.errors import RedefinitionError, SourceLocation
from asmpp.symbols import MacroDefinition, Mode, ScopeStack, SymbolTable


# =============================================================================
# Constants
# =============================================================================

class TestConstants:
    """Constant definition and lookup."""

    def test_define_and_lookup(self):
        table = SymbolTable()
        table.define_constant("SIZE", "10")
        assert table.lookup_constant("SIZE") == "10"

    def test_case_insensitive(self):
        """Names are matched regardless of case."""
        table = SymbolTable()
        table.define_constant("Size", "10")
        assert table.lookup_constant("SIZE") == "10"
        assert table.lookup_constant("size") == "10"
        assert table.has_constant("sIzE")

    def test_stored_lowercase(self):
        table = SymbolTable()
        table.define_constant("MiXeD", "1")
        assert table.constants() == {"mixed": "1"}

    def test_undefined_lookup(self):
        table = SymbolTable()
        assert table.lookup_constant("nothing") is None
        assert not table.has_constant("nothing")

    def test_value_is_opaque(self):
        """Values are stored verbatim, spaces and all."""
        table = SymbolTable()
        table.define_constant("MSG", "hello  world ")
        assert table.lookup_constant("msg") == "hello  world "


# =============================================================================
# Redefinition Policy
# =============================================================================

class TestRedefinition:
    """Strict and lazy modes."""

    def test_strict_is_default(self):
        assert SymbolTable().mode is Mode.STRICT

    def test_strict_constant_redefinition(self):
        """Redefining a constant in strict mode fails."""
        table = SymbolTable(Mode.STRICT)
        table.define_constant("X", "1")
        with pytest.raises(RedefinitionError) as exc_info:
            table.define_constant("x", "2")
        assert exc_info.value.kind == "constant"
        assert table.lookup_constant("X") == "1"

    def test_strict_error_points_at_original(self):
        """The hint names the first definition."""
        table = SymbolTable()
        first = SourceLocation("a.asm", 3)
        table.define_constant("X", "1", location=first)
        with pytest.raises(RedefinitionError) as exc_info:
            table.define_constant("X", "2", location=SourceLocation("a.asm", 9))
        assert exc_info.value.original_location == first
        assert "a.asm:3:1" in str(exc_info.value)

    def test_lazy_constant_redefinition(self):
        """Lazy mode overwrites silently."""
        table = SymbolTable(Mode.LAZY)
        table.define_constant("X", "1")
        table.define_constant("X", "2")
        assert table.lookup_constant("x") == "2"

    def test_strict_macro_redefinition(self):
        table = SymbolTable()
        table.define_macro(MacroDefinition("push", ["r"], ["    PSH r"]))
        with pytest.raises(RedefinitionError) as exc_info:
            table.define_macro(MacroDefinition("PUSH", [], []))
        assert exc_info.value.kind == "macro"

    def test_lazy_macro_redefinition(self):
        table = SymbolTable(Mode.LAZY)
        table.define_macro(MacroDefinition("push", ["r"], ["    PSH r"]))
        table.define_macro(MacroDefinition("PUSH", [], ["    NOP"]))
        assert table.lookup_macro("push").body == ["    NOP"]


# =============================================================================
# Macros
# =============================================================================

class TestMacros:
    """Macro storage."""

    def test_lookup_case_insensitive(self):
        table = SymbolTable()
        macro = MacroDefinition("Push2", ["a", "b"], ["    PSH a", "    PSH b"])
        table.define_macro(macro)
        assert table.lookup_macro("PUSH2") is macro
        assert table.has_macro("push2")
        assert table.lookup_macro("push2").arity == 2

    def test_undefined_macro(self):
        assert SymbolTable().lookup_macro("none") is None

    def test_macros_snapshot(self):
        """Snapshot is keyed by lowercase name and detached from the table."""
        table = SymbolTable()
        macro = MacroDefinition("Clear", ["r"], ["    LDI r, 0"])
        table.define_macro(macro)
        snapshot = table.macros()
        assert snapshot == {"clear": macro}
        snapshot.clear()
        assert table.has_macro("clear")

    def test_independent_namespaces(self):
        """A name can be both a constant and a macro."""
        table = SymbolTable()
        table.define_constant("dup", "7")
        table.define_macro(MacroDefinition("dup"))
        assert table.lookup_constant("dup") == "7"
        assert table.lookup_macro("dup") is not None


# =============================================================================
# Temporary Bindings and Scope Stack
# =============================================================================

class TestBindings:
    """bind_temporary / unbind."""

    def test_bind_over_existing(self):
        """Undo token restores the previous value."""
        table = SymbolTable()
        table.define_constant("X", "1")
        binding = table.bind_temporary("x", "99")
        assert binding.was_bound
        assert binding.previous == "1"
        assert table.lookup_constant("X") == "99"
        table.unbind(binding)
        assert table.lookup_constant("X") == "1"

    def test_bind_absent(self):
        """Undo token removes a name that was not bound before."""
        table = SymbolTable()
        binding = table.bind_temporary("Y", "5")
        assert not binding.was_bound
        table.unbind(binding)
        assert not table.has_constant("Y")

    def test_bind_ignores_strict_mode(self):
        """Temporary bindings never raise RedefinitionError."""
        table = SymbolTable(Mode.STRICT)
        table.define_constant("X", "1")
        table.bind_temporary("X", "2")
        assert table.lookup_constant("X") == "2"


class TestScopeStack:
    """LIFO unwinding of a macro invocation's bindings."""

    def test_push_and_unwind(self):
        table = SymbolTable()
        table.define_constant("A", "outer")
        scope = ScopeStack(table)
        scope.push("A", "1")
        scope.push("B", "2")
        assert len(scope) == 2
        assert table.lookup_constant("a") == "1"
        assert table.lookup_constant("b") == "2"

        scope.unwind()
        assert len(scope) == 0
        assert table.lookup_constant("a") == "outer"
        assert not table.has_constant("b")

    def test_repeated_name_restored(self):
        """Reverse unwinding restores the original even for repeated formals."""
        table = SymbolTable()
        table.define_constant("X", "orig")
        scope = ScopeStack(table)
        scope.push("X", "first")
        scope.push("X", "second")
        assert table.lookup_constant("X") == "second"
        scope.unwind()
        assert table.lookup_constant("X") == "orig"

    def test_nested_scopes(self):
        """Inner scope unwinds to the outer scope's binding."""
        table = SymbolTable()
        outer = ScopeStack(table)
        outer.push("X", "1")
        inner = ScopeStack(table)
        inner.push("X", "2")
        assert table.lookup_constant("X") == "2"
        inner.unwind()
        assert table.lookup_constant("X") == "1"
        outer.unwind()
        assert not table.has_constant("X")
