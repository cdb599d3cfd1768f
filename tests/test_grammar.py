# =============================================================================
# test_grammar.py - Line Grammar Unit Tests
# =============================================================================
# Tests for the content line parser and renderer.
#
# Test coverage includes:
#   - Label-only form: blank, comment-only, label-only lines
#   - Full form: label, command, parameters, comment
#   - Quote-aware parameter splitting
#   - Canonical rendering (fixed slots)
#   - Syntax errors
# =============================================================================

import pytest

from asmpp.errors import PreprocessorSyntaxError, SourceLocation
from asmpp.grammar import ParsedLine, parse_line, split_parameters


# =============================================================================
# Label-Only Form
# =============================================================================

class TestLabelOnlyForm:
    """Blank, comment-only and label-only lines."""

    def test_blank_line(self):
        """Blank line has no fields."""
        parsed = parse_line("")
        assert parsed.is_label_only
        assert parsed.label == ""
        assert parsed.comment == ""
        assert parsed.render() == ""

    def test_whitespace_only(self):
        """Whitespace-only lines are blank."""
        parsed = parse_line("   \t  ")
        assert parsed.is_label_only
        assert parsed.render() == ""

    def test_label_only(self):
        """A word at column 0 is a label."""
        parsed = parse_line("start")
        assert parsed.is_label_only
        assert parsed.label == "start"
        assert parsed.command is None

    def test_label_with_comment(self):
        """Comment keeps the whitespace in front of its semicolon."""
        parsed = parse_line("start   ; entry point")
        assert parsed.label == "start"
        assert parsed.comment == "   ; entry point"
        assert parsed.render() == "start   ; entry point"

    def test_indented_comment(self):
        """Indented comment lines survive unchanged."""
        parsed = parse_line("        ; just a note")
        assert parsed.is_label_only
        assert parsed.render() == "        ; just a note"

    def test_comment_at_column_zero(self):
        parsed = parse_line("; header")
        assert parsed.label == ""
        assert parsed.comment == "; header"


# =============================================================================
# Full Form
# =============================================================================

class TestFullForm:
    """Lines with a command."""

    def test_label_command_parameters_comment(self):
        """All four fields are recognized."""
        parsed = parse_line("loop ADD R1, R1, SIZE ; c")
        assert parsed.label == "loop"
        assert parsed.command == "ADD"
        assert parsed.parameters == ["R1", "R1", "SIZE"]
        assert parsed.comment == " ; c"

    def test_command_without_label(self):
        """Leading whitespace means no label."""
        parsed = parse_line("    NOP")
        assert parsed.label == ""
        assert parsed.command == "NOP"
        assert parsed.parameters == []
        assert not parsed.is_label_only

    def test_tab_separates_label_and_command(self):
        parsed = parse_line("start\tLDA\t#1")
        assert parsed.label == "start"
        assert parsed.command == "LDA"
        assert parsed.parameters == ["#1"]

    def test_dotted_command(self):
        """Commands may start with a dot."""
        parsed = parse_line("    .org 100")
        assert parsed.command == ".org"
        assert parsed.parameters == ["100"]

    def test_parameters_are_trimmed(self):
        parsed = parse_line("    DB   a ,   b   ,c")
        assert parsed.parameters == ["a", "b", "c"]

    def test_empty_parameters_are_kept(self):
        """Consecutive and trailing commas produce empty parameters."""
        assert parse_line("    DB R1,,R2").parameters == ["R1", "", "R2"]
        assert parse_line("    DB R1,").parameters == ["R1", ""]

    def test_comment_directly_after_command(self):
        parsed = parse_line("    RTS;done")
        assert parsed.command == "RTS"
        assert parsed.parameters == []
        assert parsed.comment == ";done"

    def test_trailing_whitespace_ignored(self):
        parsed = parse_line("    NOP    ")
        assert parsed.command == "NOP"
        assert parsed.comment == ""


# =============================================================================
# Quoted Parameters
# =============================================================================

class TestQuotedParameters:
    """Commas and semicolons inside quotes."""

    def test_double_quoted_comma_and_semicolon(self):
        """Quoted text neither splits nor starts a comment."""
        parsed = parse_line('    FCC "a,b;c", \'x\' ; text')
        assert parsed.parameters == ['"a,b;c"', "'x'"]
        assert parsed.comment == " ; text"

    def test_single_quoted_semicolon(self):
        parsed = parse_line("    FCB ';'")
        assert parsed.parameters == ["';'"]
        assert parsed.comment == ""

    def test_other_quote_inside_string(self):
        parsed = parse_line("    FCC \"it's\", 'say \"hi\"'")
        assert parsed.parameters == ['"it\'s"', "'say \"hi\"'"]

    def test_apostrophe_inside_bare_parameter(self):
        """A quote that does not open the parameter is an ordinary character."""
        parsed = parse_line("    DB it's")
        assert parsed.parameters == ["it's"]

    def test_quote_mid_parameter_does_not_swallow_comma(self):
        parsed = parse_line('    DB a"b, c')
        assert parsed.parameters == ['a"b', "c"]

    def test_hex_literal_with_quote(self):
        parsed = parse_line("    ADD R1, R1, x'1F ; mask")
        assert parsed.parameters == ["R1", "R1", "x'1F"]
        assert parsed.comment == " ; mask"

    def test_quote_after_leading_blanks_opens_string(self):
        assert split_parameters("R1,   'a,b'") == ["R1", "'a,b'"]

    def test_unterminated_string(self):
        """Missing closing quote on a quoted parameter is a syntax error."""
        with pytest.raises(PreprocessorSyntaxError) as exc_info:
            parse_line('    FCC "abc')
        assert "unterminated string" in str(exc_info.value)

    def test_split_parameters(self):
        assert split_parameters("R1, 'a,b', \"x;y\"") == ["R1", "'a,b'", '"x;y"']

    def test_split_empty_region(self):
        assert split_parameters("") == []
        assert split_parameters("   ") == []

    def test_split_unterminated(self):
        with pytest.raises(ValueError):
            split_parameters("'abc")


# =============================================================================
# Rendering
# =============================================================================

class TestRender:
    """Canonical output form."""

    def test_full_line_round_trip(self):
        """Canonical lines render unchanged."""
        line = "loop ADD R1, R1, 10 ; c"
        assert parse_line(line).render() == line

    def test_parameters_rejoined_canonically(self):
        assert parse_line("    DB  1,2 ,  3").render() == " DB 1, 2, 3"

    def test_empty_slots_are_kept(self):
        """Empty label and parameter slots still contribute a separator."""
        assert parse_line("    RTS").render() == " RTS "

    def test_with_parameters(self):
        parsed = parse_line("x DB A, B")
        updated = parsed.with_parameters(["1", "2"])
        assert updated.render() == "x DB 1, 2"
        assert parsed.parameters == ["A", "B"]

    def test_render_constructed_line(self):
        line = ParsedLine(label="", command="JMP", parameters=["start"])
        assert line.render() == " JMP start"


# =============================================================================
# Syntax Errors
# =============================================================================

class TestSyntaxErrors:
    """Lines matching neither form."""

    @pytest.mark.parametrize("line", [
        "start: NOP",
        "1abc",
        "    9X",
        "    #oops",
        "label! NOP",
    ])
    def test_invalid_lines(self, line):
        with pytest.raises(PreprocessorSyntaxError):
            parse_line(line)

    def test_error_names_line_and_location(self):
        """The message carries the location and the offending text."""
        location = SourceLocation("main.asm", 7)
        with pytest.raises(PreprocessorSyntaxError) as exc_info:
            parse_line("start: NOP", location)
        message = str(exc_info.value)
        assert "main.asm:7:1" in message
        assert "start: NOP" in message
        assert exc_info.value.location == location
