"""Tests for the scanner and positional diagnostics."""

import pytest

from txgc.errors import ParseError, SourceRef, locate, render_context
from txgc.lexer import grammar
from txgc.lexer.scanner import Scanner


class TestAttempt:
    """Tests for anchored, side-effecting matches."""

    def test_attempt_buffers_and_advances(self):
        """A successful attempt buffers the text and moves the cursor."""
        s = Scanner("nodes\n")
        assert s.attempt(grammar.SECTION_NODES)
        assert s.buffer == "nodes"
        assert s.pos == 5

    def test_failed_attempt_changes_nothing(self):
        """A failed attempt leaves cursor and buffer alone."""
        s = Scanner("hall")
        s.buffer = "kept"
        assert not s.attempt(grammar.LINE_END)
        assert s.pos == 0
        assert s.buffer == "kept"

    def test_attempt_is_anchored(self):
        """Patterns only match at the cursor, never further ahead."""
        s = Scanner("  nodes")
        assert not s.attempt(grammar.SECTION_NODES)
        assert s.attempt(grammar.BLANK)
        assert s.attempt(grammar.SECTION_NODES)

    def test_attempt_without_advance_is_lookahead(self):
        """advance=False gives lookahead; to_buffer=False skips buffering."""
        s = Scanner("@score := 1")
        assert s.attempt(grammar.VAR_NAME, to_buffer=False, advance=False)
        assert s.pos == 0
        assert s.buffer == ""
        assert s.group(1) == "score"

    def test_peek(self):
        """peek() never consumes."""
        s = Scanner("var x")
        assert s.peek(grammar.VAR)
        assert s.pos == 0

    def test_keyword_requires_word_boundary(self):
        """Keywords do not match the start of a longer word."""
        assert not Scanner("nodes_left").attempt(grammar.SECTION_NODES)
        assert not Scanner("variable").attempt(grammar.VAR)
        assert Scanner("node(").attempt(grammar.NODE)

    def test_attempt_until_consumes_through_match(self):
        """attempt_until() consumes everything up to and including the match."""
        s = Scanner("comment text\nnext")
        assert s.attempt_until(grammar.LINE_END)
        assert s.buffer == "comment text\n"
        assert s.source[s.pos:] == "next"

    def test_advance_one_and_skip(self):
        """advance_one() buffers a character; skip() does not."""
        s = Scanner("abc")
        s.advance_one()
        s.skip(1)
        s.advance_one()
        assert s.buffer == "ac"
        assert s.is_at_end()

    def test_skip_clamps_to_end(self):
        """Skipping past the end stops at the end."""
        s = Scanner("ab")
        s.skip(10)
        assert s.pos == 2
        assert s.current_char() is None

    def test_flush_buffer_clears(self):
        """flush_buffer() returns the buffer and empties it."""
        s = Scanner("hall")
        s.attempt(grammar.IDENTIFIER)
        assert s.flush_buffer() == "hall"
        assert s.buffer == ""


class TestComments:
    """Tests for comment skipping."""

    def test_line_comment(self):
        """A line comment is skipped through its line end."""
        s = Scanner("# note\nnode")
        s.attempt(grammar.COMMENT)
        s.skip_comment()
        assert s.source[s.pos:] == "node"

    def test_line_comment_at_end_of_input(self):
        """A final comment without a line end runs to end of input."""
        s = Scanner("# last")
        s.attempt(grammar.COMMENT)
        s.skip_comment()
        assert s.is_at_end()

    def test_block_comment(self):
        """A block comment may span lines."""
        s = Scanner("#| one\ntwo |#rest")
        s.attempt(grammar.ML_COMMENT_OPEN)
        s.skip_block_comment()
        assert s.source[s.pos:] == "rest"

    def test_unclosed_block_comment(self):
        """An unclosed block comment swallows the rest of the input."""
        s = Scanner("#| never closed\nnode a \"A\"")
        s.attempt(grammar.ML_COMMENT_OPEN)
        s.skip_block_comment()
        assert s.is_at_end()


class TestStrings:
    """Tests for quoted string reading."""

    def test_read_string(self):
        """Reads up to the closing quote and consumes it."""
        s = Scanner('"A long hall." rest')
        s.attempt(grammar.STRING_OPEN)
        assert s.read_string() == "A long hall."
        assert s.source[s.pos:] == " rest"

    def test_escaped_quote(self):
        """A backslash makes the next character literal."""
        s = Scanner(r'"Say \"hi\"" x')
        s.attempt(grammar.STRING_OPEN)
        assert s.read_string() == 'Say "hi"'

    def test_escaped_backslash(self):
        """An escaped backslash is kept once."""
        s = Scanner(r'"a\\b"')
        s.attempt(grammar.STRING_OPEN)
        assert s.read_string() == "a\\b"

    def test_empty_string(self):
        """Two quotes make an empty string."""
        s = Scanner('""')
        s.attempt(grammar.STRING_OPEN)
        assert s.read_string() == ""

    def test_unterminated_string(self):
        """A missing closing quote is fatal and does not loop."""
        s = Scanner('"abc')
        s.attempt(grammar.STRING_OPEN)
        with pytest.raises(ParseError) as excinfo:
            s.read_string()
        assert excinfo.value.message == "Expecting end of string"

    def test_trailing_backslash(self):
        """A backslash right before end of input is unterminated too."""
        s = Scanner('"abc\\')
        s.attempt(grammar.STRING_OPEN)
        with pytest.raises(ParseError, match="Expecting end of string"):
            s.read_string()


class TestDiagnostics:
    """Tests for line/column resolution and error rendering."""

    def test_locate_first_line(self):
        """Offsets on the first line are line 1, 0-based column."""
        assert locate("node hall", 5) == (1, 5)

    def test_locate_later_line(self):
        """Line numbers count the line breaks before the offset."""
        source = "nodes\n  hall\n"
        assert locate(source, 6) == (2, 0)
        assert locate(source, 8) == (2, 2)

    def test_locate_at_end(self):
        """The end-of-input offset resolves past the last character."""
        assert locate("ab\ncd", 5) == (2, 2)

    def test_render_context_marks_character(self):
        """The offending character is bracketed by markers."""
        assert render_context("nodes\n  hall\n", 8) == "  >>>h<<<all"

    def test_render_context_at_line_end(self):
        """At a line end the marker pair is empty."""
        assert render_context("abc\ndef", 3) == "abc>>><<<"

    def test_parse_error_fields(self):
        """ParseError resolves its position on construction."""
        error = ParseError("Expecting node name and description", "nodes\n  hall\n", 6, "game.txg")
        assert error.message == "Expecting node name and description"
        assert error.position == 6
        assert (error.line, error.column) == (2, 0)
        assert error.context == ">>> <<< hall"
        assert error.source == "nodes\n  hall\n"

    def test_syntax_error_text_is_plain_line(self):
        """SyntaxError.text holds the source line without markers."""
        error = ParseError("Unexpected token", "node a\nnode % b\n", 12)
        assert error.text == "node % b"
        assert error.context == "node >>>%<<< b"
        assert (error.lineno, error.offset) == (2, 6)

    def test_parse_error_format(self):
        """str() uses the filename:line:column prefix."""
        error = ParseError("Unexpected token", "a\n%", 2, "game.txg")
        assert str(error) == "game.txg:2:0: Unexpected token"
        assert error.render() == "game.txg:2:0: Unexpected token\n    >>>%<<<"

    def test_parse_error_is_syntax_error(self):
        """ParseError can be caught as SyntaxError."""
        with pytest.raises(SyntaxError):
            raise ParseError("Unexpected token", "%", 0)

    def test_scanner_error_uses_ref(self):
        """Scanner errors report at the ref when given, else at the cursor."""
        s = Scanner("abc\ndef")
        s.skip(5)
        with pytest.raises(ParseError) as excinfo:
            s.error("Here")
        assert (excinfo.value.line, excinfo.value.column) == (2, 1)

        with pytest.raises(ParseError) as excinfo:
            s.error("There", SourceRef(1))
        assert (excinfo.value.line, excinfo.value.column) == (1, 1)
