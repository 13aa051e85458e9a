"""
Scanner - regex-driven cursor over text-game source.

The scanner holds the source, a cursor offset and an accumulation buffer.
Matching is side-effecting: a successful attempt commits (optionally
buffering the matched text and advancing the cursor), a failed attempt
changes nothing. Attempting without advancing gives lookahead.
"""

import re
from typing import NoReturn, Optional

from ..errors import ParseError, SourceRef
from . import grammar


class Scanner:
    """Cursor with an accumulation buffer over one source text."""

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.buffer = ""
        self.last_match: Optional[re.Match] = None

    def reset(self):
        """Rewind to the start of the source and clear the buffer."""
        self.pos = 0
        self.buffer = ""
        self.last_match = None

    def error(self, message: str, ref: Optional[SourceRef] = None) -> NoReturn:
        """Raise a ParseError at ref, or at the cursor when no ref is given."""
        position = ref.offset if ref is not None else self.pos
        raise ParseError(message, self.source, position, self.filename)

    def ref(self) -> SourceRef:
        """Capture the current cursor as a source reference."""
        return SourceRef(self.pos)

    def attempt(self, pattern: re.Pattern, to_buffer: bool = True, advance: bool = True) -> bool:
        """Match pattern anchored at the cursor.

        On a match the text is appended to the buffer (to_buffer) and the
        cursor moves past it (advance). Returns whether the pattern matched.
        """
        match = pattern.match(self.source, self.pos)
        if match is None:
            return False

        self.last_match = match
        if to_buffer:
            self.buffer += match.group(0)
        if advance:
            self.pos = match.end()
        return True

    def peek(self, pattern: re.Pattern) -> bool:
        """Test pattern at the cursor without consuming anything."""
        return self.attempt(pattern, to_buffer=False, advance=False)

    def attempt_until(self, pattern: re.Pattern, to_buffer: bool = True, advance: bool = True) -> bool:
        """Match pattern anywhere ahead, consuming up to and including it."""
        match = pattern.search(self.source, self.pos)
        if match is None:
            return False

        self.last_match = match
        if to_buffer:
            self.buffer += self.source[self.pos:match.end()]
        if advance:
            self.pos = match.end()
        return True

    def advance_one(self) -> bool:
        """Buffer the character under the cursor and step past it."""
        self.buffer += self.source[self.pos:self.pos + 1]
        self.pos += 1
        return True

    def skip(self, count: int = 1) -> bool:
        """Advance without buffering."""
        self.pos = min(self.pos + count, len(self.source))
        return True

    def is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def current_char(self) -> Optional[str]:
        """Character under the cursor, or None at end of input."""
        if self.is_at_end():
            return None
        return self.source[self.pos]

    def group(self, index: int = 1) -> str:
        """Group from the most recent successful match."""
        return self.last_match.group(index)

    def clear_buffer(self):
        self.buffer = ""

    def flush_buffer(self) -> str:
        """Return the buffer contents and clear it."""
        text = self.buffer
        self.buffer = ""
        return text

    def skip_comment(self):
        """Skip a line comment through its line end (or to end of input)."""
        if not self.attempt_until(grammar.LINE_END, to_buffer=False):
            self.pos = len(self.source)

    def skip_block_comment(self):
        """Skip a #| ... |# comment; an unclosed one runs to end of input."""
        if not self.attempt_until(grammar.ML_COMMENT_CLOSE, to_buffer=False):
            self.pos = len(self.source)

    def read_string(self) -> str:
        """Read string content after an opening quote, through the closing quote.

        A backslash makes the following character literal.
        """
        self.clear_buffer()

        while not self.attempt(grammar.STRING_CLOSE, to_buffer=False):
            if self.is_at_end():
                self.error("Expecting end of string")

            if self.attempt(grammar.ESCAPE, to_buffer=False):
                if self.is_at_end():
                    self.error("Expecting end of string")
                self.advance_one()  # escaped char
                continue

            self.advance_one()

        return self.flush_buffer()
