"""
txgc diagnostics - positional parse errors.

Every grammar violation aborts the parse with a single ParseError. The error
pins the failure to an absolute source offset and resolves it to:
- a 1-based line number
- a 0-based column
- an excerpt of the offending line with the failing character
  wrapped in >>> <<< markers

Positions are recomputed from the source text on demand rather than tracked
while scanning.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class SourceRef:
    """Source offset captured at the start of a record."""
    offset: int

    def __repr__(self):
        return f"SourceRef({self.offset})"


def locate(source: str, offset: int) -> Tuple[int, int]:
    """Resolve an absolute offset to (line, column)."""
    offset = max(0, min(offset, len(source)))
    line = source.count('\n', 0, offset) + 1
    line_start = source.rfind('\n', 0, offset) + 1
    return line, offset - line_start


def source_line(source: str, offset: int) -> str:
    """Return the full line holding offset, without its line break."""
    offset = max(0, min(offset, len(source)))
    line_start = source.rfind('\n', 0, offset) + 1
    line_end = source.find('\n', offset)
    if line_end == -1:
        line_end = len(source)
    return source[line_start:line_end]


def render_context(source: str, offset: int) -> str:
    """Render the line holding offset with the character at offset bracketed."""
    text = source_line(source, offset)
    _, column = locate(source, offset)
    return f"{text[:column]}>>>{text[column:column + 1]}<<<{text[column + 1:]}"


class ParseError(SyntaxError):
    """Fatal parse failure anchored to a source position.

    Attributes:
        message: Human readable description of what was expected
        position: Absolute offset of the failure in source
        line: 1-based line number
        column: 0-based column
        context: Offending line with the failing character marked
        source: Full source text, kept so callers can re-render
        filename: Name used in the rendered location prefix
    """

    def __init__(self, message: str, source: str, position: int, filename: str = "<input>"):
        super().__init__(message)
        self.message = message
        self.source = source
        self.position = position
        self.line, self.column = locate(source, position)
        self.context = render_context(source, position)

        # SyntaxError fields, so tracebacks point at the right line
        self.filename = filename
        self.lineno = self.line
        self.offset = self.column + 1
        self.text = source_line(source, position)

    def __str__(self):
        return f"{self.filename}:{self.line}:{self.column}: {self.message}"

    def render(self) -> str:
        """Return the location line followed by the marked excerpt."""
        return f"{self}\n    {self.context}"
