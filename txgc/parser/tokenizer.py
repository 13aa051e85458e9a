"""
Line tokenizer - groups the rest of a statement line into a TokenList.

Recognition order at each position:
    "string"  A to B  @variable  number  ( expression )  identifier

Blanks and commas separate tokens. The line ends at a line break, an inline
comment or end of input; the line break (or comment) is consumed.
"""

from typing import List

from ..lexer import grammar
from ..lexer.scanner import Scanner
from ..lexer.tokens import Range, Token, TokenList, TokenType, parse_number
from .expressions import ExpressionCompiler


class LineTokenizer:
    """Reads statement tokens from the scanner cursor."""

    def __init__(self, scanner: Scanner, expressions: ExpressionCompiler):
        self.scanner = scanner
        self.expressions = expressions

    def read(self) -> TokenList:
        """Tokenize through the end of the current line."""
        s = self.scanner
        tokens: List[Token] = []

        while True:
            s.clear_buffer()
            offset = s.pos

            if s.attempt(grammar.BLANK) or s.attempt(grammar.COMMA):
                continue

            if s.attempt(grammar.STRING_OPEN):
                tokens.append(Token(TokenType.STRING, s.read_string(), offset))
                continue

            if s.attempt(grammar.RANGE):
                value = Range(parse_number(s.group(1)), parse_number(s.group(2)))
                tokens.append(Token(TokenType.RANGE, value, offset))
                continue

            if s.attempt(grammar.VAR_NAME):
                tokens.append(Token(TokenType.VARIABLE, s.group(1), offset))
                continue

            if s.attempt(grammar.NUMERIC):
                tokens.append(Token(TokenType.NUMERIC, parse_number(s.flush_buffer()), offset))
                continue

            if s.attempt(grammar.EXP_OPEN):
                expression = self.expressions.compile(grammar.EXP_CLOSE)
                tokens.append(Token(TokenType.EXPRESSION, expression, offset))
                continue

            if s.attempt(grammar.IDENTIFIER):
                tokens.append(Token(TokenType.IDENTIFIER, s.flush_buffer(), offset))
                continue

            if s.attempt(grammar.LINE_END, to_buffer=False):
                break

            if s.attempt(grammar.COMMENT, to_buffer=False):
                s.skip_comment()
                break

            if s.is_at_end():
                break

            s.error("Unexpected token")

        return TokenList(tokens)
