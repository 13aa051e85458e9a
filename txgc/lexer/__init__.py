"""txgc lexer - scanner, grammar table and statement tokens."""

from .scanner import Scanner
from .tokens import Range, Token, TokenList, TokenType, parse_number

__all__ = ['Scanner', 'Range', 'Token', 'TokenList', 'TokenType', 'parse_number']
