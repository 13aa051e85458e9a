"""
txgc - compiler front-end for text-game scripts.

Parses .txg source (nodes, paths, items, variables, actions and modifiers)
into a Program document with compiled expression trees.
"""

from typing import Any

from .errors import ParseError
from .parser import Parser, Program, compile_expression
from .runtime import EvaluationError, evaluate

__version__ = "0.1.0"


def parse(source: str, filename: str = "<input>", **options: Any) -> Program:
    """Parse source into a Program document; raises ParseError."""
    return Parser(source, filename, **options).parse()


__all__ = [
    'ParseError', 'EvaluationError', 'Parser', 'Program',
    'compile_expression', 'evaluate', 'parse', '__version__',
]
