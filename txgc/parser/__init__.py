"""txgc parser - statements, expressions and the Program document."""

from .parser import Parser
from .expressions import ExpressionCompiler, compile_expression
from .document import Program

__all__ = ['Parser', 'ExpressionCompiler', 'compile_expression', 'Program']
