"""
Expression compiler - raw source characters to a precedence-correct AST.

Expressions are read straight from the scanner, not from a TokenList. The
compiler alternates between expecting an operand and expecting an operator;
two operands or two binary operators in a row are fatal.

Operands:
- numbers, N% chances, integer ranges A to B, "strings"
- true / false / null
- ( sub-expression )
- name(arg, ...) function calls
- hasitem [no] name, atnode [no] name
- $local, var local, @global, called
- .property suffixes after a variable, call or property

Binary operators, loosest first:
    ||  &&  ==/!=  </<=/>/>=  +/-  * and /
Prefix - and ! bind tighter than all of them. A bare comma joins whole
conditions: `a, b` means `(a) && (b)`.
"""

import re
from typing import Callable, Dict, List, Optional

from ..errors import SourceRef
from ..lexer import grammar
from ..lexer.scanner import Scanner
from ..lexer.tokens import parse_number
from .ast_nodes import (
    AtNode, BinaryOp, Constant, Expr, FunctionCall, GlobalVar, HasItem, LocalVar,
    NumberLiteral, PercentChance, PropertyAccess, RandomRange, StringLiteral, UnaryOp,
)


# Binding power of binary operators (higher binds tighter)
PRECEDENCE = {
    '||': 1,
    '&&': 2,
    '==': 3, '!=': 3,
    '<': 4, '<=': 4, '>': 4, '>=': 4,
    '+': 5, '-': 5,
    '*': 6, '/': 6,
}

LOGICAL_OPERATORS = {
    'and': '&&',
    '&&': '&&',
    'or': '||',
    '||': '||',
}

CALLED_LOCAL = '_called'


class _Segment:
    """Operands and operators of one comma-separated condition, in source order."""

    def __init__(self):
        self.operands: List[Expr] = []
        self.operators: List[str] = []
        self.current: Optional[Expr] = None     # operand still open to .property
        self.prefix: List[str] = []             # pending unary operators
        self.chainable = False

    def is_empty(self) -> bool:
        return not self.operands and self.current is None and not self.prefix

    def close_operand(self):
        """Apply pending prefix operators and commit the current operand."""
        operand = self.current
        for op in reversed(self.prefix):
            operand = UnaryOp(op, operand)
        self.operands.append(operand)
        self.current = None
        self.prefix = []
        self.chainable = False

    def build(self) -> Expr:
        """Fold the flat operand/operator sequence into a left-associative tree."""
        values = [self.operands[0]]
        pending: List[str] = []

        def reduce():
            op = pending.pop()
            right = values.pop()
            left = values.pop()
            values.append(BinaryOp(op, left, right))

        for op, operand in zip(self.operators, self.operands[1:]):
            while pending and PRECEDENCE[pending[-1]] >= PRECEDENCE[op]:
                reduce()
            pending.append(op)
            values.append(operand)

        while pending:
            reduce()
        return values[0]


class ExpressionCompiler:
    """Compiles inline expressions at the scanner cursor."""

    def __init__(self, scanner: Scanner, functions: Optional[Dict[str, Optional[int]]] = None,
                 max_depth: int = 64, log: Optional[Callable[[str], None]] = None):
        self.scanner = scanner
        self.functions = functions
        self.max_depth = max_depth
        self.log = log or (lambda message: None)

    def compile(self, terminator: re.Pattern, consume: bool = True,
                allow_end: bool = False, depth: int = 0) -> Expr:
        """Compile one expression up to terminator.

        Args:
            terminator: Pattern that ends the expression when seen in operator
                or operand position
            consume: Whether the terminator itself is consumed
            allow_end: Whether end of input also ends the expression
            depth: Current nesting of sub-expressions and call arguments

        Returns:
            The expression tree
        """
        s = self.scanner
        start = s.ref()
        self.log(f"expression at {start.offset}")

        if depth > self.max_depth:
            s.error("Expression nested too deeply", start)

        conditions: List[Expr] = []
        segment = _Segment()
        expect_operand = True

        while True:
            here = s.ref()
            if s.attempt(terminator, to_buffer=False, advance=consume):
                break
            if allow_end and s.is_at_end():
                break

            s.clear_buffer()

            # Binary arithmetic, or prefix minus in operand position
            if s.attempt(grammar.EXP_OPERATOR):
                op = s.flush_buffer()
                if expect_operand:
                    if op != '-':
                        s.error("Expecting operand", here)
                    segment.prefix.append('-')
                    continue
                segment.close_operand()
                segment.operators.append(op)
                expect_operand = True
                continue

            # Prefix not
            if expect_operand and s.attempt(grammar.EXP_NOT):
                segment.prefix.append('!')
                continue

            # Comparators
            if s.attempt(grammar.EXP_COMPARATOR):
                if expect_operand:
                    s.error("Expecting operand", here)
                op = s.flush_buffer()
                if op == '=':
                    op = '=='
                segment.close_operand()
                segment.operators.append(op)
                expect_operand = True
                continue

            # Logical operators
            if s.attempt(grammar.EXP_LOGICAL):
                if expect_operand:
                    s.error("Expecting operand", here)
                segment.close_operand()
                segment.operators.append(LOGICAL_OPERATORS[s.flush_buffer().lower()])
                expect_operand = True
                continue

            # Condition separator
            if s.attempt(grammar.EXP_SEPARATOR):
                if segment.is_empty() and not conditions:
                    s.error("Expecting first condition", here)
                if expect_operand:
                    s.error("Expecting operand", here)
                segment.close_operand()
                conditions.append(segment.build())
                segment = _Segment()
                expect_operand = True
                continue

            # Random integer range
            if s.attempt(grammar.EXP_RANGE):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                segment.current = RandomRange(int(s.group(1)), int(s.group(2)))
                expect_operand = False
                continue

            # Function call
            if s.attempt(grammar.EXP_FUNCTION):
                if not expect_operand:
                    s.error("Unexpected function operand", here)
                name = s.group(1).lower()
                args = self.parse_arguments(depth + 1)
                self.check_call(name, args, here)
                segment.current = FunctionCall(name, args)
                segment.chainable = True
                expect_operand = False
                continue

            # Sub-expression
            if s.attempt(grammar.EXP_OPEN):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                segment.current = self.compile(grammar.EXP_CLOSE, depth=depth + 1)
                expect_operand = False
                continue

            # Inventory and location tests
            if s.attempt(grammar.EXP_HAS_ITEM):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                negated, name = self.read_test_subject("Expecting item name")
                segment.current = HasItem(name, negated)
                expect_operand = False
                continue

            if s.attempt(grammar.EXP_AT_NODE):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                negated, name = self.read_test_subject("Expecting node name")
                segment.current = AtNode(name, negated)
                expect_operand = False
                continue

            # Constants
            if s.attempt(grammar.EXP_CONSTANT):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                segment.current = Constant(s.flush_buffer().lower())
                expect_operand = False
                continue

            # String
            if s.attempt(grammar.STRING_OPEN):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                segment.current = StringLiteral(s.read_string())
                expect_operand = False
                continue

            # Percent chance
            if s.attempt(grammar.EXP_PERCENT):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                segment.current = PercentChance(parse_number(s.group(1)))
                expect_operand = False
                continue

            # Number
            if s.attempt(grammar.EXP_NUMBER):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                segment.current = NumberLiteral(parse_number(s.flush_buffer()))
                expect_operand = False
                continue

            # Property suffix
            if s.attempt(grammar.EXP_PROPERTY):
                if expect_operand or not segment.chainable:
                    s.error("Unexpected dot notation", here)
                segment.current = PropertyAccess(segment.current, s.group(1))
                continue

            # Legacy local variable: var name
            if s.attempt(grammar.EXP_LEGACY_VAR):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                s.clear_buffer()
                if not s.attempt(grammar.IDENTIFIER):
                    s.error("Expecting variable name")
                segment.current = LocalVar(s.flush_buffer())
                segment.chainable = True
                expect_operand = False
                continue

            if s.attempt(grammar.EXP_CALLED):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                segment.current = LocalVar(CALLED_LOCAL)
                segment.chainable = True
                expect_operand = False
                continue

            if s.attempt(grammar.EXP_LOCAL_VAR):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                segment.current = LocalVar(s.group(1))
                segment.chainable = True
                expect_operand = False
                continue

            if s.attempt(grammar.EXP_GLOBAL_VAR):
                if not expect_operand:
                    s.error("Unexpected operand", here)
                segment.current = GlobalVar(s.group(1))
                segment.chainable = True
                expect_operand = False
                continue

            if s.attempt(grammar.BLANK):
                continue

            if s.is_at_end():
                s.error("Unexpected end of expression", here)

            s.error("Unexpected token", here)

        if segment.is_empty():
            if conditions:
                s.error("Unterminated expression", here)
            s.error("Empty expression", start)
        if expect_operand:
            s.error("Unterminated expression", here)

        segment.close_operand()
        conditions.append(segment.build())

        expression = conditions[0]
        for condition in conditions[1:]:
            expression = BinaryOp('&&', expression, condition)
        return expression

    def parse_arguments(self, depth: int) -> List[Expr]:
        """Parse call arguments after the opening parenthesis, through the close."""
        s = self.scanner
        args: List[Expr] = []

        s.attempt(grammar.BLANK, to_buffer=False)
        if s.attempt(grammar.EXP_CLOSE, to_buffer=False):
            return args

        while True:
            args.append(self.compile(grammar.EXP_ARGUMENT_END, consume=False, depth=depth))

            if s.attempt(grammar.EXP_CLOSE, to_buffer=False):
                break
            if s.attempt(grammar.EXP_SEPARATOR, to_buffer=False):
                continue

            s.error("Unexpected token")

        return args

    def check_call(self, name: str, args: List[Expr], ref: SourceRef):
        """Validate a call against the function registry, when one is configured."""
        if self.functions is None:
            return

        if name not in self.functions:
            self.scanner.error(f"Unknown function '{name}'", ref)

        arity = self.functions[name]
        if arity is not None and len(args) != arity:
            plural = "argument" if arity == 1 else "arguments"
            self.scanner.error(
                f"Function '{name}' expects {arity} {plural}, got {len(args)}", ref
            )

    def read_test_subject(self, expecting: str):
        """Read `[no] name` after hasitem/atnode; returns (negated, name)."""
        s = self.scanner
        s.attempt(grammar.BLANK, to_buffer=False)

        negated = s.attempt(grammar.EXP_NO, to_buffer=False)
        s.attempt(grammar.BLANK, to_buffer=False)

        s.clear_buffer()
        if not s.attempt(grammar.IDENTIFIER):
            s.error(expecting)
        return negated, s.flush_buffer()


def compile_expression(text: str, functions: Optional[Dict[str, Optional[int]]] = None,
                       filename: str = "<expression>") -> Expr:
    """Compile a standalone expression ending at a line end, comment or end of text."""
    scanner = Scanner(text, filename)
    compiler = ExpressionCompiler(scanner, functions)
    return compiler.compile(grammar.EXP_LINE_TERMINATOR, consume=False, allow_end=True)
