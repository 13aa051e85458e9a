"""
Tree-walking evaluator for compiled expressions.

The consuming engine supplies the game state:
- locals: per-session variables ($name, var name, called)
- globals: persistent variables (@name)
- functions: engine callables by lower-case name, plus "hasItem" and
  "atNode" for the inventory and location tests
- rng: anything with randint() and random(); defaults to the random module
"""

import operator
import random
from typing import Any, Callable, Dict, Mapping, Optional

from ..parser.ast_nodes import (
    AtNode, BinaryOp, Constant, Expr, FunctionCall, GlobalVar, HasItem, LocalVar,
    NumberLiteral, PercentChance, PropertyAccess, RandomRange, StringLiteral, UnaryOp,
)


class EvaluationError(RuntimeError):
    """Raised when an expression cannot be evaluated against the given state."""

    def __init__(self, message: str, expr: Optional[Expr] = None):
        super().__init__(message)
        self.expr = expr


COMPARISONS = {
    '==': operator.eq,
    '!=': operator.ne,
    '<': operator.lt,
    '<=': operator.le,
    '>': operator.gt,
    '>=': operator.ge,
}

ORDERING = {'<', '<=', '>', '>='}

ARITHMETIC = {
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.truediv,
}


class Evaluator:
    """Evaluates expression trees against one set of game state."""

    def __init__(self, local_vars: Optional[Mapping[str, Any]] = None,
                 global_vars: Optional[Mapping[str, Any]] = None,
                 functions: Optional[Mapping[str, Callable]] = None,
                 rng=None):
        self.local_vars = local_vars if local_vars is not None else {}
        self.global_vars = global_vars if global_vars is not None else {}
        self.functions = functions if functions is not None else {}
        self.rng = rng if rng is not None else random

    def evaluate(self, expr: Expr) -> Any:
        if isinstance(expr, NumberLiteral):
            return expr.value
        if isinstance(expr, StringLiteral):
            return expr.value
        if isinstance(expr, Constant):
            return expr.value
        if isinstance(expr, LocalVar):
            return self.local_vars.get(expr.name)
        if isinstance(expr, GlobalVar):
            return self.global_vars.get(expr.name)
        if isinstance(expr, PropertyAccess):
            return self.eval_property(expr)
        if isinstance(expr, FunctionCall):
            args = [self.evaluate(arg) for arg in expr.args]
            return self.call(expr.name, args, expr)
        if isinstance(expr, HasItem):
            return self.call('hasItem', [expr.item, expr.negated], expr)
        if isinstance(expr, AtNode):
            return self.call('atNode', [expr.node, expr.negated], expr)
        if isinstance(expr, RandomRange):
            return self.rng.randint(min(expr.low, expr.high), max(expr.low, expr.high))
        if isinstance(expr, PercentChance):
            return self.rng.random() * 100 < expr.percent
        if isinstance(expr, UnaryOp):
            return self.eval_unary(expr)
        if isinstance(expr, BinaryOp):
            return self.eval_binary(expr)

        raise EvaluationError(f"Unsupported expression {expr!r}", expr)

    def eval_property(self, expr: PropertyAccess) -> Any:
        target = self.evaluate(expr.target)
        if target is None:
            return None
        if isinstance(target, Mapping):
            return target.get(expr.name)
        return getattr(target, expr.name, None)

    def call(self, name: str, args, expr: Expr) -> Any:
        function = self.functions.get(name)
        if function is None:
            raise EvaluationError(f"Unknown function '{name}'", expr)
        try:
            return function(*args)
        except TypeError as e:
            raise EvaluationError(f"Function '{name}' failed: {e}", expr) from e

    def eval_unary(self, expr: UnaryOp) -> Any:
        value = self.evaluate(expr.operand)
        if expr.op == '!':
            return not value
        try:
            return -value
        except TypeError as e:
            raise EvaluationError(f"Cannot negate {value!r}", expr) from e

    def eval_binary(self, expr: BinaryOp) -> Any:
        op = expr.op

        # Short-circuit, returning the deciding operand
        if op == '&&':
            left = self.evaluate(expr.left)
            return self.evaluate(expr.right) if left else left
        if op == '||':
            left = self.evaluate(expr.left)
            return left if left else self.evaluate(expr.right)

        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)

        # Unset variables never order against anything
        if op in ORDERING and (left is None or right is None):
            return False

        try:
            if op in COMPARISONS:
                return COMPARISONS[op](left, right)
            if op == '+':
                if isinstance(left, str) or isinstance(right, str):
                    return f"{self.to_text(left)}{self.to_text(right)}"
                return left + right
            return ARITHMETIC[op](left, right)
        except ZeroDivisionError as e:
            raise EvaluationError("Division by zero", expr) from e
        except TypeError as e:
            raise EvaluationError(
                f"Unsupported operands for {op}: {left!r} and {right!r}", expr
            ) from e

    @staticmethod
    def to_text(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


def evaluate(expr: Expr, local_vars: Optional[Mapping[str, Any]] = None,
             global_vars: Optional[Mapping[str, Any]] = None,
             functions: Optional[Dict[str, Callable]] = None, rng=None) -> Any:
    """Evaluate expr against the given variables and engine functions.

    Args:
        expr: Compiled expression tree
        local_vars: Per-session variables
        global_vars: Persistent variables
        functions: Engine functions by name
        rng: Random source with randint() and random()

    Returns:
        The expression value

    Raises:
        EvaluationError: On unknown functions, bad operand types or division by zero
    """
    return Evaluator(local_vars, global_vars, functions, rng).evaluate(expr)
