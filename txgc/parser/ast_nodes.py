"""
Expression AST node definitions.

Conditions and values in text-game source compile to these trees. The
consuming engine walks them with txgc.runtime.evaluate(); nothing is ever
turned back into source text for another evaluator to re-parse.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, ClassVar, Dict, List, Union


class ExprType(Enum):
    """Expression node types."""
    # Literals
    NUMBER = auto()
    STRING = auto()
    CONSTANT = auto()        # true / false / null

    # References
    LOCAL_VAR = auto()       # $name, var name, called
    GLOBAL_VAR = auto()      # @name
    PROPERTY = auto()        # <operand>.name

    # Calls
    CALL = auto()            # name(arg, ...)
    HAS_ITEM = auto()        # hasitem [no] name
    AT_NODE = auto()         # atnode [no] name

    # Randomness
    RANDOM_RANGE = auto()    # A to B
    PERCENT_CHANCE = auto()  # N%

    # Operators
    UNARY = auto()
    BINARY = auto()


CONSTANT_VALUES = {
    'true': 1,
    'false': 0,
    'null': 0,
}


@dataclass
class Expr:
    """Base class for all expression nodes."""
    expr_type: ClassVar[ExprType]

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass
class NumberLiteral(Expr):
    value: Union[int, float]
    expr_type: ClassVar[ExprType] = ExprType.NUMBER

    def to_dict(self):
        return {'type': 'number', 'value': self.value}

    def __repr__(self):
        return f"Number({self.value})"


@dataclass
class StringLiteral(Expr):
    value: str
    expr_type: ClassVar[ExprType] = ExprType.STRING

    def to_dict(self):
        return {'type': 'string', 'value': self.value}

    def __repr__(self):
        return f"String({self.value!r})"


@dataclass
class Constant(Expr):
    """Named constant; true is 1, false and null are 0."""
    name: str
    expr_type: ClassVar[ExprType] = ExprType.CONSTANT

    @property
    def value(self) -> int:
        return CONSTANT_VALUES[self.name]

    def to_dict(self):
        return {'type': 'constant', 'name': self.name, 'value': self.value}

    def __repr__(self):
        return f"Constant({self.name})"


@dataclass
class LocalVar(Expr):
    """Per-session variable ($name). `called` reads the local _called."""
    name: str
    expr_type: ClassVar[ExprType] = ExprType.LOCAL_VAR

    def to_dict(self):
        return {'type': 'local', 'name': self.name}

    def __repr__(self):
        return f"LocalVar(${self.name})"


@dataclass
class GlobalVar(Expr):
    """Persistent variable (@name)."""
    name: str
    expr_type: ClassVar[ExprType] = ExprType.GLOBAL_VAR

    def to_dict(self):
        return {'type': 'global', 'name': self.name}

    def __repr__(self):
        return f"GlobalVar(@{self.name})"


@dataclass
class PropertyAccess(Expr):
    """Property read on a variable, call result or another property."""
    target: Expr
    name: str
    expr_type: ClassVar[ExprType] = ExprType.PROPERTY

    def to_dict(self):
        return {'type': 'property', 'target': self.target.to_dict(), 'name': self.name}

    def __repr__(self):
        return f"Property({self.target}.{self.name})"


@dataclass
class FunctionCall(Expr):
    name: str
    args: List[Expr]
    expr_type: ClassVar[ExprType] = ExprType.CALL

    def to_dict(self):
        return {'type': 'call', 'name': self.name, 'args': [arg.to_dict() for arg in self.args]}

    def __repr__(self):
        return f"Call({self.name}, {len(self.args)} args)"


@dataclass
class HasItem(Expr):
    """Inventory test: hasitem [no] name."""
    item: str
    negated: bool = False
    expr_type: ClassVar[ExprType] = ExprType.HAS_ITEM

    def to_dict(self):
        return {'type': 'hasItem', 'item': self.item, 'no': self.negated}

    def __repr__(self):
        return f"HasItem({'no ' if self.negated else ''}{self.item})"


@dataclass
class AtNode(Expr):
    """Location test: atnode [no] name."""
    node: str
    negated: bool = False
    expr_type: ClassVar[ExprType] = ExprType.AT_NODE

    def to_dict(self):
        return {'type': 'atNode', 'node': self.node, 'no': self.negated}

    def __repr__(self):
        return f"AtNode({'no ' if self.negated else ''}{self.node})"


@dataclass
class RandomRange(Expr):
    """Random integer drawn from low to high inclusive at evaluation time."""
    low: int
    high: int
    expr_type: ClassVar[ExprType] = ExprType.RANDOM_RANGE

    def to_dict(self):
        return {'type': 'range', 'from': self.low, 'to': self.high}

    def __repr__(self):
        return f"RandomRange({self.low} to {self.high})"


@dataclass
class PercentChance(Expr):
    """True when a uniform draw in [0, 100) is below percent."""
    percent: Union[int, float]
    expr_type: ClassVar[ExprType] = ExprType.PERCENT_CHANCE

    def to_dict(self):
        return {'type': 'percent', 'value': self.percent}

    def __repr__(self):
        return f"PercentChance({self.percent}%)"


@dataclass
class UnaryOp(Expr):
    op: str          # '-' or '!'
    operand: Expr
    expr_type: ClassVar[ExprType] = ExprType.UNARY

    def to_dict(self):
        return {'type': 'unary', 'op': self.op, 'operand': self.operand.to_dict()}

    def __repr__(self):
        return f"Unary({self.op} {self.operand})"


@dataclass
class BinaryOp(Expr):
    op: str          # + - * / == != < <= > >= && ||
    left: Expr
    right: Expr
    expr_type: ClassVar[ExprType] = ExprType.BINARY

    def to_dict(self):
        return {
            'type': 'binary',
            'op': self.op,
            'left': self.left.to_dict(),
            'right': self.right.to_dict(),
        }

    def __repr__(self):
        return f"Binary({self.left} {self.op} {self.right})"
