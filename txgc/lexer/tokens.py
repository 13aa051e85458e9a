"""
Statement tokens and the TokenList matcher.

A statement line is tokenized up front into a TokenList. Record handlers then
consume the list left to right with small declarative patterns:

    %s  string          %n  number        %r  range
    %v  @variable       %e  (expression)  %i  identifier/keyword
    anything else       the literal keyword itself

eat() is all-or-nothing: either the whole sequence matches and is removed, or
nothing is consumed.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Iterator, List, Optional, Union


class TokenType(Enum):
    """Statement token kinds."""
    STRING = auto()      # "text"
    NUMERIC = auto()     # 12, 1.5
    RANGE = auto()       # 1 to 10
    VARIABLE = auto()    # @name
    IDENTIFIER = auto()  # bare word or keyword
    EXPRESSION = auto()  # ( ... ) compiled expression


@dataclass(frozen=True)
class Range:
    """Numeric range, inclusive on both ends."""
    low: Union[int, float]
    high: Union[int, float]

    def __repr__(self):
        return f"Range({self.low} to {self.high})"


@dataclass(frozen=True)
class Token:
    """A single statement token."""
    type: TokenType
    value: Any
    offset: int = field(default=0, compare=False)

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r})"


PATTERN_TYPES = {
    '%s': TokenType.STRING,
    '%n': TokenType.NUMERIC,
    '%r': TokenType.RANGE,
    '%v': TokenType.VARIABLE,
    '%e': TokenType.EXPRESSION,
    '%i': TokenType.IDENTIFIER,
}


def parse_number(text: str) -> Union[int, float]:
    """Convert numeric source text, keeping integers integral."""
    return float(text) if '.' in text else int(text)


class TokenList:
    """Ordered tokens of one statement, consumed destructively from the front."""

    def __init__(self, tokens: Optional[List[Token]] = None):
        self.tokens = list(tokens or [])

    @staticmethod
    def check(token: Token, pattern: str) -> bool:
        """Test a single token against a single pattern."""
        token_type = PATTERN_TYPES.get(pattern)
        if token_type is not None:
            return token.type == token_type
        return token.type == TokenType.IDENTIFIER and token.value == pattern

    def eat(self, sequence: str) -> Optional[List[Any]]:
        """Consume a space separated pattern sequence from the head.

        Returns the matched token values, or None (consuming nothing) when any
        position fails to match.
        """
        patterns = sequence.split(" ")
        if len(self.tokens) < len(patterns):
            return None

        for token, pattern in zip(self.tokens, patterns):
            if not self.check(token, pattern):
                return None

        matched = self.tokens[:len(patterns)]
        del self.tokens[:len(patterns)]
        return [token.value for token in matched]

    def eat_one(self, pattern: str) -> Any:
        """Consume one token matching pattern; returns its value or None."""
        if self.tokens and self.check(self.tokens[0], pattern):
            return self.tokens.pop(0).value
        return None

    def eat_all(self, pattern: str) -> List[Any]:
        """Consume every leading token matching pattern."""
        values = []
        while self.tokens and self.check(self.tokens[0], pattern):
            values.append(self.tokens.pop(0).value)
        return values

    def shift(self) -> Optional[Token]:
        """Remove and return the head token unconditionally."""
        if self.tokens:
            return self.tokens.pop(0)
        return None

    def empty(self) -> bool:
        return not self.tokens

    def __len__(self):
        return len(self.tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self.tokens)

    def __repr__(self):
        return f"TokenList({self.tokens})"
