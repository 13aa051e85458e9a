"""
Test fixtures and helpers for the txgc test suite.

Fluent assertion helpers keep the tests close to the source text they check:

- AssertSource: parses a whole .txg source and checks the document or error
- AssertExpr: compiles one expression and checks its tree or value
"""

import random
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from txgc.errors import ParseError
from txgc.parser import Parser, Program, compile_expression
from txgc.parser.ast_nodes import Expr
from txgc.runtime import evaluate


@dataclass
class ParseResult:
    """Result of parsing a source text."""
    success: bool
    program: Optional[Program] = None
    error: Optional[ParseError] = None
    warnings: List[str] = field(default_factory=list)


class FixedRandom:
    """Deterministic stand-in for the random module."""

    def __init__(self, value: float = 0.5, pick: Optional[int] = None):
        self.value = value
        self.pick = pick

    def random(self) -> float:
        return self.value

    def randint(self, low: int, high: int) -> int:
        return low if self.pick is None else self.pick


class SourceAssertion:
    """
    Fluent assertion helper for whole sources.

    Usage:
        program = AssertSource('node hall "A hall."').parses()
        AssertSource('nodes\\n  hall\\n').fails_with("name and description", line=2, column=0)
    """

    def __init__(self, source: str):
        self.source = source
        self.functions: Optional[Dict[str, Optional[int]]] = None
        self.expected_warnings: Optional[List[str]] = None
        self.expect_no_warnings = False

    def with_functions(self, **arities: Optional[int]) -> 'SourceAssertion':
        self.functions = dict(arities)
        return self

    def with_warnings(self, *codes: str) -> 'SourceAssertion':
        self.expected_warnings = list(codes)
        return self

    def without_warnings(self) -> 'SourceAssertion':
        self.expect_no_warnings = True
        return self

    def _parse(self) -> ParseResult:
        parser = Parser(self.source, "test.txg", functions=self.functions)
        try:
            program = parser.parse()
        except ParseError as e:
            return ParseResult(False, error=e, warnings=parser.get_warnings())
        return ParseResult(True, program=program, warnings=parser.get_warnings())

    def _check_warnings(self, result: ParseResult) -> None:
        if self.expect_no_warnings:
            assert not result.warnings, f"Expected no warnings, got: {result.warnings}"
        elif self.expected_warnings is not None:
            for code in self.expected_warnings:
                assert any(w.startswith(code) for w in result.warnings), \
                    f"Expected warning {code}, got {result.warnings}"

    def parses(self) -> Program:
        """Assert that the source parses; returns the document."""
        result = self._parse()
        assert result.success, f"Expected parse to succeed, got: {result.error and result.error.render()}"
        self._check_warnings(result)
        return result.program

    def fails_with(self, message: str, line: Optional[int] = None,
                   column: Optional[int] = None) -> ParseError:
        """Assert that parsing fails with message (substring) at line/column."""
        result = self._parse()
        assert not result.success, "Expected parse to fail, but it succeeded"

        error = result.error
        assert message in error.message, f"Expected error '{message}', got '{error.message}'"
        if line is not None:
            assert error.line == line, f"Expected line {line}, got {error.line}"
        if column is not None:
            assert error.column == column, f"Expected column {column}, got {error.column}"
        return error


class ExprAssertion:
    """
    Fluent assertion helper for single expressions.

    Usage:
        AssertExpr('1 + 2 * 3').gives(7)
        AssertExpr('$a > 1').with_locals(a=2).gives(True)
    """

    def __init__(self, text: str):
        self.text = text
        self.local_vars: Dict[str, Any] = {}
        self.global_vars: Dict[str, Any] = {}
        self.functions: Dict[str, Callable] = {}
        self.rng: Any = FixedRandom()

    def with_locals(self, **values: Any) -> 'ExprAssertion':
        self.local_vars.update(values)
        return self

    def with_globals(self, **values: Any) -> 'ExprAssertion':
        self.global_vars.update(values)
        return self

    def with_function(self, name: str, function: Callable) -> 'ExprAssertion':
        self.functions[name] = function
        return self

    def with_rng(self, rng: Any) -> 'ExprAssertion':
        self.rng = rng
        return self

    def compiles(self) -> Expr:
        """Assert that the expression compiles; returns the tree."""
        try:
            return compile_expression(self.text)
        except ParseError as e:
            pytest.fail(f"Expected '{self.text}' to compile, got: {e.render()}")

    def compiles_like(self, other: str) -> Expr:
        """Assert that the expression compiles to the same tree as other."""
        expr = self.compiles()
        assert expr == compile_expression(other), f"{expr!r} != {compile_expression(other)!r}"
        return expr

    def gives(self, expected: Any) -> None:
        """Assert that the expression evaluates to expected."""
        value = evaluate(self.compiles(), self.local_vars, self.global_vars,
                         self.functions, self.rng)
        assert value == expected, f"'{self.text}' gave {value!r}, expected {expected!r}"
        if isinstance(expected, bool):
            assert isinstance(value, bool), f"'{self.text}' gave {value!r}, expected a bool"

    def does_not_compile(self, message: str, column: Optional[int] = None) -> ParseError:
        """Assert that compiling fails with message (substring)."""
        with pytest.raises(ParseError) as excinfo:
            compile_expression(self.text)
        error = excinfo.value
        assert message in error.message, f"Expected error '{message}', got '{error.message}'"
        if column is not None:
            assert error.column == column, f"Expected column {column}, got {error.column}"
        return error


def AssertSource(source: str) -> SourceAssertion:
    """Create assertion for a whole source text."""
    return SourceAssertion(source)


def AssertExpr(text: str) -> ExprAssertion:
    """Create assertion for a single expression."""
    return ExprAssertion(text)


# Pytest fixtures
@pytest.fixture
def fixed_rng():
    """Random source returning 0.5 and the low end of every range."""
    return FixedRandom()


@pytest.fixture
def sample_source():
    """A small but complete game touching every record kind."""
    return SAMPLE_SOURCE


SAMPLE_SOURCE = '''\
# Sample game
#| multi-line
   header comment |#
start "You wake up." hall

vars
  @score := 0
  visits
  @mood := "calm"  # trailing comment

properties
  @score "Score" 0 to 100
  health "Health"

nodes
  hall "A long hall."
  final vault "The vault. You win."

map
  hall "Go north" vault open_vault
  vault "Go south" hall

actions
  ($score > 10) "Celebrate" "You dance." cheer
  hall "Look around"

boring
  pick "You take it."
  pick no "You cannot take that."
  lay no "You cannot drop that."

item key "Key" "small and rusty"
  location hall
  pick (atnode hall) "Got the key." take_key
  pick "Just a key."
  first use on door "It fits!" open_vault
  check "A rusty key."
  boring lay no
  resources hall vault

mod open_vault
  message "The door swings open."
  (hasitem key) addpath hall "Enter vault" vault
  @score += 10
  additem vault coin
  callmod (50%) cheer
  skip 1
  return

mod cheer
  message "Hooray!"
'''
