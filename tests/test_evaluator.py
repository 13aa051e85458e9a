"""Tests for the tree-walking evaluator."""

import pytest

from txgc.parser.ast_nodes import Expr
from txgc.parser.expressions import compile_expression
from txgc.runtime import EvaluationError, evaluate

from .conftest import AssertExpr, FixedRandom


class TestArithmetic:
    """Tests for numeric and string operators."""

    def test_integer_arithmetic(self):
        """Integer operands stay integral except under division."""
        AssertExpr("2 + 3 * 4 - 1").gives(13)
        AssertExpr("7 / 2").gives(3.5)

    def test_decimal_arithmetic(self):
        """Decimal literals are floats."""
        AssertExpr("1.5 * 2").gives(3.0)

    def test_negation(self):
        """Prefix minus negates."""
        AssertExpr("-$hp + 1").with_locals(hp=5).gives(-4)
        AssertExpr("--3").gives(3)

    def test_string_concatenation(self):
        """+ concatenates when either side is a string."""
        AssertExpr('"Score: " + @score').with_globals(score=12).gives("Score: 12")
        AssertExpr('$name + "!"').with_locals(name="Ann").gives("Ann!")

    def test_concatenation_of_missing_value(self):
        """A missing variable concatenates as empty text."""
        AssertExpr('"x" + $nothing').gives("x")

    def test_division_by_zero(self):
        """Division by zero raises EvaluationError."""
        with pytest.raises(EvaluationError, match="Division by zero"):
            evaluate(compile_expression("1 / 0"))

    def test_unsupported_operands(self):
        """Type errors are reported as EvaluationError."""
        with pytest.raises(EvaluationError, match="Unsupported operands for -"):
            evaluate(compile_expression('"a" - 1'))

    def test_negating_a_string(self):
        """Negating a non-number is an EvaluationError."""
        with pytest.raises(EvaluationError, match="Cannot negate"):
            evaluate(compile_expression('-"a"'))


class TestComparisonAndLogic:
    """Tests for comparisons, logical operators and constants."""

    @pytest.mark.parametrize("text,expected", [
        ("1 < 2", True),
        ("2 <= 2", True),
        ("3 > 4", False),
        ("4 >= 5", False),
        ("1 == 1", True),
        ("1 = 2", False),
        ("1 != 2", True),
    ])
    def test_comparisons(self, text, expected):
        """Comparisons yield booleans."""
        AssertExpr(text).gives(expected)

    def test_constants(self):
        """true/false/null evaluate to 1/0/0."""
        AssertExpr("true").gives(1)
        AssertExpr("false").gives(0)
        AssertExpr("null").gives(0)
        AssertExpr("true == 1").gives(True)

    def test_and_returns_deciding_operand(self):
        """&& returns the first falsy operand or the last one."""
        AssertExpr("$a && $b").with_locals(a=0, b=5).gives(0)
        AssertExpr("$a && $b").with_locals(a=2, b=5).gives(5)

    def test_or_returns_deciding_operand(self):
        """|| returns the first truthy operand or the last one."""
        AssertExpr("$a || $b").with_locals(a=0, b=5).gives(5)
        AssertExpr("$a || $b").with_locals(a=3, b=5).gives(3)

    def test_short_circuit(self):
        """The right side is not evaluated when the left decides."""
        calls = []

        def boom():
            calls.append(1)
            return 1

        AssertExpr("0 && boom()").with_function("boom", boom).gives(0)
        AssertExpr("1 || boom()").with_function("boom", boom).gives(1)
        assert calls == []

    def test_comma_conjunction(self):
        """$a > 1, $b < 2 holds only when both hold."""
        AssertExpr("$a > 1, $b < 2").with_locals(a=2, b=1).gives(True)
        AssertExpr("$a > 1, $b < 2").with_locals(a=2, b=3).gives(False)

    def test_not(self):
        """Logical not yields a boolean."""
        AssertExpr("!$flag").with_locals(flag=0).gives(True)
        AssertExpr("not $flag").with_locals(flag="set").gives(False)

    @pytest.mark.parametrize("text", ["@score > 10", "@score <= 10", "$tries < 3", "10 >= $tries"])
    def test_ordering_against_unset_variable(self, text):
        """Ordering comparisons with an unset variable are false."""
        AssertExpr(text).gives(False)

    def test_ordering_against_set_variable(self):
        """Once assigned, the variable compares normally."""
        AssertExpr("@score > 10").with_globals(score=11).gives(True)


class TestState:
    """Tests for variables, properties and engine functions."""

    def test_missing_variables_are_none(self):
        """Unknown variables read as None."""
        assert evaluate(compile_expression("$ghost")) is None
        assert evaluate(compile_expression("@ghost")) is None

    def test_locals_and_globals_are_separate(self):
        """$name and @name read different scopes."""
        AssertExpr("$x - @x").with_locals(x=10).with_globals(x=3).gives(7)

    def test_called(self):
        """called reads the _called local."""
        AssertExpr("called").with_locals(_called=2).gives(2)

    def test_legacy_var(self):
        """var name reads a local."""
        AssertExpr("var count > 2").with_locals(count=3).gives(True)

    def test_property_of_mapping(self):
        """Properties read mapping keys."""
        AssertExpr("@player.bag.size").with_globals(player={"bag": {"size": 3}}).gives(3)

    def test_property_of_object(self):
        """Properties read attributes of other objects."""

        class Room:
            label = "Hall"

        AssertExpr("room().label").with_function("room", Room).gives("Hall")

    def test_missing_property(self):
        """Missing properties, and properties of None, read as None."""
        assert evaluate(compile_expression("$a.b"), {"a": {}}) is None
        assert evaluate(compile_expression("$a.b.c")) is None

    def test_function_call(self):
        """Calls pass evaluated arguments to the engine function."""
        AssertExpr("add($a, 2) * 2").with_locals(a=1).with_function("add", lambda x, y: x + y).gives(6)

    def test_unknown_function(self):
        """Calling an unregistered function raises EvaluationError."""
        with pytest.raises(EvaluationError, match="Unknown function 'roll'"):
            evaluate(compile_expression("roll()"))

    def test_wrong_argument_count(self):
        """Argument mismatches surface as EvaluationError."""
        with pytest.raises(EvaluationError, match="Function 'one' failed"):
            evaluate(compile_expression("one(1, 2)"), functions={"one": lambda x: x})

    def test_has_item(self):
        """hasitem calls hasItem(name, negated)."""
        seen = []

        def has_item(name, negated):
            seen.append((name, negated))
            return not negated

        AssertExpr("hasitem key").with_function("hasItem", has_item).gives(True)
        AssertExpr("hasitem no key").with_function("hasItem", has_item).gives(False)
        assert seen == [("key", False), ("key", True)]

    def test_at_node(self):
        """atnode calls atNode(name, negated)."""
        AssertExpr("atnode no hall").with_function("atNode", lambda node, no: (node, no)).gives(("hall", True))

    def test_unsupported_node(self):
        """Nodes the evaluator does not know are rejected."""

        class Mystery(Expr):
            pass

        with pytest.raises(EvaluationError, match="Unsupported expression"):
            evaluate(Mystery())


class TestRandomness:
    """Tests for random ranges and percent chances."""

    def test_range_uses_randint(self):
        """A to B draws an inclusive random integer."""
        AssertExpr("1 to 6").with_rng(FixedRandom(pick=4)).gives(4)

    def test_range_within_bounds(self):
        """The default random source stays inside the range."""
        expr = compile_expression("3 to 5")
        for _ in range(50):
            assert 3 <= evaluate(expr) <= 5

    def test_reversed_range(self):
        """B to A draws from the same bounds as A to B."""
        AssertExpr("5 to 1").with_rng(FixedRandom()).gives(1)
        expr = compile_expression("6 to 2")
        for _ in range(50):
            assert 2 <= evaluate(expr) <= 6

    def test_percent_below(self):
        """N% holds when the draw times 100 is below N."""
        AssertExpr("50%").with_rng(FixedRandom(value=0.3)).gives(True)

    def test_percent_above(self):
        """N% fails when the draw times 100 is not below N."""
        AssertExpr("50%").with_rng(FixedRandom(value=0.5)).gives(False)

    def test_percent_bounds(self):
        """0% never holds and 100% always holds."""
        AssertExpr("0%").with_rng(FixedRandom(value=0.0)).gives(False)
        AssertExpr("100%").with_rng(FixedRandom(value=0.999)).gives(True)
