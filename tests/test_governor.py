"""Tests for the size governor and roll reports."""

import json
import random

import pytest

from dicebot.governor import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_RESULTS,
    DEFAULT_MAX_SIZE,
    check_size,
    parse_checked,
    roll_formula,
)
from dicebot.roll import ExpressionTooLarge, ParseError, from_json
from dicebot.roll_parser import parse


class TestCheckSize:
    def test_at_the_limit(self) -> None:
        check_size(parse("2d6+3"), 5)

    def test_over_the_limit(self) -> None:
        with pytest.raises(ExpressionTooLarge) as excinfo:
            check_size(parse("2d6+3"), 4)
        assert excinfo.value.measure == "size"
        assert excinfo.value.value == 5
        assert excinfo.value.limit == 4

    def test_default_limit(self) -> None:
        assert DEFAULT_MAX_SIZE == 2001
        check_size(parse("2000.d6"))
        with pytest.raises(ExpressionTooLarge):
            check_size(parse("2002.d6"))

    def test_deep_nesting(self) -> None:
        expression = parse("-" * 5000 + "1")
        with pytest.raises(ExpressionTooLarge) as excinfo:
            check_size(expression, max_size=10000)
        assert excinfo.value.measure == "depth"
        assert excinfo.value.value == 5000
        assert excinfo.value.limit == DEFAULT_MAX_DEPTH

    def test_depth_limit(self) -> None:
        check_size(parse("---d6"), max_depth=4)
        with pytest.raises(ExpressionTooLarge, match="depth"):
            check_size(parse("----d6"), max_depth=4)

    def test_result_limit(self) -> None:
        check_size(parse("(1,2,3) * (1,2,3)"), max_results=9)
        with pytest.raises(ExpressionTooLarge) as excinfo:
            check_size(parse("(1,2,3) * (1,2,3)"), max_results=8)
        assert excinfo.value.measure == "result count"
        assert excinfo.value.value == 9

    def test_result_limit_counts_inner_nodes(self) -> None:
        # max() gives one value but the product under it gives 4096
        expression = parse("max(8.d6 * 8.d6 * 8.d6 * 8.d6)")
        assert expression.number_of_results() == 1
        with pytest.raises(ExpressionTooLarge, match="result count"):
            check_size(expression, max_results=4095)
        check_size(expression, max_results=4096)


class TestParseChecked:
    def test_returns_the_tree(self) -> None:
        assert parse_checked("2d6") == parse("2d6")

    def test_refuses_before_building(self) -> None:
        with pytest.raises(ExpressionTooLarge):
            parse_checked("1000000000.1000000000.d6")

    def test_refuses_wide_formulas(self) -> None:
        formula = "+".join(["d6"] * 20)
        with pytest.raises(ExpressionTooLarge):
            parse_checked(formula, max_size=20)

    def test_refuses_deep_formulas(self) -> None:
        with pytest.raises(ExpressionTooLarge) as excinfo:
            parse_checked("-" * 600 + "d6")
        assert excinfo.value.measure == "depth"
        assert excinfo.value.value == 601

    def test_syntax_errors_pass_through(self) -> None:
        with pytest.raises(ParseError):
            parse_checked("roll some dice")


class TestRollFormula:
    def test_report(self, high: random.Random) -> None:
        report = roll_formula("2d6+3", rng=high)
        assert report.formula == "2d6+3"
        assert report.expression == parse("2d6+3")
        assert str(report.outcome) == "(d6):6 + (d6):6 + 3"
        assert report.results == [15]
        assert report.size == 5
        assert report.number_of_rolls == 2

    def test_repr(self, high: random.Random) -> None:
        assert repr(roll_formula("2d6+3", rng=high)) == "(d6):6 + (d6):6 + 3 => 15"

    def test_results_match_outcome(self, seeded: random.Random) -> None:
        report = roll_formula("4.d20, max 3.d6", rng=seeded)
        assert report.results == report.outcome.roll()

    def test_json(self, low: random.Random) -> None:
        data = roll_formula("d6 < d4", rng=low).to_json()
        assert data == {
            "formula": "d6 < d4",
            "display": "d6 < d4",
            "size": 3,
            "number_of_rolls": 2,
            "expression": {"LessThan": [{"Die": 6}, {"Die": 4}]},
            "outcome": {"LessThan": [{"Outcome": [6, 1]}, {"Outcome": [4, 1]}]},
            "results": [0],
        }
        json.dumps(data)

    def test_too_large(self) -> None:
        with pytest.raises(ExpressionTooLarge):
            roll_formula("3000.d6")

    def test_custom_limit(self) -> None:
        with pytest.raises(ExpressionTooLarge):
            roll_formula("(1,2,3) + (1,2,3)", max_size=6)
        assert roll_formula("(1,2,3) + (1,2,3)", max_size=7).results == [
            2, 3, 4, 3, 4, 5, 4, 5, 6
        ]

    def test_deepest_formula_displays(self, high: random.Random) -> None:
        formula = "-" * (DEFAULT_MAX_DEPTH - 1) + "d6"
        report = roll_formula(formula, rng=high)
        assert report.expression.depth() == DEFAULT_MAX_DEPTH
        assert report.results == [6 if DEFAULT_MAX_DEPTH % 2 else -6]
        nested = DEFAULT_MAX_DEPTH - 2
        assert str(report.expression) == "-(" * nested + "-d6" + ")" * nested
        data = report.to_json()
        json.dumps(data)
        assert from_json(data["expression"]) == report.expression

    def test_deep_negations_refused(self) -> None:
        with pytest.raises(ExpressionTooLarge, match="depth"):
            roll_formula("-" * 600 + "d6")

    def test_wide_formulas_refused_before_rolling(self) -> None:
        # small enough to parse, 160000 values to compute
        formula = "max(20.d6 * 20.d6 * 20.d6 * 20.d6)"
        assert parse(formula).size() < DEFAULT_MAX_SIZE
        with pytest.raises(ExpressionTooLarge) as excinfo:
            roll_formula(formula)
        assert excinfo.value.measure == "result count"
        assert excinfo.value.value == 160000
        assert excinfo.value.limit == DEFAULT_MAX_RESULTS

    def test_custom_result_limit(self, seeded: random.Random) -> None:
        report = roll_formula(
            "max(20.d6 * 20.d6 * 20.d6 * 20.d6)", rng=seeded, max_results=160000
        )
        assert len(report.results) == 1
