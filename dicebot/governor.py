"""Size limits and single-roll reports for callers of the dice core.

Binary operators multiply the length of their operands' results, so a formula
can be cheap to parse and still explode when rolled. Callers check the tree
against the limits here before sampling it:

* ``max_size`` bounds the number of nodes;
* ``max_depth`` bounds nesting, so rolling, display and ``to_json()`` stay
  well inside Python's recursion limit;
* ``max_results`` bounds the number of values any node produces, which is
  known exactly before rolling and bounds the work a roll can do.
"""

import logging
import random
import typing
import dicebot.roll as roll
import dicebot.roll_parser as roll_parser

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 2001
DEFAULT_MAX_DEPTH = 200
DEFAULT_MAX_RESULTS = 10000


def _refuse(measure: str, value: int, limit: int) -> None:
    logger.warning("rejected formula of %s %s (limit %s)", measure, value, limit)
    raise roll.ExpressionTooLarge(measure, value, limit)


def check_size(
    expression: roll.Expression,
    max_size: int = DEFAULT_MAX_SIZE,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> None:
    """Raise ``ExpressionTooLarge`` if the tree is too big to evaluate."""
    if expression.size() > max_size:
        _refuse("size", expression.size(), max_size)
    if expression.depth() > max_depth:
        _refuse("depth", expression.depth(), max_depth)
    if expression.widest() > max_results:
        _refuse("result count", expression.widest(), max_results)


class RollReport:
    """One evaluation of a formula: the parsed tree, the drawn dice and the results."""

    def __init__(
        self,
        formula: str,
        expression: roll.Expression,
        outcome: roll.Expression,
        results: roll.Roll,
    ) -> None:
        self.formula = formula
        self.expression = expression
        self.outcome = outcome
        self.results = results

    @property
    def size(self) -> int:
        return self.expression.size()

    @property
    def number_of_rolls(self) -> int:
        return self.expression.number_of_rolls()

    def to_json(self) -> typing.Dict[str, typing.Any]:
        return {
            "formula": self.formula,
            "display": str(self.expression),
            "size": self.size,
            "number_of_rolls": self.number_of_rolls,
            "expression": self.expression.to_json(),
            "outcome": self.outcome.to_json(),
            "results": list(self.results),
        }

    def __repr__(self) -> str:
        return "%s => %s" % (self.outcome, ", ".join(str(x) for x in self.results))


def parse_checked(
    text: str,
    max_size: int = DEFAULT_MAX_SIZE,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> roll.Expression:
    expression = roll_parser.parse(text, max_size=max_size)
    check_size(expression, max_size, max_depth, max_results)
    logger.debug("parsed %r as %s", text, expression)
    return expression


def roll_formula(
    text: str,
    max_size: int = DEFAULT_MAX_SIZE,
    rng: typing.Optional[random.Random] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> RollReport:
    """Parse, check and roll ``text`` once.

    The dice are drawn into an outcome tree first and the results are read
    back from it, so the report's outcome always agrees with its results.
    """
    expression = parse_checked(text, max_size, max_depth, max_results)
    outcome = expression.outcome(rng)
    return RollReport(text, expression, outcome, outcome.roll())
