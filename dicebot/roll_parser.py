import typing
import dicebot.roll as roll
import lark

_MIN_INTEGER = -(2**63)
_MAX_INTEGER = 2**63 - 1


def _integer(text: str) -> int:
    value = int(text)
    if not _MIN_INTEGER <= value <= _MAX_INTEGER:
        raise roll.ParseError("integer literal out of range: %s" % text)
    return value


@lark.v_args(inline=True)
class _RollParser(lark.Transformer_NonRecursive):
    many = roll.Many
    plus = roll.Add
    multiply = roll.Multiply
    lt = roll.LessThan
    eq = roll.Equal
    negative = roll.Negative
    max = roll.Max
    min = roll.Min
    sum = roll.Sum
    minus = lambda self, lhs, rhs: lhs.subtract(rhs)
    gt = lambda self, lhs, rhs: lhs.gt(rhs)

    def __init__(self, max_size: typing.Optional[int] = None):
        super().__init__()
        self.max_size = max_size

    def _check_size(self, size: int) -> None:
        # repetitions are the only rules that grow the tree faster than the text
        if self.max_size is not None and size > self.max_size:
            raise roll.ExpressionTooLarge("size", size, self.max_size)

    def constant(self, token: lark.Token) -> roll.Expression:
        return roll.Constant(_integer(token))

    def die(self, token: lark.Token) -> roll.Expression:
        count, _, sides = token.replace("t", "d").partition("d")
        die = roll.Die(_integer(sides))
        n_dice = _integer(count) if count else 1
        if n_dice > 1:
            self._check_size(n_dice + 1)
            return die.repeat(n_dice).sum()
        return die

    def repeat(self, token: lark.Token, leaf: roll.Expression) -> roll.Expression:
        times = _integer(token[:-1])
        self._check_size(times * leaf.size())
        return leaf.repeat(times)


_grammar = lark.Lark.open("roll.lark", rel_to=__file__, parser="lalr")


def parse(text: str, max_size: typing.Optional[int] = None) -> roll.Expression:
    """Parse a dice formula.

    With ``max_size`` set, repetitions that would build a tree larger than the
    limit raise ``ExpressionTooLarge`` before the tree is built.
    """
    try:
        return _RollParser(max_size).transform(_grammar.parse(text))
    except lark.exceptions.VisitError as e:
        raise e.orig_exc
    except lark.exceptions.UnexpectedInput as e:
        raise roll.ParseError("syntax error:\n%s" % e)
