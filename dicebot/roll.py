import itertools
import random
import typing

Roll = typing.List[int]


class DiceRollError(ValueError):
    pass


class ParseError(DiceRollError):
    pass


class ExpressionTooLarge(DiceRollError):
    def __init__(self, measure: str, value: int, limit: int) -> None:
        super().__init__(
            "expression %s is %s, the limit is %s" % (measure, value, limit)
        )
        self.measure = measure
        self.value = value
        self.limit = limit


def _integer(value: typing.Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DiceRollError("integer expected, got %r" % (value,))
    return value


class Expression:
    """A node of a parsed dice formula.

    Trees are immutable: every builder and transform returns a new tree, so a
    parsed formula can be rolled any number of times. ``repr()`` gives the
    canonical display form.

    The structural measures (size, depth, dice and result counts) are taken
    once when a node is built from its already-measured children, so reading
    them never walks the tree.
    """

    def _measure(
        self,
        size: int,
        rolls: int,
        results: int,
        children: typing.Sequence["Expression"] = (),
    ) -> None:
        self._size = size
        self._rolls = rolls
        self._results = results
        self._depth = 1 + max((child._depth for child in children), default=0)
        self._widest = max([results] + [child._widest for child in children])

    def roll(self, rng: typing.Optional[random.Random] = None) -> Roll:
        """Sample the formula once, returning every value it produces."""
        return self._roll(random.Random() if rng is None else rng)

    def outcome(self, rng: typing.Optional[random.Random] = None) -> "Expression":
        """Return a copy of this tree with every die replaced by a recorded draw."""
        return self._outcome(random.Random() if rng is None else rng)

    def _roll(self, rng: random.Random) -> Roll:
        raise NotImplementedError

    def _outcome(self, rng: random.Random) -> "Expression":
        raise NotImplementedError

    def size(self) -> int:
        return self._size

    def number_of_rolls(self) -> int:
        return self._rolls

    def number_of_results(self) -> int:
        """How many values ``roll()`` returns. The same on every roll."""
        return self._results

    def widest(self) -> int:
        """The most values any node of the tree produces while rolling."""
        return self._widest

    def depth(self) -> int:
        return self._depth

    def trivial(self) -> bool:
        return False

    def to_json(self) -> typing.Dict[str, typing.Any]:
        raise NotImplementedError

    def _key(self) -> tuple:
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Expression):
            return NotImplemented
        return type(self) is type(other) and self._key() == other._key()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._key()))

    def parenthesized(self) -> str:
        return "(%s)" % self if self._size > 1 else str(self)

    # builders

    def sum(self) -> "Sum":
        return Sum(self)

    def max(self) -> "Max":
        return Max(self)

    def min(self) -> "Min":
        return Min(self)

    def negate(self) -> "Negative":
        return Negative(self)

    def add(self, other: "Expression") -> "Add":
        return Add(self, other)

    def subtract(self, other: "Expression") -> "Add":
        return Add(self, other.negate())

    def multiply(self, other: "Expression") -> "Multiply":
        return Multiply(self, other)

    def also(self, other: "Expression") -> "Many":
        return Many(self, other)

    def eq(self, other: "Expression") -> "Equal":
        return Equal(self, other)

    def lt(self, other: "Expression") -> "LessThan":
        return LessThan(self, other)

    def gt(self, other: "Expression") -> "LessThan":
        return LessThan(other, self)

    def repeat(self, times: int) -> "Expression":
        if times > 1:
            return Many(*(self for _ in range(times)))
        return self


class Constant(Expression):
    def __init__(self, value: int) -> None:
        self.value = _integer(value)
        self._measure(1, 0, 1)

    def _roll(self, rng: random.Random) -> Roll:
        return [self.value]

    def _outcome(self, rng: random.Random) -> Expression:
        return self

    def trivial(self) -> bool:
        return True

    def to_json(self) -> typing.Dict[str, typing.Any]:
        return {"Constant": self.value}

    @classmethod
    def from_json(cls, payload: typing.Any) -> "Constant":
        return cls(payload)

    def _key(self) -> tuple:
        return (self.value,)

    def __repr__(self) -> str:
        return str(self.value)


class Die(Expression):
    def __init__(self, sides: int) -> None:
        self.sides = _integer(sides)
        if self.sides < 1:
            raise DiceRollError("attempted to roll a die with %s faces" % self.sides)
        self._measure(1, 1, 1)

    def _roll(self, rng: random.Random) -> Roll:
        return [rng.randint(1, self.sides)]

    def _outcome(self, rng: random.Random) -> Expression:
        return Outcome(self.sides, rng.randint(1, self.sides))

    def to_json(self) -> typing.Dict[str, typing.Any]:
        return {"Die": self.sides}

    @classmethod
    def from_json(cls, payload: typing.Any) -> "Die":
        return cls(payload)

    def _key(self) -> tuple:
        return (self.sides,)

    def __repr__(self) -> str:
        return "d%s" % self.sides


class Outcome(Die):
    """A die that has already been rolled. Replays ``result`` forever."""

    def __init__(self, sides: int, result: int) -> None:
        super().__init__(sides)
        self.result = _integer(result)
        if not 1 <= self.result <= self.sides:
            raise DiceRollError(
                "a d%s cannot have rolled %s" % (self.sides, self.result)
            )

    def _roll(self, rng: random.Random) -> Roll:
        return [self.result]

    def _outcome(self, rng: random.Random) -> Expression:
        return self

    def to_json(self) -> typing.Dict[str, typing.Any]:
        return {"Outcome": [self.sides, self.result]}

    @classmethod
    def from_json(cls, payload: typing.Any) -> "Outcome":
        if not isinstance(payload, list) or len(payload) != 2:
            raise DiceRollError("Outcome expects [sides, result], got %r" % (payload,))
        return cls(*payload)

    def _key(self) -> tuple:
        return (self.sides, self.result)

    def __repr__(self) -> str:
        return "(d%s):%s" % (self.sides, self.result)


class UnaryOp(Expression):
    def __init__(self, arg: Expression) -> None:
        self.arg = arg
        self._measure(
            1 + arg.size(),
            arg.number_of_rolls(),
            self.results_from(arg.number_of_results()),
            (arg,),
        )

    def results_from(self, n: int) -> int:
        return 1

    def _outcome(self, rng: random.Random) -> Expression:
        return self.__class__(self.arg._outcome(rng))

    def to_json(self) -> typing.Dict[str, typing.Any]:
        return {self.__class__.__name__: self.arg.to_json()}

    @classmethod
    def from_json(cls, payload: typing.Any) -> "UnaryOp":
        return cls(from_json(payload))

    def _key(self) -> tuple:
        return (self.arg,)


class Negative(UnaryOp):
    def results_from(self, n: int) -> int:
        return n

    def _roll(self, rng: random.Random) -> Roll:
        return [-x for x in self.arg._roll(rng)]

    def __repr__(self) -> str:
        return "-%s" % self.arg.parenthesized()


class Sum(UnaryOp):
    def _roll(self, rng: random.Random) -> Roll:
        return [sum(self.arg._roll(rng))]

    def __repr__(self) -> str:
        # NdS prints as the individual dice added together
        if isinstance(self.arg, Many):
            if len(self.arg.args) == 0:
                return "0"
            return " + ".join(str(x) for x in self.arg.args)
        return "sum(%s)" % self.arg


class Extremum(UnaryOp):
    def op(self, values: Roll) -> int:
        raise NotImplementedError

    @classmethod
    def name(cls) -> str:
        raise NotImplementedError

    def results_from(self, n: int) -> int:
        return 1 if n > 0 else 0

    def _roll(self, rng: random.Random) -> Roll:
        values = self.arg._roll(rng)
        if not values:
            return []
        return [self.op(values)]

    def __repr__(self) -> str:
        return "%s(%s)" % (self.name(), self.arg)


class Max(Extremum):
    def op(self, values: Roll) -> int:
        return max(values)

    @classmethod
    def name(cls) -> str:
        return "max"


class Min(Extremum):
    def op(self, values: Roll) -> int:
        return min(values)

    @classmethod
    def name(cls) -> str:
        return "min"


class Many(Expression):
    def __init__(self, *args: Expression) -> None:
        self.args = tuple(args)
        self._measure(
            sum(arg.size() for arg in self.args),
            sum(arg.number_of_rolls() for arg in self.args),
            sum(arg.number_of_results() for arg in self.args),
            self.args,
        )

    def _roll(self, rng: random.Random) -> Roll:
        return list(itertools.chain.from_iterable(arg._roll(rng) for arg in self.args))

    def _outcome(self, rng: random.Random) -> Expression:
        return Many(*(arg._outcome(rng) for arg in self.args))

    def to_json(self) -> typing.Dict[str, typing.Any]:
        return {"Many": [arg.to_json() for arg in self.args]}

    @classmethod
    def from_json(cls, payload: typing.Any) -> "Many":
        if not isinstance(payload, list):
            raise DiceRollError("Many expects a list, got %r" % (payload,))
        return cls(*(from_json(x) for x in payload))

    def _key(self) -> tuple:
        return self.args

    def __repr__(self) -> str:
        return ",".join(str(arg) for arg in self.args)


class BinaryOp(Expression):
    """Combines every value of ``lhs`` with every value of ``rhs``."""

    def op(self, lhs: int, rhs: int) -> int:
        raise NotImplementedError

    def __init__(self, lhs: Expression, rhs: Expression) -> None:
        self.lhs = lhs
        self.rhs = rhs
        self._measure(
            1 + lhs.size() + rhs.size(),
            lhs.number_of_rolls() + rhs.number_of_rolls(),
            lhs.number_of_results() * rhs.number_of_results(),
            (lhs, rhs),
        )

    def _roll(self, rng: random.Random) -> Roll:
        lhs = self.lhs._roll(rng)
        rhs = self.rhs._roll(rng)
        return [self.op(x, y) for x, y in itertools.product(lhs, rhs)]

    def _outcome(self, rng: random.Random) -> Expression:
        lhs = self.lhs._outcome(rng)
        rhs = self.rhs._outcome(rng)
        return self.__class__(lhs, rhs)

    def to_json(self) -> typing.Dict[str, typing.Any]:
        return {self.__class__.__name__: [self.lhs.to_json(), self.rhs.to_json()]}

    @classmethod
    def from_json(cls, payload: typing.Any) -> "BinaryOp":
        if not isinstance(payload, list) or len(payload) != 2:
            raise DiceRollError(
                "%s expects [lhs, rhs], got %r" % (cls.__name__, payload)
            )
        return cls(from_json(payload[0]), from_json(payload[1]))

    def _key(self) -> tuple:
        return (self.lhs, self.rhs)


class Add(BinaryOp):
    def op(self, lhs: int, rhs: int) -> int:
        return lhs + rhs

    def __repr__(self):
        return "%s + %s" % (self.lhs, self.rhs)


class Multiply(BinaryOp):
    def op(self, lhs: int, rhs: int) -> int:
        return lhs * rhs

    def __repr__(self):
        return "%s * %s" % (self.lhs, self.rhs.parenthesized())


class Equal(BinaryOp):
    def op(self, lhs: int, rhs: int) -> int:
        return 1 if lhs == rhs else 0

    def __repr__(self):
        return "%s = %s" % (self.lhs.parenthesized(), self.rhs.parenthesized())


class LessThan(BinaryOp):
    def op(self, lhs: int, rhs: int) -> int:
        return 1 if lhs < rhs else 0

    def __repr__(self):
        return "%s < %s" % (self.lhs.parenthesized(), self.rhs.parenthesized())


VARIANTS: typing.Dict[str, typing.Any] = {
    cls.__name__: cls
    for cls in (
        Constant,
        Die,
        Outcome,
        Negative,
        Sum,
        Max,
        Min,
        Many,
        Add,
        Multiply,
        Equal,
        LessThan,
    )
}


def from_json(data: typing.Any) -> Expression:
    """Rebuild a tree from the tagged-union shape produced by ``to_json()``."""
    if not isinstance(data, dict) or len(data) != 1:
        raise DiceRollError("malformed expression: %r" % (data,))
    ((name, payload),) = data.items()
    cls = VARIANTS.get(name)
    if cls is None:
        raise DiceRollError("unknown expression kind %r" % (name,))
    return cls.from_json(payload)
