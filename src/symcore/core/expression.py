import enum
import fractions
import hashlib
import numbers
import typing

from symcore.core import iterables
from symcore.core import rational
from symcore.core.exceptions import InvariantViolation


class Group(enum.IntEnum):
    """The structural classes of expression nodes, from simplest to most
    complex."""

    NUMBER = 1
    """A rational constant."""
    RATIONAL_POWER = 2
    """An integer raised to a fractional power, like 2^(1/2)."""
    VARIABLE = 3
    """A named symbol raised to a rational power."""
    SYMBOLIC_EXPONENT = 4
    """Any base raised to a non-constant power, like x^y or 2^x."""
    FUNCTION = 5
    """A function call raised to a rational power."""
    POLYNOMIAL = 6
    """A sum of terms with a common base and differing powers."""
    COMBINATION = 7
    """A product of factors with distinct bases."""
    COMPOSITE = 8
    """A sum of dissimilar terms."""


SUMS = frozenset({Group.POLYNOMIAL, Group.COMPOSITE})
COMPOSITES = frozenset({Group.POLYNOMIAL, Group.COMBINATION, Group.COMPOSITE})
CONSTANT = '#'
"""The identity key shared by every number."""


Coercible = typing.Union['Expression', numbers.Rational, str]


class Expression(iterables.ReprStrMixin):
    """A node in the canonical representation of an expression.

    Every node has a `group`, a rational `multiplier`, and a `power`. The
    remaining attributes depend on the group:

    - `base`: the `NUMBER` node under a `RATIONAL_POWER`, or the base node
      (with unit multiplier and power) of a `SYMBOLIC_EXPONENT`
    - `name`: the name of a `VARIABLE` or `FUNCTION`
    - `args`: the argument nodes of a `FUNCTION`
    - `children`: the mapping from merge key to child node of a
      `POLYNOMIAL`, `COMBINATION`, or `COMPOSITE`

    The `power` of a `SYMBOLIC_EXPONENT` is itself a node; every other power
    is a `fractions.Fraction`.

    Instances are mutable, but the public arithmetic functions never modify
    their arguments. Code that modifies a node directly must own it, for
    example by calling `clone` first.
    """

    __slots__ = (
        'group',
        'multiplier',
        'power',
        'base',
        'name',
        'args',
        'children',
    )

    def __init__(
        self,
        group: Group,
        multiplier: rational.Real=1,
        power: typing.Union[rational.Real, 'Expression']=1,
        base: 'Expression'=None,
        name: str=None,
        args: typing.Iterable['Expression']=None,
        children: typing.Mapping[typing.Hashable, 'Expression']=None,
    ) -> None:
        self.group = Group(group)
        self.multiplier = rational.create(multiplier)
        self.power = (
            power if isinstance(power, Expression)
            else rational.create(power)
        )
        self.base = base
        self.name = name
        self.args = list(args) if args is not None else None
        self.children = dict(children) if children is not None else None

    @classmethod
    def number(cls, value: rational.Real):
        """Create a constant node."""
        return cls(Group.NUMBER, multiplier=value)

    @classmethod
    def variable(cls, name: str, power: rational.Real=1):
        """Create a variable node."""
        return cls(Group.VARIABLE, power=power, name=name)

    @classmethod
    def function(
        cls,
        name: str,
        args: typing.Iterable['Expression'],
        power: rational.Real=1,
    ):
        """Create an unevaluated function node."""
        return cls(Group.FUNCTION, power=power, name=name, args=args)

    def clone(self):
        """Create a deep copy of this node."""
        new = Expression.__new__(Expression)
        new.group = self.group
        new.multiplier = self.multiplier
        new.power = (
            self.power.clone() if isinstance(self.power, Expression)
            else self.power
        )
        new.base = self.base.clone() if self.base is not None else None
        new.name = self.name
        new.args = (
            [arg.clone() for arg in self.args]
            if self.args is not None else None
        )
        new.children = (
            {k: child.clone() for k, child in self.children.items()}
            if self.children is not None else None
        )
        return new

    @property
    def is_number(self) -> bool:
        """True if this node is a rational constant."""
        return self.group is Group.NUMBER

    @property
    def is_zero(self) -> bool:
        """True if this node is the constant zero."""
        return self.group is Group.NUMBER and self.multiplier == 0

    @property
    def is_one(self) -> bool:
        """True if this node is the constant one."""
        return self.group is Group.NUMBER and self.multiplier == 1

    @property
    def is_sum(self) -> bool:
        """True if this node is an additive group, whatever its power."""
        return self.group in SUMS

    @property
    def is_expanded_sum(self) -> bool:
        """True if this node is an additive group with unit power."""
        return self.group in SUMS and self.power == 1

    @property
    def is_atom_sum(self) -> bool:
        """True if this node is an additive group with a non-unit power."""
        return self.group in SUMS and self.power != 1

    @property
    def value(self) -> str:
        """The identity key of this node."""
        if self.group is Group.NUMBER:
            return CONSTANT
        if self.group is Group.RATIONAL_POWER:
            return str(self.base.multiplier)
        if self.group in {Group.VARIABLE, Group.FUNCTION}:
            return self.name
        if self.group is Group.SYMBOLIC_EXPONENT:
            if self.base.is_number:
                return str(self.base.multiplier)
            return self.base.value
        if self.group is Group.POLYNOMIAL:
            return next(iter(self.children.values())).value
        content = repr(iterables.stable(self._content(rational.ONE)))
        return hashlib.blake2b(content.encode(), digest_size=8).hexdigest()

    def _content(self, power) -> tuple:
        """Helper for structural identities, with the given power."""
        group = self.group
        if group is Group.NUMBER:
            return (CONSTANT,)
        if group is Group.RATIONAL_POWER:
            return (group, self.base.multiplier, power)
        if group is Group.VARIABLE:
            return (group, self.name, power)
        if group is Group.SYMBOLIC_EXPONENT:
            exponent = (
                power.signature() if isinstance(power, Expression)
                else power
            )
            return (group, self.base.signature(), exponent)
        if group is Group.FUNCTION:
            args = tuple(arg.signature() for arg in self.args)
            return (group, self.name, args, power)
        children = frozenset(
            child.signature() for child in self.children.values()
        )
        return (group, children, power)

    def content(self) -> tuple:
        """The structural identity of this node, ignoring its multiplier."""
        return self._content(self.power)

    def signature(self) -> tuple:
        """The full structural identity of this node."""
        return (self.multiplier, *self.content())

    def base_key(self) -> tuple:
        """The identity of this node, ignoring its multiplier and power.

        Factors with equal base keys combine by summing their powers. An
        exponential with a numeric base has a key of its own, so that it
        never merges with a radical of the same integer.
        """
        if self.group is Group.SYMBOLIC_EXPONENT and self.base.is_number:
            return (self.group, *self.base.signature())
        if self.group in {Group.RATIONAL_POWER, Group.SYMBOLIC_EXPONENT}:
            return self.base.signature()
        if self.group is Group.NUMBER:
            return self.signature()
        return (rational.ONE, *self._content(rational.ONE))

    def additive_key(self) -> tuple:
        """The merge key of this node as a term of a sum.

        Terms whose base can carry different rational powers (variables,
        functions, and sums raised to a power) are keyed by base, so that
        equal bases collect into a `POLYNOMIAL`. A `POLYNOMIAL` with unit
        power is keyed by the base it collects. Every other term is keyed by
        its full content.
        """
        group = self.group
        if group is Group.NUMBER:
            return (CONSTANT,)
        if group in {Group.VARIABLE, Group.FUNCTION} or self.is_atom_sum:
            return self.base_key()
        if group is Group.POLYNOMIAL:
            return next(iter(self.children.values())).base_key()
        return self.content()

    def multiplicative_key(self) -> tuple:
        """The merge key of this node as a factor of a product.

        This is the base key, except for sums raised to a negative power,
        which merge only with each other. Their powers never cancel against
        positive powers of the same sum, because those eventually expand
        into the products they belong to.
        """
        key = self.base_key()
        if self.is_atom_sum and self.power < 0:
            return (*key, -1)
        return key

    def base_of(self):
        """A new node equal to the base of this node.

        The result has unit multiplier and unit power, except that the base of
        a number is the number itself.
        """
        if self.group in {Group.RATIONAL_POWER, Group.SYMBOLIC_EXPONENT}:
            return self.base.clone()
        new = self.clone()
        if self.group is not Group.NUMBER:
            new.multiplier = rational.ONE
            new.power = rational.ONE
        return new

    def walk(self) -> typing.Iterator['Expression']:
        """Iterate over this node and all nodes beneath it."""
        yield self
        if isinstance(self.power, Expression):
            yield from self.power.walk()
        if self.base is not None:
            yield from self.base.walk()
        for arg in self.args or ():
            yield from arg.walk()
        for child in (self.children or {}).values():
            yield from child.walk()

    def variables(self) -> typing.List[str]:
        """The sorted names of all variables in this expression."""
        names = {
            node.name for node in self.walk()
            if node.group is Group.VARIABLE
        }
        return sorted(names)

    def equals(self, other: Coercible) -> bool:
        """True if two expressions have the same canonical form."""
        try:
            other = coerce(other)
        except (TypeError, ValueError):
            return False
        return self.signature() == other.signature()

    def __eq__(self, other) -> bool:
        if isinstance(other, (Expression, numbers.Rational, str)):
            return self.equals(other)
        if isinstance(other, numbers.Real) and self.is_number:
            return float(self.multiplier) == float(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.signature())

    def __bool__(self) -> bool:
        """False only for the constant zero."""
        return not self.is_zero

    def __int__(self):
        """Called for int(self)."""
        return self._cast_to(int)

    def __float__(self):
        """Called for float(self)."""
        return self._cast_to(float)

    _T = typing.TypeVar('_T', int, float)
    def _cast_to(self, __type: _T) -> _T:
        """Internal method for casting to numeric type."""
        if self.is_number:
            return __type(self.multiplier)
        raise TypeError(
            f"Can't convert non-constant expression {self} to {__type}"
        ) from None

    def to_text(self, decimals: bool=False) -> str:
        """Serialize this node as re-parsable infix text."""
        from symcore.core import formatting
        return formatting.text(self, decimals=decimals)

    def to_latex(self, decimals: bool=False) -> str:
        """Serialize this node as LaTeX."""
        from symcore.core import formatting
        return formatting.latex(self, decimals=decimals)

    def __str__(self) -> str:
        return self.to_text()

    def __add__(self, other):
        """Called for self + other."""
        return _binary('add', self, other)

    def __radd__(self, other):
        """Called for other + self."""
        return _binary('add', other, self)

    def __sub__(self, other):
        """Called for self - other."""
        return _binary('subtract', self, other)

    def __rsub__(self, other):
        """Called for other - self."""
        return _binary('subtract', other, self)

    def __mul__(self, other):
        """Called for self * other."""
        return _binary('multiply', self, other)

    def __rmul__(self, other):
        """Called for other * self."""
        return _binary('multiply', other, self)

    def __truediv__(self, other):
        """Called for self / other."""
        return _binary('divide', self, other)

    def __rtruediv__(self, other):
        """Called for other / self."""
        return _binary('divide', other, self)

    def __pow__(self, other):
        """Called for self ** other."""
        return _binary('pow', self, other)

    def __rpow__(self, other):
        """Called for other ** self."""
        return _binary('pow', other, self)

    def __neg__(self):
        """Called for -self."""
        from symcore.core import arithmetic
        return arithmetic.negate(self)

    def __pos__(self):
        """Called for +self."""
        return self.clone()


def coerce(this: Coercible) -> Expression:
    """Convert `this` to an expression node, if possible.

    Strings are parsed; rational numbers (including integers) become constant
    nodes. Existing nodes pass through unchanged.
    """
    if isinstance(this, Expression):
        return this
    if isinstance(this, bool):
        raise TypeError(f"Can't convert {this!r} to an expression")
    if isinstance(this, (numbers.Rational, fractions.Fraction)):
        return Expression.number(this)
    if isinstance(this, str):
        from symcore.core import parser
        return parser.parse(this)
    raise TypeError(f"Can't convert {type(this)} to an expression")


def _binary(name: str, a, b):
    """Apply the named arithmetic operation after coercing operands."""
    from symcore.core import arithmetic
    try:
        x, y = coerce(a), coerce(b)
    except TypeError:
        return NotImplemented
    return getattr(arithmetic, name)(x, y)


def require(this: typing.Any, operation: str=None) -> Expression:
    """Raise `InvariantViolation` unless `this` is an expression node."""
    if not isinstance(this, Expression):
        raise InvariantViolation(this, operation)
    return this
