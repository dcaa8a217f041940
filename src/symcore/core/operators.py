import collections.abc
import typing

from symcore.core import arithmetic
from symcore.core import functions
from symcore.core import iterables
from symcore.core import rational
from symcore.core.expression import Expression


ROLES = ('binary', 'prefix', 'postfix')


class Operator(iterables.ReprStrMixin):
    """An operator in a symbolic expression.

    Parameters
    ----------
    symbol : string
        The characters that represent this operator in text.

    operation : callable
        The function that applies this operator to one (prefix or postfix)
        or two (binary) expression nodes.

    precedence : int
        The binding strength of this operator. Higher values bind tighter.

    associativity : {'left', 'right'}
        The grouping of a chain of operators with equal precedence.

    role : {'binary', 'prefix', 'postfix'}
        The position of this operator relative to its operand(s).
    """

    __slots__ = (
        'symbol',
        'operation',
        'precedence',
        'associativity',
        'role',
    )

    def __init__(
        self,
        symbol: str,
        operation: typing.Callable[..., Expression],
        precedence: int,
        associativity: str='left',
        role: str='binary',
    ) -> None:
        if role not in ROLES:
            raise ValueError(f"Unknown operator role {role!r}")
        if associativity not in {'left', 'right'}:
            raise ValueError(f"Unknown associativity {associativity!r}")
        self.symbol = symbol
        self.operation = operation
        self.precedence = precedence
        self.associativity = associativity
        self.role = role

    @property
    def arity(self) -> int:
        """The number of operands this operator consumes."""
        return 2 if self.role == 'binary' else 1

    def yields_to(self, other: 'Operator') -> bool:
        """True if `self`, on the stack, must be applied before `other`."""
        if self.role == 'postfix':
            return True
        if other.role == 'prefix':
            return False
        if other.associativity == 'left':
            return self.precedence >= other.precedence
        return self.precedence > other.precedence

    def __call__(self, *operands: Expression) -> Expression:
        """Apply this operator."""
        return self.operation(*operands)

    def __str__(self) -> str:
        """A simplified representation of this object."""
        return f"{self.role} {self.symbol!r}"

    def __hash__(self) -> int:
        """Compute instance hash (e.g., for use as `dict` key)."""
        return hash((self.symbol, self.role))

    def __eq__(self, other) -> bool:
        """True if two operators represent the same operation."""
        if isinstance(other, Operator):
            return (other.symbol, other.role) == (self.symbol, self.role)
        if isinstance(other, str):
            return other == self.symbol
        return NotImplemented


class Table(collections.abc.Mapping):
    """The operators known to the parser, grouped by role.

    Instances map each role to a mapping from symbol to `Operator`. The same
    symbol may appear in more than one role (e.g., ``-`` is both a binary and
    a prefix operator).
    """

    def __init__(self, *operators: Operator) -> None:
        self._roles = {role: {} for role in ROLES}
        for operator in operators:
            self.register(operator)

    def register(self, operator: Operator, overwrite: bool=False) -> None:
        """Add an operator to this table."""
        known = self._roles[operator.role]
        if operator.symbol in known and not overwrite:
            raise KeyError(
                f"A {operator.role} operator {operator.symbol!r} exists"
            ) from None
        known[operator.symbol] = operator

    def remove(self, symbol: str, role: str) -> Operator:
        """Remove an operator from this table."""
        return self._roles[role].pop(symbol)

    def __getitem__(self, role: str) -> typing.Mapping[str, Operator]:
        return self._roles[role]

    def __iter__(self):
        yield from self._roles

    def __len__(self) -> int:
        return len(self._roles)

    def find(self, symbol: str, role: str) -> typing.Optional[Operator]:
        """The operator with this symbol and role, if any."""
        return self._roles[role].get(symbol)

    @property
    def characters(self) -> typing.FrozenSet[str]:
        """Every character that appears in an operator symbol."""
        return frozenset(
            c for known in self._roles.values() for s in known for c in s
        )

    def longest(self, run: str, role: str) -> typing.Optional[Operator]:
        """The longest operator with this role at the start of `run`.

        This method shrinks `run` from the right until the remainder is a
        known symbol.
        """
        known = self._roles[role]
        for end in range(len(run), 0, -1):
            if run[:end] in known:
                return known[run[:end]]

    def copy(self) -> 'Table':
        """A shallow copy of this table."""
        return Table(
            *(op for known in self._roles.values() for op in known.values())
        )


def _identity(a: Expression) -> Expression:
    return a.clone()


def _factorial(a: Expression) -> Expression:
    return functions.apply('factorial', [a])


def _double_factorial(a: Expression) -> Expression:
    return functions.apply('dfactorial', [a])


def _percent(a: Expression) -> Expression:
    return arithmetic.multiply(a, Expression.number(rational.Rational(1, 100)))


def default() -> Table:
    """Create the standard operator table."""
    return Table(
        Operator('+', arithmetic.add, 1),
        Operator('-', arithmetic.subtract, 1),
        Operator('*', arithmetic.multiply, 2),
        Operator('/', arithmetic.divide, 2),
        Operator('+', _identity, 3, 'right', 'prefix'),
        Operator('-', arithmetic.negate, 3, 'right', 'prefix'),
        Operator('^', arithmetic.pow, 4, 'right'),
        Operator('**', arithmetic.pow, 4, 'right'),
        Operator('!', _factorial, 5, role='postfix'),
        Operator('!!', _double_factorial, 5, role='postfix'),
        Operator('%', _percent, 5, role='postfix'),
    )


table = default()
"""The operators that `~symcore.core.parser.parse` recognizes."""
