"""Exact arithmetic on canonical expression nodes.

The public operations (`add`, `subtract`, `multiply`, `divide`, `pow`,
`negate`, and `invert`) never modify their arguments: each one clones its
operands and hands the copies to the engine functions below, which take
ownership of their arguments and may reuse or modify them.
"""

import functools
import logging
import math
import typing

from symcore.core import canonical
from symcore.core import config
from symcore.core import rational
from symcore.core.exceptions import DivisionByZero
from symcore.core.exceptions import DomainError
from symcore.core.expression import Expression
from symcore.core.expression import CONSTANT
from symcore.core.expression import Group
from symcore.core.expression import require


log = logging.getLogger(__name__)


Power = typing.Union[rational.Rational, Expression]


def guarded(fallback: typing.Callable[..., Expression]):
    """Decorator that optionally replaces domain errors with a fallback.

    When error suppression is enabled, a `DomainError` raised by the decorated
    function becomes a call to `fallback` with the same arguments, which
    typically builds an unevaluated function node. Otherwise, the error
    propagates.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args):
            try:
                return func(*args)
            except DomainError as err:
                if not config.settings.suppress_errors:
                    raise
                log.debug("Suppressed %r in %s", err, func.__name__)
                return fallback(*args)
        return wrapper
    return decorator


def _as_node(this: Power) -> Expression:
    """Wrap a rational power in a constant node."""
    if isinstance(this, Expression):
        return this
    return Expression.number(this)


def _as_power(this: Expression) -> Power:
    """Unwrap constant nodes, for use as a power."""
    if this.is_number:
        return this.multiplier
    return this


def _unevaluated_power(a: Expression, b: Expression) -> Expression:
    """Create the node ``pow(a, b)``."""
    return Expression.function('pow', [a.clone(), b.clone()])


# Public operations.

def add(a: Expression, b: Expression) -> Expression:
    """Compute the canonical sum ``a + b``."""
    require(a, 'add')
    require(b, 'add')
    return combine_terms(a.clone(), b.clone())


def subtract(a: Expression, b: Expression) -> Expression:
    """Compute the canonical difference ``a - b``."""
    require(a, 'subtract')
    require(b, 'subtract')
    return combine_terms(a.clone(), scale(b.clone(), -1))


def multiply(a: Expression, b: Expression) -> Expression:
    """Compute the canonical product ``a * b``."""
    require(a, 'multiply')
    require(b, 'multiply')
    return combine_factors(a.clone(), b.clone())


@guarded(
    lambda a, b: multiply(a, _unevaluated_power(b, Expression.number(-1)))
)
def divide(a: Expression, b: Expression) -> Expression:
    """Compute the canonical quotient ``a / b``.

    Raises
    ------
    DivisionByZero
        The divisor is the constant zero and error suppression is off.
    """
    require(a, 'divide')
    require(b, 'divide')
    if a.is_number and b.is_number:
        return Expression.number(rational.divide(a.multiplier, b.multiplier))
    if a.content() == b.content():
        return Expression.number(rational.divide(a.multiplier, b.multiplier))
    return combine_factors(a.clone(), raise_to(b.clone(), Expression.number(-1)))


@guarded(_unevaluated_power)
def pow(a: Expression, b: Expression) -> Expression:
    """Compute the canonical power ``a ^ b``.

    Parameters
    ----------
    a : `~expression.Expression`
        The base.

    b : `~expression.Expression`
        The exponent. A constant exponent simplifies completely: integer
        powers of sums expand, products distribute, and rational powers of
        integers reduce to canonical radicals. Any other exponent produces a
        `SYMBOLIC_EXPONENT` node.

    Raises
    ------
    DomainError
        The result is undefined (e.g., ``0^0``) and error suppression is off.

    DivisionByZero
        The base is zero and the exponent is negative.
    """
    require(a, 'pow')
    require(b, 'pow')
    return raise_to(a.clone(), b.clone())


def negate(a: Expression) -> Expression:
    """Compute ``-a``."""
    require(a, 'negate')
    return scale(a.clone(), -1)


def invert(a: Expression) -> Expression:
    """Compute ``1 / a``."""
    require(a, 'invert')
    return pow(a, Expression.number(-1))


# Engine functions. Each of these owns its arguments.

def scale(node: Expression, factor: rational.Real) -> Expression:
    """Multiply a node by a rational constant."""
    factor = rational.create(factor)
    if factor == 0:
        return Expression.number(0)
    if factor == 1:
        return node
    if node.is_expanded_sum:
        for key, child in node.children.items():
            node.children[key] = scale(child, factor)
        return node
    node.multiplier *= factor
    return node


def combine_terms(a: Expression, b: Expression) -> Expression:
    """Add two nodes."""
    if a.is_zero:
        return b
    if b.is_zero:
        return a
    if a.is_number and b.is_number:
        a.multiplier += b.multiplier
        return a
    if a.group < b.group:
        a, b = b, a
    if b.is_expanded_sum and not a.is_expanded_sum:
        a, b = b, a
    if a.is_expanded_sum:
        if b.is_expanded_sum:
            for child in b.children.values():
                a = combine_terms(a, child)
            return a
        return canonical.insert_term(a, b)
    if a.content() == b.content():
        a.multiplier += b.multiplier
        if a.multiplier == 0:
            return Expression.number(0)
        return a
    return canonical.pair_terms(a, b)


def combine_factors(a: Expression, b: Expression) -> Expression:
    """Multiply two nodes."""
    if a.is_zero or b.is_zero:
        return Expression.number(0)
    if a.is_number and b.is_number:
        a.multiplier *= b.multiplier
        return a
    if a.group < b.group:
        a, b = b, a
    if b.is_number:
        return scale(a, b.multiplier)
    coefficient = a.multiplier * b.multiplier
    a.multiplier = b.multiplier = rational.ONE
    return scale(_multiply_content(a, b), coefficient)


def _multiply_content(a: Expression, b: Expression) -> Expression:
    """Multiply two non-constant nodes with unit multipliers.

    The caller ensures that ``a.group >= b.group``.
    """
    if a.group is Group.COMBINATION:
        if b.group is Group.COMBINATION:
            for factor in b.children.values():
                a = combine_factors(a, factor)
            return a
        return canonical.insert_factor(a, b)
    if b.group is Group.COMBINATION:
        return canonical.insert_factor(b, a)
    if a.is_expanded_sum or b.is_expanded_sum:
        return distribute(a, b)
    if a.multiplicative_key() == b.multiplicative_key():
        return combine_powers(a, b)
    if a.group is Group.RATIONAL_POWER and b.group is Group.RATIONAL_POWER:
        return canonical.build_product(*canonical.combine_radicals([a, b]))
    return canonical.pair_factors(a, b)


def distribute(a: Expression, b: Expression) -> Expression:
    """Multiply two nodes, at least one of which is a sum with unit power.

    A sum with unit power always distributes, even over a power of itself,
    so that ``(x+1)*(x+1)^(-1)`` and ``(x+1)*(y*(x+1)^(-1))`` reduce the same
    way however the factors are grouped.
    """
    if not a.is_expanded_sum:
        a, b = b, a
    total = Expression.number(0)
    for child in a.children.values():
        total = combine_terms(total, combine_factors(child, b.clone()))
    return total


def combine_powers(a: Expression, b: Expression) -> Expression:
    """Multiply two factors with a common base by summing their powers."""
    coefficient = a.multiplier * b.multiplier
    base = a.base_of()
    if isinstance(a.power, Expression) or isinstance(b.power, Expression):
        power = _as_power(combine_terms(_as_node(a.power), _as_node(b.power)))
    else:
        power = a.power + b.power
    return scale(raise_base(base, power), coefficient)


def _multiply_powers(p: Power, q: Power) -> Power:
    """Compute the product of two powers."""
    if isinstance(p, Expression) or isinstance(q, Expression):
        return _as_power(combine_factors(_as_node(p), _as_node(q)))
    return p * q


def raise_to(a: Expression, b: Expression) -> Expression:
    """Raise a node to the power of another node."""
    if b.is_number:
        p = b.multiplier
        if a.is_number:
            return number_power(a.multiplier, p)
        if p == 0:
            return Expression.number(1)
        coefficient = a.multiplier
        base = a.base_of()
        result = raise_base(base, _multiply_powers(a.power, p))
        if coefficient == 1:
            return result
        return combine_factors(number_power(coefficient, p), result)
    if a.is_number:
        return exponential(a, b)
    coefficient = a.multiplier
    base = a.base_of()
    result = raise_base(base, _multiply_powers(a.power, b.clone()))
    if coefficient == 1:
        return result
    return combine_factors(exponential(Expression.number(coefficient), b), result)


def raise_base(base: Expression, power: Power) -> Expression:
    """Raise a base node to a power.

    Parameters
    ----------
    base : `~expression.Expression`
        A node with unit multiplier and unit power, or a number, as returned
        by `~expression.Expression.base_of`.

    power : `fractions.Fraction` or `~expression.Expression`
        The new power.
    """
    if isinstance(power, Expression):
        if not power.is_number:
            return exponential(base, power)
        power = power.multiplier
    if base.is_number:
        return number_power(base.multiplier, power)
    if power == 0:
        return Expression.number(1)
    if power == 1:
        return base
    group = base.group
    if group is Group.VARIABLE:
        if base.name == config.settings.imaginary:
            if rational.is_integer(power):
                return imaginary_power(int(power))
        base.power = power
        return base
    if group is Group.FUNCTION:
        base.power = power
        return base
    if group is Group.COMBINATION:
        result = Expression.number(base.multiplier)
        for child in base.children.values():
            product = _multiply_powers(child.power, power)
            result = combine_factors(result, raise_base(child.base_of(), product))
        return result
    if power > 1:
        # A sum raised to p > 1 is its expanded integer part times an atom.
        n = rational.floor(power)
        whole = expand_power(base.clone(), n) if n > 1 else base.clone()
        if n == power:
            return whole
        base.power = power - n
        return distribute(whole, base)
    base.power = power
    return base


def expand_power(base: Expression, n: int) -> Expression:
    """Expand a positive integer power of a sum."""
    result = base.clone()
    for _ in range(n - 1):
        result = distribute(result, base.clone())
    return result


def imaginary_power(n: int) -> Expression:
    """Compute an integer power of the imaginary unit."""
    r = n % 4
    if r == 0:
        return Expression.number(1)
    if r == 2:
        return Expression.number(-1)
    unit = Expression.variable(config.settings.imaginary)
    unit.multiplier = rational.create(1 if r == 1 else -1)
    return unit


def negative_one_power(
    power: rational.Rational,
) -> typing.Tuple[rational.Rational, typing.Optional[Expression]]:
    """Compute ``(-1)^power`` as a sign and an optional extra factor.

    Odd roots of -1 are real. Square roots of -1 produce the imaginary unit.
    Any other power with an even denominator produces a `RATIONAL_POWER` node
    with base -1.
    """
    r = power % 2
    if r.denominator % 2 == 1:
        return rational.create(-1 if r.numerator % 2 else 1), None
    if r.denominator == 2:
        sign = rational.create(1 if r == rational.Rational(1, 2) else -1)
        return sign, Expression.variable(config.settings.imaginary)
    if config.settings.numeric:
        angle = math.pi * float(r)
        real = Expression.number(rational.create(math.cos(angle)))
        imaginary = Expression.variable(config.settings.imaginary)
        imaginary.multiplier = rational.create(math.sin(angle))
        return rational.ONE, combine_terms(real, imaginary)
    return rational.ONE, canonical.radical(-1, r)


def number_power(b: rational.Rational, p: rational.Rational) -> Expression:
    """Raise a rational number to a rational power.

    Raises
    ------
    DomainError
        Both `b` and `p` are zero, or the numerical result overflows.

    DivisionByZero
        `b` is zero and `p` is negative.
    """
    if b == 0:
        if p > 0:
            return Expression.number(0)
        if p == 0:
            raise DomainError("0^0 is undefined")
        raise DivisionByZero(f"Can't raise zero to the power {p}")
    if p == 0 or b == 1:
        return Expression.number(1)
    if rational.is_integer(p):
        return Expression.number(rational.power(b, int(p)))
    if b < 0:
        magnitude = number_power(-b, p)
        sign, extra = negative_one_power(p)
        result = scale(magnitude, sign)
        if extra is None:
            return result
        return combine_factors(result, extra)
    if config.settings.numeric:
        try:
            value = float(b) ** float(p)
        except OverflowError as err:
            raise DomainError(f"{b}^{p} is out of numeric range") from err
        return Expression.number(rational.create(value))
    if b.denominator != 1:
        return combine_factors(
            number_power(rational.create(b.numerator), p),
            number_power(rational.create(b.denominator), -p),
        )
    coefficient, factors, extras = canonical.combine_radicals(
        [canonical.radical(b.numerator, p)]
    )
    return canonical.build_product(coefficient, factors, extras)


def exponential(base: Expression, power: Expression) -> Expression:
    """Raise a base node to a non-constant power.

    An integer base that is a perfect power becomes its smallest root, so
    that ``4^x`` becomes ``2^(2*x)``. A constant base then moves any constant
    term in the exponent into a separate factor, so that ``2^(x+1)`` becomes
    ``2*2^x`` and ``2^(x+1/2)`` becomes ``sqrt(2)*2^x``. A product
    distributes the exponent over its factors.
    """
    if base.is_number:
        b = base.multiplier
        if b == 0 or b == 1:
            return Expression.number(b)
        if rational.is_integer(b) and b > 1:
            root, k = rational.perfect_power(int(b))
            if k > 1:
                b = rational.create(root)
                base = Expression.number(b)
                power = scale(power, k)
        c = _constant_term(power)
        if c == 0:
            return Expression(Group.SYMBOLIC_EXPONENT, base=base, power=power)
        power = combine_terms(power, Expression.number(-c))
        result = raise_base(base, _as_power(power))
        return combine_factors(number_power(b, c), result)
    if base.group is Group.COMBINATION:
        result = Expression.number(base.multiplier)
        for child in base.children.values():
            product = _multiply_powers(child.power, power.clone())
            result = combine_factors(result, raise_base(child.base_of(), product))
        return result
    return Expression(Group.SYMBOLIC_EXPONENT, base=base, power=power)


def _constant_term(node: Expression) -> rational.Rational:
    """The constant term of a sum, or zero."""
    if node.group is Group.COMPOSITE and node.is_expanded_sum:
        constant = node.children.get((CONSTANT,))
        if constant is not None:
            return constant.multiplier
    return rational.ZERO
