"""Exact rational arithmetic.

Every value in this module is a `fractions.Fraction`, which already stores a
reduced numerator/denominator pair with the sign on the numerator. The
functions below add the operations the symbolic kernel needs on top of the
built-in arithmetic: strict handling of zero divisors, exact conversion from
text and floating-point literals, integer roots, and bounded prime
factorization.
"""

import decimal
import fractions
import math
import numbers
import typing

from symcore.core.exceptions import DivisionByZero


Rational = fractions.Fraction

Real = typing.Union[int, float, str, decimal.Decimal, Rational]


ZERO = Rational(0)
ONE = Rational(1)


def create(value: Real) -> Rational:
    """Convert `value` to an exact rational number.

    Parameters
    ----------
    value : int, float, str, `decimal.Decimal`, or `fractions.Fraction`
        The value to convert. Strings may contain a ratio (``'3/4'``), a
        decimal point (``'0.75'``), or scientific notation (``'7.5e-1'``).
        Floats convert through their shortest decimal representation, so that
        ``create(0.1) == Rational(1, 10)``.

    Returns
    -------
    `fractions.Fraction`

    Raises
    ------
    ValueError
        The value does not represent a finite rational number.
    """
    if isinstance(value, Rational):
        return value
    if isinstance(value, bool):
        raise TypeError(f"Can't create a rational number from {value!r}")
    if isinstance(value, numbers.Integral):
        return Rational(int(value))
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Can't create a rational number from {value!r}")
        return Rational(repr(value))
    if isinstance(value, decimal.Decimal):
        if not value.is_finite():
            raise ValueError(f"Can't create a rational number from {value!r}")
        return Rational(value)
    if isinstance(value, str):
        return Rational(value.strip())
    if isinstance(value, numbers.Real):
        return create(float(value))
    raise TypeError(f"Can't create a rational number from {type(value)}")


def add(a: Rational, b: Rational) -> Rational:
    """Compute a + b."""
    return a + b


def subtract(a: Rational, b: Rational) -> Rational:
    """Compute a - b."""
    return a - b


def multiply(a: Rational, b: Rational) -> Rational:
    """Compute a * b."""
    return a * b


def divide(a: Rational, b: Rational) -> Rational:
    """Compute a / b, refusing a zero divisor."""
    if b == 0:
        raise DivisionByZero(f"Can't divide {a} by zero")
    return a / b


def modulo(a: Rational, b: Rational) -> Rational:
    """Compute a mod b with the sign of `b`, as Python's ``%`` does."""
    if b == 0:
        raise DivisionByZero(f"Can't compute {a} modulo zero")
    return a % b


def negate(a: Rational) -> Rational:
    """Compute -a."""
    return -a


def invert(a: Rational) -> Rational:
    """Compute 1 / a."""
    return divide(ONE, a)


def compare(a: Rational, b: Rational) -> int:
    """Return -1, 0, or 1 as a is less than, equal to, or greater than b."""
    return (a > b) - (a < b)


def is_integer(a: Rational) -> bool:
    """True if `a` has unit denominator."""
    return a.denominator == 1


def floor(a: Rational) -> int:
    """The largest integer not greater than `a`."""
    return a.numerator // a.denominator


def power(a: Rational, n: int) -> Rational:
    """Raise `a` to the integral power `n`."""
    if n < 0 and a == 0:
        raise DivisionByZero(f"Can't raise zero to the power {n}")
    return a ** int(n)


def gcd(a: Rational, b: Rational) -> Rational:
    """The greatest common divisor of two rationals.

    For rationals, the result is gcd(numerators) / lcm(denominators), which is
    the largest rational that divides both arguments into integers.
    """
    numerator = math.gcd(a.numerator, b.numerator)
    denominator = _lcm(a.denominator, b.denominator)
    return Rational(numerator, denominator)


def lcm(a: Rational, b: Rational) -> Rational:
    """The least common multiple of two rationals."""
    if a == 0 or b == 0:
        return ZERO
    numerator = _lcm(a.numerator, b.numerator)
    denominator = math.gcd(a.denominator, b.denominator)
    return Rational(abs(numerator), denominator)


def _lcm(a: int, b: int) -> int:
    """Integer least common multiple."""
    return abs(a * b) // math.gcd(a, b)


def integer_root(n: int, q: int) -> typing.Optional[int]:
    """Compute the exact `q`-th root of `n`, if there is one.

    Parameters
    ----------
    n : int
        A non-negative integer.

    q : int
        The (positive) degree of the root.

    Returns
    -------
    int or ``None``
        The integer `r` such that ``r ** q == n``, or ``None`` if `n` is not a
        perfect `q`-th power.
    """
    if n < 0:
        raise ValueError(f"Can't take an integer root of {n}")
    if q < 1:
        raise ValueError(f"Root degree must be positive, not {q}")
    if n < 2 or q == 1:
        return n
    if q == 2:
        r = math.isqrt(n)
        return r if r * r == n else None
    # Newton iteration from above converges to floor(n ** (1/q)).
    x = 1 << -(-n.bit_length() // q)
    while True:
        y = ((q - 1) * x + n // x ** (q - 1)) // q
        if y >= x:
            break
        x = y
    return x if x ** q == n else None


def root(a: Rational, q: int) -> typing.Optional[Rational]:
    """The exact non-negative `q`-th root of a non-negative rational, if any."""
    numerator = integer_root(a.numerator, q)
    if numerator is None:
        return None
    denominator = integer_root(a.denominator, q)
    if denominator is None:
        return None
    return Rational(numerator, denominator)


FACTOR_LIMIT = 1 << 16
"""The largest trial divisor used by `factorize`."""


def factorize(n: int, limit: int=FACTOR_LIMIT) -> typing.Dict[int, int]:
    """Decompose a positive integer into prime powers.

    Parameters
    ----------
    n : int
        The positive integer to factor.

    limit : int, default=`FACTOR_LIMIT`
        The largest trial divisor. Any cofactor left after trial division
        appears in the result as if it were prime.

    Returns
    -------
    dict
        A mapping from (pseudo-)prime factor to multiplicity, in ascending
        order of factor.
    """
    if n < 1:
        raise ValueError(f"Can't factor {n}")
    factors = {}
    divisor = 2
    while n > 1 and divisor <= limit and divisor * divisor <= n:
        while n % divisor == 0:
            factors[divisor] = factors.get(divisor, 0) + 1
            n //= divisor
        divisor += 1 if divisor == 2 else 2
    if n > 1:
        base, exponent = _perfect_power(n)
        factors[base] = factors.get(base, 0) + exponent
    return factors


def _perfect_power(n: int) -> typing.Tuple[int, int]:
    """Express `n` as ``base ** exponent`` with the largest small exponent."""
    for exponent in range(min(n.bit_length(), 64), 1, -1):
        base = integer_root(n, exponent)
        if base is not None:
            return base, exponent
    return n, 1


def perfect_power(n: int) -> typing.Tuple[int, int]:
    """Express `n` as ``base ** exponent`` with the smallest possible base.

    Parameters
    ----------
    n : int
        An integer greater than one.

    Returns
    -------
    tuple of int
        The base and exponent. The exponent is 1 if `n` is not a perfect
        power.

    Examples
    --------
    >>> perfect_power(64)
    (2, 6)
    >>> perfect_power(36)
    (6, 2)
    """
    if n < 2:
        raise ValueError(f"Can't reduce {n} to a perfect power")
    exponent = 1
    while True:
        base, k = _perfect_power(n)
        if k == 1:
            return n, exponent
        n, exponent = base, exponent * k


def to_float(a: Rational) -> float:
    """Convert to the nearest float."""
    return float(a)


def to_text(a: Rational, decimals: bool=False) -> str:
    """Format a rational as ``'p'``, ``'p/q'``, or a decimal string."""
    if decimals and a.denominator != 1:
        return repr(float(a))
    return str(a)
