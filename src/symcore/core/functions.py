"""The table of functions that expressions may call.

Each entry pairs an exact handler, which receives argument nodes and returns
either a simplified node or ``None``, with a numerical method that operates
on floats. Calls that neither simplify exactly nor evaluate numerically stay
in the expression as `FUNCTION` nodes.
"""

import logging
import math
import typing

import numpy
from scipy import special

from symcore.core import arithmetic
from symcore.core import config
from symcore.core import iterables
from symcore.core import rational
from symcore.core.exceptions import DivisionByZero
from symcore.core.exceptions import DomainError
from symcore.core.expression import Expression
from symcore.core.expression import Group


log = logging.getLogger(__name__)


registry = iterables.ObjectRegistry(object_key='exact')


UNARY = 1
BINARY = 2
VARIADIC = -1


def arity(name: str) -> typing.Tuple[int, typing.Optional[int]]:
    """The minimum and maximum number of arguments to a function.

    Registered functions declare their arity as a fixed count, as `VARIADIC`
    for one or more arguments, or as a ``(min, max)`` pair. The maximum is
    ``None`` for variadic functions.
    """
    declared = registry[name].get('arity', UNARY)
    if declared == VARIADIC:
        return (1, None)
    if isinstance(declared, int):
        return (declared, declared)
    return tuple(declared)


def accepts(name: str, n: int) -> bool:
    """True if the named function can take `n` arguments."""
    lower, upper = arity(name)
    return n >= lower and (upper is None or n <= upper)


def apply(name: str, args: typing.Sequence[Expression]) -> Expression:
    """Call the named function on argument nodes.

    Parameters
    ----------
    name : string
        The name of a registered function.

    args : sequence of `~expression.Expression`
        The arguments. This function does not modify them.

    Returns
    -------
    `~expression.Expression`
        The exact result, if there is one; the numerical result, if
        numeric mode is on and every argument is constant; otherwise, an
        unevaluated `FUNCTION` node.

    Raises
    ------
    KeyError
        There is no function called `name`.

    TypeError
        The function does not accept this number of arguments.

    DomainError
        The arguments are outside the function's domain and error
        suppression is off.
    """
    if name not in registry:
        raise KeyError(f"Unknown function {name!r}") from None
    if not accepts(name, len(args)):
        raise TypeError(
            f"{name} does not accept {len(args)} argument(s)"
        ) from None
    return _evaluate(name, list(args))


def _unevaluated(name: str, args: typing.List[Expression]) -> Expression:
    """Create a `FUNCTION` node without evaluating it."""
    return Expression.function(name, [arg.clone() for arg in args])


@arithmetic.guarded(_unevaluated)
def _evaluate(name: str, args: typing.List[Expression]) -> Expression:
    """Evaluate a function call, exactly if possible."""
    entry = registry[name]
    result = entry['exact'](*args)
    if result is not None:
        return result
    method = entry.get('method')
    numeric = config.settings.numeric
    if numeric and method is not None and all(a.is_number for a in args):
        return _numerical(name, method, [a.multiplier for a in args])
    return _unevaluated(name, args)


def _numerical(
    name: str,
    method: typing.Callable[..., float],
    values: typing.List[rational.Rational],
) -> Expression:
    """Evaluate a function on floats and convert the result."""
    log.debug("Evaluating %s%s numerically", name, tuple(values))
    with numpy.errstate(all='raise'):
        try:
            result = method(*(float(v) for v in values))
        except (
            FloatingPointError,
            OverflowError,
            ValueError,
            ZeroDivisionError,
        ) as err:
            raise DomainError(f"{name} is undefined here: {err}") from err
    result = float(result)
    if not math.isfinite(result):
        raise DomainError(f"{name} is undefined at {values}")
    return Expression.number(rational.create(result))


def _constant(node: Expression) -> typing.Optional[rational.Rational]:
    """The value of a constant node, or ``None``."""
    return node.multiplier if node.is_number else None


def _integer(node: Expression) -> typing.Optional[int]:
    """The value of an integral constant node, or ``None``."""
    value = _constant(node)
    if value is not None and rational.is_integer(value):
        return int(value)


def _is_named(node: Expression, name: str) -> bool:
    """True if `node` is exactly the named variable."""
    return (
        node.group is Group.VARIABLE
        and node.name == name
        and node.multiplier == 1
        and node.power == 1
    )


def _pi_multiple(node: Expression) -> typing.Optional[rational.Rational]:
    """The rational `k` such that `node` is ``k*pi``, if any."""
    if node.is_zero:
        return rational.ZERO
    if node.group is Group.VARIABLE and node.name == 'pi':
        if node.power == 1:
            return node.multiplier


def _zero_at_zero(x: Expression):
    """Exact handler for odd functions that only simplify at zero."""
    if x.is_zero:
        return Expression.number(0)


def _one_at_zero(x: Expression):
    """Exact handler for functions equal to one at zero."""
    if x.is_zero:
        return Expression.number(1)


def _unchanged(*args: Expression):
    """Exact handler for functions with no exact special values."""
    return None


@registry.register(method=math.sqrt)
def sqrt(x: Expression):
    """The principal square root."""
    return arithmetic.pow(x, Expression.number(rational.Rational(1, 2)))


@registry.register(method=numpy.cbrt)
def cbrt(x: Expression):
    """The real cube root."""
    return arithmetic.pow(x, Expression.number(rational.Rational(1, 3)))


@registry.register(name='abs', method=abs)
def absolute(x: Expression):
    """The absolute value.

    Constants evaluate exactly. The magnitude of a numerical coefficient moves
    outside of the call, so that ``abs(-3*x)`` becomes ``3*abs(x)``.
    """
    if x.is_number:
        return Expression.number(abs(x.multiplier))
    if x.is_expanded_sum or x.multiplier == 1:
        return None
    inner = x.clone()
    magnitude = abs(inner.multiplier)
    inner.multiplier = rational.ONE
    return arithmetic.scale(Expression.function('abs', [inner]), magnitude)


@registry.register(method=math.exp)
def exp(x: Expression):
    """The natural exponential, as a power of ``e``."""
    if config.settings.numeric:
        return None
    return arithmetic.pow(Expression.variable('e'), x)


@registry.register(
    name='log',
    arity=(1, 2),
    method=lambda x, b=math.e: math.log(x, b),
)
def logarithm(x: Expression, base: Expression=None):
    """The logarithm, with base ``e`` unless given."""
    if x.is_zero:
        raise DomainError("log(0) is undefined")
    if x.is_one:
        return Expression.number(0)
    if base is None:
        if _is_named(x, 'e'):
            return Expression.number(1)
        if (
            x.group is Group.SYMBOLIC_EXPONENT
            and _is_named(x.base, 'e')
            and x.multiplier == 1
        ):
            return x.power.clone()
        if x.group is Group.VARIABLE and x.name == 'e' and x.multiplier == 1:
            return Expression.number(x.power)
        return None
    if base.is_one or base.is_zero:
        raise DomainError(f"Invalid logarithm base {base}")
    if x.equals(base):
        return Expression.number(1)
    return _exact_log(x, base)


def _exact_log(x: Expression, base: Expression):
    """Compute log(x, base) when x is an integral power of base."""
    n = _constant(x)
    b = _constant(base)
    if n is None or b is None or n <= 0 or b <= 0:
        return None
    k = 0
    value = n if n > 1 else 1 / n
    ratio = b if b > 1 else 1 / b
    while value > 1:
        value /= ratio
        k += 1
    if value != 1 or k == 0:
        return None
    sign = 1 if (n > 1) == (b > 1) else -1
    return Expression.number(sign * k)


@registry.register(method=math.log10)
def log10(x: Expression):
    """The common logarithm."""
    if x.is_zero:
        raise DomainError("log10(0) is undefined")
    if x.is_one:
        return Expression.number(0)
    return _exact_log(x, Expression.number(10))


@registry.register(method=numpy.sin)
def sin(x: Expression):
    """The sine, exact at integer multiples of ``pi``."""
    k = _pi_multiple(x)
    if k is not None and rational.is_integer(k):
        return Expression.number(0)


@registry.register(method=numpy.cos)
def cos(x: Expression):
    """The cosine, exact at integer multiples of ``pi``."""
    k = _pi_multiple(x)
    if k is not None and rational.is_integer(k):
        return Expression.number(-1 if int(k) % 2 else 1)


@registry.register(method=numpy.tan)
def tan(x: Expression):
    """The tangent, exact at integer multiples of ``pi``."""
    k = _pi_multiple(x)
    if k is not None and rational.is_integer(k):
        return Expression.number(0)


registry.register(_zero_at_zero, name='asin', method=numpy.arcsin)
registry.register(_one_at_zero, name='sec', method=lambda x: 1 / numpy.cos(x))
registry.register(_unchanged, name='csc', method=lambda x: 1 / numpy.sin(x))
registry.register(_unchanged, name='cot', method=lambda x: 1 / numpy.tan(x))
registry.register(_zero_at_zero, name='atan', method=numpy.arctan)
registry.register(_zero_at_zero, name='sinh', method=numpy.sinh)
registry.register(_one_at_zero, name='cosh', method=numpy.cosh)
registry.register(_zero_at_zero, name='tanh', method=numpy.tanh)
registry.register(_zero_at_zero, name='asinh', method=numpy.arcsinh)
registry.register(_zero_at_zero, name='atanh', method=numpy.arctanh)
registry.register(_zero_at_zero, name='erf', method=special.erf)


@registry.register(method=numpy.arccos)
def acos(x: Expression):
    """The inverse cosine."""
    if x.is_one:
        return Expression.number(0)


@registry.register(method=numpy.arccosh)
def acosh(x: Expression):
    """The inverse hyperbolic cosine."""
    if x.is_one:
        return Expression.number(0)


@registry.register(method=lambda x: special.gamma(x + 1))
def factorial(x: Expression):
    """The factorial, exact for non-negative integers.

    Other constants evaluate through the gamma function in numeric mode.
    """
    n = _integer(x)
    if n is None:
        return None
    if n < 0:
        raise DomainError(f"factorial is undefined for {n}")
    return Expression.number(math.factorial(n))


registry.register(factorial, name='fact', method=lambda x: special.gamma(x + 1))


def _factorial2(x: float) -> float:
    """The double factorial of a non-negative integer, as a float."""
    if x < 0 or not float(x).is_integer():
        raise ValueError(f"double factorial is undefined for {x}")
    return special.factorial2(int(x), exact=False)


@registry.register(method=_factorial2)
def dfactorial(x: Expression):
    """The double factorial, exact for non-negative integers."""
    n = _integer(x)
    if n is None:
        return None
    if n < -1:
        raise DomainError(f"double factorial is undefined for {n}")
    result = 1
    for k in range(n, 1, -2):
        result *= k
    return Expression.number(result)


@registry.register(method=special.gamma)
def gamma(x: Expression):
    """The gamma function, exact for positive integers."""
    n = _integer(x)
    if n is None:
        return None
    if n <= 0:
        raise DomainError(f"gamma is undefined for {n}")
    return Expression.number(math.factorial(n - 1))


@registry.register(method=math.floor)
def floor(x: Expression):
    """The greatest integer not greater than a constant."""
    value = _constant(x)
    if value is not None:
        return Expression.number(rational.floor(value))


@registry.register(method=math.ceil)
def ceil(x: Expression):
    """The least integer not less than a constant."""
    value = _constant(x)
    if value is not None:
        return Expression.number(-rational.floor(-value))


@registry.register(name='round', arity=(1, 2))
def rounded(x: Expression, digits: Expression=None):
    """Round a constant to a number of decimal places.

    Ties round away from zero. A negative number of places rounds to tens,
    hundreds, and so on.
    """
    value = _constant(x)
    if value is None:
        return None
    places = 0
    if digits is not None:
        places = _integer(digits)
        if places is None:
            if digits.is_number:
                raise DomainError(
                    f"round needs an integer number of places, not {digits}"
                )
            return None
    factor = rational.power(rational.Rational(10), places)
    magnitude = rational.floor(abs(value) * factor + rational.Rational(1, 2))
    result = rational.Rational(magnitude) / factor
    return Expression.number(-result if value < 0 else result)


@registry.register(name='min', arity=VARIADIC, method=min)
def minimum(*args: Expression):
    """The least of several constants."""
    values = [_constant(arg) for arg in args]
    if all(v is not None for v in values):
        return Expression.number(min(values))


@registry.register(name='max', arity=VARIADIC, method=max)
def maximum(*args: Expression):
    """The greatest of several constants."""
    values = [_constant(arg) for arg in args]
    if all(v is not None for v in values):
        return Expression.number(max(values))


@registry.register(arity=BINARY)
def mod(a: Expression, b: Expression):
    """The remainder of constant division, with the sign of the divisor."""
    x = _constant(a)
    y = _constant(b)
    if x is not None and y is not None:
        return Expression.number(rational.modulo(x, y))
    if b.is_zero:
        raise DivisionByZero("mod(x, 0) is undefined")


@registry.register(name='pow', arity=BINARY)
def power(a: Expression, b: Expression):
    """The power ``a ^ b``, in function form."""
    return arithmetic.pow(a, b)


def define(
    name: str,
    parameters: typing.Sequence[str],
    body: str,
    overwrite: bool=False,
) -> None:
    """Register a function whose body is an expression in its parameters.

    Parameters
    ----------
    name : string
        The name of the new function.

    parameters : sequence of strings
        The names of the function's parameters, in calling order.

    body : string
        The expression to evaluate. Each call parses this text with the
        arguments in place of the parameters.

    overwrite : bool, default=false
        If true, replace any existing function with the same name.

    Raises
    ------
    ValueError
        A name is not a valid identifier, or two parameters share a name.

    KeyError
        There is already a function called `name` and `overwrite` is false.

    ParseError
        The body is not a valid expression.

    Examples
    --------
    >>> define('f', ['x', 'y'], 'x^2+y')
    >>> str(apply('f', [Expression.number(3), Expression.variable('z')]))
    'z+9'
    """
    from symcore.core import parser
    parameters = list(parameters)
    for string in (name, *parameters):
        if not string.isidentifier():
            raise ValueError(f"{string!r} is not a valid name") from None
    if len(set(parameters)) != len(parameters):
        raise ValueError(f"Repeated parameter in {parameters}") from None
    parser.parse(body)
    def handler(*args: Expression):
        return parser.parse(body, dict(zip(parameters, args)))
    handler.__name__ = name
    registry.register(
        handler,
        name=name,
        arity=len(parameters),
        body=body,
        parameters=tuple(parameters),
        overwrite=overwrite,
    )
    log.debug("Defined %s(%s) = %s", name, ', '.join(parameters), body)


def undefine(name: str) -> None:
    """Remove a function created by `define`."""
    if 'body' not in registry.get(name, {}):
        raise KeyError(f"No user-defined function called {name!r}") from None
    registry.remove(name)
