"""Serialization of canonical expression nodes as text and LaTeX."""

import typing

from symcore.core import iterables
from symcore.core import rational
from symcore.core.expression import Expression
from symcore.core.expression import Group


HALF = rational.Rational(1, 2)


def terms(node: Expression) -> typing.List[Expression]:
    """The individual terms of a sum with unit power, flattened."""
    if not node.is_expanded_sum:
        return [node]
    return [t for child in node.children.values() for t in terms(child)]


def degree(node: Expression) -> rational.Rational:
    """The total rational degree of a term, for ordering output."""
    group = node.group
    if group in {Group.NUMBER, Group.SYMBOLIC_EXPONENT}:
        return rational.ZERO
    if group is Group.COMBINATION:
        return sum((degree(c) for c in node.children.values()), rational.ZERO)
    if node.is_expanded_sum:
        return max(degree(c) for c in node.children.values())
    return node.power


class Writer:
    """Base class for serializers of canonical expression nodes.

    Subclasses define how to write constants, coefficients, powers, and
    function calls. This class handles the traversal and the ordering of
    terms and factors, so that every serializer writes equal nodes
    identically.
    """

    dispatch = iterables.exhaustive(
        {
            Group.NUMBER: '_number',
            Group.RATIONAL_POWER: '_radical',
            Group.VARIABLE: '_variable',
            Group.SYMBOLIC_EXPONENT: '_exponential',
            Group.FUNCTION: '_function',
            Group.POLYNOMIAL: '_sum',
            Group.COMBINATION: '_product',
            Group.COMPOSITE: '_sum',
        },
        Group,
    )

    def __init__(self, decimals: bool=False) -> None:
        self.decimals = decimals

    def write(self, node: Expression) -> str:
        """Serialize a node, including its multiplier."""
        if node.is_number:
            return self.constant(node.multiplier)
        if node.is_expanded_sum:
            return self.join(terms(node))
        body = getattr(self, self.dispatch[node.group])(node)
        return self.scaled(node.multiplier, body)

    def join(self, items: typing.Iterable[Expression]) -> str:
        """Write the terms of a sum, highest degree first."""
        written = [(t, self.write(t)) for t in items]
        ordered = sorted(
            written,
            key=lambda pair: (pair[0].is_number, -degree(pair[0]), pair[1]),
        )
        result = ''
        for _, text in ordered:
            if result and not text.startswith('-'):
                result += '+'
            result += text
        return result

    def factors(self, node: Expression) -> typing.List[str]:
        """Write the factors of a product, radicals first."""
        written = [
            (child.group is not Group.RATIONAL_POWER, self.write(child))
            for child in node.children.values()
        ]
        return [text for _, text in sorted(written)]

    def _number(self, node: Expression) -> str:
        return self.constant(node.multiplier)

    def _radical(self, node: Expression) -> str:
        base = node.base.multiplier
        return self.raised(self.constant(base), node.power, base > 0)

    def _variable(self, node: Expression) -> str:
        return self.raised(self.name(node.name), node.power, True)

    def _function(self, node: Expression) -> str:
        call = self.call(node.name, [self.write(arg) for arg in node.args])
        return self.raised(call, node.power, True)

    def _sum(self, node: Expression) -> str:
        inner = self.join(terms(node.base_of()))
        return self.raised(inner, node.power, False)

    def _product(self, node: Expression) -> str:
        return self.product(self.factors(node))

    def _exponential(self, node: Expression) -> str:
        base = node.base
        if base.is_number:
            value = base.multiplier
            simple = value > 0 and value.denominator == 1
            text = self.constant(value)
        else:
            simple = not base.is_sum
            text = self.write(base)
        power = node.power
        bare = (
            power.group in {Group.VARIABLE, Group.FUNCTION}
            and power.multiplier == 1
            and power.power == 1
        )
        return self.exponential(text, simple, self.write(power), bare)

    def constant(self, value: rational.Rational) -> str:
        """Write a rational constant."""
        raise NotImplementedError

    def scaled(self, multiplier: rational.Rational, body: str) -> str:
        """Write a body with a rational coefficient."""
        raise NotImplementedError

    def raised(self, base: str, power: rational.Rational, simple: bool) -> str:
        """Write a base raised to a rational power."""
        raise NotImplementedError

    def exponential(self, base: str, simple: bool, power: str, bare: bool):
        """Write a base raised to a symbolic power."""
        raise NotImplementedError

    def name(self, name: str) -> str:
        """Write the name of a variable."""
        return name

    def call(self, name: str, args: typing.List[str]) -> str:
        """Write a function call."""
        raise NotImplementedError

    def product(self, factors: typing.List[str]) -> str:
        """Write a product of factors."""
        raise NotImplementedError


class Text(Writer):
    """A writer of infix text that `~symcore.core.parser.parse` accepts."""

    def constant(self, value):
        return rational.to_text(value, self.decimals)

    def scaled(self, multiplier, body):
        if multiplier == 1:
            return body
        if multiplier == -1:
            return f"-{body}"
        if self.decimals or multiplier.denominator == 1:
            return f"{self.constant(multiplier)}*{body}"
        p, q = multiplier.numerator, multiplier.denominator
        if p == 1:
            return f"{body}/{q}"
        if p == -1:
            return f"-{body}/{q}"
        return f"{p}*{body}/{q}"

    def raised(self, base, power, simple):
        if power == 1:
            return base if simple else f"({base})"
        if power == HALF:
            return f"sqrt({base})"
        if not simple:
            base = f"({base})"
        if power.denominator == 1 and power > 0:
            return f"{base}^{power}"
        return f"{base}^({power})"

    def exponential(self, base, simple, power, bare):
        if not simple:
            base = f"({base})"
        if not bare:
            power = f"({power})"
        return f"{base}^{power}"

    def call(self, name, args):
        return f"{name}({', '.join(args)})"

    def product(self, factors):
        return '*'.join(factors)


GREEK = frozenset(
    {
        'alpha', 'beta', 'gamma', 'delta', 'epsilon', 'zeta', 'eta',
        'theta', 'iota', 'kappa', 'lambda', 'mu', 'nu', 'xi', 'pi', 'rho',
        'sigma', 'tau', 'upsilon', 'phi', 'chi', 'psi', 'omega',
    }
)


OPERATOR_NAMES = frozenset(
    {
        'sin', 'cos', 'tan', 'sec', 'csc', 'cot', 'sinh', 'cosh', 'tanh',
        'log', 'exp', 'min', 'max',
    }
)


class Latex(Writer):
    """A writer of LaTeX math-mode markup."""

    def constant(self, value):
        if self.decimals or value.denominator == 1:
            return rational.to_text(value, self.decimals)
        sign = '-' if value < 0 else ''
        return rf"{sign}\frac{{{abs(value.numerator)}}}{{{value.denominator}}}"

    def scaled(self, multiplier, body):
        if multiplier == 1:
            return body
        if multiplier == -1:
            return f"-{body}"
        if self.decimals or multiplier.denominator == 1:
            separator = r" \cdot " if body[0].isdigit() else ''
            return f"{self.constant(multiplier)}{separator}{body}"
        sign = '-' if multiplier < 0 else ''
        p = abs(multiplier.numerator)
        numerator = body if p == 1 else rf"{p} \cdot {body}"
        return rf"{sign}\frac{{{numerator}}}{{{multiplier.denominator}}}"

    def raised(self, base, power, simple):
        if power == HALF:
            return rf"\sqrt{{{base}}}"
        if not simple:
            base = rf"\left({base}\right)"
        if power == 1:
            return base
        if power.denominator == 1:
            return f"{base}^{{{power}}}"
        return f"{base}^{{{self.constant(power)}}}"

    def exponential(self, base, simple, power, bare):
        if not simple:
            base = rf"\left({base}\right)"
        return f"{base}^{{{power}}}"

    def name(self, name):
        if name in GREEK:
            return f"\\{name}"
        if len(name) > 1:
            return rf"\mathrm{{{name}}}"
        return name

    def call(self, name, args):
        joined = ', '.join(args)
        if name == 'abs':
            return rf"\left|{joined}\right|"
        if name == 'sqrt':
            return rf"\sqrt{{{joined}}}"
        if name in OPERATOR_NAMES:
            command = f"\\{name}"
        else:
            command = rf"\operatorname{{{name}}}"
        return rf"{command}\left({joined}\right)"

    def product(self, factors):
        return r" \cdot ".join(factors)


def text(node: Expression, decimals: bool=False) -> str:
    """Serialize a node as infix text.

    Parameters
    ----------
    node : `~expression.Expression`
        The node to serialize.

    decimals : bool, default=false
        If true, write non-integral constants as decimal numbers rather than
        exact ratios. The result then parses to an approximation of `node`.

    Returns
    -------
    string
        Text that `~symcore.core.parser.parse` converts back into `node`.

    Examples
    --------
    >>> from symcore.core.parser import parse
    >>> text(parse('(x+1)^2'))
    'x^2+2*x+1'
    >>> text(parse('x/3'), decimals=True)
    '0.3333333333333333*x'
    """
    return Text(decimals=decimals).write(node)


def latex(node: Expression, decimals: bool=False) -> str:
    """Serialize a node as LaTeX math-mode markup."""
    return Latex(decimals=decimals).write(node)
