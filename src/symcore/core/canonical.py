"""Merge rules that keep composite nodes in canonical form.

Every function in this module takes ownership of its node arguments: callers
must pass nodes that nobody else references (see `Expression.clone`). Merges
that need arithmetic on two children call back into the private engine
functions of `~symcore.core.arithmetic`, which is how simplification
propagates through nested structures.
"""

import typing

from symcore.core import arithmetic
from symcore.core import rational
from symcore.core.expression import Expression
from symcore.core.expression import Group
from symcore.core.expression import COMPOSITES


def collapse(node: Expression) -> Expression:
    """Replace a degenerate composite with a simpler node.

    A composite with no children becomes a number; a composite with a single
    child becomes that child, with the composite's multiplier folded in. Other
    nodes pass through unchanged.
    """
    if node.group not in COMPOSITES:
        return node
    if not node.children:
        if node.group is Group.COMBINATION:
            return Expression.number(node.multiplier)
        return Expression.number(0)
    if len(node.children) > 1:
        return node
    child = next(iter(node.children.values()))
    if node.group is Group.COMBINATION:
        return arithmetic.scale(child, node.multiplier)
    return child


def pair_terms(a: Expression, b: Expression) -> Expression:
    """Create a sum of two terms that are not like terms.

    Terms with a common base but different powers form a `POLYNOMIAL` keyed
    by power; all other pairs form a `COMPOSITE` keyed by additive key.
    """
    ka = a.additive_key()
    kb = b.additive_key()
    if ka == kb:
        return Expression(
            Group.POLYNOMIAL,
            children={a.power: a, b.power: b},
        )
    return Expression(Group.COMPOSITE, children={ka: a, kb: b})


def pair_factors(a: Expression, b: Expression) -> Expression:
    """Create a product of two factors with different bases."""
    children = {
        a.multiplicative_key(): a,
        b.multiplicative_key(): b,
    }
    return Expression(Group.COMBINATION, children=children)


def insert_term(total: Expression, term: Expression) -> Expression:
    """Add a single term to a sum with unit power.

    Parameters
    ----------
    total : `~expression.Expression`
        A `POLYNOMIAL` or `COMPOSITE` with unit power.

    term : `~expression.Expression`
        Any node other than a sum with unit power.

    Returns
    -------
    `~expression.Expression`
        The canonical sum, which may have collapsed to a simpler group.
    """
    if total.group is Group.POLYNOMIAL:
        if term.additive_key() != total.additive_key():
            return pair_terms(total, term)
        key = term.power
        if key not in total.children:
            total.children[key] = term
            return total
        merged = arithmetic.combine_terms(total.children.pop(key), term)
        if not merged.is_zero:
            total.children[key] = merged
        return collapse(total)
    key = term.additive_key()
    if key not in total.children:
        total.children[key] = term
        return total
    merged = arithmetic.combine_terms(total.children.pop(key), term)
    if merged.is_zero:
        return collapse(total)
    if merged.group is Group.COMPOSITE or merged.additive_key() != key:
        return arithmetic.combine_terms(collapse(total), merged)
    total.children[key] = merged
    return total


def insert_factor(product: Expression, factor: Expression) -> Expression:
    """Multiply a product by a single factor.

    Parameters
    ----------
    product : `~expression.Expression`
        A `COMBINATION`.

    factor : `~expression.Expression`
        A node with unit multiplier that is neither a number nor a
        `COMBINATION`.

    Returns
    -------
    `~expression.Expression`
        The canonical product. A sum with unit power distributes over the
        product; a factor whose base matches an existing child sums exponents
        with it; radicals recombine with every radical in the product.
    """
    if factor.is_expanded_sum:
        return arithmetic.distribute(product, factor)
    key = factor.multiplicative_key()
    existing = product.children.get(key)
    if factor.group is Group.RATIONAL_POWER:
        if existing is None or existing.group is Group.RATIONAL_POWER:
            return insert_radical(product, factor)
    if existing is not None:
        del product.children[key]
        merged = arithmetic.combine_powers(existing, factor)
        return arithmetic.combine_factors(collapse(product), merged)
    product.children[key] = factor
    return product


def insert_radical(product: Expression, factor: Expression) -> Expression:
    """Multiply a product by a `RATIONAL_POWER` factor."""
    radicals = [
        product.children.pop(key)
        for key, child in list(product.children.items())
        if child.group is Group.RATIONAL_POWER
    ]
    coefficient, factors, extras = combine_radicals([*radicals, factor])
    product.multiplier *= coefficient
    for new in factors:
        key = new.multiplicative_key()
        if key in product.children:
            extras.append(new)
        else:
            product.children[key] = new
    result = collapse(product)
    for extra in extras:
        result = arithmetic.combine_factors(result, extra)
    return result


def radical(base: int, power: rational.Rational) -> Expression:
    """Create a `RATIONAL_POWER` node without normalizing it."""
    return Expression(
        Group.RATIONAL_POWER,
        base=Expression.number(base),
        power=power,
    )


Radicals = typing.Tuple[
    rational.Rational,
    typing.List[Expression],
    typing.List[Expression],
]


def combine_radicals(nodes: typing.Iterable[Expression]) -> Radicals:
    """Recombine rational powers of integers into canonical form.

    This function factors every base into primes, sums the exponent of each
    prime, moves integer parts into a rational coefficient, and groups the
    primes that remain by their fractional exponent. The base -1 is handled
    separately by `negative_one_power`.

    Parameters
    ----------
    nodes : iterable of `~expression.Expression`
        Nodes with a `NUMBER` base and rational power, such as
        `RATIONAL_POWER` nodes. Their multipliers are ignored.

    Returns
    -------
    tuple
        The rational coefficient, a list of `RATIONAL_POWER` nodes with
        pairwise distinct powers and bases, and a list of any other factors
        (e.g., the imaginary unit) that the caller must multiply in.
    """
    exponents = {}
    sign = rational.ZERO
    for node in nodes:
        base = node.base.multiplier
        if base == -1:
            sign += node.power
            continue
        for prime, count in rational.factorize(int(base)).items():
            exponents[prime] = exponents.get(prime, 0) + count * node.power
    coefficient, extra = arithmetic.negative_one_power(sign)
    factors = []
    extras = []
    if extra is not None:
        if extra.group is Group.RATIONAL_POWER:
            factors.append(extra)
        else:
            extras.append(extra)
    groups = {}
    for prime, exponent in sorted(exponents.items()):
        n = rational.floor(exponent)
        coefficient *= rational.power(rational.Rational(prime), n)
        remainder = exponent - n
        if remainder:
            groups[remainder] = groups.get(remainder, 1) * prime
    factors.extend(radical(base, power) for power, base in groups.items())
    return coefficient, factors, extras


def build_product(
    coefficient: rational.Rational,
    factors: typing.List[Expression],
    extras: typing.Iterable[Expression]=(),
) -> Expression:
    """Create a canonical product from the output of `combine_radicals`."""
    if not factors:
        result = Expression.number(coefficient)
    elif len(factors) == 1:
        result = factors[0]
        result.multiplier = coefficient
    else:
        result = Expression(
            Group.COMBINATION,
            multiplier=coefficient,
            children={f.multiplicative_key(): f for f in factors},
        )
    for extra in extras:
        result = arithmetic.combine_factors(result, extra)
    return result
