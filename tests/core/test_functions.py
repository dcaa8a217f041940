import logging
import math

import pytest

from symcore.core import config
from symcore.core import functions
from symcore.core.exceptions import DivisionByZero
from symcore.core.exceptions import DomainError
from symcore.core.exceptions import ParseError
from symcore.core.expression import Expression
from symcore.core.expression import Group
from symcore.core.parser import parse


@pytest.mark.functions
def test_registry():
    """Test the collection of known functions."""
    for name in ('sqrt', 'abs', 'sin', 'log', 'factorial', 'min', 'pow'):
        assert name in functions.registry
        assert callable(functions.registry[name]['exact'])
    assert 'absolute' not in functions.registry
    assert 'minimum' not in functions.registry
    assert isinstance(functions.log, logging.Logger)
    assert functions.registry['log']['exact'] is functions.logarithm
    with pytest.raises(KeyError):
        functions.registry.register(lambda x: None, name='sin')


@pytest.mark.functions
def test_arity():
    """Test the number of arguments each function accepts."""
    assert functions.arity('sin') == (1, 1)
    assert functions.arity('log') == (1, 2)
    assert functions.arity('max') == (1, None)
    assert functions.arity('mod') == (2, 2)
    assert functions.accepts('log', 2)
    assert not functions.accepts('log', 3)
    assert functions.accepts('max', 5)
    assert not functions.accepts('max', 0)


@pytest.mark.functions
def test_apply():
    """Test direct calls to the function table."""
    two = Expression.number(2)
    assert functions.apply('sqrt', [Expression.number(9)]) == 3
    assert functions.apply('max', [two, Expression.number(5)]) == 5
    with pytest.raises(KeyError):
        functions.apply('nosuch', [two])
    with pytest.raises(TypeError):
        functions.apply('sin', [two, two])
    arg = parse('-2*x')
    assert functions.apply('abs', [arg]) == parse('2*abs(x)')
    assert arg == parse('-2*x')


@pytest.mark.functions
def test_unevaluated():
    """Calls without an exact value stay in the expression."""
    for string in ('sin(x)', 'sin(1)', 'log(2)', 'gamma(1/2)', 'floor(x)'):
        node = parse(string)
        assert node.group is Group.FUNCTION, string
    assert str(parse('sin(1)')) == 'sin(1)'


@pytest.mark.functions
def test_special_values():
    """Some calls have exact values."""
    cases = {
        'sin(0)': '0',
        'sin(pi)': '0',
        'sin(3*pi)': '0',
        'cos(0)': '1',
        'cos(pi)': '-1',
        'cos(2*pi)': '1',
        'tan(pi)': '0',
        'asin(0)': '0',
        'atan(0)': '0',
        'acos(1)': '0',
        'sinh(0)': '0',
        'cosh(0)': '1',
        'sec(0)': '1',
        'erf(0)': '0',
        'log(1)': '0',
        'log(e)': '1',
        'log(e^x)': 'x',
        'log(e^3)': '3',
        'log(exp(2))': '2',
        'log(8, 2)': '3',
        'log(1/9, 3)': '-2',
        'log(9, 1/3)': '-2',
        'log(x, x)': '1',
        'log10(1000)': '3',
        'exp(0)': '1',
        'exp(x)': 'e^x',
        'sqrt(9/4)': '3/2',
        'cbrt(-27)': '-3',
        'abs(-7/2)': '7/2',
        'abs(-3*x)': '3*abs(x)',
        'factorial(5)': '120',
        'fact(4)': '24',
        'dfactorial(7)': '105',
        'dfactorial(-1)': '1',
        'gamma(5)': '24',
        'floor(7/2)': '3',
        'floor(-7/2)': '-4',
        'ceil(7/2)': '4',
        'min(3, 1/2, 2)': '1/2',
        'max(3, 1/2, 2)': '3',
        'mod(7, 3)': '1',
        'mod(-7, 3)': '2',
        'pow(2, 10)': '1024',
    }
    for string, expected in cases.items():
        assert parse(string) == parse(expected), string


@pytest.mark.functions
def test_domain_errors():
    """Calls outside a function's domain raise an error."""
    for string in ('log(0)', 'log10(0)', 'factorial(-1)', 'gamma(0)',
                   'dfactorial(-3)', 'log(2, 1)'):
        with pytest.raises(DomainError):
            parse(string)
    with pytest.raises(DivisionByZero):
        parse('mod(x, 0)')
    with pytest.raises(DivisionByZero):
        parse('mod(1, 0)')


@pytest.mark.functions
def test_suppressed_domain_errors():
    """Suppressed errors leave the call unevaluated."""
    with config.settings.suppression():
        node = parse('log(0)')
        assert node.group is Group.FUNCTION
        assert str(node) == 'log(0)'
        node = parse('(-1)!')
        assert node.group is Group.FUNCTION
        assert node.name == 'factorial'


@pytest.mark.functions
def test_numeric():
    """Numeric mode evaluates calls on constants."""
    with config.settings.numeric_mode():
        cases = {
            'sin(1)': math.sin(1),
            'exp(1)': math.e,
            'log(2)': math.log(2),
            'log(2, 10)': math.log10(2),
            'gamma(1/2)': math.sqrt(math.pi),
            '2.5!': math.gamma(3.5),
            'erf(1)': math.erf(1),
            'sqrt(2)': math.sqrt(2),
            'cbrt(2)': 2 ** (1 / 3),
            'sec(1)': 1 / math.cos(1),
        }
        for string, expected in cases.items():
            node = parse(string)
            assert node.is_number, string
            assert float(node) == pytest.approx(expected), string
        assert str(parse('5!')) == '120'
        assert float(parse('sin(pi)')) == pytest.approx(0.0, abs=1e-12)
        assert parse('sin(x)').group is Group.FUNCTION
        with pytest.raises(DomainError):
            parse('asin(2)')
        with pytest.raises(DomainError):
            parse('log(-1)')


@pytest.mark.functions
def test_log_numeric():
    """Logarithms of constants evaluate in numeric mode."""
    with config.settings.numeric_mode():
        assert float(parse('log(3)')) == pytest.approx(math.log(3))
        assert float(parse('log(5, 2)')) == pytest.approx(math.log2(5))


@pytest.mark.functions
def test_round():
    """Constants round half away from zero."""
    cases = {
        'round(5/2)': '3',
        'round(-5/2)': '-3',
        'round(2.4)': '2',
        'round(3.14159, 2)': '3.14',
        'round(1234, -2)': '1200',
        'round(7/3, 0)': '2',
    }
    for string, expected in cases.items():
        assert parse(string) == parse(expected), string
    assert functions.arity('round') == (1, 2)
    assert parse('round(x)').group is Group.FUNCTION
    with pytest.raises(DomainError):
        parse('round(1, 1/2)')


@pytest.fixture
def user_function():
    """Define f(x, y) = x^2+y for the duration of a test."""
    functions.define('f', ['x', 'y'], 'x^2+y')
    yield functions.registry['f']
    if 'f' in functions.registry:
        functions.undefine('f')


@pytest.mark.functions
def test_define(user_function):
    """Test functions defined by an expression in their parameters."""
    assert user_function['body'] == 'x^2+y'
    assert user_function['parameters'] == ('x', 'y')
    assert functions.arity('f') == (2, 2)
    assert parse('f(3, z)') == parse('z+9')
    assert parse('f(x+1, 0)') == parse('x^2+2*x+1')
    assert parse('2*f(y, x)') == parse('2*y^2+2*x')
    with pytest.raises(ParseError):
        parse('f(1)')
    with pytest.raises(KeyError):
        functions.define('f', ['x'], 'x')
    functions.define('f', ['x'], '2*x', overwrite=True)
    assert parse('f(4)') == parse('8')
    functions.undefine('f')
    assert 'f' not in functions.registry
    with pytest.raises(KeyError):
        functions.undefine('f')


@pytest.mark.functions
def test_define_without_parameters():
    """A function may take no arguments."""
    functions.define('k', [], '42')
    try:
        assert functions.arity('k') == (0, 0)
        assert parse('k()') == parse('42')
        assert parse('k()*x') == parse('42*x')
    finally:
        functions.undefine('k')


@pytest.mark.functions
def test_define_errors():
    """Invalid definitions leave the registry unchanged."""
    with pytest.raises(ValueError):
        functions.define('g', ['x', 'x'], 'x')
    with pytest.raises(ValueError):
        functions.define('2g', ['x'], 'x')
    with pytest.raises(ValueError):
        functions.define('g', ['x y'], 'x')
    with pytest.raises(ParseError):
        functions.define('g', ['x'], 'x+')
    assert 'g' not in functions.registry
    with pytest.raises(KeyError):
        functions.undefine('sin')
    assert 'sin' in functions.registry
