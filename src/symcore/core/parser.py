"""Conversion of infix text into canonical expression nodes.

Parsing happens in three passes. The tokenizer splits text into numbers,
names, brackets, commas, and runs of operator characters. The converter
resolves each operator run against the operator table and rewrites the token
stream into postfix order (a Shunting-Yard variant with separate handling of
prefix and postfix operators). Finally, the evaluator replays the postfix
sequence through the arithmetic engine and the function table.
"""

import logging
import math
import re
import typing

from symcore.core import config
from symcore.core import functions
from symcore.core import iterables
from symcore.core import operators
from symcore.core import rational
from symcore.core.exceptions import ParseError
from symcore.core.expression import Coercible
from symcore.core.expression import Expression
from symcore.core.expression import coerce


log = logging.getLogger(__name__)


NUMBER = re.compile(
    r"""
    (?:\d+\.?\d*|\.\d+) # digits with an optional fractional part, ...
    (?:[eE][-+]?\d+)?   # ... and an optional exponent
    """,
    re.VERBOSE,
)


CONSTANTS = {
    'pi': math.pi,
    'e': math.e,
}
"""Named constants that become numbers in numeric mode."""


class Token(iterables.ReprStrMixin):
    """A lexical unit of an expression.

    Parameters
    ----------
    kind : {'number', 'name', 'operators', 'open', 'close', 'comma'}
        The lexical category of this token.

    text : string
        The source text of this token.

    position : int
        The index of the first character of this token in the source.

    spaced : bool
        True if whitespace separates this token from the previous one.
    """

    __slots__ = ('kind', 'text', 'position', 'spaced')

    def __init__(
        self,
        kind: str,
        text: str,
        position: int,
        spaced: bool=False,
    ) -> None:
        self.kind = kind
        self.text = text
        self.position = position
        self.spaced = spaced

    def __str__(self) -> str:
        return f"{self.kind} {self.text!r} at {self.position}"


def _is_letter(c: str) -> bool:
    """True if `c` may appear in a name."""
    if c.isascii() and (c.isalpha() or c == '_'):
        return True
    return c in config.settings.allowed_characters


def tokenize(
    string: str,
    table: operators.Table=None,
) -> typing.List[Token]:
    """Split an expression into tokens.

    Parameters
    ----------
    string : string
        The expression to split.

    table : `~operators.Table`, optional
        The operators to recognize. The default is the standard table.

    Returns
    -------
    list of `Token`

    Raises
    ------
    ParseError
        The expression contains a character that is not part of any token.
    """
    symbols = (table or operators.table).characters
    tokens = []
    spaced = False
    i = 0
    while i < len(string):
        c = string[i]
        if c.isspace():
            spaced = True
            i += 1
            continue
        if match := NUMBER.match(string, i):
            kind, end = 'number', match.end()
        elif _is_letter(c):
            end = i + 1
            while end < len(string) and (
                _is_letter(string[end]) or string[end].isdigit()
            ): end += 1
            kind = 'name'
        elif c == '(':
            kind, end = 'open', i + 1
        elif c == ')':
            kind, end = 'close', i + 1
        elif c == ',':
            kind, end = 'comma', i + 1
        elif c in symbols:
            end = i + 1
            while end < len(string) and string[end] in symbols:
                end += 1
            kind = 'operators'
        else:
            raise ParseError(f"Invalid character {c!r}", i)
        tokens.append(Token(kind, string[i:end], i, spaced))
        spaced = False
        i = end
    return tokens


class Bracket:
    """An open bracket on the operator stack."""

    __slots__ = ('position', 'index', 'function', 'commas')

    def __init__(self, position: int, index: int, function: str=None):
        self.position = position
        self.index = index
        self.function = function
        self.commas = 0


class Call(iterables.ReprStrMixin):
    """A function call in a postfix sequence."""

    __slots__ = ('name', 'argc')

    def __init__(self, name: str, argc: int) -> None:
        self.name = name
        self.argc = argc

    def __str__(self) -> str:
        return f"{self.name}/{self.argc}"


Postfix = typing.List[typing.Union[Expression, operators.Operator, Call]]


class Parser:
    """A tool for parsing symbolic expressions.

    Parameters
    ----------
    substitutions : mapping, optional
        Values to use in place of named variables. Each value may be an
        expression node, a rational number, or text to parse. These take
        precedence over variables registered in the global settings.

    table : `~operators.Table`, optional
        The operators to recognize. The default is the standard table.
    """

    def __init__(
        self,
        substitutions: typing.Mapping[str, Coercible]=None,
        table: operators.Table=None,
    ) -> None:
        self.table = table or operators.table
        self.substitutions = {
            name: coerce(value)
            for name, value in (substitutions or {}).items()
        }

    def parse(self, string: str) -> Expression:
        """Convert `string` into a single canonical node."""
        if not isinstance(string, str):
            raise TypeError(f"Can't parse {type(string)}")
        tokens = tokenize(string, self.table)
        if not tokens:
            raise ParseError("Empty expression", 0)
        postfix = self.to_postfix(tokens, len(string))
        log.debug("Postfix form of %r: %s", string, postfix)
        return self.evaluate(postfix)

    def to_postfix(self, tokens: typing.List[Token], end: int) -> Postfix:
        """Rewrite a token stream in postfix order.

        Parameters
        ----------
        tokens : list of `Token`
            The output of `tokenize`.

        end : int
            The length of the source text, for reporting errors at the end
            of input.

        Returns
        -------
        list
            A sequence of operand nodes, operators, and function calls.
        """
        output = []
        stack = []
        expecting = True
        i = 0
        while i < len(tokens):
            token = tokens[i]
            kind = token.kind
            if kind in {'number', 'name', 'open'} and not expecting:
                self._push(self.table.find('*', 'binary'), stack, output)
                expecting = True
            if kind == 'number':
                output.append(Expression.number(rational.create(token.text)))
                expecting = False
            elif kind == 'name':
                following = tokens[i + 1] if i + 1 < len(tokens) else None
                if self._is_call(token, following):
                    stack.append(
                        Bracket(following.position, i + 1, token.text)
                    )
                    i += 1
                else:
                    output.append(self._operand(token))
                    expecting = False
            elif kind == 'open':
                stack.append(Bracket(token.position, i))
            elif kind == 'operators':
                expecting = self._operators(token, expecting, stack, output)
            elif kind == 'comma':
                if expecting:
                    raise ParseError("Missing operand", token.position)
                bracket = self._unwind(stack, output)
                if bracket is None or bracket.function is None:
                    raise ParseError("Unexpected ','", token.position)
                bracket.commas += 1
                stack.append(bracket)
                expecting = True
            elif kind == 'close':
                bracket = self._unwind(stack, output)
                if bracket is None:
                    raise ParseError("Unmatched ')'", token.position)
                self._close(bracket, token, i, expecting, output)
                expecting = False
            i += 1
        if expecting:
            raise ParseError("Unexpected end of expression", end)
        while stack:
            item = stack.pop()
            if isinstance(item, Bracket):
                raise ParseError("Unmatched '('", item.position)
            output.append(item)
        return output

    def _is_call(self, token: Token, following: typing.Optional[Token]):
        """True if the name `token` starts a function call."""
        if following is None or following.kind != 'open':
            return False
        if token.text in functions.registry:
            return True
        if following.spaced:
            return False
        raise ParseError(f"Unknown function {token.text!r}", token.position)

    def _operand(self, token: Token) -> Expression:
        """Create the node for a name that is not a function call."""
        name = token.text
        if name in self.substitutions:
            return self.substitutions[name].clone()
        if name in functions.registry:
            raise ParseError(
                f"Function {name!r} requires arguments", token.position
            )
        registered = config.settings.variables
        if name in registered:
            # Registered values don't see the registry, so they can't recurse.
            with config.settings.using(variables={}):
                return coerce(registered[name]).clone()
        if name in CONSTANTS and config.settings.numeric:
            return Expression.number(rational.create(CONSTANTS[name]))
        return Expression.variable(name)

    def _operators(
        self,
        token: Token,
        expecting: bool,
        stack: list,
        output: Postfix,
    ) -> bool:
        """Resolve a run of operator characters.

        In operand position, every character in the run must belong to a
        chain of prefix operators. After an operand, the run resolves as zero
        or more postfix operators (longest match first), then an optional
        binary operator (the longest symbol at the start of what remains),
        then zero or more prefix operators.

        Returns
        -------
        bool
            True if the parser now expects an operand.
        """
        run = token.text
        if expecting:
            stack.extend(self._prefixes(run, 0, token.position))
            return True
        offset = 0
        while offset < len(run):
            operator = self.table.longest(run[offset:], 'postfix')
            if operator is None:
                break
            output.append(operator)
            offset += len(operator.symbol)
        if offset == len(run):
            return False
        binary = self.table.longest(run[offset:], 'binary')
        if binary is None:
            raise ParseError(
                f"Unknown operator {run[offset:]!r}", token.position + offset
            )
        self._push(binary, stack, output)
        offset += len(binary.symbol)
        stack.extend(self._prefixes(run, offset, token.position))
        return True

    def _prefixes(
        self,
        run: str,
        offset: int,
        position: int,
    ) -> typing.List[operators.Operator]:
        """Resolve the end of an operator run as chained prefix operators."""
        found = []
        while offset < len(run):
            operator = self.table.longest(run[offset:], 'prefix')
            if operator is None:
                raise ParseError(
                    f"Unknown prefix operator {run[offset:]!r}",
                    position + offset,
                )
            found.append(operator)
            offset += len(operator.symbol)
        return found

    def _push(
        self,
        operator: operators.Operator,
        stack: list,
        output: Postfix,
    ) -> None:
        """Push a binary operator after popping operators that bind tighter."""
        while (
            stack
            and isinstance(stack[-1], operators.Operator)
            and stack[-1].yields_to(operator)
        ): output.append(stack.pop())
        stack.append(operator)

    def _unwind(
        self,
        stack: list,
        output: Postfix,
    ) -> typing.Optional[Bracket]:
        """Pop operators to output until reaching an open bracket."""
        while stack:
            item = stack.pop()
            if isinstance(item, Bracket):
                return item
            output.append(item)

    def _close(
        self,
        bracket: Bracket,
        token: Token,
        index: int,
        expecting: bool,
        output: Postfix,
    ) -> None:
        """Finish a bracketed group or function call."""
        empty = bracket.index == index - 1
        if bracket.function is None:
            if expecting:
                message = "Empty brackets" if empty else "Missing operand"
                raise ParseError(message, token.position)
            return
        if expecting and not (empty and bracket.commas == 0):
            raise ParseError("Missing operand", token.position)
        argc = 0 if empty else bracket.commas + 1
        if not functions.accepts(bracket.function, argc):
            raise ParseError(
                f"{bracket.function} does not accept {argc} argument(s)",
                bracket.position,
            )
        output.append(Call(bracket.function, argc))

    def evaluate(self, postfix: Postfix) -> Expression:
        """Replay a postfix sequence through the arithmetic engine."""
        stack = []
        for item in postfix:
            if isinstance(item, Expression):
                stack.append(item)
            elif isinstance(item, Call):
                args = stack[len(stack) - item.argc:]
                del stack[len(stack) - item.argc:]
                stack.append(functions.apply(item.name, args))
            else:
                operands = stack[-item.arity:]
                del stack[-item.arity:]
                stack.append(item(*operands))
        return stack.pop()


def parse(
    string: str,
    substitutions: typing.Mapping[str, Coercible]=None,
    **settings,
) -> Expression:
    """Parse and fully reduce an expression.

    Parameters
    ----------
    string : string
        The expression to parse, in infix notation.

    substitutions : mapping, optional
        Values to use in place of named variables. Each value may be an
        expression node, a rational number, or text to parse.

    **settings
        Temporary values for any of the global settings (e.g.,
        ``numeric=True``), which apply only while parsing.

    Returns
    -------
    `~expression.Expression`
        The canonical form of the expression.

    Raises
    ------
    ParseError
        The text is not a valid expression.

    DomainError
        The expression contains an undefined operation and error
        suppression is off.

    Examples
    --------
    >>> str(parse('2+3*4'))
    '14'
    >>> str(parse('x*(y+1)', {'y': 'x'}))
    'x^2+x'
    """
    with config.settings.using(**settings):
        return Parser(substitutions=substitutions).parse(string)
