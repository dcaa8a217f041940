import typing


class SymbolicError(Exception):
    """Base class for exceptions raised by the symbolic kernel."""


class ParseError(SymbolicError, ValueError):
    """The input text does not describe a valid expression."""

    def __init__(self, message: str, position: int=None) -> None:
        self.message = message
        """A description of the problem."""
        self.position = position
        """The index in the source text where the problem was found."""
        super().__init__(message, position)

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} (at position {self.position})"


class DomainError(SymbolicError, ArithmeticError):
    """The requested operation is mathematically undefined."""


class DivisionByZero(DomainError, ZeroDivisionError):
    """Attempted to divide by the zero rational."""

    def __str__(self) -> str:
        return super().__str__() or "Division by zero"


class InvariantViolation(SymbolicError, TypeError):
    """An internal argument is not an expression node."""

    def __init__(self, arg: typing.Any, operation: str=None) -> None:
        self.arg = arg
        self.operation = operation

    def __str__(self) -> str:
        where = f" in {self.operation}" if self.operation else ''
        return f"Expected an expression node{where}, not {type(self.arg)}"
