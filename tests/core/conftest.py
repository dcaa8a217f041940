import typing

import pytest

from symcore.core import config
from symcore.core.expression import Expression
from symcore.core.expression import Group


@pytest.fixture(autouse=True)
def restore_settings():
    """Restore the global settings after each test.

    Some tests change the active configuration directly (e.g., by assigning
    to `config.settings.numeric`), so this fixture saves every value before
    the test and puts them back afterwards.
    """
    with config.settings.using():
        yield


@pytest.fixture
def composites() -> typing.Callable[[Expression], typing.List[Expression]]:
    """A function that collects every composite node in an expression."""
    def collect(node: Expression):
        kinds = {Group.POLYNOMIAL, Group.COMBINATION, Group.COMPOSITE}
        return [n for n in node.walk() if n.group in kinds]
    return collect
