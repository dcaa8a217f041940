"""An exact symbolic-algebra kernel.

The functions exported here are the whole public surface: `parse` converts
text into canonical expression nodes, and the arithmetic functions combine
nodes without modifying them.

>>> import symcore
>>> str(symcore.parse('(x+1)*(x+1)'))
'x^2+2*x+1'
"""

# read version from installed package
from importlib.metadata import version
__version__ = version("symcore")

from symcore.core.arithmetic import add
from symcore.core.arithmetic import divide
from symcore.core.arithmetic import invert
from symcore.core.arithmetic import multiply
from symcore.core.arithmetic import negate
from symcore.core.arithmetic import pow
from symcore.core.arithmetic import subtract
from symcore.core.config import settings
from symcore.core.exceptions import DivisionByZero
from symcore.core.exceptions import DomainError
from symcore.core.exceptions import InvariantViolation
from symcore.core.exceptions import ParseError
from symcore.core.exceptions import SymbolicError
from symcore.core.expression import Expression
from symcore.core.expression import Group
from symcore.core.parser import parse
