import collections.abc
import configparser
import contextlib
import json
import logging
import numbers
import os
import pathlib
import types
import typing

from symcore.core.expression import Expression


log = logging.getLogger(__name__)


PathLike = typing.Union[str, pathlib.Path]


FILENAME = 'symcore.ini'
SECTION = 'symcore'
VARIABLES = 'variables'


def search(
    paths: typing.Iterable[typing.Optional[PathLike]],
    file: PathLike,
) -> typing.Optional[pathlib.Path]:
    """Search `paths` for `file`.

    Parameters
    ----------
    paths : iterable of path-like
        The directories to search, in the order given. Null entries (e.g., an
        unset environment variable) and non-existent directories are skipped.

    file : path-like
        The file to locate.

    Returns
    -------
    `pathlib.Path` or ``None``
        The full path to the first match, if any.
    """
    for p in paths:
        if not p:
            continue
        path = pathlib.Path(p).expanduser().resolve()
        if path.is_dir():
            test = path / str(file)
            if test.exists():
                return test


def default_paths() -> typing.List[typing.Optional[PathLike]]:
    """The directories to search for a configuration file, in order."""
    home = pathlib.Path('~').expanduser()
    return [
        pathlib.Path.cwd(), # The current working directory
        home, # The user's home directory
        home / '.config', # Linux standard (local)
        '/etc/symcore', # Linux standard (global)
        os.environ.get('SYMCORE_INI'), # A known environment variable
        pathlib.Path(__file__).parent.parent, # The package top
    ]


_DEFAULTS = {
    'numeric': False,
    'suppress_errors': False,
    'imaginary': 'i',
    'allowed_characters': frozenset(),
    'variables': types.MappingProxyType({}),
}


def _convert(key: str, raw: str):
    """Convert a raw INI value to the type of the named setting."""
    if key in {'numeric', 'suppress_errors'}:
        return configparser.ConfigParser.BOOLEAN_STATES[raw.strip().lower()]
    if key == 'allowed_characters':
        return frozenset(raw.split())
    return raw.strip()


def read(path: PathLike=None) -> typing.Dict[str, typing.Any]:
    """Read settings from an INI file.

    Parameters
    ----------
    path : path-like, optional
        The file to read. If omitted, this function will search the standard
        locations (see `default_paths`) for a file called ``symcore.ini``.

    Returns
    -------
    dict
        The default settings, updated by any values in the file.

    Notes
    -----
    Scalar settings live in the ``[symcore]`` section. An optional
    ``[variables]`` section assigns expression text to variable names, which
    keep their case.
    """
    values = dict(_DEFAULTS)
    if path is None:
        path = search(default_paths(), FILENAME)
    if path is None:
        log.debug("No %s found; using built-in defaults", FILENAME)
        return values
    config = configparser.ConfigParser()
    config.optionxform = str
    config.read(path)
    log.debug("Reading settings from %s", path)
    if config.has_section(VARIABLES):
        values[VARIABLES] = {
            name: raw.strip() for name, raw in config[VARIABLES].items()
        }
    if not config.has_section(SECTION):
        return values
    for key, raw in config[SECTION].items():
        if key not in _DEFAULTS or key == VARIABLES:
            raise KeyError(
                f"Unknown setting {key!r} in {path}"
            ) from None
        try:
            values[key] = _convert(key, raw)
        except KeyError:
            raise ValueError(
                f"Invalid value {raw!r} for {key!r} in {path}"
            ) from None
    return values


def _variables(mapping: typing.Mapping[str, typing.Any]) -> dict:
    """Validate a mapping from variable name to value."""
    if not isinstance(mapping, collections.abc.Mapping):
        raise TypeError(
            f"Variables must be a mapping, not {type(mapping)}"
        ) from None
    values = {}
    for name, value in mapping.items():
        if not (isinstance(name, str) and name.isidentifier()):
            raise ValueError(f"Invalid variable name {name!r}") from None
        if isinstance(value, bool) or not isinstance(
            value, (Expression, numbers.Rational, str)
        ):
            raise TypeError(
                f"Can't use {type(value)} as the value of {name!r}"
            ) from None
        values[name] = value
    return values


def _display(value):
    """Convert a setting to a JSON-compatible value."""
    if isinstance(value, frozenset):
        return sorted(value)
    if isinstance(value, collections.abc.Mapping):
        return {k: str(v) for k, v in value.items()}
    return value


class Settings(collections.abc.Mapping):
    """The process-wide configuration of the symbolic kernel.

    Instances behave like a read-only mapping. Change values through attribute
    assignment, or temporarily through one of the scoped helpers, which restore
    the previous values on every exit path::

        >>> with settings.numeric_mode():
        ...     parse('sqrt(2)')

    The ``variables`` setting is the registry of named values that the parser
    substitutes for variables (see `define`).
    """

    __slots__ = ('_values',)

    def __init__(self, **values) -> None:
        self._values = dict(_DEFAULTS)
        self.update(**values)

    @classmethod
    def from_file(cls, path: PathLike=None):
        """Create an instance from an INI file."""
        return cls(**read(path))

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self):
        yield from self._values

    def __getitem__(self, key: str):
        if key in self._values:
            return self._values[key]
        raise KeyError(f"No setting named {key!r}") from None

    def __getattr__(self, name: str):
        if name.startswith('_'):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value) -> None:
        if name in Settings.__slots__:
            return super().__setattr__(name, value)
        self.update(**{name: value})

    def update(self, **values) -> None:
        """Validate and apply new values."""
        for key, value in values.items():
            if key not in _DEFAULTS:
                raise KeyError(f"No setting named {key!r}") from None
            if key in {'numeric', 'suppress_errors'}:
                value = bool(value)
            elif key == 'imaginary':
                if not (isinstance(value, str) and value.isidentifier()):
                    raise ValueError(
                        f"Imaginary unit must be a valid name, not {value!r}"
                    ) from None
            elif key == 'allowed_characters':
                value = frozenset(value)
                if any(len(c) != 1 for c in value):
                    raise ValueError(
                        "Allowed variable characters must be single characters"
                    ) from None
            elif key == VARIABLES:
                value = types.MappingProxyType(_variables(value))
            self._values[key] = value

    def define(self, **values) -> None:
        """Register values for named variables.

        Each value may be an expression node, a rational number, or text to
        parse. The parser uses these values in place of the named variables
        until they are removed by `undefine`.
        """
        self.update(variables={**self.variables, **values})

    def undefine(self, *names: str) -> None:
        """Remove named variables from the registry."""
        missing = [name for name in names if name not in self.variables]
        if missing:
            raise KeyError(f"No registered variables {missing}") from None
        self.update(
            variables={
                k: v for k, v in self.variables.items() if k not in names
            }
        )

    @contextlib.contextmanager
    def using(self, **values):
        """Temporarily change one or more settings."""
        previous = dict(self._values)
        try:
            self.update(**values)
            yield self
        finally:
            self._values = previous

    def numeric_mode(self, mode: bool=True):
        """Temporarily enable (or disable) numeric-evaluation mode."""
        return self.using(numeric=mode)

    def suppression(self, mode: bool=True):
        """Temporarily enable (or disable) domain-error suppression."""
        return self.using(suppress_errors=mode)

    def reset(self) -> None:
        """Restore the built-in defaults."""
        self._values = dict(_DEFAULTS)

    def __str__(self) -> str:
        return json.dumps(
            {k: _display(v) for k, v in self._values.items()},
            indent=4,
            sort_keys=True,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}:\n{self}"


settings = Settings.from_file()
"""The active configuration."""
