import collections.abc
import enum
import typing


T = typing.TypeVar('T')


E = typing.TypeVar('E', bound=enum.Enum)
def exhaustive(
    mapping: typing.Mapping[E, T],
    members: typing.Type[E],
) -> typing.Mapping[E, T]:
    """Ensure that `mapping` has an entry for every member of `members`.

    Dispatch tables keyed by an enumeration call this at import time, so that
    adding a member without a handler fails immediately instead of at the
    first unlucky call.
    """
    missing = set(members) - set(mapping)
    if missing:
        names = ', '.join(sorted(m.name for m in missing))
        raise TypeError(
            f"Dispatch table has no entry for {names}"
        ) from None
    return mapping


def stable(this: typing.Any) -> typing.Any:
    """Convert nested containers into an order-independent, sortable form.

    Frozen sets become tuples sorted by the `repr` of their (converted)
    members, and tuples are converted member-wise. The result of two calls on
    equal arguments has identical `repr`, which is not true of sets in
    general.
    """
    if isinstance(this, frozenset):
        return tuple(sorted((stable(i) for i in this), key=repr))
    if isinstance(this, tuple):
        return tuple(stable(i) for i in this)
    return this


class ReprStrMixin:
    """A mixin class that provides support for `__repr__` and `__str__`.

    Concrete classes define `__str__`; `__repr__` wraps that string in the
    module-qualified class name.
    """

    def __repr__(self) -> str:
        """An unambiguous representation of this object."""
        module = f"{self.__module__.replace('symcore.', '')}."
        name = self.__class__.__qualname__
        return f"{module}{name}({self})"


class ObjectRegistry(collections.abc.Mapping):
    """A class for associating metadata with arbitrary objects."""

    def __init__(self, object_key: str='object') -> None:
        self._items = {}
        self._object_key = object_key

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def register(
        self,
        _obj: T=None,
        name: str=None,
        overwrite: bool=False,
        **metadata
    ) -> T:
        """Register an object and any associated metadata.

        This function exists to decorate objects. Without any arguments, it
        will log the decorated object in an internal mapping, keyed by the
        object's name. The user may optionally provide key-value pairs of
        metadata to associate with the object.

        Parameters
        ----------
        name : string
            The name to use as this object's key in the internal mapping. The
            default is `None`, which causes this class to use the defined name
            of the object.

        overwrite : bool, default=false
            If true and there is already an object with the key given by
            `name`, overwrite that object. Otherwise, registering a duplicate
            key raises `KeyError`.

        **metadata
            Arbitrary metadata to associate with the decorated object.

        Returns
        -------
        Any
            The decorated object.

        Examples
        --------
        >>> registry = ObjectRegistry()
        >>> @registry.register(arity=(1, 1))
        ... def myfunc(x):
        ...     pass
        ...
        >>> registry['myfunc']['arity']
        (1, 1)
        """
        def decorator(obj):
            key = name or obj.__name__
            if key in self._items and not overwrite:
                raise KeyError(f"{key!r} is already registered") from None
            self._items[key] = {self._object_key: obj, **metadata}
            return obj
        if _obj is None:
            return decorator
        return decorator(_obj)

    def remove(self, key: str) -> typing.Dict[str, typing.Any]:
        """Remove an object and its metadata, and return them."""
        if key not in self._items:
            raise KeyError(f"{key!r} is not registered") from None
        return self._items.pop(key)

    def __getitem__(self, key: str) -> typing.Dict[str, typing.Any]:
        """Get an item from the object collection."""
        return self._items[key]

    def __repr__(self) -> str:
        """An unambiguous representation of this object."""
        return f"{self.__class__.__qualname__}({list(self._items)})"
