from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from dynawire.exceptions import DynawireUnknownPropertyError

EXTENSION_BAG_NAME = "ext"


class ExtensionBag:
    """Hold ad-hoc properties attached to one decorated instance.

    Values can be read and written as attributes or items and keep their
    insertion order. Names present in the bag are also visible as properties of
    the owning instance.

    Examples:
        .. code-block:: python

            task.ext.retries = 3
            task.ext["owner"] = "build"
            assert task.retries == 3

    """

    __slots__ = ("_owner", "_values")

    def __init__(self, owner: type[Any] | None = None) -> None:
        object.__setattr__(self, "_owner", owner)
        object.__setattr__(self, "_values", {})

    def has(self, name: str) -> bool:
        return name in self._values

    def get(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            raise DynawireUnknownPropertyError(name, self._owner) from None

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    @property
    def properties(self) -> Mapping[str, Any]:
        """A snapshot of the stored properties in insertion order."""
        return dict(self._values)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        return self.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delattr__(self, name: str) -> None:
        del self[name]

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        try:
            del self._values[name]
        except KeyError:
            raise DynawireUnknownPropertyError(name, self._owner) from None

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ExtensionBag({self._values!r})"
