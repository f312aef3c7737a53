from __future__ import annotations

from typing import Any, Protocol, TypeVar

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)
R_co = TypeVar("R_co", covariant=True)


class Action(Protocol[T_contra]):
    """Perform some action against a subject.

    Methods of decorated classes whose last parameter is annotated ``Action``
    accept a bare callable in its place.
    """

    def execute(self, subject: T_contra) -> None: ...


class Transformer(Protocol[R_co, T_contra]):
    """Transform a value into a result."""

    def transform(self, value: T_contra) -> R_co: ...


class LookupService(Protocol):
    """Supply values for injection points.

    ``get`` returns the value registered for ``key`` or raises a subclass of
    ``DynawireServiceLookupError`` when the key is missing or ambiguous.
    """

    def get(self, key: Any) -> Any: ...


class MethodMissingHandler(Protocol):
    """Handle a call to an undeclared method."""

    def __call__(self, name: str, args: tuple[Any, ...]) -> Any: ...


class PropertyGetMissingHandler(Protocol):
    """Handle a read of an undeclared property."""

    def __call__(self, name: str) -> Any: ...


class PropertySetMissingHandler(Protocol):
    """Handle a write to an undeclared property."""

    def __call__(self, name: str, value: Any) -> None: ...
