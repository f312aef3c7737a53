from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any

from dynawire._internal.coercion import CallbackCoercer
from dynawire._internal.descriptors import MemberDescriptor, describe_method
from dynawire._internal.resolver import OverloadResolver
from dynawire.exceptions import DynawireUnknownMethodError

_RESOLVER = OverloadResolver()
_COERCER = CallbackCoercer()


class OverloadSet:
    """Group method variants that share one name.

    Variants are selected at call time from the runtime types of the arguments
    and are ranked in declaration order for ties. On a plain class the set
    dispatches by itself; decorated classes route it through their dynamic
    dispatch so unmatched calls reach the method-missing handler.

    Examples:
        .. code-block:: python

            class Printer:
                @overloaded
                def show(self, value: int) -> str:
                    return f"int {value}"

                @show.register
                def show(self, value: str) -> str:
                    return f"str {value}"

    """

    def __init__(self, function: Callable[..., Any]) -> None:
        self.variants: list[Callable[..., Any]] = [function]
        self.__name__ = function.__name__
        self.__qualname__ = function.__qualname__
        self.__doc__ = function.__doc__
        self.__module__ = function.__module__

    def register(self, function: Callable[..., Any]) -> OverloadSet:
        """Add a variant and return the set, so the name can be rebound to it."""
        self.variants.append(function)
        return self

    def __set_name__(self, owner: type[Any], name: str) -> None:
        self.__name__ = name

    def __get__(self, instance: Any, owner: type[Any] | None = None) -> Any:
        if instance is None:
            return self
        return functools.partial(self._invoke, instance)

    def __repr__(self) -> str:
        return f"<overloaded {self.__qualname__} ({len(self.variants)} variants)>"

    @functools.cached_property
    def descriptors(self) -> tuple[MemberDescriptor, ...]:
        return tuple(
            describe_method(function, name=self.__name__, declaring_type=None, order=order)
            for order, function in enumerate(self.variants)
        )

    def _invoke(self, instance: Any, *args: Any, **kwargs: Any) -> Any:
        match = _RESOLVER.resolve(self.descriptors, args, kwargs)
        if match is None:
            raise DynawireUnknownMethodError(self.__name__, len(args) + len(kwargs), type(instance))
        return match.invoke(instance, _COERCER)


def overloaded(function: Callable[..., Any]) -> OverloadSet:
    """Start an overload set from its first variant."""
    return OverloadSet(function)
