from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from dynawire._internal.registry import (
    METHOD_MISSING_HOOK,
    PROPERTY_GET_MISSING_HOOK,
    PROPERTY_SET_MISSING_HOOK,
    RegistryEntry,
)
from dynawire.capabilities import (
    MethodMissingHandler,
    PropertyGetMissingHandler,
    PropertySetMissingHandler,
)
from dynawire.exceptions import DynawireUnknownMethodError, DynawireUnknownPropertyError


@dataclass(slots=True)
class MissingMemberHandlers:
    """Instance-level handlers; ``None`` means no handler is configured."""

    method: MethodMissingHandler | None = None
    property_get: PropertyGetMissingHandler | None = None
    property_set: PropertySetMissingHandler | None = None


class MissingMemberProtocol:
    """Route accesses to undeclared members to the configured handlers.

    Instance-level handlers win over the hook methods declared by the base
    class (``method_missing``, ``property_missing_get`` and
    ``property_missing_set``). Without either, typed errors are raised.
    Exceptions raised by handlers propagate unchanged.
    """

    def __init__(self, instance: Any, entry: RegistryEntry) -> None:
        self._instance = instance
        self._entry = entry
        self.handlers = MissingMemberHandlers()

    @property
    def has_method_handler(self) -> bool:
        return self._method_handler() is not None

    @property
    def has_property_get_handler(self) -> bool:
        return self._property_get_handler() is not None

    def method_missing(self, name: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        """Invoke the method-missing handler; keyword arguments lead as one ``dict``."""
        handler = self._method_handler()
        if handler is None:
            raise DynawireUnknownMethodError(name, len(args) + len(kwargs), self._entry.type)
        arguments = (dict(kwargs), *args) if kwargs else tuple(args)
        return handler(name, arguments)

    def property_missing_get(self, name: str) -> Any:
        handler = self._property_get_handler()
        if handler is None:
            raise DynawireUnknownPropertyError(name, self._entry.type)
        return handler(name)

    def property_missing_set(self, name: str, value: Any) -> None:
        handler = self._property_set_handler()
        if handler is None:
            raise DynawireUnknownPropertyError(name, self._entry.type)
        handler(name, value)

    def _method_handler(self) -> MethodMissingHandler | None:
        if self.handlers.method is not None:
            return self.handlers.method
        return self._type_hook(METHOD_MISSING_HOOK)

    def _property_get_handler(self) -> PropertyGetMissingHandler | None:
        if self.handlers.property_get is not None:
            return self.handlers.property_get
        return self._type_hook(PROPERTY_GET_MISSING_HOOK)

    def _property_set_handler(self) -> PropertySetMissingHandler | None:
        if self.handlers.property_set is not None:
            return self.handlers.property_set
        return self._type_hook(PROPERTY_SET_MISSING_HOOK)

    def _type_hook(self, hook_name: str) -> Any:
        hook = self._entry.type_hook(hook_name)
        if hook is None or hook.function is None:
            return None
        return hook.function.__get__(self._instance)
