from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any

from dynawire._internal.coercion import CallbackCoercer, convert_enum
from dynawire._internal.extensions import EXTENSION_BAG_NAME, ExtensionBag
from dynawire._internal.injection import InjectionCache
from dynawire._internal.missing import MissingMemberProtocol
from dynawire._internal.registry import SERVICES_MEMBER, RegistryEntry
from dynawire._internal.resolver import OverloadResolver
from dynawire._internal.type_checks import is_enum_class, strip_annotated
from dynawire.capabilities import (
    LookupService,
    MethodMissingHandler,
    PropertyGetMissingHandler,
    PropertySetMissingHandler,
)
from dynawire.exceptions import (
    DynawireUnknownMethodError,
    DynawireUnknownPropertyError,
)
from dynawire.lock_mode import LockMode

DYNAMIC_OBJECT_ATTR = "__dynawire_dynamic__"
_MISSING: Any = object()


def dynamic_of(instance: Any) -> DynamicObject | None:
    """Return the dynamic object attached to ``instance``, without triggering dispatch."""
    try:
        instance_dict = object.__getattribute__(instance, "__dict__")
    except AttributeError:
        return None
    return instance_dict.get(DYNAMIC_OBJECT_ATTR)


class DynamicObject:
    """Dispatch surface of one decorated instance.

    Every attribute read, attribute write and declared-method call on a
    decorated instance is routed here. Declared members are served by the
    member registry, the overload resolver and callback coercion; injection
    points by the injection cache; everything else by the extension bag and the
    missing-member protocol.

    While the instance is being constructed only declared members are served.
    The extension bag and the missing-member handlers are not consulted until
    construction completes.
    """

    def __init__(
        self,
        instance: Any,
        entry: RegistryEntry,
        *,
        extensible: bool,
        lookup_service: LookupService | None,
        lock_mode: LockMode,
        resolver: OverloadResolver,
        coercer: CallbackCoercer,
        plain_setattr: Callable[[Any, str, Any], None] = object.__setattr__,
    ) -> None:
        self._instance = instance
        self._plain_setattr = plain_setattr
        self._entry = entry
        self._extensible = extensible
        self._lookup_service = lookup_service
        self._resolver = resolver
        self._coercer = coercer
        self._constructed = False
        self._extensions: ExtensionBag | None = None
        self.injection = InjectionCache(self._select_lookup_service, lock_mode)
        self.missing = MissingMemberProtocol(instance, entry)

    @property
    def entry(self) -> RegistryEntry:
        return self._entry

    @property
    def is_constructed(self) -> bool:
        return self._constructed

    @property
    def is_extensible(self) -> bool:
        return self._extensible

    def mark_constructed(self) -> None:
        self._constructed = True

    # region Missing-member handlers
    def set_method_missing_handler(self, handler: MethodMissingHandler | None) -> None:
        """Handle calls to undeclared methods; ``None`` removes the handler."""
        self.missing.handlers.method = handler

    def set_property_get_missing_handler(self, handler: PropertyGetMissingHandler | None) -> None:
        """Handle reads of undeclared properties; ``None`` removes the handler."""
        self.missing.handlers.property_get = handler

    def set_property_set_missing_handler(self, handler: PropertySetMissingHandler | None) -> None:
        """Handle writes to undeclared properties; ``None`` removes the handler."""
        self.missing.handlers.property_set = handler

    # endregion Missing-member handlers

    @property
    def extensions(self) -> ExtensionBag:
        """The instance's extension bag, created on first access.

        Raises:
            DynawireUnknownPropertyError: When the class is non-extensible or the
                instance is still being constructed.

        """
        if not self._extensible or not self._constructed:
            raise DynawireUnknownPropertyError(EXTENSION_BAG_NAME, self._entry.type)
        if self._extensions is None:
            self._extensions = ExtensionBag(self._entry.type)
        return self._extensions

    def has_property(self, name: str) -> bool:
        if self._entry.has_property(name) or name in self._instance_dict():
            return True
        if not self._constructed:
            return False
        if name == EXTENSION_BAG_NAME:
            return self._extensible
        return self._extensions is not None and self._extensions.has(name)

    def get_property(self, name: str) -> Any:
        return getattr(self._instance, name)

    def set_property(self, name: str, value: Any) -> None:
        setattr(self._instance, name, value)

    def has_method(self, name: str, *args: Any, **kwargs: Any) -> bool:
        """Return true when a call with these arguments reaches a declared member."""
        candidates = self._entry.methods_named(name)
        if candidates:
            return self._resolver.resolve(candidates, args, kwargs) is not None
        return callable(self._plain_attribute(name))

    def invoke_method(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Call ``name`` with the arguments, falling back to the method-missing handler.

        Raises:
            DynawireUnknownMethodError: When nothing matches and no handler exists.

        """
        candidates = self._entry.methods_named(name)
        if candidates:
            match = self._resolver.resolve(candidates, args, kwargs)
            if match is not None:
                return match.invoke(self._instance, self._coercer)
        else:
            attribute = self._plain_attribute(name)
            if callable(attribute):
                return attribute(*args, **kwargs)

        if not self._constructed:
            raise DynawireUnknownMethodError(name, len(args) + len(kwargs), self._entry.type)
        if self._extensions is not None and self._extensions.has(name):
            extension = self._extensions.get(name)
            if callable(extension):
                return extension(*args, **kwargs)
        return self.missing.method_missing(name, args, kwargs)

    def read_missing(self, name: str) -> Any:
        """Serve a read of a name that normal attribute lookup could not find.

        The property-get handler answers first. When it reports the name as
        unknown, by raising ``AttributeError`` or returning ``None``, and a
        method-missing handler exists, the read yields a forwarder so that
        ``obj.name(...)`` reaches the method-missing handler.
        """
        if not self._constructed:
            raise DynawireUnknownPropertyError(name, self._entry.type)
        if name == EXTENSION_BAG_NAME:
            return self.extensions
        if self._extensions is not None and self._extensions.has(name):
            return self._extensions.get(name)
        has_method_handler = self.missing.has_method_handler
        if self.missing.has_property_get_handler:
            try:
                value = self.missing.property_missing_get(name)
            except AttributeError:
                if not has_method_handler:
                    raise
            else:
                if value is not None or not has_method_handler:
                    return value
        if has_method_handler:
            return functools.partial(self.invoke_method, name)
        raise DynawireUnknownPropertyError(name, self._entry.type)

    def write(self, name: str, value: Any) -> None:
        """Serve an attribute write on the instance."""
        if (
            not self._constructed
            or name.startswith("_")
            or self._entry.declares(name)
            or name in self._instance_dict()
        ):
            self._plain_setattr(self._instance, name, self._convert_declared(name, value))
            return
        if self._extensions is not None and self._extensions.has(name):
            self._extensions.set(name, value)
            return
        self.missing.property_missing_set(name, value)

    def _convert_declared(self, name: str, value: Any) -> Any:
        descriptor = self._entry.properties.get(name)
        if descriptor is None or name in self._entry.injection_points:
            return value
        declared_type = strip_annotated(descriptor.annotation)
        if is_enum_class(declared_type) and isinstance(value, str):
            return convert_enum(declared_type, value)
        return value

    def _select_lookup_service(self) -> LookupService | None:
        entry = self._entry
        if SERVICES_MEMBER not in entry.injection_points and (
            entry.has_property(SERVICES_MEMBER) or entry.has_method(SERVICES_MEMBER)
        ):
            services = getattr(self._instance, SERVICES_MEMBER)
            if entry.has_method(SERVICES_MEMBER):
                services = services()
            if services is not None:
                return services
        return self._lookup_service

    def _plain_attribute(self, name: str) -> Any:
        try:
            return object.__getattribute__(self._instance, name)
        except AttributeError:
            return _MISSING

    def _instance_dict(self) -> dict[str, Any]:
        return object.__getattribute__(self._instance, "__dict__")

    def __repr__(self) -> str:
        state = "constructed" if self._constructed else "constructing"
        return f"<DynamicObject for {self._entry.type.__qualname__} ({state})>"
