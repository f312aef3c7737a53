from __future__ import annotations

import logging
import threading
import types
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any

from dynawire._internal.coercion import CallbackCoercer
from dynawire._internal.dynamic_object import DYNAMIC_OBJECT_ATTR, DynamicObject, dynamic_of
from dynawire._internal.registry import (
    InjectionPoint,
    InjectionStyle,
    MemberRegistry,
    RegistryEntry,
)
from dynawire._internal.resolver import OverloadResolver
from dynawire._internal.type_checks import is_runtime_class
from dynawire.capabilities import LookupService
from dynawire.exceptions import (
    DynawireRegistrationError,
    DynawireUnknownMethodError,
    DynawireUnresolvedDependencyError,
)
from dynawire.lock_mode import LockMode
from dynawire.markers import InjectionMarker, class_markers

logger = logging.getLogger(__name__)

DECORATED_BASE_ATTR = "__dynawire_base__"
DECORATED_ENTRY_ATTR = "__dynawire_entry__"
DECORATED_SUFFIX = "_Decorated"

# Lookup service handed from a factory to the constructor of the instance it creates.
pending_lookup_service: ContextVar[LookupService | None] = ContextVar(
    "dynawire_pending_lookup_service",
    default=None,
)


class InjectedAttribute:
    """Data descriptor serving one injection point from the instance's cache."""

    __isabstractmethod__ = False

    def __init__(self, point: InjectionPoint) -> None:
        self.point = point

    def __get__(self, instance: Any, owner: type[Any] | None = None) -> Any:
        if instance is None:
            return self
        return _require_dynamic(instance, self.point).injection.get_injected(self.point)

    def __set__(self, instance: Any, value: Any) -> None:
        _require_dynamic(instance, self.point).injection.set_injected(self.point, value)

    def __repr__(self) -> str:
        return f"<injected {self.point.name} key={self.point.key!r}>"


class DecoratedClassGenerator:
    """Synthesize decorated subclasses of plain classes.

    A decorated class routes attribute reads and writes through
    ``__getattribute__``/``__setattr__``, replaces every declared method with a
    dispatcher into the instance's ``DynamicObject`` and serves injection points
    through ``InjectedAttribute`` descriptors. Generated classes are cached per
    base class and configuration.
    """

    def __init__(self, registry: MemberRegistry | None = None) -> None:
        self._registry = registry or MemberRegistry()
        self._resolver = OverloadResolver()
        self._coercer = CallbackCoercer()
        self._classes: dict[tuple[Any, ...], type[Any]] = {}
        self._lock = threading.Lock()

    @property
    def registry(self) -> MemberRegistry:
        return self._registry

    def generate(
        self,
        base: type[Any],
        *,
        injection_markers: frozenset[type[InjectionMarker]],
        non_extensible_markers: frozenset[type[Any]],
        lock_mode: LockMode,
    ) -> type[Any]:
        """Return the decorated subclass of ``base`` for this configuration.

        Raises:
            DynawireRegistrationError: When ``base`` cannot be decorated.

        """
        base = undecorated(base)
        self._validate(base)
        cache_key = (base, injection_markers, non_extensible_markers, lock_mode)
        decorated = self._classes.get(cache_key)
        if decorated is not None:
            return decorated
        with self._lock:
            decorated = self._classes.get(cache_key)
            if decorated is None:
                entry = self._registry.build(base, injection_markers)
                extensible = not any(
                    isinstance(marker, tuple(non_extensible_markers))
                    for marker in class_markers(base)
                )
                decorated = self._create_class(base, entry, extensible=extensible, lock_mode=lock_mode)
                self._classes[cache_key] = decorated
                logger.debug(
                    "Generated %s (extensible=%s, lock_mode=%s)",
                    decorated.__qualname__,
                    extensible,
                    lock_mode.value,
                )
        return decorated

    def _validate(self, base: Any) -> None:
        if not is_runtime_class(base):
            msg = f"Only classes can be decorated, got {base!r}."
            raise DynawireRegistrationError(msg)
        if base.__module__ == "builtins":
            msg = f"Builtin class '{base.__qualname__}' cannot be decorated."
            raise DynawireRegistrationError(msg)

    def _create_class(
        self,
        base: type[Any],
        entry: RegistryEntry,
        *,
        extensible: bool,
        lock_mode: LockMode,
    ) -> type[Any]:
        namespace: dict[str, Any] = {
            "__module__": base.__module__,
            "__qualname__": f"{base.__qualname__}{DECORATED_SUFFIX}",
            "__doc__": base.__doc__,
            DECORATED_BASE_ATTR: base,
            DECORATED_ENTRY_ATTR: entry,
        }
        injected_method_names = self._add_injection_points(namespace, entry)
        for name, descriptors in entry.methods.items():
            if name in injected_method_names:
                continue
            namespace[name] = self._dispatcher(entry, name, [d.function for d in descriptors])
        namespace.update(self._dispatch_hooks(base, entry, extensible=extensible, lock_mode=lock_mode))

        try:
            return types.new_class(
                f"{base.__name__}{DECORATED_SUFFIX}",
                (base,),
                {},
                lambda ns: ns.update(namespace),
            )
        except TypeError as error:
            msg = f"Class '{base.__qualname__}' cannot be subclassed for decoration: {error}"
            raise DynawireRegistrationError(msg) from error

    def _add_injection_points(self, namespace: dict[str, Any], entry: RegistryEntry) -> set[str]:
        injected_method_names: set[str] = set()
        for point in entry.injection_points.values():
            if point.style is not InjectionStyle.METHOD:
                namespace[point.name] = InjectedAttribute(point)
                continue
            injected_method_names.add(point.getter.name)
            namespace[point.getter.name] = _injected_getter(point)
            if point.setter is not None:
                injected_method_names.add(point.setter.name)
                namespace[point.setter.name] = _injected_setter(point)
            if point.name != point.getter.name and point.name not in entry.methods:
                namespace[point.name] = InjectedAttribute(point)
        return injected_method_names

    def _dispatcher(
        self,
        entry: RegistryEntry,
        name: str,
        functions: list[Callable[..., Any] | None],
    ) -> Callable[..., Any]:
        resolver = self._resolver
        coercer = self._coercer

        def dispatch(self: Any, *args: Any, **kwargs: Any) -> Any:
            dynamic = dynamic_of(self)
            if dynamic is not None:
                return dynamic.invoke_method(name, *args, **kwargs)
            # Called before the decorated constructor attached the dynamic object.
            match = resolver.resolve(entry.methods_named(name), args, kwargs)
            if match is None:
                raise DynawireUnknownMethodError(name, len(args) + len(kwargs), entry.type)
            return match.invoke(self, coercer)

        first = functions[0]
        dispatch.__name__ = name
        dispatch.__qualname__ = f"{entry.type.__qualname__}{DECORATED_SUFFIX}.{name}"
        dispatch.__doc__ = getattr(first, "__doc__", None)
        if len(functions) == 1 and first is not None:
            dispatch.__wrapped__ = first  # type: ignore[attr-defined]
        if any(getattr(function, "__isabstractmethod__", False) for function in functions):
            dispatch.__isabstractmethod__ = True  # type: ignore[attr-defined]
        return dispatch

    def _dispatch_hooks(
        self,
        base: type[Any],
        entry: RegistryEntry,
        *,
        extensible: bool,
        lock_mode: LockMode,
    ) -> dict[str, Any]:
        resolver = self._resolver
        coercer = self._coercer
        base_init = base.__init__
        base_setattr = base.__setattr__

        def __init__(self: Any, *args: Any, **kwargs: Any) -> None:  # noqa: N807
            dynamic = DynamicObject(
                self,
                entry,
                extensible=extensible,
                lookup_service=pending_lookup_service.get(),
                lock_mode=lock_mode,
                resolver=resolver,
                coercer=coercer,
                plain_setattr=base_setattr,
            )
            object.__getattribute__(self, "__dict__")[DYNAMIC_OBJECT_ATTR] = dynamic
            # Decorated instances created by the base constructor must not inherit this service.
            token = pending_lookup_service.set(None)
            try:
                base_init(self, *args, **kwargs)
            finally:
                pending_lookup_service.reset(token)
            dynamic.mark_constructed()

        def __getattribute__(self: Any, name: str) -> Any:  # noqa: N807
            try:
                return object.__getattribute__(self, name)
            except AttributeError:
                dynamic = dynamic_of(self)
                if dynamic is None or _is_dunder(name) or entry.declares(name):
                    raise
            return dynamic.read_missing(name)

        def __setattr__(self: Any, name: str, value: Any) -> None:  # noqa: N807
            dynamic = dynamic_of(self)
            if dynamic is None:
                base_setattr(self, name, value)
                return
            dynamic.write(name, value)

        __init__.__qualname__ = f"{base.__qualname__}{DECORATED_SUFFIX}.__init__"
        __init__.__wrapped__ = base_init  # type: ignore[attr-defined]
        return {
            "__init__": __init__,
            "__getattribute__": __getattribute__,
            "__setattr__": __setattr__,
        }


def undecorated(cls: type[Any]) -> type[Any]:
    """Return the base class of a decorated class, or ``cls`` itself."""
    if isinstance(cls, type):
        return cls.__dict__.get(DECORATED_BASE_ATTR, cls)
    return cls


def _injected_getter(point: InjectionPoint) -> Callable[[Any], Any]:
    def get_injected(self: Any) -> Any:
        return _require_dynamic(self, point).injection.get_injected(point)

    get_injected.__name__ = point.getter.name
    get_injected.__doc__ = getattr(point.getter.function, "__doc__", None)
    return get_injected


def _injected_setter(point: InjectionPoint) -> Callable[[Any, Any], None]:
    def set_injected(self: Any, value: Any) -> None:
        _require_dynamic(self, point).injection.set_injected(point, value)

    set_injected.__name__ = point.setter.name if point.setter is not None else point.name
    return set_injected


def _require_dynamic(instance: Any, point: InjectionPoint) -> DynamicObject:
    dynamic = dynamic_of(instance)
    if dynamic is None:
        raise DynawireUnresolvedDependencyError(
            point.name,
            point.key,
            "the instance has not been initialized",
        )
    return dynamic


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


__all__ = [
    "DECORATED_BASE_ATTR",
    "DecoratedClassGenerator",
    "InjectedAttribute",
    "pending_lookup_service",
    "undecorated",
]
