from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Generic, TypeVar

from dynawire._internal.dynamic_object import DynamicObject, dynamic_of
from dynawire._internal.generator import (
    DECORATED_BASE_ATTR,
    DecoratedClassGenerator,
    pending_lookup_service,
)
from dynawire.capabilities import LookupService
from dynawire.exceptions import DynawireNotDecoratedError, DynawireRegistrationError
from dynawire.lock_mode import LockMode
from dynawire.markers import InjectedMarker, InjectionMarker, NonExtensible

T = TypeVar("T")

_GENERATOR = DecoratedClassGenerator()


@dataclass(frozen=True, slots=True)
class DecorateOptions:
    """Configure how ``decorate`` synthesizes a decorated class.

    Examples:
        .. code-block:: python

            options = DecorateOptions(
                injection_markers=frozenset({InjectedMarker, Autowired}),
                lookup_service=ServiceRegistry().add(Clock, SystemClock()),
            )
            factory = decorate(Task, options)

    """

    injection_markers: frozenset[type[InjectionMarker]] = field(
        default_factory=lambda: frozenset({InjectedMarker}),
    )
    """Marker classes whose instances designate injection points."""

    non_extensible_markers: frozenset[type[Any]] = field(
        default_factory=lambda: frozenset({NonExtensible}),
    )
    """Class markers that disable the ``ext`` extension bag."""

    lookup_service: LookupService | None = None
    """Object answering ``get(key)`` for injection points."""

    lock_mode: LockMode = LockMode.THREAD
    """Locking strategy of the per-instance injection cache."""

    def __post_init__(self) -> None:
        for name in ("injection_markers", "non_extensible_markers"):
            value = getattr(self, name)
            if not isinstance(value, frozenset):
                object.__setattr__(self, name, frozenset(_as_iterable(value)))
        invalid = [
            marker
            for marker in self.injection_markers
            if not (isinstance(marker, type) and issubclass(marker, InjectionMarker))
        ]
        if invalid:
            msg = (
                "Injection markers must be subclasses of InjectionMarker, got "
                f"{', '.join(repr(marker) for marker in invalid)}."
            )
            raise DynawireRegistrationError(msg)


class DecoratedTypeFactory(Generic[T]):
    """Create instances of a decorated class bound to one lookup service.

    Calling the decorated class directly works as well; such instances resolve
    injection points only through their own ``services`` member.
    """

    def __init__(self, decorated_type: type[T], options: DecorateOptions) -> None:
        self._decorated_type = decorated_type
        self._options = options

    @property
    def decorated_type(self) -> type[T]:
        """The synthesized ``<Base>_Decorated`` class."""
        return self._decorated_type

    @property
    def base_type(self) -> type[Any]:
        return self._decorated_type.__dict__[DECORATED_BASE_ATTR]

    @property
    def options(self) -> DecorateOptions:
        return self._options

    def instantiate(self, *args: Any, **kwargs: Any) -> T:
        """Create a decorated instance, passing the arguments to the base constructor.

        Exceptions raised by the base constructor propagate unchanged.
        """
        token = pending_lookup_service.set(self._options.lookup_service)
        try:
            return self._decorated_type(*args, **kwargs)
        finally:
            pending_lookup_service.reset(token)

    def with_lookup_service(self, lookup_service: LookupService | None) -> DecoratedTypeFactory[T]:
        """Return a factory for the same decorated class bound to ``lookup_service``."""
        return DecoratedTypeFactory(
            self._decorated_type,
            replace(self._options, lookup_service=lookup_service),
        )

    def __call__(self, *args: Any, **kwargs: Any) -> T:
        return self.instantiate(*args, **kwargs)

    def __repr__(self) -> str:
        return f"DecoratedTypeFactory({self._decorated_type.__qualname__})"


def decorate(cls: type[T], options: DecorateOptions | None = None) -> DecoratedTypeFactory[T]:
    """Synthesize the decorated variant of ``cls`` and return a factory for it.

    The decorated class is a subclass of ``cls``. Declared members keep their
    behaviour while calls are resolved by runtime argument types, bare
    callables are coerced into declared capability parameters, injection
    points are resolved lazily from the lookup service, and accesses to
    undeclared members reach the missing-member handlers.

    Args:
        cls: The base class. Decorating an already decorated class decorates its base.
        options: Decoration settings. Defaults to ``DecorateOptions()``.

    Returns:
        A factory creating decorated instances.

    Raises:
        DynawireRegistrationError: When ``cls`` is not a class, cannot be
            subclassed, or declares malformed injection points.

    """
    options = options or DecorateOptions()
    decorated = _GENERATOR.generate(
        cls,
        injection_markers=options.injection_markers,
        non_extensible_markers=options.non_extensible_markers,
        lock_mode=options.lock_mode,
    )
    return DecoratedTypeFactory(decorated, options)


def as_dynamic(instance: Any) -> DynamicObject:
    """Return the dispatch surface of a decorated instance.

    Raises:
        DynawireNotDecoratedError: When ``instance`` was not created from a
            decorated class.

    """
    dynamic = dynamic_of(instance)
    if dynamic is None:
        msg = f"{type(instance).__qualname__} instance is not decorated; create it through decorate()."
        raise DynawireNotDecoratedError(msg)
    return dynamic


def is_decorated(instance: Any) -> bool:
    return dynamic_of(instance) is not None


def _as_iterable(value: Any) -> Iterable[Any]:
    if isinstance(value, type):
        return (value,)
    return value
