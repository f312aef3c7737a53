from dynawire._internal.overloads import OverloadSet, overloaded
from dynawire.capabilities import (
    Action,
    LookupService,
    MethodMissingHandler,
    PropertyGetMissingHandler,
    PropertySetMissingHandler,
    Transformer,
)
from dynawire.decoration import (
    DecoratedTypeFactory,
    DecorateOptions,
    as_dynamic,
    decorate,
    is_decorated,
)
from dynawire.exceptions import (
    DynawireAmbiguousServiceError,
    DynawireError,
    DynawireNotDecoratedError,
    DynawireReadOnlyInjectionPointError,
    DynawireRegistrationError,
    DynawireServiceLookupError,
    DynawireServiceNotFoundError,
    DynawireUnknownMethodError,
    DynawireUnknownPropertyError,
    DynawireUnresolvedDependencyError,
)
from dynawire.lock_mode import LockMode
from dynawire.markers import (
    Component,
    Injected,
    InjectedMarker,
    InjectionMarker,
    NonExtensible,
    class_marker,
    inject,
    non_extensible,
)
from dynawire.services import ServiceRegistry

__all__ = [
    "Action",
    "Component",
    "DecorateOptions",
    "DecoratedTypeFactory",
    "DynawireAmbiguousServiceError",
    "DynawireError",
    "DynawireNotDecoratedError",
    "DynawireReadOnlyInjectionPointError",
    "DynawireRegistrationError",
    "DynawireServiceLookupError",
    "DynawireServiceNotFoundError",
    "DynawireUnknownMethodError",
    "DynawireUnknownPropertyError",
    "DynawireUnresolvedDependencyError",
    "Injected",
    "InjectedMarker",
    "InjectionMarker",
    "LockMode",
    "LookupService",
    "MethodMissingHandler",
    "NonExtensible",
    "OverloadSet",
    "PropertyGetMissingHandler",
    "PropertySetMissingHandler",
    "ServiceRegistry",
    "Transformer",
    "as_dynamic",
    "class_marker",
    "decorate",
    "inject",
    "is_decorated",
    "non_extensible",
    "overloaded",
]
