from __future__ import annotations

from typing import Any


class DynawireError(Exception):
    """Represent a base class for all dynawire-specific failures.

    Catch this type when you want to handle any dynawire error path without
    matching each concrete exception class individually. Errors raised by
    user-supplied handlers, coerced callbacks, or lookup services are never
    wrapped in this hierarchy.
    """


class DynawireRegistrationError(DynawireError):
    """Signal a class that cannot be decorated.

    Raised by ``decorate`` and ``MemberRegistry.build`` when injection
    declarations are malformed: recognized injection markers on one member that
    disagree on the lookup key, an injection point without a type annotation and
    without an explicit key, or a paired setter whose value type is incompatible
    with the getter type.

    Typical fixes include annotating the injected getter, passing
    ``key=...`` to the marker, or widening the setter parameter annotation.
    """


class DynawireNotDecoratedError(DynawireError, TypeError):
    """Signal use of the dynamic surface on an object that is not decorated.

    Raised by ``as_dynamic`` when the object was not created from a class
    produced by ``decorate``.
    """


class DynawireUnknownMethodError(DynawireError, AttributeError):
    """Signal a call to a method that is neither declared nor handled.

    Raised when overload resolution finds no match for the supplied arguments
    and no method-missing handler is configured, and for any unmatched call made
    while the instance is still being constructed.

    The ``name`` and ``arity`` attributes carry the requested method name and
    the number of supplied arguments.
    """

    def __init__(self, name: str, arity: int, owner: type[Any] | None = None) -> None:
        self.method_name = name
        self.arity = arity
        self.owner = owner
        owner_name = owner.__qualname__ if owner is not None else "object"
        msg = (
            f"Could not find method {name}() for arguments of arity {arity} "
            f"on {owner_name}."
        )
        super().__init__(msg)
        self.name = name


class DynawireUnknownPropertyError(DynawireError, AttributeError):
    """Signal access to a property that is neither declared nor handled.

    Raised for reads and writes of names that are absent from the declared
    members and from the extension bag when no property handler is configured.
    Non-extensible classes raise it for the ``ext`` container name as well.

    The ``name`` attribute carries the requested property name.
    """

    def __init__(self, name: str, owner: type[Any] | None = None) -> None:
        self.property_name = name
        self.owner = owner
        owner_name = owner.__qualname__ if owner is not None else "object"
        msg = f"Could not get unknown property '{name}' for {owner_name}."
        super().__init__(msg)
        self.name = name


class DynawireUnresolvedDependencyError(DynawireError):
    """Signal that an injection point could not be resolved.

    Raised on first access of an injection point when no lookup service is
    available or when the lookup service reports the key as missing or
    ambiguous. The original lookup failure is chained as ``__cause__``.

    Typical fixes include registering the key in the lookup service or setting
    the value explicitly through the point's setter before reading it.
    """

    def __init__(self, point: str, key: Any, reason: str) -> None:
        self.point = point
        self.key = key
        msg = f"Could not resolve injection point '{point}' for key {key!r}: {reason}"
        super().__init__(msg)


class DynawireReadOnlyInjectionPointError(DynawireError, AttributeError):
    """Signal an assignment to an injection point that declares no setter.

    Property-style injection points become writable by adding a property
    setter; method-style points by declaring ``set_<name>``.
    """

    def __init__(self, point: str) -> None:
        self.point = point
        msg = f"Cannot set injection point '{point}': no setter is declared."
        super().__init__(msg)


class DynawireServiceLookupError(DynawireError):
    """Represent a base class for lookup services reporting an unusable key.

    Lookup services raise subclasses of this error to signal a key they cannot
    serve. Any other exception raised by a lookup service propagates unchanged.
    """

    def __init__(self, key: Any, msg: str) -> None:
        self.key = key
        super().__init__(msg)


class DynawireServiceNotFoundError(DynawireServiceLookupError):
    """Signal that a lookup service has no value for a key."""

    def __init__(self, key: Any) -> None:
        super().__init__(key, f"No service of type {_describe_key(key)} available.")


class DynawireAmbiguousServiceError(DynawireServiceLookupError):
    """Signal that a lookup service holds more than one candidate for a key."""

    def __init__(self, key: Any, candidates: tuple[Any, ...]) -> None:
        self.candidates = candidates
        super().__init__(
            key,
            f"Multiple services of type {_describe_key(key)} available: "
            f"{', '.join(repr(candidate) for candidate in candidates)}.",
        )


def _describe_key(key: Any) -> str:
    return getattr(key, "__qualname__", None) or repr(key)
