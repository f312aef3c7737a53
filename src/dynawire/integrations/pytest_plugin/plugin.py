from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import pytest

from dynawire.decoration import DecoratedTypeFactory, DecorateOptions, decorate
from dynawire.services import ServiceRegistry

T = TypeVar("T")


class RecordingLookupService:
    """Forward lookups to a delegate service and record every queried key.

    Use ``count`` to assert how often the decorated instances under test hit
    the lookup service. Failures raised by the delegate propagate unchanged and
    are recorded as well.
    """

    def __init__(self, delegate: Any) -> None:
        self.delegate = delegate
        self.queries: list[Any] = []

    def get(self, key: Any) -> Any:
        self.queries.append(key)
        return self.delegate.get(key)

    def count(self, key: Any | None = None) -> int:
        """Return the number of queries, optionally only those for ``key``."""
        if key is None:
            return len(self.queries)
        return sum(1 for query in self.queries if query == key)

    def reset(self) -> None:
        self.queries.clear()


@pytest.fixture()
def dynawire_services() -> ServiceRegistry:
    """Create a per-test service registry.

    Override this fixture, or add values to it inside a test, to control what
    injection points of decorated instances resolve to.

    Returns:
        A new, empty ``ServiceRegistry``.

    """
    return ServiceRegistry()


@pytest.fixture()
def dynawire_lookup(dynawire_services: ServiceRegistry) -> RecordingLookupService:
    """Wrap ``dynawire_services`` in a lookup service that records queries.

    Args:
        dynawire_services: The per-test service registry.

    Returns:
        A ``RecordingLookupService`` delegating to ``dynawire_services``.

    """
    return RecordingLookupService(dynawire_services)


@pytest.fixture()
def dynawire_decorate(
    dynawire_lookup: RecordingLookupService,
) -> Callable[..., DecoratedTypeFactory[Any]]:
    """Decorate classes bound to the recording lookup service.

    The returned callable accepts the class and the remaining
    ``DecorateOptions`` fields as keyword arguments.

    Args:
        dynawire_lookup: The per-test recording lookup service.

    Returns:
        A callable returning a ``DecoratedTypeFactory``.

    """

    def _decorate(cls: type[T], **options: Any) -> DecoratedTypeFactory[T]:
        options.setdefault("lookup_service", dynawire_lookup)
        return decorate(cls, DecorateOptions(**options))

    return _decorate
