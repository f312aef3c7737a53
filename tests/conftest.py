"""Shared pytest fixtures for dynawire tests."""

from typing import Any

import pytest

from dynawire._internal.coercion import CallbackCoercer
from dynawire._internal.registry import MemberRegistry
from dynawire._internal.resolver import OverloadResolver
from dynawire.services import ServiceRegistry


class CountingLookup:
    """Lookup service stub that counts queries per key."""

    def __init__(self, values: dict[Any, Any] | None = None) -> None:
        self.registry = ServiceRegistry()
        for key, value in (values or {}).items():
            self.registry.add(key, value)
        self.queries: list[Any] = []

    def get(self, key: Any) -> Any:
        self.queries.append(key)
        return self.registry.get(key)


@pytest.fixture()
def registry() -> MemberRegistry:
    """Fresh member registry with an empty cache."""
    return MemberRegistry()


@pytest.fixture()
def resolver() -> OverloadResolver:
    return OverloadResolver()


@pytest.fixture()
def coercer() -> CallbackCoercer:
    return CallbackCoercer()


@pytest.fixture()
def lookup() -> CountingLookup:
    """Counting lookup service backed by an empty service registry."""
    return CountingLookup()
