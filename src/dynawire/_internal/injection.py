from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from dynawire._internal.registry import InjectionPoint
from dynawire.capabilities import LookupService
from dynawire.exceptions import (
    DynawireReadOnlyInjectionPointError,
    DynawireServiceLookupError,
    DynawireUnresolvedDependencyError,
)
from dynawire.lock_mode import LockMode

logger = logging.getLogger(__name__)


class SlotState(Enum):
    """Resolution state of one injection point on one instance."""

    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    EXPLICIT = "explicit"


@dataclass(frozen=True, slots=True)
class ResolvedValue:
    """Immutable slot content; transitions replace the slot object."""

    state: SlotState
    value: Any = None


_UNRESOLVED = ResolvedValue(SlotState.UNRESOLVED)


class InjectionCache:
    """Resolve injection points of one instance lazily and at most once.

    Reads of resolved or explicitly set points never lock. The transition from
    unresolved to resolved happens inside an instance-scoped re-entrant region,
    so concurrent first reads issue a single lookup and a lookup may read other
    points of the same instance.
    """

    def __init__(
        self,
        lookup_service: Callable[[], LookupService | None],
        lock_mode: LockMode = LockMode.THREAD,
    ) -> None:
        self._lookup_service = lookup_service
        self._slots: dict[str, ResolvedValue] = {}
        self._lock: contextlib.AbstractContextManager[Any] = (
            threading.RLock() if lock_mode is LockMode.THREAD else contextlib.nullcontext()
        )

    def state_of(self, point: InjectionPoint) -> SlotState:
        return self._slots.get(point.name, _UNRESOLVED).state

    def get_injected(self, point: InjectionPoint) -> Any:
        """Return the value of ``point``, consulting the lookup service on first read.

        Raises:
            DynawireUnresolvedDependencyError: When no lookup service is available
                or the service reports the key as missing or ambiguous.

        """
        slot = self._slots.get(point.name, _UNRESOLVED)
        if slot.state is not SlotState.UNRESOLVED:
            return slot.value
        with self._lock:
            slot = self._slots.get(point.name, _UNRESOLVED)
            if slot.state is not SlotState.UNRESOLVED:
                return slot.value
            value = self._lookup(point)
            self._slots[point.name] = ResolvedValue(SlotState.RESOLVED, value)
            return value

    def set_injected(self, point: InjectionPoint, value: Any) -> None:
        """Store an explicit value for ``point``; later reads never consult the lookup.

        Raises:
            DynawireReadOnlyInjectionPointError: When the point declares no setter.

        """
        if not point.settable:
            raise DynawireReadOnlyInjectionPointError(point.name)
        with self._lock:
            self._slots[point.name] = ResolvedValue(SlotState.EXPLICIT, value)

    def _lookup(self, point: InjectionPoint) -> Any:
        service = self._lookup_service()
        if service is None:
            raise DynawireUnresolvedDependencyError(
                point.name,
                point.key,
                "no lookup service is available",
            )
        try:
            value = service.get(point.key)
        except DynawireServiceLookupError as error:
            raise DynawireUnresolvedDependencyError(point.name, point.key, str(error)) from error
        logger.debug("Resolved injection point %r with key %r", point.name, point.key)
        return value
