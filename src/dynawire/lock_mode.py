from __future__ import annotations

from enum import Enum


class LockMode(Enum):
    """Select locking behavior for injection point resolution.

    Use these values for ``DecorateOptions.lock_mode``. The lock only guards the
    transition of an injection point from unresolved to resolved; reads of
    already resolved points never take it.
    """

    THREAD = "thread"
    """Guard the resolution transition with an instance-scoped ``threading.RLock``."""

    NONE = "none"
    """Disable locking; only safe when instances are confined to one thread."""
