"""
Process-wide cache of per-precision singletons.

Special values (zeros, one, infinities) and irrational constants exist once
per (class, MathContext) pair. The cache is the only shared mutable state in
the numerics package besides the π partial-sum table; both can be cleared
through clear_caches() for test isolation.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Tuple, TypeVar

from ..core.logging import get_logger
from .context import MathContext

logger = get_logger(__name__)

T = TypeVar('T')


class InstanceCache:
    """
    Memo of singleton instances keyed by (class, MathContext).

    A re-entrant lock serializes creation, so concurrent first access from
    several threads yields one instance, and a factory may itself request
    other cached instances.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._instances: Dict[Tuple[type, MathContext], Any] = {}

    def get_or_create(self, cls: type, mctx: MathContext, factory: Callable[[], T]) -> T:
        key = (cls, mctx)
        with self._lock:
            instance = self._instances.get(key)
            if instance is None:
                logger.debug("Creating %s for %s", cls.__name__, mctx)
                instance = factory()
                self._instances[key] = instance
            return instance

    def clear(self) -> None:
        with self._lock:
            self._instances.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)

    def __contains__(self, key: Tuple[type, MathContext]) -> bool:
        with self._lock:
            return key in self._instances


instance_cache = InstanceCache()


def clear_caches() -> None:
    """Drop every cached singleton and the π series partial sums."""
    # Import here to avoid circular imports
    from .constants import clear_pi_terms

    instance_cache.clear()
    clear_pi_terms()
