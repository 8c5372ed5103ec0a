"""
Print id allocation.

Ids are short and human-readable (``Print-4821``) because customers read
them out at the counter. The 9000-value space is small, so uniqueness is
best-effort: a few store lookups, then the last candidate is accepted even
if it might collide. A rare duplicate is preferred over refusing a
submission.
"""

from __future__ import annotations

import random
from typing import Optional

from services.order_store import OrderStore
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

ID_PREFIX = "Print-"
ID_MIN = 1000
ID_MAX = 9999
DEFAULT_MAX_ATTEMPTS = 5


def generate_print_id(rng: Optional[random.Random] = None) -> str:
    """Return ``Print-NNNN`` with NNNN uniform in [1000, 9999]."""
    rng = rng or random
    return f"{ID_PREFIX}{rng.randint(ID_MIN, ID_MAX)}"


class IdentifierAllocator:
    """
    Allocates print ids with a bounded uniqueness check.

    Usage:
        allocator = IdentifierAllocator(store)
        job_id = allocator.allocate()
    """

    def __init__(
        self,
        store: OrderStore,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: Optional[random.Random] = None
    ):
        """
        Args:
            store: Store queried for existing ids
            max_attempts: Number of store lookups before giving up on uniqueness
            rng: Random source (seeded in tests)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._store = store
        self._max_attempts = max_attempts
        self._rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def allocate(self) -> str:
        """
        Return a print id that is free in the store, most of the time.

        Raises:
            StoreReadFailedError: If the existence check itself fails
        """
        candidate = generate_print_id(self._rng)

        for attempt in range(1, self._max_attempts + 1):
            if not self._store.exists(candidate):
                return candidate

            logger.debug(f"Print id {candidate} taken (attempt {attempt}/{self._max_attempts})")
            candidate = generate_print_id(self._rng)

        # Bound reached: proceed with the last candidate unchecked
        logger.warning(
            f"No free print id after {self._max_attempts} attempts, "
            f"accepting {candidate} without a uniqueness guarantee"
        )
        return candidate
