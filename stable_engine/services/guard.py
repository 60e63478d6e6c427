"""Global mutual-exclusion guard for state-mutating engine calls."""
from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from ..errors import ReentrantCall

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Serialize mutating calls and reject re-entry from the holding thread.

    Other threads block until the holder exits; the holding thread calling
    back in (e.g. from a token hook or an oracle) gets ``ReentrantCall``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._owner: int | None = None
        self._operation: str | None = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        me = threading.get_ident()
        if self._owner == me:
            logger.warning(
                "Rejected re-entrant '%s' while '%s' is in progress",
                operation, self._operation,
            )
            raise ReentrantCall(operation)

        with self._lock:
            self._owner = me
            self._operation = operation
            try:
                yield
            finally:
                self._owner = None
                self._operation = None
